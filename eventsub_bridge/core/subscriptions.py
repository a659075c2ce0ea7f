"""EventSub webhook subscription registration."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from eventsub_bridge.core.config import EVENTSUB_TYPES
from eventsub_bridge.core.eventsub import SubscriptionDescriptor
from eventsub_bridge.core.exceptions import SubscriptionRegistrationError
from eventsub_bridge.services.twitch_api import SubscriptionStatus

if TYPE_CHECKING:
    from eventsub_bridge.core.credentials import CredentialStore
    from eventsub_bridge.services.twitch_api import TwitchAPIClient

LOGGER = logging.getLogger("Bridge.Subscriptions")


def get_channel_subscriptions(
    broadcaster_user_id: str,
    callback: str,
    secret: str,
    event_types: Sequence[str] = EVENTSUB_TYPES,
) -> list[SubscriptionDescriptor]:
    """Generate the webhook subscriptions for a channel."""
    return [
        SubscriptionDescriptor(
            type=event_type,
            broadcaster_user_id=broadcaster_user_id,
            callback=callback,
            secret=secret,
        )
        for event_type in event_types
    ]


@dataclass
class RegistrationSummary:
    broadcaster_user_id: str
    created: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.existing)


class SubscriptionRegistrar:
    """Ensures every catalog subscription exists for the broadcaster.

    Safe to call repeatedly: a 409 from Twitch means the subscription is
    already in place and counts as success. Any other failure stops the batch;
    the next refresh cycle retries all of it.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        api: TwitchAPIClient,
        *,
        callback_url: str,
        webhook_secret: str,
        event_types: Sequence[str] = EVENTSUB_TYPES,
    ) -> None:
        self._credentials = credentials
        self._api = api
        self._callback_url = callback_url
        self._webhook_secret = webhook_secret
        self._event_types = tuple(event_types)

    async def register_all(self, broadcaster_username: str) -> RegistrationSummary:
        # Token is read once; a concurrent refresh does not affect this batch
        access_token = self._credentials.get().access_token

        broadcaster_id = await self._api.get_user_id(broadcaster_username, access_token)
        if not broadcaster_id:
            raise SubscriptionRegistrationError(
                f"Could not resolve broadcaster '{broadcaster_username}'"
            )

        app_token = await self._api.get_app_access_token()
        if not app_token:
            raise SubscriptionRegistrationError("Could not obtain app access token")

        summary = RegistrationSummary(broadcaster_user_id=broadcaster_id)
        descriptors = get_channel_subscriptions(
            broadcaster_id, self._callback_url, self._webhook_secret, self._event_types
        )

        for descriptor in descriptors:
            result = await self._api.create_eventsub_subscription(descriptor, app_token)

            if result.status is SubscriptionStatus.CREATED:
                LOGGER.info(f"Registered: {descriptor.type}")
                summary.created.append(descriptor.type)
            elif result.status is SubscriptionStatus.CONFLICT:
                LOGGER.info(f"Already registered: {descriptor.type}")
                summary.existing.append(descriptor.type)
            else:
                raise SubscriptionRegistrationError(
                    result.detail or "unknown error", event_type=descriptor.type
                )

        LOGGER.info(
            f"EventSub ready for {broadcaster_username} ({broadcaster_id}): "
            f"{len(summary.created)} created, {len(summary.existing)} already registered"
        )
        return summary
