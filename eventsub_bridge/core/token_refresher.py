"""User token refresh followed by EventSub registration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from eventsub_bridge.core.exceptions import SubscriptionRegistrationError, TokenRefreshError

if TYPE_CHECKING:
    from eventsub_bridge.core.credentials import CredentialStore
    from eventsub_bridge.core.subscriptions import SubscriptionRegistrar
    from eventsub_bridge.services.twitch_api import TwitchAPIClient

LOGGER = logging.getLogger("Bridge.Tokens")


class TokenRefresher:
    """Best-effort refresh: failures are logged and retried on the next cycle."""

    def __init__(
        self,
        credentials: CredentialStore,
        api: TwitchAPIClient,
        registrar: SubscriptionRegistrar | None = None,
    ) -> None:
        self._credentials = credentials
        self._api = api
        self._registrar = registrar
        self.last_error: TokenRefreshError | None = None

    async def refresh(self) -> bool:
        """Refresh the token pair, then re-register subscriptions.

        Returns True when the token pair was replaced. Never raises.
        """
        current = self._credentials.get()
        try:
            result = await self._api.refresh_access_token(current.refresh_token)
        except Exception as e:
            self.last_error = TokenRefreshError(f"unexpected error: {e}")
            LOGGER.exception(f"Token refresh failed, keeping current tokens: {self.last_error}")
            return False

        if not result.success or not result.access_token or not result.refresh_token:
            self.last_error = TokenRefreshError(result.error or "incomplete token pair")
            LOGGER.error(f"Token refresh failed, keeping current tokens: {self.last_error}")
            return False

        self.last_error = None
        self._credentials.replace(result.access_token, result.refresh_token)
        LOGGER.info("Token refreshed")

        if self._registrar is not None:
            try:
                await self._registrar.register_all(current.broadcaster_username)
            except SubscriptionRegistrationError as e:
                LOGGER.error(f"EventSub registration failed: {e}")
            except Exception as e:
                LOGGER.exception(f"Unexpected error during EventSub registration: {e}")

        return True
