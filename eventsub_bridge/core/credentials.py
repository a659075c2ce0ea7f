"""In-memory credential store.

Holds the client credentials and the user token pair. The pair is only ever
swapped as a whole so a refresh never leaves a mismatched access/refresh
token behind.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from eventsub_bridge.core.config import BridgeSettings


@dataclass(frozen=True)
class Credentials:
    client_id: str
    client_secret: str = dataclasses.field(repr=False)
    access_token: str = dataclasses.field(repr=False)
    refresh_token: str = dataclasses.field(repr=False)
    broadcaster_username: str


class CredentialStore:
    """Process-wide credential holder, injected into the components that need it."""

    def __init__(self, credentials: Credentials) -> None:
        self._credentials = credentials

    @classmethod
    def from_settings(cls, settings: BridgeSettings) -> CredentialStore:
        return cls(
            Credentials(
                client_id=settings.client_id,
                client_secret=settings.client_secret,
                access_token=settings.client_oauth_token,
                refresh_token=settings.refresh_token,
                broadcaster_username=settings.channel,
            )
        )

    def get(self) -> Credentials:
        return self._credentials

    def replace(self, access_token: str, refresh_token: str) -> None:
        # Single assignment of a new frozen snapshot: readers see old or new, never a mix
        self._credentials = dataclasses.replace(
            self._credentials, access_token=access_token, refresh_token=refresh_token
        )
