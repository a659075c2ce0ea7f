from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import twitchio
from twitchio import eventsub

if TYPE_CHECKING:
    from eventsub_bridge.core.config import BridgeSettings
    from eventsub_bridge.core.credentials import CredentialStore


LOGGER: logging.Logger = logging.getLogger("Bridge.Chat")


class ChatMessageLogger:
    """Logs chat lines, skipping messages sent by the bot account itself."""

    def __init__(self, bot_user_id: str | None = None) -> None:
        self.bot_user_id = bot_user_id
        self.logged = 0

    def handle(self, author_id: str | None, author_name: str, text: str) -> bool:
        if self.bot_user_id is not None and author_id == self.bot_user_id:
            return False

        self.logged += 1
        LOGGER.info(f"[CHAT] {author_name}: {text}")
        return True


class ChatListener(twitchio.Client):
    """Read-only chat connection to a single channel over EventSub websocket."""

    def __init__(self, settings: BridgeSettings, credentials: CredentialStore) -> None:
        self._bridge_settings = settings
        self._credential_store = credentials
        self.channel_name = settings.channel
        self.message_logger = ChatMessageLogger()
        self.broadcaster_id: str | None = None

        super().__init__(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
        )

    async def setup_hook(self) -> None:
        creds = self._credential_store.get()
        resp = await self.add_token(creds.access_token, creds.refresh_token)

        if resp.login and resp.login.lower() != self._bridge_settings.client_username.lower():
            LOGGER.warning(
                f"Token belongs to '{resp.login}', expected '{self._bridge_settings.client_username}'"
            )
        self.message_logger.bot_user_id = resp.user_id

        users = await self.fetch_users(logins=[self.channel_name])
        if not users:
            LOGGER.error(f"Channel not found: {self.channel_name}")
            return

        self.broadcaster_id = users[0].id
        await self.subscribe_websocket(
            eventsub.ChatMessageSubscription(
                broadcaster_user_id=self.broadcaster_id, user_id=resp.user_id
            ),
            token_for=resp.user_id,
        )
        LOGGER.info(f"Listening to chat in #{self.channel_name} as {resp.login}")

    async def event_message(self, payload: twitchio.ChatMessage) -> None:
        chatter = payload.chatter
        self.message_logger.handle(chatter.id, chatter.display_name or chatter.name or "?", payload.text)

    async def run(self) -> None:
        """Run until closed; connection failures are logged, never raised."""
        try:
            await self.start(with_adapter=False, load_tokens=False, save_tokens=False)
        except twitchio.exceptions.InvalidTokenException as e:
            LOGGER.error(f"Chat token rejected, chat logging disabled: {e}")
        except Exception as e:
            LOGGER.exception(f"Chat connection failed: {e}")
