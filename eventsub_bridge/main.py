import asyncio
import contextlib
import logging
import sys

from pydantic import ValidationError

from eventsub_bridge.components.chat_listener import ChatListener
from eventsub_bridge.components.event_logger import EventLogger
from eventsub_bridge.core.config import BridgeSettings, get_settings
from eventsub_bridge.core.credentials import CredentialStore
from eventsub_bridge.core.dispatcher import EventDispatcher
from eventsub_bridge.core.eventsub_server import EventSubServer
from eventsub_bridge.core.logging import setup_logging
from eventsub_bridge.core.periodic import PeriodicTask
from eventsub_bridge.core.subscriptions import SubscriptionRegistrar
from eventsub_bridge.core.token_refresher import TokenRefresher
from eventsub_bridge.services.twitch_api import TwitchAPIClient

LOGGER: logging.Logger = logging.getLogger("Bridge")


async def runner(settings: BridgeSettings) -> None:
    credentials = CredentialStore.from_settings(settings)
    api = TwitchAPIClient(
        settings.client_id, settings.client_secret, timeout=settings.request_timeout
    )

    registrar = SubscriptionRegistrar(
        credentials,
        api,
        callback_url=settings.webhook_url,
        webhook_secret=settings.webhook_secret,
    )
    refresher = TokenRefresher(credentials, api, registrar)
    refresh_task = PeriodicTask("token-refresh", settings.refresh_interval, refresher.refresh)

    dispatcher = EventDispatcher()
    EventLogger().attach(dispatcher)
    server = EventSubServer(settings.webhook_secret, dispatcher, api, port=settings.port)

    chat = ChatListener(settings, credentials)
    chat_task: asyncio.Task | None = None

    try:
        await server.start()
        refresh_task.start()
        chat_task = asyncio.create_task(chat.run(), name="chat-listener")

        # Runs until cancelled (Ctrl+C / SIGTERM via asyncio.run)
        await asyncio.Event().wait()
    finally:
        LOGGER.info("Shutting down...")
        await refresh_task.stop()

        with contextlib.suppress(Exception):
            await chat.close()
        if chat_task is not None and not chat_task.done():
            chat_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await chat_task

        await server.stop()
        await api.close()


def main() -> None:
    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        LOGGER.error(f"Environment validation failed: {e}")
        sys.exit(1)

    setup_logging(settings)
    LOGGER.info(f"Starting EventSub bridge for #{settings.channel} on port {settings.port}")

    try:
        asyncio.run(runner(settings))
    except KeyboardInterrupt:
        LOGGER.warning("Shutting down due to KeyboardInterrupt...")


if __name__ == "__main__":
    main()
