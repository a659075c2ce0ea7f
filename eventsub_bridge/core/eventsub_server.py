"""HTTP server: EventSub webhook receiver plus a few operator endpoints"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from aiohttp import web

from eventsub_bridge.components.sample_events import get_sample_event
from eventsub_bridge.core.eventsub import (
    HEADER_MESSAGE_ID,
    HEADER_MESSAGE_SIGNATURE,
    HEADER_MESSAGE_TIMESTAMP,
    HEADER_MESSAGE_TYPE,
    MessageType,
    extract_event_type,
    verify_signature,
)
from eventsub_bridge.core.exceptions import SignatureMismatchError

if TYPE_CHECKING:
    from eventsub_bridge.core.dispatcher import EventDispatcher
    from eventsub_bridge.services.twitch_api import TwitchAPIClient

logger = logging.getLogger("Bridge.EventSub")


class EventSubServer:
    """aiohttp application serving POST /eventsub and the operator routes"""

    def __init__(
        self,
        webhook_secret: str,
        dispatcher: EventDispatcher,
        api: TwitchAPIClient | None = None,
        host: str = "0.0.0.0",
        port: int = 3000,
    ):
        self._webhook_secret = webhook_secret
        self.dispatcher = dispatcher
        self.api = api
        self.host = host
        self.port = port
        self.app = web.Application()
        self.runner: web.AppRunner | None = None
        self._start_time: float = time.time()
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Configure HTTP routes"""
        self.app.router.add_post("/eventsub", self.handle_eventsub)
        self.app.router.add_get("/", self.handle_root)
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_get("/subs", self.handle_subs)
        self.app.router.add_post("/test/{event}", self.handle_test_event)

    # ------------------------------------------------------------------
    # Webhook
    # ------------------------------------------------------------------

    def _authenticate(self, request: web.Request, body: bytes) -> None:
        message_id = request.headers.get(HEADER_MESSAGE_ID, "")
        timestamp = request.headers.get(HEADER_MESSAGE_TIMESTAMP, "")
        signature = request.headers.get(HEADER_MESSAGE_SIGNATURE, "")

        if not verify_signature(self._webhook_secret, message_id, timestamp, body, signature):
            raise SignatureMismatchError(f"Invalid signature for message {message_id or '?'}")

    async def handle_eventsub(self, request: web.Request) -> web.Response:
        """Verify, then answer the challenge or acknowledge and dispatch"""
        body = await request.read()

        try:
            self._authenticate(request, body)
        except SignatureMismatchError as e:
            logger.warning(str(e))
            return web.Response(status=403, text="Invalid signature")

        try:
            payload: Any = json.loads(body)
        except ValueError:
            logger.error("Signed EventSub request with an unparseable body, acknowledging")
            return web.Response(status=200)

        if not isinstance(payload, dict):
            logger.error(f"Signed EventSub request with a non-object body: {type(payload).__name__}")
            return web.Response(status=200)

        message_type = request.headers.get(HEADER_MESSAGE_TYPE, MessageType.NOTIFICATION)

        if message_type == MessageType.VERIFICATION:
            challenge = payload.get("challenge")
            logger.info(f"Webhook verification for {extract_event_type(payload)}")
            return web.Response(status=200, text=str(challenge or ""), content_type="text/plain")

        if message_type == MessageType.REVOCATION:
            subscription = payload.get("subscription")
            if not isinstance(subscription, dict):
                subscription = {}
            logger.warning(
                f"Subscription revoked: {subscription.get('type', '?')} "
                f"(status: {subscription.get('status', '?')})"
            )
            return web.Response(status=200)

        event_type = extract_event_type(payload)
        event = payload.get("event") or {}
        self.dispatcher.dispatch(event_type, event)
        return web.Response(status=200)

    # ------------------------------------------------------------------
    # Operator endpoints
    # ------------------------------------------------------------------

    async def handle_root(self, request: web.Request) -> web.Response:
        """Root endpoint - liveness text"""
        return web.Response(text="EventSub bridge is running")

    async def handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint, always 200 (liveness)"""
        return web.json_response(
            {"status": "healthy", "uptime_seconds": int(time.time() - self._start_time)}
        )

    async def handle_subs(self, request: web.Request) -> web.Response:
        """List remote EventSub subscriptions with a fresh app token"""
        if self.api is None:
            return web.Response(status=500, text="Twitch API client not configured")

        app_token = await self.api.get_app_access_token()
        if not app_token:
            return web.Response(status=500, text="Failed to obtain app access token")

        data = await self.api.list_eventsub_subscriptions(app_token)
        if data is None:
            return web.Response(status=500, text="Failed to list subscriptions")

        return web.json_response(data)

    async def handle_test_event(self, request: web.Request) -> web.Response:
        """Dispatch a canned payload, independent of real Twitch traffic"""
        event_type = request.match_info["event"]
        event = get_sample_event(event_type)
        if event is None:
            return web.Response(status=404, text=f"No sample payload for {event_type}")

        logger.info(f"Dispatching test event: {event_type}")
        self.dispatcher.dispatch(event_type, event)
        return web.Response(text=f"Test event dispatched: {event_type}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the HTTP server"""
        try:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()

            site = web.TCPSite(self.runner, self.host, self.port)
            await site.start()

            logger.info(f"Server listening on {self.host}:{self.port}")
            logger.info(f"  POST http://{self.host}:{self.port}/eventsub - EventSub webhook")
            logger.info(f"  GET  http://{self.host}:{self.port}/subs - Remote subscriptions")

        except Exception as e:
            logger.exception(f"Failed to start server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the HTTP server"""
        if self.runner:
            try:
                await self.runner.cleanup()
                logger.info("Server stopped")
            except Exception as e:
                logger.exception(f"Error stopping server: {e}")
            self.runner = None
