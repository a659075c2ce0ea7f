import json
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import parse_qsl

import httpx
import pytest

from eventsub_bridge.core.config import BridgeSettings
from eventsub_bridge.core.credentials import CredentialStore
from eventsub_bridge.services.twitch_api import TwitchAPIClient

# --- Constants for Testing ---
CLIENT_ID = "test-client-id"
CLIENT_SECRET = "test-client-secret"
WEBHOOK_SECRET = "s3cr3t-webhook-value"
WEBHOOK_URL = "https://bridge.example.com/eventsub"
BROADCASTER_LOGIN = "cool_streamer"
BROADCASTER_ID = "1337"


class FakeTwitch:
    """In-memory stand-in for id.twitch.tv and the Helix endpoints we call.

    Subscriptions are keyed by (type, broadcaster) so a second create returns
    409 like the real API.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.subscriptions: dict[tuple[str, str], dict[str, Any]] = {}
        self.users = {BROADCASTER_LOGIN: BROADCASTER_ID}

        self.refresh_status = 200
        self.refresh_body: Any = {
            "access_token": "new-access-token",
            "refresh_token": "new-refresh-token",
            "expires_in": 14400,
            "scope": ["bits:read"],
            "token_type": "bearer",
        }
        self.app_token_status = 200
        self.create_overrides: dict[str, int] = {}
        # replaces the 202 body; a str is sent as-is (non-JSON)
        self.create_body: Any = None
        self.list_status = 200
        self.raise_error: Exception | None = None

    # ------------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error

        path = request.url.path
        if request.url.host == "id.twitch.tv" and path == "/oauth2/token":
            return self._token(request)
        if path == "/helix/users":
            return self._users(request)
        if path == "/helix/eventsub/subscriptions":
            if request.method == "POST":
                return self._create_subscription(request)
            return self._list_subscriptions()
        return httpx.Response(404, json={"error": "Not Found", "status": 404, "message": ""})

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = dict(parse_qsl(request.content.decode()))
        if form.get("grant_type") == "refresh_token":
            if self.refresh_status != 200:
                return httpx.Response(
                    self.refresh_status,
                    json={"status": self.refresh_status, "message": "Invalid refresh token"},
                )
            if isinstance(self.refresh_body, str):
                return httpx.Response(200, text=self.refresh_body)
            return httpx.Response(200, json=self.refresh_body)

        if form.get("grant_type") == "client_credentials":
            if self.app_token_status != 200:
                return httpx.Response(
                    self.app_token_status,
                    json={"status": self.app_token_status, "message": "invalid client secret"},
                )
            return httpx.Response(
                200,
                json={"access_token": "app-token", "expires_in": 5011271, "token_type": "bearer"},
            )

        return httpx.Response(400, json={"status": 400, "message": "unsupported grant type"})

    def _users(self, request: httpx.Request) -> httpx.Response:
        login = request.url.params.get("login", "")
        user_id = self.users.get(login)
        data = [{"id": user_id, "login": login, "display_name": login}] if user_id else []
        return httpx.Response(200, json={"data": data})

    def _create_subscription(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        event_type = body["type"]

        override = self.create_overrides.get(event_type)
        if override is not None:
            return httpx.Response(
                override, json={"error": "Error", "status": override, "message": "forced"}
            )

        key = (event_type, body["condition"]["broadcaster_user_id"])
        if key in self.subscriptions:
            return httpx.Response(
                409,
                json={"error": "Conflict", "status": 409, "message": "subscription already exists"},
            )

        subscription = {
            "id": f"sub-{len(self.subscriptions) + 1}",
            "status": "webhook_callback_verification_pending",
            "type": event_type,
            "version": body["version"],
            "condition": body["condition"],
            "transport": {
                "method": body["transport"]["method"],
                "callback": body["transport"]["callback"],
            },
        }
        self.subscriptions[key] = subscription
        if isinstance(self.create_body, str):
            return httpx.Response(202, text=self.create_body)
        if self.create_body is not None:
            return httpx.Response(202, json=self.create_body)
        return httpx.Response(202, json={"data": [subscription], "total": len(self.subscriptions)})

    def _list_subscriptions(self) -> httpx.Response:
        if self.list_status != 200:
            return httpx.Response(self.list_status, json={"status": self.list_status, "message": "nope"})
        data = list(self.subscriptions.values())
        return httpx.Response(200, json={"data": data, "total": len(data)})

    # ------------------------------------------------------------------

    def posted_subscription_types(self) -> list[str]:
        return [
            json.loads(r.content)["type"]
            for r in self.requests
            if r.method == "POST" and r.url.path == "/helix/eventsub/subscriptions"
        ]

    def helix_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith("/helix/")]


# --- Fixtures ---


@pytest.fixture
def settings() -> BridgeSettings:
    return BridgeSettings(
        client_username="my_bot",
        client_oauth_token="oauth:initial-access-token",
        channel=BROADCASTER_LOGIN,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        refresh_token="initial-refresh-token",
        webhook_secret=WEBHOOK_SECRET,
        webhook_url=WEBHOOK_URL,
        _env_file=None,
    )


@pytest.fixture
def credentials(settings: BridgeSettings) -> CredentialStore:
    return CredentialStore.from_settings(settings)


@pytest.fixture
def fake_twitch() -> FakeTwitch:
    return FakeTwitch()


@pytest.fixture
async def api(fake_twitch: FakeTwitch) -> AsyncIterator[TwitchAPIClient]:
    """TwitchAPIClient whose transport is the in-memory FakeTwitch."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_twitch.handler))
    client = TwitchAPIClient(CLIENT_ID, CLIENT_SECRET, http=http)
    yield client
    await client.close()
