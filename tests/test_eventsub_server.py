import json
from collections.abc import AsyncIterator
from typing import Any

import pytest
from aiohttp.test_utils import TestClient, TestServer

from eventsub_bridge.core.dispatcher import EventDispatcher
from eventsub_bridge.core.eventsub import compute_signature
from eventsub_bridge.core.eventsub_server import EventSubServer
from eventsub_bridge.services.twitch_api import TwitchAPIClient

from conftest import WEBHOOK_SECRET, FakeTwitch

MESSAGE_ID = "befa7b53-d79d-478f-86b9-120f112b044e"
TIMESTAMP = "2019-11-16T10:11:12.464757833Z"


def signed_headers(
    body: bytes,
    message_type: str = "notification",
    *,
    secret: str = WEBHOOK_SECRET,
    message_id: str = MESSAGE_ID,
    timestamp: str = TIMESTAMP,
) -> dict[str, str]:
    return {
        "Twitch-Eventsub-Message-Id": message_id,
        "Twitch-Eventsub-Message-Timestamp": timestamp,
        "Twitch-Eventsub-Message-Signature": compute_signature(secret, message_id, timestamp, body),
        "Twitch-Eventsub-Message-Type": message_type,
        "Content-Type": "application/json",
    }


def encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode()


# --- Fixtures ---


@pytest.fixture
def received() -> list[tuple[str, dict[str, Any]]]:
    return []


@pytest.fixture
def dispatcher(received: list[tuple[str, dict[str, Any]]]) -> EventDispatcher:
    dispatcher = EventDispatcher()
    dispatcher.add_listener(lambda event_type, event: received.append((event_type, event)))
    return dispatcher


@pytest.fixture
async def client(
    dispatcher: EventDispatcher, api: TwitchAPIClient
) -> AsyncIterator[TestClient]:
    server = EventSubServer(WEBHOOK_SECRET, dispatcher, api)
    async with TestClient(TestServer(server.app)) as client:
        yield client


# --- Webhook ---


@pytest.mark.asyncio
async def test_stream_online_with_empty_event_is_acknowledged(
    client: TestClient, received: list
) -> None:
    body = encode({"type": "stream.online", "event": {}})

    resp = await client.post("/eventsub", data=body, headers=signed_headers(body))

    assert resp.status == 200
    assert await resp.text() == ""
    assert received == [("stream.online", {})]


@pytest.mark.asyncio
async def test_cheer_event_is_forwarded_intact(client: TestClient, received: list) -> None:
    event = {"user_name": "x", "bits": 50}
    body = encode({"type": "channel.cheer", "event": event})

    resp = await client.post("/eventsub", data=body, headers=signed_headers(body))

    assert resp.status == 200
    assert received == [("channel.cheer", event)]


@pytest.mark.asyncio
async def test_twitch_envelope_type_is_used(client: TestClient, received: list) -> None:
    body = encode(
        {
            "subscription": {"id": "f1c2a387", "type": "channel.raid", "version": "1"},
            "event": {"from_broadcaster_user_name": "raider", "viewers": 12},
        }
    )

    resp = await client.post("/eventsub", data=body, headers=signed_headers(body))

    assert resp.status == 200
    assert received == [("channel.raid", {"from_broadcaster_user_name": "raider", "viewers": 12})]


@pytest.mark.asyncio
@pytest.mark.parametrize("position", [0, 7, 30, -1])
async def test_altered_signature_is_rejected(
    client: TestClient, received: list, position: int
) -> None:
    body = encode({"type": "channel.cheer", "event": {"user_name": "x", "bits": 50}})
    headers = signed_headers(body)
    signature = list(headers["Twitch-Eventsub-Message-Signature"])
    signature[position] = "f" if signature[position] != "f" else "e"
    headers["Twitch-Eventsub-Message-Signature"] = "".join(signature)

    resp = await client.post("/eventsub", data=body, headers=headers)

    assert resp.status == 403
    assert await resp.text() == "Invalid signature"
    assert received == []


@pytest.mark.asyncio
async def test_tampered_body_is_rejected(client: TestClient, received: list) -> None:
    body = encode({"type": "channel.cheer", "event": {"user_name": "x", "bits": 50}})
    headers = signed_headers(body)
    tampered = encode({"type": "channel.cheer", "event": {"user_name": "x", "bits": 5000}})

    resp = await client.post("/eventsub", data=tampered, headers=headers)

    assert resp.status == 403
    assert received == []


@pytest.mark.asyncio
async def test_missing_headers_are_rejected(client: TestClient, received: list) -> None:
    body = encode({"type": "stream.online", "event": {}})

    resp = await client.post("/eventsub", data=body)

    assert resp.status == 403
    assert received == []


@pytest.mark.asyncio
async def test_verification_challenge_is_echoed_verbatim(
    client: TestClient, received: list
) -> None:
    challenge = "pogchamp-kappa-360noscope-vohiyo"
    body = encode(
        {
            "challenge": challenge,
            "subscription": {"type": "channel.follow", "status": "webhook_callback_verification_pending"},
        }
    )

    resp = await client.post(
        "/eventsub", data=body, headers=signed_headers(body, "webhook_callback_verification")
    )

    assert resp.status == 200
    assert await resp.text() == challenge
    assert resp.content_type == "text/plain"
    assert received == []


@pytest.mark.asyncio
async def test_verification_with_bad_signature_is_rejected_first(
    client: TestClient, received: list
) -> None:
    body = encode({"challenge": "abc"})
    headers = signed_headers(body, "webhook_callback_verification", secret="not-the-right-secret")

    resp = await client.post("/eventsub", data=body, headers=headers)

    assert resp.status == 403
    assert await resp.text() != "abc"


@pytest.mark.asyncio
async def test_revocation_is_acknowledged_without_dispatch(
    client: TestClient, received: list
) -> None:
    body = encode(
        {"subscription": {"type": "channel.cheer", "status": "authorization_revoked"}}
    )

    resp = await client.post("/eventsub", data=body, headers=signed_headers(body, "revocation"))

    assert resp.status == 200
    assert received == []


@pytest.mark.asyncio
@pytest.mark.parametrize("subscription", ["gone", ["channel.cheer"], 7, None])
async def test_revocation_with_malformed_subscription_is_acknowledged(
    client: TestClient, received: list, subscription: object
) -> None:
    body = encode({"subscription": subscription})

    resp = await client.post("/eventsub", data=body, headers=signed_headers(body, "revocation"))

    assert resp.status == 200
    assert received == []


@pytest.mark.asyncio
async def test_signed_garbage_body_is_acknowledged(client: TestClient, received: list) -> None:
    body = b"not json at all"

    resp = await client.post("/eventsub", data=body, headers=signed_headers(body))

    assert resp.status == 200
    assert received == []


@pytest.mark.asyncio
async def test_failing_consumer_still_gets_200(
    client: TestClient, dispatcher: EventDispatcher, received: list
) -> None:
    def explode(event_type: str, event: dict) -> None:
        raise RuntimeError("consumer blew up")

    dispatcher.add_listener(explode)
    body = encode({"type": "stream.offline", "event": {"broadcaster_user_name": "x"}})

    resp = await client.post("/eventsub", data=body, headers=signed_headers(body))

    assert resp.status == 200
    assert received == [("stream.offline", {"broadcaster_user_name": "x"})]


# --- Operator endpoints ---


@pytest.mark.asyncio
async def test_root_is_liveness_text(client: TestClient) -> None:
    resp = await client.get("/")

    assert resp.status == 200
    assert "running" in await resp.text()


@pytest.mark.asyncio
async def test_health(client: TestClient) -> None:
    resp = await client.get("/health")

    assert resp.status == 200
    assert (await resp.json())["status"] == "healthy"


@pytest.mark.asyncio
async def test_subs_returns_raw_listing(client: TestClient, fake_twitch: FakeTwitch) -> None:
    fake_twitch.subscriptions[("stream.online", "1337")] = {"id": "sub-1", "type": "stream.online"}

    resp = await client.get("/subs")

    assert resp.status == 200
    data = await resp.json()
    assert data["total"] == 1
    assert data["data"][0]["type"] == "stream.online"


@pytest.mark.asyncio
async def test_subs_fails_with_500_when_app_token_unavailable(
    client: TestClient, fake_twitch: FakeTwitch
) -> None:
    fake_twitch.app_token_status = 403

    resp = await client.get("/subs")

    assert resp.status == 500


@pytest.mark.asyncio
async def test_subs_fails_with_500_when_listing_fails(
    client: TestClient, fake_twitch: FakeTwitch
) -> None:
    fake_twitch.list_status = 503

    resp = await client.get("/subs")

    assert resp.status == 500


@pytest.mark.asyncio
async def test_test_route_dispatches_sample_payload(client: TestClient, received: list) -> None:
    resp = await client.post("/test/channel.cheer")

    assert resp.status == 200
    assert len(received) == 1
    event_type, event = received[0]
    assert event_type == "channel.cheer"
    assert event["bits"] == 1000


@pytest.mark.asyncio
async def test_test_route_unknown_event_is_404(client: TestClient, received: list) -> None:
    resp = await client.post("/test/channel.unknown")

    assert resp.status == 404
    assert received == []
