"""EventSub webhook primitives: headers, message types, signatures, descriptors."""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from eventsub_bridge.core.config import EVENTSUB_VERSION

HEADER_MESSAGE_ID = "Twitch-Eventsub-Message-Id"
HEADER_MESSAGE_TIMESTAMP = "Twitch-Eventsub-Message-Timestamp"
HEADER_MESSAGE_SIGNATURE = "Twitch-Eventsub-Message-Signature"
HEADER_MESSAGE_TYPE = "Twitch-Eventsub-Message-Type"

SIGNATURE_PREFIX = "sha256="


class MessageType(StrEnum):
    NOTIFICATION = "notification"
    VERIFICATION = "webhook_callback_verification"
    REVOCATION = "revocation"


def compute_signature(secret: str, message_id: str, timestamp: str, body: bytes) -> str:
    """Return ``sha256=<hex>`` of HMAC-SHA256(secret, message_id + timestamp + body)."""
    digest = hmac.new(
        secret.encode("utf-8"),
        message_id.encode("utf-8") + timestamp.encode("utf-8") + body,
        hashlib.sha256,
    ).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(
    secret: str, message_id: str, timestamp: str, body: bytes, signature: str
) -> bool:
    """Accept iff *signature* equals the computed value byte for byte."""
    expected = compute_signature(secret, message_id, timestamp, body)
    return hmac.compare_digest(
        expected.encode("ascii"), signature.encode("utf-8", errors="replace")
    )


def extract_event_type(body: dict[str, Any]) -> str:
    """Event type from a notification body.

    Accepts both the flat ``{"type": ...}`` form and Twitch's
    ``{"subscription": {"type": ...}}`` envelope.
    """
    event_type = body.get("type")
    if isinstance(event_type, str) and event_type:
        return event_type

    subscription = body.get("subscription")
    if isinstance(subscription, dict):
        return str(subscription.get("type") or "unknown")
    return "unknown"


@dataclass(frozen=True)
class SubscriptionDescriptor:
    type: str
    broadcaster_user_id: str
    callback: str
    secret: str = field(repr=False)
    version: str = EVENTSUB_VERSION
    method: str = "webhook"

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "version": self.version,
            "condition": {"broadcaster_user_id": self.broadcaster_user_id},
            "transport": {
                "method": self.method,
                "callback": self.callback,
                "secret": self.secret,
            },
        }
