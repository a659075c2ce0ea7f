import logging
from typing import Any

from eventsub_bridge.core.dispatcher import EventDispatcher

LOGGER: logging.Logger = logging.getLogger("Bridge.Events")

TIER_NAMES = {
    "1000": "T1",
    "2000": "T2",
    "3000": "T3",
}


def _user(event: dict[str, Any], prefix: str = "user") -> str:
    return event.get(f"{prefix}_name") or event.get(f"{prefix}_login") or "Anonymous"


def _tier(event: dict[str, Any]) -> str:
    tier = str(event.get("tier", ""))
    return TIER_NAMES.get(tier, tier or "?")


def summarize_event(event_type: str, event: dict[str, Any]) -> str | None:
    """One-line human summary for the catalog event types; None if unknown."""
    match event_type:
        case "channel.subscribe":
            sub_type = "Gift" if event.get("is_gift") else "Sub"
            return f"{sub_type}: {_user(event)} ({_tier(event)})"
        case "channel.subscription.gift":
            gifter = "Anonymous" if event.get("is_anonymous") else _user(event)
            return f"Gift: {gifter} x{event.get('total', '?')} ({_tier(event)})"
        case "channel.cheer":
            cheerer = "Anonymous" if event.get("is_anonymous") else _user(event)
            return f"Cheer: {cheerer} {event.get('bits', '?')} bits"
        case "channel.channel_points_custom_reward_redemption.add":
            reward = event.get("reward") or {}
            return f"Redeem: {_user(event)} -> {reward.get('title', '?')}"
        case "channel.hype_train.begin" | "channel.hype_train.progress":
            stage = event_type.rsplit(".", 1)[-1].capitalize()
            return (
                f"Hype train {stage}: level {event.get('level', '?')} "
                f"({event.get('progress', '?')}/{event.get('goal', '?')})"
            )
        case "channel.hype_train.end":
            return f"Hype train End: level {event.get('level', '?')}, total {event.get('total', '?')}"
        case "channel.raid":
            return f"Raid: {_user(event, 'from_broadcaster_user')} with {event.get('viewers', '?')} viewers"
        case "stream.online":
            return f"Online: {_user(event, 'broadcaster_user')}"
        case "stream.offline":
            return f"Offline: {_user(event, 'broadcaster_user')}"
        case _:
            return None


class EventLogger:
    """EventSub consumer that writes every notification to the log."""

    def __init__(self) -> None:
        self.received = 0

    def attach(self, dispatcher: EventDispatcher) -> None:
        dispatcher.add_listener(self.handle_event)

    def handle_event(self, event_type: str, event: dict[str, Any]) -> None:
        self.received += 1
        summary = summarize_event(event_type, event)
        if summary:
            LOGGER.info(f"[EVENT] {event_type} ({summary}) -> {event}")
        else:
            LOGGER.info(f"[EVENT] {event_type} -> {event}")
