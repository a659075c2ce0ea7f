"""Canned EventSub payloads for POST /test/{event}.

Shapes follow the event objects Twitch sends for each subscription type.
"""

from __future__ import annotations

import copy
from typing import Any

_BROADCASTER = {
    "broadcaster_user_id": "1337",
    "broadcaster_user_login": "cool_streamer",
    "broadcaster_user_name": "Cool_Streamer",
}

_USER = {
    "user_id": "1234",
    "user_login": "cool_user",
    "user_name": "Cool_User",
}

_HYPE_TRAIN = {
    "id": "1b0AsbInCHZW2SQFQkCzqN07Ib2",
    "level": 2,
    "total": 700,
    "top_contributions": [
        {"user_id": "123", "user_login": "pogchamp", "user_name": "PogChamp", "type": "bits", "total": 50},
    ],
    "started_at": "2020-07-15T17:16:03.17106713Z",
}

SAMPLE_EVENTS: dict[str, dict[str, Any]] = {
    "channel.subscribe": {**_USER, **_BROADCASTER, "tier": "1000", "is_gift": False},
    "channel.subscription.gift": {
        **_USER,
        **_BROADCASTER,
        "total": 2,
        "tier": "1000",
        "cumulative_total": 284,
        "is_anonymous": False,
    },
    "channel.cheer": {
        "is_anonymous": False,
        **_USER,
        **_BROADCASTER,
        "message": "pogchamp",
        "bits": 1000,
    },
    "channel.channel_points_custom_reward_redemption.add": {
        "id": "17fa2df1-ad76-4804-bfa5-a40ef63efe63",
        **_BROADCASTER,
        **_USER,
        "user_input": "pogchamp",
        "status": "unfulfilled",
        "reward": {"id": "92af127c-7326-4483-a52b-b0da0be61c01", "title": "title", "cost": 100, "prompt": "reward prompt"},
        "redeemed_at": "2020-07-15T17:16:03.17106713Z",
    },
    "channel.hype_train.begin": {
        **_BROADCASTER,
        **_HYPE_TRAIN,
        "progress": 200,
        "goal": 800,
        "expires_at": "2020-07-15T17:16:11.17106713Z",
    },
    "channel.hype_train.progress": {
        **_BROADCASTER,
        **_HYPE_TRAIN,
        "progress": 500,
        "goal": 800,
        "expires_at": "2020-07-15T17:16:11.17106713Z",
    },
    "channel.hype_train.end": {
        **_BROADCASTER,
        **_HYPE_TRAIN,
        "ended_at": "2020-07-15T17:16:11.17106713Z",
        "cooldown_ends_at": "2020-07-15T18:16:11.17106713Z",
    },
    "channel.raid": {
        "from_broadcaster_user_id": "1234",
        "from_broadcaster_user_login": "cool_user",
        "from_broadcaster_user_name": "Cool_User",
        "to_broadcaster_user_id": "1337",
        "to_broadcaster_user_login": "cool_streamer",
        "to_broadcaster_user_name": "Cool_Streamer",
        "viewers": 9001,
    },
    "stream.online": {
        "id": "9001",
        **_BROADCASTER,
        "type": "live",
        "started_at": "2020-10-11T10:11:12.123Z",
    },
    "stream.offline": {**_BROADCASTER},
}


def get_sample_event(event_type: str) -> dict[str, Any] | None:
    """Deep copy of the canned payload, so consumers may mutate it."""
    event = SAMPLE_EVENTS.get(event_type)
    return copy.deepcopy(event) if event is not None else None
