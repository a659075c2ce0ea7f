"""EventSub bridge configuration"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# === Path Configuration ===
PACKAGE_DIR = Path(__file__).parent.parent
PROJECT_DIR = PACKAGE_DIR.parent

# === Twitch Endpoints ===
OAUTH_BASE = "https://id.twitch.tv/oauth2"
HELIX_BASE = "https://api.twitch.tv/helix"

EVENTSUB_TYPES = (
    "channel.subscribe",
    "channel.subscription.gift",
    "channel.cheer",
    "channel.channel_points_custom_reward_redemption.add",
    "channel.hype_train.begin",
    "channel.hype_train.progress",
    "channel.hype_train.end",
    "channel.raid",
    "stream.online",
    "stream.offline",
)

EVENTSUB_VERSION = "1"

# Prefixes accepted in CLIENT_OAUTH_TOKEN (IRC password style or header style)
_TOKEN_PREFIXES = ("oauth:", "Bearer ", "OAuth ")


class BridgeSettings(BaseSettings):
    """EventSub bridge settings"""

    model_config = SettingsConfigDict(
        env_file=PROJECT_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Chat account
    client_username: str = Field(..., description="Chat bot login name")
    client_oauth_token: str = Field(..., repr=False, description="User access token")
    channel: str = Field(..., description="Broadcaster login to join and subscribe")

    # Twitch OAuth
    client_id: str = Field(..., description="Twitch OAuth Client ID")
    client_secret: str = Field(..., repr=False, description="Twitch OAuth Client Secret")
    refresh_token: str = Field(..., repr=False, description="Refresh token for the user token")

    # EventSub webhook
    webhook_secret: str = Field(..., repr=False, description="Shared HMAC secret for EventSub")
    webhook_url: str = Field(..., description="Public HTTPS callback for POST /eventsub")

    # Server
    port: int = Field(default=3000, description="HTTP listen port")

    # Timing
    refresh_interval: float = Field(default=3600.0, gt=0, description="Token refresh period (s)")
    request_timeout: float = Field(default=10.0, gt=0, description="Outbound HTTP timeout (s)")

    # Environment
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("client_oauth_token")
    @classmethod
    def strip_token_prefix(cls, v: str) -> str:
        """Store the bare token; Helix and twitchio add their own prefixes"""
        v = v.strip()
        for prefix in _TOKEN_PREFIXES:
            if v.startswith(prefix):
                return v[len(prefix) :]
        return v

    @field_validator("channel")
    @classmethod
    def normalize_channel(cls, v: str) -> str:
        return v.strip().lstrip("#").lower()

    @field_validator("webhook_secret")
    @classmethod
    def validate_webhook_secret(cls, v: str) -> str:
        """Twitch only accepts secrets of 10 to 100 ASCII characters"""
        if not 10 <= len(v) <= 100:
            raise ValueError("WEBHOOK_SECRET must be between 10 and 100 characters")
        return v

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("WEBHOOK_URL must start with 'https://'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper


@lru_cache
def get_settings() -> BridgeSettings:
    """Get cached settings instance"""
    return BridgeSettings()  # type: ignore[call-arg]
