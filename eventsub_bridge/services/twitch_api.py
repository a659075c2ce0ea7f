"""Twitch API client service.

Token types:
- User Access Token: refreshed hourly from the refresh token; used for the
  broadcaster lookup.
- App Access Token: fetched fresh (client credentials) for every batch of
  EventSub subscription calls; never cached.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from eventsub_bridge.core.config import HELIX_BASE, OAUTH_BASE
from eventsub_bridge.core.eventsub import SubscriptionDescriptor
from eventsub_bridge.core.exceptions import UpstreamUnavailableError

logger = logging.getLogger("Bridge.TwitchAPI")


@dataclass
class TokenRefreshResult:
    """Result of a token refresh operation."""

    success: bool
    access_token: str | None = None
    refresh_token: str | None = None
    error: str | None = None


class SubscriptionStatus(Enum):
    CREATED = "created"
    CONFLICT = "conflict"
    FAILED = "failed"


@dataclass
class SubscriptionResult:
    """Outcome of one create-subscription call."""

    event_type: str
    status: SubscriptionStatus
    detail: str | None = None
    subscription_id: str | None = None


def _error_detail(response: httpx.Response) -> str:
    """Best-effort diagnostic text from a failed Twitch response."""
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"

    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if message:
            return f"HTTP {response.status_code}: {message}"
    return f"HTTP {response.status_code}: {data}"


class TwitchAPIClient:
    """Client for the Twitch OAuth and Helix endpoints this service uses.

    Manages a shared httpx client for connection reuse. Every request is
    bounded by *timeout*; transport failures surface as
    ``UpstreamUnavailableError`` inside the client and are folded into each
    method's failure result.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        timeout: float = 10.0,
        http: httpx.AsyncClient | None = None,
    ):
        if not client_id or not client_secret:
            raise ValueError("Twitch client_id and client_secret are required")

        self.client_id = client_id
        self.client_secret = client_secret

        # Shared HTTP client, reuses TCP connections across requests
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Close the shared HTTP client. Call on shutdown."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Client-Id": self.client_id}

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamUnavailableError(f"{method} {url} timed out") from e
        except httpx.TransportError as e:
            raise UpstreamUnavailableError(f"{method} {url} failed: {e}") from e

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    async def refresh_access_token(self, refresh_token: str) -> TokenRefreshResult:
        """Exchange a refresh token for a new access/refresh token pair.

        Both tokens must be present in the response; a partial pair is
        reported as a failure so the caller never stores a mismatched pair.
        Failures are returned, not logged.
        """
        try:
            response = await self._request(
                "POST",
                f"{OAUTH_BASE}/token",
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                },
            )
        except UpstreamUnavailableError as e:
            return TokenRefreshResult(success=False, error=str(e))

        if response.status_code != 200:
            return TokenRefreshResult(success=False, error=_error_detail(response))

        try:
            data = response.json()
        except ValueError:
            return TokenRefreshResult(
                success=False, error=f"Unparseable refresh response (HTTP {response.status_code})"
            )

        if not isinstance(data, dict):
            data = {}
        new_access_token = data.get("access_token")
        new_refresh_token = data.get("refresh_token")

        if not new_access_token or not new_refresh_token:
            return TokenRefreshResult(
                success=False,
                error=f"Incomplete token pair in refresh response (fields: {sorted(data)})",
            )

        logger.debug("Successfully refreshed user access token")
        return TokenRefreshResult(
            success=True,
            access_token=new_access_token,
            refresh_token=new_refresh_token,
        )

    async def get_app_access_token(self) -> str | None:
        """Fetch a fresh app access token via client credentials."""
        try:
            response = await self._request(
                "POST",
                f"{OAUTH_BASE}/token",
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "client_credentials",
                },
            )
            if response.status_code != 200:
                logger.error(f"Failed to get app token: {_error_detail(response)}")
                return None

            token = response.json().get("access_token")
            if not token:
                logger.error("No access_token in client credentials response")
                return None
            return token

        except UpstreamUnavailableError as e:
            logger.error(f"App token request unavailable: {e}")
            return None
        except Exception as e:
            logger.exception(f"Error getting app access token: {e}")
            return None

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user_id(self, login: str, access_token: str) -> str | None:
        """Resolve a login name to a Twitch user id."""
        try:
            response = await self._request(
                "GET",
                f"{HELIX_BASE}/users",
                params={"login": login},
                headers=self._headers(access_token),
            )
            if response.status_code != 200:
                logger.error(f"Failed to fetch user '{login}': {_error_detail(response)}")
                return None

            users = response.json().get("data", [])
            if not users:
                logger.warning(f"No user found for login: {login}")
                return None

            return users[0].get("id")

        except UpstreamUnavailableError as e:
            logger.error(f"User lookup unavailable: {e}")
            return None
        except Exception as e:
            logger.exception(f"Error fetching user '{login}': {e}")
            return None

    # ------------------------------------------------------------------
    # EventSub
    # ------------------------------------------------------------------

    async def create_eventsub_subscription(
        self, descriptor: SubscriptionDescriptor, app_token: str
    ) -> SubscriptionResult:
        """Create one webhook subscription. 409 means it already exists."""
        try:
            response = await self._request(
                "POST",
                f"{HELIX_BASE}/eventsub/subscriptions",
                json=descriptor.to_payload(),
                headers=self._headers(app_token),
            )
        except UpstreamUnavailableError as e:
            return SubscriptionResult(descriptor.type, SubscriptionStatus.FAILED, detail=str(e))

        if response.status_code == 409:
            return SubscriptionResult(
                descriptor.type, SubscriptionStatus.CONFLICT, detail=_error_detail(response)
            )

        if not response.is_success:
            return SubscriptionResult(
                descriptor.type, SubscriptionStatus.FAILED, detail=_error_detail(response)
            )

        subscription_id = None
        try:
            body = response.json()
        except ValueError:
            body = None

        data = body.get("data") if isinstance(body, dict) else None
        if isinstance(data, list) and data and isinstance(data[0], dict):
            subscription_id = data[0].get("id")
        else:
            logger.debug(f"Created {descriptor.type} without a usable response body")

        return SubscriptionResult(
            descriptor.type, SubscriptionStatus.CREATED, subscription_id=subscription_id
        )

    async def list_eventsub_subscriptions(self, app_token: str) -> dict[str, Any] | None:
        """Return the raw subscription listing, or None on failure."""
        try:
            response = await self._request(
                "GET",
                f"{HELIX_BASE}/eventsub/subscriptions",
                headers=self._headers(app_token),
            )
            if response.status_code != 200:
                logger.error(f"Failed to list subscriptions: {_error_detail(response)}")
                return None

            return response.json()

        except UpstreamUnavailableError as e:
            logger.error(f"Subscription listing unavailable: {e}")
            return None
        except Exception as e:
            logger.exception(f"Error listing subscriptions: {e}")
            return None
