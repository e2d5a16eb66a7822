"""
Access tokens for the booking calendar.

The backend acts on one calendar owned by the business, authorised once with
an offline refresh token. Access tokens are minted from it on demand and
cached in memory until shortly before they expire.
"""

import asyncio
from datetime import UTC, datetime, timedelta

import httpx

from app.infrastructure.observability.logging import get_logger
from app.services.calendar.errors import CalendarAuthError, GoogleCalendarError

logger = get_logger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)
DEFAULT_EXPIRES_IN = 3600


class RefreshTokenProvider:
    """Mints and caches access tokens with the refresh-token grant."""

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        refresh_token: str | None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(15))
        self._access_token: str | None = None
        self._expires_at: datetime | None = None
        self._lock = asyncio.Lock()

    async def close(self) -> None:
        await self._client.aclose()

    def invalidate(self) -> None:
        """Forget the cached token so the next call refreshes."""
        self._access_token = None
        self._expires_at = None

    def _cached_token_valid(self) -> bool:
        if not self._access_token or not self._expires_at:
            return False
        return self._expires_at > datetime.now(UTC) + TOKEN_REFRESH_MARGIN

    async def get_access_token(self) -> str:
        """
        Return a valid access token, refreshing when the cached one is missing
        or about to expire.

        Raises:
            CalendarAuthError: credentials missing or the grant was rejected
            GoogleCalendarError: token endpoint unreachable or malformed reply
        """
        if self._cached_token_valid():
            return self._access_token

        async with self._lock:
            if self._cached_token_valid():
                return self._access_token
            return await self._refresh()

    async def _refresh(self) -> str:
        if not (self.client_id and self.client_secret and self.refresh_token):
            raise CalendarAuthError("Google Calendar credentials are not configured")

        logger.info("Refreshing Google Calendar access token")
        try:
            response = await self._client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
            )
        except httpx.RequestError as e:
            logger.error("Token endpoint unreachable", error=str(e))
            raise GoogleCalendarError(f"Token refresh failed: {e}") from e

        if response.status_code in (400, 401, 403):
            error_code = ""
            try:
                error_code = response.json().get("error", "")
            except ValueError:
                pass
            logger.warning(
                "Google Calendar token refresh rejected",
                status_code=response.status_code,
                error_code=error_code,
            )
            raise CalendarAuthError(
                "Calendar authorization expired. Please reconnect.",
                error_code=error_code or None,
                status_code=response.status_code,
            )

        if not response.is_success:
            logger.error("Token refresh failed", status_code=response.status_code)
            raise GoogleCalendarError(
                f"Token refresh failed (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        try:
            tokens = response.json()
        except ValueError as e:
            raise GoogleCalendarError("Invalid token response format") from e

        access_token = tokens.get("access_token")
        if not access_token:
            logger.error("No access token in refresh response")
            raise GoogleCalendarError("No access token in refresh response")

        expires_in = int(tokens.get("expires_in", DEFAULT_EXPIRES_IN))
        self._access_token = access_token
        self._expires_at = datetime.now(UTC) + timedelta(seconds=expires_in)

        logger.info("Google Calendar access token refreshed", expires_in=expires_in)
        return access_token
