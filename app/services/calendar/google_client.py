"""
Low-level Google Calendar API client for event management on the booking calendar.
Handles client initialization, event CRUD and error mapping.
"""

import asyncio
from datetime import datetime
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from app.infrastructure.observability.logging import get_logger
from app.models.domain.calendar_domain import CalendarEvent
from app.services.calendar.errors import (
    CalendarAuthError,
    CalendarEventNotFoundError,
    GoogleCalendarError,
)

logger = get_logger(__name__)

# Google Calendar API configuration
CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
CALENDAR_PRIMARY = "primary"

# Request timeouts and retry configuration
REQUEST_TIMEOUT = 30  # seconds (calendar operations can be slower)
MAX_RETRIES = 3
BACKOFF_FACTOR = 2
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class AccessTokenProvider(Protocol):
    async def get_access_token(self) -> str: ...

    def invalidate(self) -> None: ...


class GoogleCalendarService:
    """
    Service for Google Calendar API operations on a single calendar.

    Handles event CRUD with proper error handling and retry logic. Access
    tokens come from the injected provider on every call.
    """

    def __init__(
        self,
        token_provider: AccessTokenProvider,
        calendar_id: str = CALENDAR_PRIMARY,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.token_provider = token_provider
        self.calendar_id = calendar_id
        self._client = http_client or self._create_client()

    def _create_client(self) -> httpx.AsyncClient:
        """Create async HTTP client for Calendar API."""
        timeout = httpx.Timeout(REQUEST_TIMEOUT)
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
        return httpx.AsyncClient(timeout=timeout, limits=limits)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _events_url(self, event_id: str | None = None) -> str:
        url = f"{CALENDAR_API_BASE_URL}/calendars/{quote(self.calendar_id, safe='')}/events"
        if event_id:
            url = f"{url}/{quote(event_id, safe='')}"
        return url

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with retry and backoff."""
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                    logger.debug(
                        "Calendar API retrying request",
                        attempt=attempt,
                        status_code=response.status_code,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                return response
            except httpx.RequestError as e:
                if attempt >= MAX_RETRIES:
                    raise GoogleCalendarError(f"Calendar API unreachable: {e}") from e
                backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                logger.debug(
                    "Calendar API request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError("Calendar API retry loop exhausted")

    async def _get_auth_headers(self) -> dict:
        """Get authorization headers for Calendar API requests."""
        access_token = await self.token_provider.get_access_token()
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        """
        Handle and validate Calendar API response.

        Args:
            response: HTTP response from Calendar API
            operation: Operation name for logging

        Returns:
            dict: Parsed response data

        Raises:
            CalendarAuthError: 401/403
            CalendarEventNotFoundError: 404/410
            GoogleCalendarError: any other error status
        """
        logger.debug(
            f"Calendar API {operation} response",
            status_code=response.status_code,
            response_size=len(response.text) if response.text else 0,
        )

        if response.is_success:
            try:
                return response.json() if response.text else {}
            except ValueError as e:
                logger.error(f"Failed to parse Calendar API {operation} response", error=str(e))
                raise GoogleCalendarError(f"Invalid response format: {e}") from e

        try:
            error_data = response.json() if response.text else {}
        except ValueError:
            error_data = {}
        error_info = error_data.get("error", {}) if isinstance(error_data, dict) else {}
        error_code = str(error_info.get("code", response.status_code))
        error_message = error_info.get("message", "Unknown Calendar API error")

        logger.error(
            f"Calendar API {operation} failed",
            status_code=response.status_code,
            error_code=error_code,
            error_message=error_message,
        )

        user_message = self._map_calendar_error(str(response.status_code), error_message)

        if response.status_code in (401, 403):
            # Cached token may be revoked; force a refresh next time
            self.token_provider.invalidate()
            error_cls = CalendarAuthError
        elif response.status_code in (404, 410):
            error_cls = CalendarEventNotFoundError
        else:
            error_cls = GoogleCalendarError

        raise error_cls(
            user_message,
            error_code=error_code,
            status_code=response.status_code,
            response_data=error_data,
        )

    def _map_calendar_error(self, error_code: str, error_message: str) -> str:
        """Map Calendar API error codes to user-friendly messages."""
        error_mappings = {
            "403": "Calendar access denied. Please check permissions.",
            "404": "Calendar or event not found.",
            "410": "Calendar event was deleted.",
            "400": "Invalid calendar request format.",
            "401": "Calendar authorization expired. Please reconnect.",
            "429": "Too many calendar requests. Please try again later.",
            "500": "Google Calendar service temporarily unavailable.",
        }

        return error_mappings.get(error_code, f"Calendar error: {error_message}")

    async def list_events(
        self,
        time_min: datetime,
        time_max: datetime,
        max_results: int = 250,
    ) -> list[CalendarEvent]:
        """
        List single (expanded) events between time_min and time_max.

        Follows nextPageToken until the window is exhausted.
        """
        url = self._events_url()
        headers = await self._get_auth_headers()
        params: dict[str, Any] = {
            "maxResults": max_results,
            "singleEvents": "true",
            "orderBy": "startTime",
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
        }

        logger.info(
            "Listing calendar events",
            calendar_id=self.calendar_id,
            time_min=params["timeMin"],
            time_max=params["timeMax"],
        )

        events: list[CalendarEvent] = []
        while True:
            response = await self._request_with_retry("GET", url, headers=headers, params=params)
            data = self._handle_api_response(response, "list_events")
            events.extend(CalendarEvent(item) for item in data.get("items", []))

            page_token = data.get("nextPageToken")
            if not page_token:
                break
            params["pageToken"] = page_token

        logger.info("Events listed successfully", calendar_id=self.calendar_id, event_count=len(events))
        return events

    async def get_event(self, event_id: str) -> CalendarEvent:
        """Get a specific event by ID."""
        headers = await self._get_auth_headers()

        logger.info("Getting calendar event", event_id=event_id, calendar_id=self.calendar_id)

        response = await self._request_with_retry("GET", self._events_url(event_id), headers=headers)
        data = self._handle_api_response(response, "get_event")
        return CalendarEvent(data)

    async def create_event(self, event_data: dict[str, Any]) -> CalendarEvent:
        """
        Create a new calendar event.

        Args:
            event_data: Calendar v3 event body (summary, start, end, attendees, reminders...)

        Returns:
            CalendarEvent: Created event
        """
        headers = await self._get_auth_headers()
        # Attendees get Google's invitation email
        params = {"sendUpdates": "all"} if event_data.get("attendees") else None

        logger.info(
            "Creating calendar event",
            summary=event_data.get("summary"),
            start_time=event_data.get("start", {}).get("dateTime"),
            calendar_id=self.calendar_id,
        )

        response = await self._request_with_retry(
            "POST", self._events_url(), headers=headers, json=event_data, params=params
        )
        data = self._handle_api_response(response, "create_event")

        event = CalendarEvent(data)
        logger.info("Event created successfully", event_id=event.id)
        return event

    async def update_event(self, event_id: str, event_data: dict[str, Any]) -> CalendarEvent:
        """Patch an existing event with the given fields."""
        headers = await self._get_auth_headers()

        logger.info(
            "Updating calendar event",
            event_id=event_id,
            calendar_id=self.calendar_id,
            fields_updated=list(event_data.keys()),
        )

        response = await self._request_with_retry(
            "PATCH", self._events_url(event_id), headers=headers, json=event_data
        )
        data = self._handle_api_response(response, "update_event")

        logger.info("Event updated successfully", event_id=event_id)
        return CalendarEvent(data)

    async def delete_event(self, event_id: str) -> bool:
        """Delete a calendar event. Returns True on success."""
        headers = await self._get_auth_headers()

        logger.info("Deleting calendar event", event_id=event_id, calendar_id=self.calendar_id)

        response = await self._request_with_retry("DELETE", self._events_url(event_id), headers=headers)

        # For DELETE operations, success is typically 204 No Content
        if response.status_code != 204:
            self._handle_api_response(response, "delete_event")

        logger.info("Event deleted successfully", event_id=event_id)
        return True
