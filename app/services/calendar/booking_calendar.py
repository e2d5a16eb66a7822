"""
Best-effort view of the booking calendar.

The calendar mirrors confirmed sessions but is never the source of truth, so
read and patch calls degrade instead of failing when Google rejects our
credentials. Creating and deleting events still raise; callers decide what a
failure there means.
"""

from datetime import datetime
from typing import Any

from app.infrastructure.observability.logging import get_logger
from app.models.domain.calendar_domain import CalendarEvent
from app.services.calendar.errors import CalendarAuthError, CalendarEventNotFoundError
from app.services.calendar.google_client import GoogleCalendarService

logger = get_logger(__name__)


class BookingCalendar:
    def __init__(self, client: GoogleCalendarService | None):
        # None when credentials are not configured; behaves like a revoked grant
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def list_events(self, time_min: datetime, time_max: datetime) -> list[CalendarEvent]:
        if self.client is None:
            return []
        try:
            events = await self.client.list_events(time_min, time_max)
        except CalendarAuthError as e:
            logger.warning("Calendar auth failed, listing no external events", error=str(e))
            return []
        return [event for event in events if event.is_busy() and event.has_window()]

    async def get_event_by_id(self, event_id: str) -> CalendarEvent | None:
        if self.client is None:
            return None
        try:
            return await self.client.get_event(event_id)
        except CalendarEventNotFoundError:
            logger.info("Calendar event no longer exists", event_id=event_id)
            return None
        except CalendarAuthError as e:
            logger.warning("Calendar auth failed, event treated as absent", event_id=event_id, error=str(e))
            return None

    async def create_event(self, event_data: dict[str, Any]) -> CalendarEvent:
        if self.client is None:
            raise CalendarAuthError("Google Calendar credentials are not configured")
        return await self.client.create_event(event_data)

    async def update_event(self, event_id: str, event_data: dict[str, Any]) -> CalendarEvent:
        if self.client is not None:
            try:
                return await self.client.update_event(event_id, event_data)
            except CalendarAuthError as e:
                logger.warning("Calendar auth failed, event left unchanged", event_id=event_id, error=str(e))
        return CalendarEvent({**event_data, "id": event_id})

    async def delete_event(self, event_id: str) -> None:
        if self.client is None:
            raise CalendarAuthError("Google Calendar credentials are not configured")
        await self.client.delete_event(event_id)
