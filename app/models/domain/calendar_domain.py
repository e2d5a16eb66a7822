# app/models/domain/calendar_domain.py
"""
Calendar Domain Models
Wrappers around Google Calendar event payloads plus the reminder policy used
when a confirmed session is mirrored to the calendar.
"""

from datetime import UTC, datetime
from typing import Any

# 24 hours and 10 minutes by email, 30 minutes as a popup
SESSION_REMINDERS: dict[str, Any] = {
    "useDefault": False,
    "overrides": [
        {"method": "email", "minutes": 24 * 60},
        {"method": "email", "minutes": 10},
        {"method": "popup", "minutes": 30},
    ],
}


class CalendarEvent:
    """Domain model for calendar events."""

    def __init__(self, data: dict):
        self.id = data.get("id")
        self.summary = data.get("summary", "")
        self.description = data.get("description", "")
        self.start_time = self._parse_datetime(data.get("start", {}))
        self.end_time = self._parse_datetime(data.get("end", {}))
        self.timezone = data.get("start", {}).get("timeZone", "UTC")
        self.status = data.get("status", "confirmed")
        self.attendees = data.get("attendees", [])
        self.location = data.get("location", "")
        self.reminders = data.get("reminders")
        self.raw_data = data

    def _parse_datetime(self, dt_data: dict) -> datetime | None:
        """Parse datetime from Google Calendar format."""
        if not dt_data:
            return None

        # All-day events (date only)
        if "date" in dt_data:
            return datetime.strptime(dt_data["date"], "%Y-%m-%d").replace(tzinfo=UTC)

        if "dateTime" in dt_data:
            try:
                parsed = datetime.fromisoformat(dt_data["dateTime"].replace("Z", "+00:00"))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed

        return None

    def is_all_day(self) -> bool:
        return "date" in self.raw_data.get("start", {})

    def is_busy(self) -> bool:
        """Cancelled and transparent events do not block availability."""
        transparency = self.raw_data.get("transparency", "opaque")
        return transparency == "opaque" and self.status != "cancelled"

    def has_window(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    def attendee_emails(self) -> list[str]:
        return [a["email"] for a in self.attendees if isinstance(a, dict) and a.get("email")]

    def rescheduled_payload(self, start_time: datetime, end_time: datetime) -> dict[str, Any]:
        """
        Event body for a reschedule: new start/end, every other field as it was.
        """
        start = {"dateTime": start_time.isoformat()}
        end = {"dateTime": end_time.isoformat()}
        start_tz = self.raw_data.get("start", {}).get("timeZone")
        end_tz = self.raw_data.get("end", {}).get("timeZone")
        if start_tz:
            start["timeZone"] = start_tz
        if end_tz:
            end["timeZone"] = end_tz

        payload = {
            "summary": self.summary,
            "description": self.description,
            "location": self.location,
            "start": start,
            "end": end,
            "attendees": self.attendees,
        }
        if self.reminders is not None:
            payload["reminders"] = self.reminders
        return payload

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "summary": self.summary,
            "description": self.description,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "timezone": self.timezone,
            "status": self.status,
            "location": self.location,
            "is_all_day": self.is_all_day(),
            "attendees": self.attendee_emails(),
        }


def build_session_event(
    *,
    summary: str,
    description: str,
    start_time: datetime,
    end_time: datetime,
    attendee_email: str | None,
    timezone_str: str,
    location: str = "",
) -> dict[str, Any]:
    """Event body for a newly confirmed session."""
    event = {
        "summary": summary,
        "description": description,
        "location": location,
        "start": {"dateTime": start_time.isoformat(), "timeZone": timezone_str},
        "end": {"dateTime": end_time.isoformat(), "timeZone": timezone_str},
        "attendees": [{"email": attendee_email}] if attendee_email else [],
        "reminders": SESSION_REMINDERS,
    }
    return event
