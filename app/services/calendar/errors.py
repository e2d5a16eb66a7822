"""Errors raised by the Google Calendar client."""


class GoogleCalendarError(Exception):
    """Custom exception for Google Calendar API errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code
        self.response_data = response_data or {}


class CalendarAuthError(GoogleCalendarError):
    """Credentials rejected (401/403) or the refresh-token grant failed."""


class CalendarEventNotFoundError(GoogleCalendarError):
    """The event id does not exist on the calendar (404/410)."""
