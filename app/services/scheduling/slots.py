"""
Slot and overlap reasoning for booking availability.
Pure functions, no I/O.
"""

from collections.abc import Iterable
from datetime import date, datetime, time
from typing import Protocol
from zoneinfo import ZoneInfo

SLOT_SEPARATOR = " - "


class TimeWindow(Protocol):
    start_date: datetime
    end_date: datetime


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return a_start < b_end and b_start < a_end


def _parse_hhmm(value: str) -> time:
    hour, minute = value.strip().split(":")
    return time(int(hour), int(minute))


def parse_slot(day: date, slot: str, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
    """
    Anchor a "HH:MM - HH:MM" slot to `day`.

    Raises ValueError on malformed input.
    """
    start_text, end_text = slot.split(SLOT_SEPARATOR)
    start = datetime.combine(day, _parse_hhmm(start_text), tzinfo=tz)
    end = datetime.combine(day, _parse_hhmm(end_text), tzinfo=tz)
    return start, end


def filter_available_slots(
    day: date | datetime,
    candidate_slots: list[str],
    existing_bookings: Iterable[TimeWindow],
    tz: ZoneInfo | None = None,
) -> list[str]:
    """
    Return the candidates that overlap no existing booking, in input order.

    Bookings are treated as [start_date, end_date). When `day` is a datetime
    its calendar date in `tz` is used.
    """
    if isinstance(day, datetime):
        if tz is not None and day.tzinfo is not None:
            day = day.astimezone(tz)
        day = day.date()

    windows = [(booking.start_date, booking.end_date) for booking in existing_bookings]
    if not windows:
        return list(candidate_slots)

    available = []
    for slot in candidate_slots:
        slot_start, slot_end = parse_slot(day, slot, tz)
        if not any(
            overlaps(slot_start, slot_end, booked_start, booked_end)
            for booked_start, booked_end in windows
        ):
            available.append(slot)
    return available
