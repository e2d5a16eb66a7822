"""
Tests for slot parsing and overlap filtering.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

import pytest

from app.services.scheduling.slots import (
    filter_available_slots,
    overlaps,
    parse_slot,
)
from tests.conftest import TZ, local


@dataclass
class Window:
    start_date: datetime
    end_date: datetime


def test_overlaps_is_half_open():
    nine, ten, eleven = local(2024, 5, 6, 9), local(2024, 5, 6, 10), local(2024, 5, 6, 11)

    assert overlaps(nine, ten, nine, ten) is True
    assert overlaps(nine, ten, ten, eleven) is False
    assert overlaps(ten, eleven, nine, ten) is False
    assert overlaps(nine, eleven, ten, ten + timedelta(minutes=30)) is True


def test_overlaps_is_symmetric():
    a = (local(2024, 5, 6, 9), local(2024, 5, 6, 10, 30))
    b = (local(2024, 5, 6, 10), local(2024, 5, 6, 11))

    assert overlaps(*a, *b) == overlaps(*b, *a) is True


def test_parse_slot_anchors_to_day_in_timezone():
    start, end = parse_slot(date(2024, 5, 6), "09:00 - 10:30", TZ)

    assert start == local(2024, 5, 6, 9)
    assert end == local(2024, 5, 6, 10, 30)
    assert start.tzinfo is TZ


@pytest.mark.parametrize("slot", ["09:00-10:00", "nine - ten", "09:00"])
def test_parse_slot_rejects_malformed_input(slot):
    with pytest.raises(ValueError):
        parse_slot(date(2024, 5, 6), slot, TZ)


def test_filter_without_bookings_returns_candidates_unchanged():
    candidates = ["10:00 - 11:00", "09:00 - 10:00"]

    result = filter_available_slots(date(2024, 5, 6), candidates, [], TZ)

    assert result == candidates
    assert result is not candidates


def test_filter_drops_overlapping_slots_and_keeps_order():
    bookings = [Window(local(2024, 5, 6, 10), local(2024, 5, 6, 11))]
    candidates = ["11:00 - 12:00", "09:00 - 10:00", "10:30 - 11:30", "09:30 - 10:15"]

    result = filter_available_slots(date(2024, 5, 6), candidates, bookings, TZ)

    assert result == ["11:00 - 12:00", "09:00 - 10:00"]


def test_filter_accepts_datetime_day_in_other_timezone():
    # 02:00 UTC on the 7th is still the 6th in Sao Paulo
    day = datetime.fromisoformat("2024-05-07T02:00:00+00:00")
    bookings = [Window(local(2024, 5, 6, 14), local(2024, 5, 6, 15))]

    result = filter_available_slots(day, ["14:00 - 15:00", "15:00 - 16:00"], bookings, TZ)

    assert result == ["15:00 - 16:00"]
