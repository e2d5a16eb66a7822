"""
Tests for booking orchestration across schedule, payment, session and calendar.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from app.models.domain.booking_domain import (
    PaymentStatus,
    ScheduleStatus,
    SessionNotScheduled,
    SessionScheduled,
)
from app.services.booking.booking_service import BookingService, derive_payment_status
from app.services.calendar.errors import GoogleCalendarError
from app.services.errors import (
    BookingDeletionError,
    ConflictError,
    InvalidIdError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)
from tests.conftest import OTHER_USER_ID, TZ, USER_ID, local

MONDAY_10 = local(2024, 5, 6, 10)
MONDAY_11 = local(2024, 5, 6, 11)
MISSING_ID = "ffffffffffffffffffffffff"


def schedule_data(status=None, start=MONDAY_10, end=MONDAY_11):
    data = {"user_id": USER_ID, "start_date": start, "end_date": end}
    if status:
        data["status"] = status
    return data


@pytest.mark.parametrize(
    ("schedule_status", "payment_status"),
    [
        ("scheduled", PaymentStatus.PAID),
        ("completed", PaymentStatus.PAID),
        ("pending", PaymentStatus.PENDING),
        ("refunded", PaymentStatus.REFUNDED),
        ("cancelled", PaymentStatus.CANCELLED),
        ("concluído", PaymentStatus.PAID),
    ],
)
def test_derive_payment_status(schedule_status, payment_status):
    assert derive_payment_status(schedule_status) == payment_status


@pytest.mark.asyncio
async def test_pending_booking_has_no_session_or_event(
    booking_service, session_repo, calendar, notification_repo
):
    booking = await booking_service.create_booking(schedule_data(), {"price": 150})

    assert booking.schedule.status == ScheduleStatus.PENDING
    assert booking.payment.status == PaymentStatus.PENDING
    assert booking.payment.price == 150.0
    assert isinstance(booking.session, SessionNotScheduled)
    assert booking.user.email == "ana@example.com"
    assert session_repo.rows == {}
    assert calendar.created == []

    messages = [n.message for n in await notification_repo.find_by_user_id(USER_ID)]
    assert len(messages) == 2
    assert "not been confirmed" in messages[1]


@pytest.mark.asyncio
async def test_paid_booking_creates_session_and_linked_event(
    booking_service, session_repo, calendar, schedule_repo
):
    booking = await booking_service.create_booking(
        schedule_data("scheduled"), {"price": 200}, session_name="Consultation"
    )

    assert booking.payment.status == PaymentStatus.PAID
    assert isinstance(booking.session, SessionScheduled)
    assert len(session_repo.rows) == 1
    assert "Ana Souza" in booking.session.session.date
    assert "ana@example.com" in booking.session.session.date
    assert "+55 11 91234-5678" in booking.session.session.date

    assert len(calendar.created) == 1
    event = calendar.created[0]
    assert event["summary"] == "Consultation"
    assert event["attendees"] == [{"email": "ana@example.com"}]
    overrides = event["reminders"]["overrides"]
    assert {"method": "email", "minutes": 1440} in overrides
    assert {"method": "email", "minutes": 10} in overrides
    assert {"method": "popup", "minutes": 30} in overrides

    stored = schedule_repo.rows[booking.schedule.id]
    assert stored.google_event_id == "evt1"
    assert booking.schedule.google_event_id == "evt1"


@pytest.mark.asyncio
async def test_create_booking_propagates_conflict_untouched(booking_service, payment_repo):
    await booking_service.create_booking(schedule_data(), {"price": 100})

    with pytest.raises(ConflictError):
        await booking_service.create_booking(schedule_data(), {"price": 100})

    assert len(payment_repo.rows) == 1


@pytest.mark.asyncio
async def test_create_booking_rejects_bad_price_before_any_write(booking_service, schedule_repo):
    with pytest.raises(ValidationError, match="Price"):
        await booking_service.create_booking(schedule_data(), {"price": 0})

    assert schedule_repo.rows == {}


@pytest.mark.asyncio
async def test_calendar_failure_after_commit_is_partial(
    booking_service, calendar, schedule_repo, payment_repo, session_repo
):
    calendar.fail_create = GoogleCalendarError("unavailable", status_code=503)

    with pytest.raises(PartialFailureError) as exc:
        await booking_service.create_booking(schedule_data("scheduled"), {"price": 100})

    assert exc.value.step == "calendar_event"
    assert exc.value.completed_steps == ["schedule", "payment", "session"]
    assert exc.value.compensated is False
    # No rollback by default
    assert len(schedule_repo.rows) == 1
    assert len(payment_repo.rows) == 1
    assert len(session_repo.rows) == 1


@pytest.mark.asyncio
async def test_user_lookup_failure_after_payment_is_partial(
    booking_service, schedule_repo, payment_repo, monkeypatch
):
    monkeypatch.setattr(
        booking_service.users, "find_by_id", AsyncMock(side_effect=RuntimeError("users down"))
    )

    with pytest.raises(PartialFailureError) as exc:
        await booking_service.create_booking(schedule_data("scheduled"), {"price": 100})

    assert exc.value.step == "user"
    assert exc.value.completed_steps == ["schedule", "payment"]
    assert len(schedule_repo.rows) == 1
    assert len(payment_repo.rows) == 1


@pytest.mark.asyncio
async def test_auto_compensation_rolls_back_committed_steps(
    schedule_service, payment_service, session_service, calendar, user_repo,
    schedule_repo, payment_repo, session_repo,
):
    service = BookingService(
        schedules=schedule_service,
        payments=payment_service,
        sessions=session_service,
        calendar=calendar,
        users=user_repo,
        tz=TZ,
        auto_compensate=True,
    )
    calendar.fail_create = GoogleCalendarError("unavailable", status_code=503)

    with pytest.raises(PartialFailureError) as exc:
        await service.create_booking(schedule_data("scheduled"), {"price": 100})

    assert exc.value.compensated is True
    assert schedule_repo.rows == {}
    assert payment_repo.rows == {}
    assert session_repo.rows == {}


@pytest.mark.asyncio
async def test_find_booking_by_schedule_id(booking_service):
    created = await booking_service.create_booking(schedule_data("scheduled"), {"price": 90})

    booking = await booking_service.find_booking_by_schedule_id(created.schedule.id)

    assert booking.payment.id == created.payment.id
    assert booking.session_record.id == created.session_record.id
    assert booking.user.id == USER_ID


@pytest.mark.asyncio
async def test_find_booking_missing_and_malformed(booking_service):
    with pytest.raises(NotFoundError):
        await booking_service.find_booking_by_schedule_id(MISSING_ID)

    with pytest.raises(InvalidIdError):
        await booking_service.find_booking_by_schedule_id("123")


@pytest.mark.asyncio
async def test_update_to_scheduled_creates_session_and_event(
    booking_service, calendar, notification_repo
):
    created = await booking_service.create_booking(schedule_data(), {"price": 120})

    booking = await booking_service.update_booking(
        created.schedule.id,
        {"start_date": MONDAY_10, "end_date": MONDAY_11, "status": "scheduled"},
    )

    assert booking.schedule.status == ScheduleStatus.SCHEDULED
    assert booking.payment.status == PaymentStatus.PAID
    assert isinstance(booking.session, SessionScheduled)
    assert booking.schedule.google_event_id == "evt1"
    assert len(calendar.created) == 1

    messages = [n.message for n in await notification_repo.find_by_user_id(USER_ID)]
    # created, payment pending, payment paid; dates unchanged so no "rescheduled"
    assert len(messages) == 3
    assert not any("rescheduled" in m for m in messages)


@pytest.mark.asyncio
async def test_reschedule_paid_booking_updates_session(booking_service, calendar, session_repo):
    created = await booking_service.create_booking(schedule_data("scheduled"), {"price": 120})
    new_start = local(2024, 5, 8, 15)

    booking = await booking_service.update_booking(
        created.schedule.id, {"start_date": new_start, "end_date": new_start + timedelta(hours=1)}
    )

    assert len(session_repo.rows) == 1
    assert booking.session_record.id == created.session_record.id
    assert "rescheduled to 08/05/2024" in booking.session_record.date
    assert len(calendar.created) == 1
    assert calendar.updated[0][0] == "evt1"


@pytest.mark.asyncio
async def test_reschedule_notifies_once(booking_service, notification_repo):
    created = await booking_service.create_booking(schedule_data(), {"price": 120})
    new_start = local(2024, 5, 8, 15)

    await booking_service.update_booking(
        created.schedule.id, {"start_date": new_start, "end_date": new_start + timedelta(hours=1)}
    )

    messages = [n.message for n in await notification_repo.find_by_user_id(USER_ID)]
    assert len([m for m in messages if "rescheduled" in m]) == 1


@pytest.mark.asyncio
async def test_update_without_payment_is_partial(booking_service, payment_repo):
    created = await booking_service.create_booking(schedule_data(), {"price": 120})
    payment_repo.rows.clear()

    with pytest.raises(PartialFailureError) as exc:
        await booking_service.update_booking(created.schedule.id, {"status": "cancelled"})

    assert exc.value.step == "payment"
    assert exc.value.completed_steps == ["schedule"]


@pytest.mark.asyncio
async def test_listing_skips_external_rows_and_failed_items(booking_service, calendar, monkeypatch):
    first = await booking_service.create_booking(schedule_data("scheduled"), {"price": 100})
    tuesday = local(2024, 5, 7, 10)
    second = await booking_service.create_booking(
        schedule_data("scheduled", tuesday, tuesday + timedelta(hours=1)), {"price": 100}
    )
    soon = datetime.now(TZ) + timedelta(minutes=5)
    calendar.add_event("external", soon, soon + timedelta(hours=1))

    real_find = booking_service.payments.find_by_schedule_id

    async def flaky_find(schedule_id):
        if schedule_id == second.schedule.id:
            raise RuntimeError("payment store unavailable")
        return await real_find(schedule_id)

    monkeypatch.setattr(booking_service.payments, "find_by_schedule_id", flaky_find)

    bookings = await booking_service.find_all_bookings_for_admin()

    assert [b.schedule.id for b in bookings] == [first.schedule.id]


@pytest.mark.asyncio
async def test_find_bookings_by_user(booking_service):
    await booking_service.create_booking(schedule_data(), {"price": 100})

    bookings = await booking_service.find_bookings_by_user(USER_ID)

    assert len(bookings) == 1
    assert bookings[0].payment is not None


@pytest.mark.asyncio
async def test_delete_booking_removes_all_legs(
    booking_service, schedule_repo, payment_repo, session_repo, calendar
):
    created = await booking_service.create_booking(schedule_data("scheduled"), {"price": 100})

    deleted = await booking_service.delete_booking(
        created.payment.id, created.session_record.id, created.schedule.id
    )

    assert deleted.schedule.id == created.schedule.id
    assert schedule_repo.rows == payment_repo.rows == session_repo.rows == {}
    assert calendar.deleted == ["evt1"]


@pytest.mark.asyncio
async def test_delete_booking_validates_ids_first(booking_service, payment_repo):
    created = await booking_service.create_booking(schedule_data(), {"price": 100})

    with pytest.raises(InvalidIdError):
        await booking_service.delete_booking(created.payment.id, "bad", created.schedule.id)

    assert len(payment_repo.rows) == 1


@pytest.mark.asyncio
async def test_delete_booking_refuses_legs_of_another_schedule(
    booking_service, schedule_repo, payment_repo, session_repo
):
    mine = await booking_service.create_booking(schedule_data("scheduled"), {"price": 100})
    tuesday = local(2024, 5, 7, 10)
    theirs = await booking_service.create_booking(
        {
            "user_id": OTHER_USER_ID,
            "start_date": tuesday,
            "end_date": tuesday + timedelta(hours=1),
            "status": "scheduled",
        },
        {"price": 100},
    )

    with pytest.raises(ValidationError, match="Payment does not belong"):
        await booking_service.delete_booking(
            theirs.payment.id, mine.session_record.id, mine.schedule.id
        )

    assert theirs.payment.id in payment_repo.rows
    assert mine.payment.id in payment_repo.rows
    assert len(session_repo.rows) == 2
    assert len(schedule_repo.rows) == 2


@pytest.mark.asyncio
async def test_delete_booking_failing_leg_keeps_earlier_deletes(
    booking_service, payment_repo, schedule_repo
):
    created = await booking_service.create_booking(schedule_data(), {"price": 100})

    with pytest.raises(BookingDeletionError) as exc:
        await booking_service.delete_booking(created.payment.id, MISSING_ID, created.schedule.id)

    assert str(exc.value) == "Failed to delete booking"
    assert exc.value.step == "session"
    assert exc.value.completed_steps == ["payment"]
    assert payment_repo.rows == {}
    assert len(schedule_repo.rows) == 1


@pytest.mark.asyncio
async def test_payment_notification_failure_does_not_fail_booking(booking_service):
    booking_service.payments.notifications.create = AsyncMock(side_effect=ValidationError("nope"))

    booking = await booking_service.create_booking(schedule_data(), {"price": 100})

    assert booking.payment is not None
