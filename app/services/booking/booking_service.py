"""
Booking orchestration.

A booking is a Schedule plus its Payment, the Session record created once the
payment is confirmed, the calendar event mirroring that session, and the
owning user. None of these writes share a transaction; BookingSteps records
what was committed so a failure can name the step that broke.
"""

import asyncio
from typing import Any
from zoneinfo import ZoneInfo

from app.infrastructure.observability.logging import get_logger
from app.models.domain.booking_domain import (
    Booking,
    PaymentStatus,
    Schedule,
    ScheduleStatus,
    UserContact,
    session_state,
)
from app.models.domain.calendar_domain import build_session_event
from app.repositories.user_repository import UserRepository
from app.services.booking.steps import BookingSteps
from app.services.calendar.booking_calendar import BookingCalendar
from app.services.errors import BookingDeletionError, NotFoundError, ValidationError
from app.services.payment_service import PaymentService, validate_price
from app.services.scheduling.schedule_service import ScheduleService
from app.services.session_service import SessionService
from app.utils.formatting import local_date_time
from app.utils.ids import ensure_object_id

logger = get_logger(__name__)

DEFAULT_SESSION_NAME = "Booked session"


def derive_payment_status(schedule_status: ScheduleStatus | str) -> PaymentStatus:
    """scheduled/completed -> paid, pending -> pending, refunded -> refunded, else cancelled."""
    status = ScheduleStatus.from_label(schedule_status)
    if status in (ScheduleStatus.SCHEDULED, ScheduleStatus.COMPLETED):
        return PaymentStatus.PAID
    if status == ScheduleStatus.PENDING:
        return PaymentStatus.PENDING
    if status == ScheduleStatus.REFUNDED:
        return PaymentStatus.REFUNDED
    return PaymentStatus.CANCELLED


class BookingService:
    def __init__(
        self,
        schedules: ScheduleService,
        payments: PaymentService,
        sessions: SessionService,
        calendar: BookingCalendar,
        users: UserRepository,
        tz: ZoneInfo,
        auto_compensate: bool = False,
    ):
        self.schedules = schedules
        self.payments = payments
        self.sessions = sessions
        self.calendar = calendar
        self.users = users
        self.tz = tz
        self.auto_compensate = auto_compensate

    def _describe_session(
        self, schedule: Schedule, user: UserContact | None, *, rescheduled: bool = False
    ) -> str:
        day, hour = local_date_time(schedule.start_date, self.tz)
        _, end_hour = local_date_time(schedule.end_date, self.tz)
        verb = "rescheduled to" if rescheduled else "booked for"
        description = f"Session {verb} {day} from {hour} to {end_hour}."
        if user is not None:
            contact = f"Client: {user.name} | Email: {user.email}"
            if user.phone:
                contact = f"{contact} | Phone: {user.phone}"
            description = f"{description} {contact}"
        return description

    async def _create_calendar_event(
        self,
        steps: BookingSteps,
        schedule: Schedule,
        user: UserContact | None,
        description: str,
        session_name: str | None,
    ) -> Schedule:
        event_data = build_session_event(
            summary=session_name or DEFAULT_SESSION_NAME,
            description=description,
            start_time=schedule.start_date,
            end_time=schedule.end_date,
            attendee_email=user.email if user else None,
            timezone_str=str(self.tz),
        )
        event = await steps.run(
            "calendar_event",
            lambda: self.calendar.create_event(event_data),
            inverse=lambda created: self.calendar.delete_event(created.id),
        )
        return await steps.run(
            "link_calendar_event",
            lambda: self.schedules.link_calendar_event(schedule.id, event.id),
        )

    async def create_booking(
        self,
        schedule_data: dict[str, Any],
        payment_data: dict[str, Any],
        session_name: str | None = None,
    ) -> Booking:
        """
        Create schedule, payment and, once paid, the session and its calendar event.

        Schedule validation and conflicts propagate as they are. A failure
        after the schedule is stored raises PartialFailureError.
        """
        price = validate_price(payment_data.get("price"))

        schedule = await self.schedules.create(schedule_data)
        steps = BookingSteps(
            "create_booking", schedule_id=schedule.id, auto_compensate=self.auto_compensate
        )
        steps.record("schedule", inverse=lambda: self.schedules.delete(schedule.id))

        status = derive_payment_status(schedule.status)
        payment = await steps.run(
            "payment",
            lambda: self.payments.create(
                {
                    "schedule_id": schedule.id,
                    "price": price,
                    "status": status,
                    "payment_intent_id": payment_data.get("payment_intent_id"),
                },
                user_id=schedule.user_id,
            ),
            inverse=lambda created: self.payments.delete(created.id),
        )

        user = await steps.lookup("user", lambda: self.users.find_by_id(schedule.user_id))
        session = None
        if payment.status == PaymentStatus.PAID:
            description = self._describe_session(schedule, user)
            session = await steps.run(
                "session",
                lambda: self.sessions.create(
                    {"schedule_id": schedule.id, "date": description, "price": payment.price}
                ),
                inverse=lambda created: self.sessions.delete(created.id),
            )
            schedule = await self._create_calendar_event(
                steps, schedule, user, description, session_name
            )

        logger.info(
            "Booking created",
            schedule_id=schedule.id,
            payment_id=payment.id,
            payment_status=payment.status,
            session_created=session is not None,
        )
        return Booking(
            schedule=schedule, payment=payment, session=session_state(session), user=user
        )

    async def _assemble(self, schedule: Schedule) -> Booking:
        payment, session, user = await asyncio.gather(
            self.payments.find_by_schedule_id(schedule.id),
            self.sessions.find_by_schedule_id(schedule.id),
            self.users.find_by_id(schedule.user_id),
        )
        return Booking(
            schedule=schedule, payment=payment, session=session_state(session), user=user
        )

    async def find_booking_by_schedule_id(self, schedule_id: str) -> Booking:
        schedule_id = ensure_object_id(schedule_id)
        schedule = await self.schedules.read_one(schedule_id)
        if schedule is None:
            raise NotFoundError("Schedule", schedule_id)
        return await self._assemble(schedule)

    async def update_booking(
        self,
        schedule_id: str,
        schedule_data: dict[str, Any],
        session_name: str | None = None,
    ) -> Booking:
        """
        Update the schedule, then bring payment, session and calendar event in line.

        Raises:
            NotFoundError: schedule absent
            ValidationError: schedule changes rejected (nothing written)
            PartialFailureError: a later leg failed after the schedule was updated
        """
        existing = await self.find_booking_by_schedule_id(schedule_id)
        snapshot = existing.schedule

        schedule = await self.schedules.update(snapshot.id, schedule_data)
        steps = BookingSteps(
            "update_booking", schedule_id=schedule.id, auto_compensate=self.auto_compensate
        )
        steps.record("schedule", inverse=lambda: self.schedules.restore(snapshot))

        if existing.payment is None:
            await steps.fail("payment", "Booking has no payment to update")

        previous_payment = existing.payment
        status = derive_payment_status(schedule.status)
        payment = await steps.run(
            "payment",
            lambda: self.payments.update(
                previous_payment.id, {"status": status}, user_id=schedule.user_id
            ),
            inverse=lambda _: self.payments.update(
                previous_payment.id, {"status": previous_payment.status}
            ),
        )

        if payment.status == PaymentStatus.PAID:
            user = existing.user
            current_session = existing.session_record
            description = self._describe_session(
                schedule, user, rescheduled=current_session is not None
            )
            if current_session is not None:
                await steps.run(
                    "session",
                    lambda: self.sessions.update(current_session.id, {"date": description}),
                    inverse=lambda _: self.sessions.update(
                        current_session.id, {"date": current_session.date}
                    ),
                )
            else:
                await steps.run(
                    "session",
                    lambda: self.sessions.create(
                        {"schedule_id": schedule.id, "date": description, "price": payment.price}
                    ),
                    inverse=lambda created: self.sessions.delete(created.id),
                )

            if not schedule.google_event_id:
                await self._create_calendar_event(steps, schedule, user, description, session_name)

        logger.info(
            "Booking updated",
            schedule_id=schedule.id,
            schedule_status=schedule.status,
            payment_status=payment.status,
        )
        return await steps.lookup("refresh", lambda: self.find_booking_by_schedule_id(schedule.id))

    async def _assemble_all(self, schedules: list[Schedule]) -> list[Booking]:
        owned = [schedule for schedule in schedules if schedule.is_owned()]
        results = await asyncio.gather(
            *(self._assemble(schedule) for schedule in owned), return_exceptions=True
        )

        bookings = []
        for schedule, result in zip(owned, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    "Skipping booking that failed to load",
                    schedule_id=schedule.id,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                continue
            if isinstance(result, BaseException):
                raise result
            bookings.append(result)
        return bookings

    async def find_bookings_by_user(self, user_id: str) -> list[Booking]:
        schedules = await self.schedules.find_by_user_id(user_id)
        return await self._assemble_all(schedules)

    async def find_all_bookings_for_admin(self) -> list[Booking]:
        schedules = await self.schedules.read()
        return await self._assemble_all(schedules)

    def _check_leg_owner(self, leg: str, record, schedule_id: str) -> None:
        if record is not None and record.schedule_id != schedule_id:
            logger.warning(
                "Booking delete rejected, leg belongs to another schedule",
                step=leg,
                schedule_id=schedule_id,
                record_id=record.id,
            )
            raise ValidationError(
                f"{leg.capitalize()} does not belong to this booking",
                details={"step": leg, "id": record.id},
            )

    async def delete_booking(self, payment_id: str, session_id: str, schedule_id: str) -> Booking:
        """
        Delete payment, session and schedule in that order.

        All three ids are checked, and the payment and session must belong to
        the schedule, before anything is deleted. A leg with nothing to delete
        raises BookingDeletionError; earlier deletes stay.
        """
        payment_id = ensure_object_id(payment_id)
        session_id = ensure_object_id(session_id)
        schedule_id = ensure_object_id(schedule_id)

        payment_row, session_row = await asyncio.gather(
            self.payments.read_one(payment_id), self.sessions.read_one(session_id)
        )
        self._check_leg_owner("payment", payment_row, schedule_id)
        self._check_leg_owner("session", session_row, schedule_id)

        completed: list[str] = []

        payment = await self.payments.delete(payment_id)
        if payment is None:
            raise BookingDeletionError(step="payment", completed_steps=completed)
        completed.append("payment")

        session = await self.sessions.delete(session_id)
        if session is None:
            logger.error("Booking delete stopped", step="session", schedule_id=schedule_id)
            raise BookingDeletionError(step="session", completed_steps=completed)
        completed.append("session")

        try:
            schedule = await self.schedules.delete(schedule_id)
        except NotFoundError as e:
            logger.error("Booking delete stopped", step="schedule", schedule_id=schedule_id)
            raise BookingDeletionError(step="schedule", completed_steps=completed) from e

        logger.info(
            "Booking deleted",
            schedule_id=schedule_id,
            payment_id=payment_id,
            session_id=session_id,
        )
        return Booking(schedule=schedule, payment=payment, session=session_state(session))
