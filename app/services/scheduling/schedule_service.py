"""
Schedule lifecycle: creation rules, merged availability views, calendar sync
on update and delete, and the user notifications that go with them.
"""

from datetime import UTC, date, datetime, time
from typing import Any
from zoneinfo import ZoneInfo

from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.booking_domain import Schedule, ScheduleStatus, can_transition
from app.models.domain.calendar_domain import CalendarEvent
from app.repositories.schedule_repository import (
    PENDING_EXISTS_MESSAGE,
    SLOT_TAKEN_MESSAGE,
    ScheduleRepository,
)
from app.services.calendar.booking_calendar import BookingCalendar
from app.services.calendar.errors import GoogleCalendarError
from app.services.errors import BookingError, ConflictError, NotFoundError, ValidationError
from app.services.notification_service import NotificationService
from app.services.scheduling import slots
from app.utils.formatting import local_date_time
from app.utils.ids import ensure_object_id

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("start_date", "end_date", "status", "google_event_id")


def _iso_utc(value: datetime) -> str:
    return value.astimezone(UTC).isoformat()


class ScheduleService:
    def __init__(
        self,
        repository: ScheduleRepository,
        notifications: NotificationService,
        calendar: BookingCalendar,
        tz: ZoneInfo,
    ):
        self.repository = repository
        self.notifications = notifications
        self.calendar = calendar
        self.tz = tz

    def _aware(self, value: datetime) -> datetime:
        """Naive datetimes are read as booking-timezone wall time."""
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value

    def _day_window(self, day: date | datetime) -> tuple[datetime, datetime]:
        if isinstance(day, datetime):
            day = self._aware(day).astimezone(self.tz).date()
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        end = datetime.combine(day, time(23, 59, 59, 999000), tzinfo=self.tz)
        return start, end

    async def _notify(self, schedule: Schedule, action: str) -> None:
        day, hour = local_date_time(schedule.start_date, self.tz)
        if action == "created":
            message = f"Your booking is set for {day} at {hour}."
        else:
            message = f"Your session was rescheduled to {day} at {hour}."

        try:
            await self.notifications.create(schedule.user_id, message)
        except (BookingError, DatabaseError) as e:
            logger.error(
                "Schedule notification failed",
                schedule_id=schedule.id,
                user_id=schedule.user_id,
                action=action,
                error=str(e),
            )

    async def _external_schedules(
        self, time_min: datetime, time_max: datetime, local: list[Schedule]
    ) -> list[Schedule]:
        """Calendar events in the window as read-only schedules, minus those backing local rows."""
        known_event_ids = {s.google_event_id for s in local if s.google_event_id}
        events = await self.calendar.list_events(time_min, time_max)
        now = datetime.now(UTC)
        return [
            self._from_event(event, now)
            for event in events
            if event.id not in known_event_ids
        ]

    def _from_event(self, event: CalendarEvent, now: datetime) -> Schedule:
        return Schedule(
            id="",
            user_id="",
            start_date=event.start_time,
            end_date=event.end_time,
            status=ScheduleStatus.SCHEDULED,
            google_event_id=event.id,
            created_at=now,
            updated_at=now,
            external=True,
        )

    async def create(self, data: dict[str, Any]) -> Schedule:
        """
        Validate and persist a new schedule.

        Raises:
            ValidationError: bad ordering, weekend start, bad user id
            ConflictError: window taken or the user already has a pending schedule
        """
        user_id = ensure_object_id(data.get("user_id"))
        start_date = self._aware(data["start_date"])
        end_date = self._aware(data["end_date"])
        status = ScheduleStatus.from_label(data.get("status") or ScheduleStatus.PENDING)

        if start_date >= end_date:
            raise ValidationError("Start date must be before end date")
        if start_date.astimezone(self.tz).weekday() >= 5:
            raise ValidationError("Start date must be a weekday")

        taken = [
            s
            for s in await self.find_by_date(start_date, end_date)
            if slots.overlaps(s.start_date, s.end_date, start_date, end_date)
        ]
        if taken:
            logger.info(
                "Schedule rejected, window taken",
                user_id=user_id,
                start_date=start_date.isoformat(),
                conflicts=len(taken),
            )
            raise ConflictError(SLOT_TAKEN_MESSAGE, rule="slot_already_booked")

        if await self.repository.find_pending_by_user(user_id):
            logger.info("Schedule rejected, pending schedule exists", user_id=user_id)
            raise ConflictError(PENDING_EXISTS_MESSAGE, rule="pending_schedule_exists")

        schedule = await self.repository.create(
            {
                "user_id": user_id,
                "start_date": start_date,
                "end_date": end_date,
                "status": status,
                "google_event_id": data.get("google_event_id"),
            }
        )
        logger.info("Schedule created", schedule_id=schedule.id, user_id=user_id, status=schedule.status)

        await self._notify(schedule, "created")
        return schedule

    async def read(self) -> list[Schedule]:
        """Every local schedule plus calendar events from now to the end of the year."""
        local = await self.repository.read()
        now = datetime.now(self.tz)
        year_end = datetime(now.year, 12, 31, 23, 59, 59, 999000, tzinfo=self.tz)
        return local + await self._external_schedules(now, year_end, local)

    async def read_one(self, schedule_id: str) -> Schedule | None:
        return await self.repository.read_one(schedule_id)

    async def find_by_user_id(self, user_id: str) -> list[Schedule]:
        return await self.repository.find_by_user_id(ensure_object_id(user_id))

    async def find_by_date(self, start: datetime, end: datetime | None = None) -> list[Schedule]:
        """
        Schedules meeting [start, end], or the whole local day of `start` when
        `end` is omitted, merged with calendar events for the same window.
        """
        if end is None:
            start, end = self._day_window(start)
        else:
            start, end = self._aware(start), self._aware(end)

        local = await self.repository.find_intersecting(start, end)
        return local + await self._external_schedules(start, end, local)

    async def update(self, schedule_id: str, data: dict[str, Any]) -> Schedule:
        """
        Apply changes, keep the calendar event in step and notify on date changes.

        Raises:
            NotFoundError: no such schedule
            ValidationError: resulting window inverted or illegal status change
        """
        existing = await self.repository.read_one(schedule_id)
        if existing is None:
            raise NotFoundError("Schedule", schedule_id)

        changes = {key: data[key] for key in UPDATABLE_FIELDS if data.get(key) is not None}
        for key in ("start_date", "end_date"):
            if key in changes:
                changes[key] = self._aware(changes[key])

        # A date left out of the payload counts as changed
        start_changed = "start_date" not in changes or _iso_utc(changes["start_date"]) != _iso_utc(
            existing.start_date
        )
        end_changed = "end_date" not in changes or _iso_utc(changes["end_date"]) != _iso_utc(
            existing.end_date
        )
        date_changed = start_changed or end_changed

        if changes.get("start_date", existing.start_date) >= changes.get("end_date", existing.end_date):
            raise ValidationError("Start date must be before end date")

        if "status" in changes:
            target = ScheduleStatus.from_label(changes["status"])
            if not can_transition(existing.status, target):
                raise ValidationError(
                    f"Cannot change schedule status from {existing.status} to {target}"
                )
            changes["status"] = target

        updated = await self.repository.update(existing.id, changes)
        if updated is None:
            raise NotFoundError("Schedule", schedule_id)
        logger.info(
            "Schedule updated",
            schedule_id=updated.id,
            status=updated.status,
            date_changed=date_changed,
        )

        if existing.google_event_id:
            event = await self.calendar.get_event_by_id(existing.google_event_id)
            if event is None:
                logger.info(
                    "Calendar event missing, skipping sync",
                    schedule_id=updated.id,
                    event_id=existing.google_event_id,
                )
            else:
                await self.calendar.update_event(
                    existing.google_event_id,
                    event.rescheduled_payload(updated.start_date, updated.end_date),
                )

        if date_changed:
            await self._notify(updated, "updated")
        return updated

    async def link_calendar_event(self, schedule_id: str, google_event_id: str) -> Schedule:
        updated = await self.repository.update(schedule_id, {"google_event_id": google_event_id})
        if updated is None:
            raise NotFoundError("Schedule", schedule_id)
        logger.info("Calendar event linked", schedule_id=schedule_id, event_id=google_event_id)
        return updated

    async def restore(self, snapshot: Schedule) -> Schedule | None:
        """Write back dates, status and event link from an earlier read. No rules, no notifications."""
        return await self.repository.update(
            snapshot.id,
            {
                "start_date": snapshot.start_date,
                "end_date": snapshot.end_date,
                "status": snapshot.status,
                "google_event_id": snapshot.google_event_id,
            },
        )

    async def delete(self, schedule_id: str) -> Schedule:
        existing = await self.repository.read_one(schedule_id)
        if existing is None:
            raise NotFoundError("Schedule", schedule_id)

        if existing.google_event_id:
            try:
                await self.calendar.delete_event(existing.google_event_id)
            except GoogleCalendarError as e:
                logger.warning(
                    "Calendar event delete failed, deleting schedule anyway",
                    schedule_id=existing.id,
                    event_id=existing.google_event_id,
                    error=str(e),
                )

        deleted = await self.repository.delete(existing.id)
        if deleted is None:
            raise NotFoundError("Schedule", schedule_id)
        logger.info("Schedule deleted", schedule_id=existing.id)
        return deleted

    async def filter_available_slots(self, day: date | datetime, candidate_slots: list[str]) -> list[str]:
        """Keep the "HH:MM - HH:MM" slots of `day` that no booking or calendar event covers."""
        day_start, _ = self._day_window(day)
        bookings = await self.find_by_date(day_start)
        return slots.filter_available_slots(day_start.date(), candidate_slots, bookings, self.tz)
