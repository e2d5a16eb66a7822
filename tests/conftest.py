from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from app.auth.verify import admin_dependency, auth_dependency
from app.models.domain.booking_domain import (
    Notification,
    Payment,
    Schedule,
    ScheduleStatus,
    Session,
    UserContact,
)
from app.models.domain.calendar_domain import CalendarEvent
from app.services.booking.booking_service import BookingService
from app.services.notification_service import NotificationService
from app.services.payment_service import PaymentService
from app.services.scheduling.schedule_service import ScheduleService
from app.services.session_service import SessionService
from app.utils.ids import ensure_object_id, new_object_id

TZ = ZoneInfo("America/Sao_Paulo")

USER_ID = "64b7f0c2a1b2c3d4e5f60718"
OTHER_USER_ID = "64b7f0c2a1b2c3d4e5f60719"


class InMemoryRepository:
    """Dict-backed stand-in for EntityRepository."""

    model: type = None

    def __init__(self):
        self.rows: dict[str, Any] = {}

    async def create(self, obj: dict[str, Any]):
        data = {key: value for key, value in obj.items() if value is not None}
        data["id"] = ensure_object_id(data.get("id") or new_object_id())
        now = datetime.now(UTC)
        for column in ("created_at", "updated_at"):
            if column in self.model.model_fields:
                data.setdefault(column, now)
        item = self.model.model_validate(data)
        self.rows[item.id] = item
        return item

    async def read(self, filters: dict[str, Any] | None = None):
        filters = filters or {}
        return [
            row
            for row in self.rows.values()
            if all(getattr(row, key) == value for key, value in filters.items())
        ]

    async def read_one(self, entity_id: str):
        return self.rows.get(ensure_object_id(entity_id))

    async def update(self, entity_id: str, changes: dict[str, Any]):
        entity_id = ensure_object_id(entity_id)
        existing = self.rows.get(entity_id)
        if existing is None:
            return None
        data = {**existing.model_dump(), **{k: v for k, v in changes.items() if k != "id"}}
        if "updated_at" in self.model.model_fields:
            data["updated_at"] = datetime.now(UTC)
        item = self.model.model_validate(data)
        self.rows[entity_id] = item
        return item

    async def delete(self, entity_id: str):
        return self.rows.pop(ensure_object_id(entity_id), None)


class FakeScheduleRepository(InMemoryRepository):
    model = Schedule

    async def find_intersecting(self, start: datetime, end: datetime):
        return [s for s in self.rows.values() if s.start_date <= end and s.end_date >= start]

    async def find_by_user_id(self, user_id: str):
        return await self.read({"user_id": user_id})

    async def find_pending_by_user(self, user_id: str):
        return await self.read({"user_id": user_id, "status": ScheduleStatus.PENDING})


class FakePaymentRepository(InMemoryRepository):
    model = Payment

    async def find_by_schedule_id(self, schedule_id: str):
        found = await self.read({"schedule_id": schedule_id})
        return found[0] if found else None


class FakeSessionRepository(FakePaymentRepository):
    model = Session


class FakeNotificationRepository(InMemoryRepository):
    model = Notification

    async def find_by_user_id(self, user_id: str):
        return await self.read({"user_id": user_id})


class FakeUserRepository:
    def __init__(self, users: list[UserContact] | None = None):
        self.users = {user.id: user for user in users or []}

    async def find_by_id(self, user_id: str):
        return self.users.get(user_id)


class FakeCalendar:
    """BookingCalendar stand-in recording every call."""

    def __init__(self):
        self.events: dict[str, CalendarEvent] = {}
        self.created: list[dict] = []
        self.updated: list[tuple[str, dict]] = []
        self.deleted: list[str] = []
        self.fail_create: Exception | None = None
        self.fail_delete: Exception | None = None

    def add_event(self, event_id: str, start: datetime, end: datetime, **extra) -> CalendarEvent:
        event = CalendarEvent(
            {
                "id": event_id,
                "summary": extra.pop("summary", "Busy"),
                "start": {"dateTime": start.isoformat(), "timeZone": "America/Sao_Paulo"},
                "end": {"dateTime": end.isoformat(), "timeZone": "America/Sao_Paulo"},
                **extra,
            }
        )
        self.events[event_id] = event
        return event

    async def list_events(self, time_min: datetime, time_max: datetime):
        return [
            event
            for event in self.events.values()
            if event.start_time < time_max and event.end_time > time_min
        ]

    async def get_event_by_id(self, event_id: str):
        return self.events.get(event_id)

    async def create_event(self, event_data: dict):
        if self.fail_create:
            raise self.fail_create
        self.created.append(event_data)
        event_id = f"evt{len(self.created)}"
        event = CalendarEvent({**event_data, "id": event_id})
        self.events[event_id] = event
        return event

    async def update_event(self, event_id: str, event_data: dict):
        self.updated.append((event_id, event_data))
        event = CalendarEvent({**event_data, "id": event_id})
        self.events[event_id] = event
        return event

    async def delete_event(self, event_id: str):
        if self.fail_delete:
            raise self.fail_delete
        self.deleted.append(event_id)
        self.events.pop(event_id, None)


def local(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=TZ)


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def schedule_repo():
    return FakeScheduleRepository()


@pytest.fixture
def payment_repo():
    return FakePaymentRepository()


@pytest.fixture
def session_repo():
    return FakeSessionRepository()


@pytest.fixture
def notification_repo():
    return FakeNotificationRepository()


@pytest.fixture
def user():
    return UserContact(
        id=USER_ID, name="Ana Souza", email="ana@example.com", phone="+55 11 91234-5678"
    )


@pytest.fixture
def user_repo(user):
    return FakeUserRepository([user])


@pytest.fixture
def notifications(notification_repo):
    return NotificationService(notification_repo)


@pytest.fixture
def schedule_service(schedule_repo, notifications, calendar):
    return ScheduleService(schedule_repo, notifications, calendar, TZ)


@pytest.fixture
def payment_service(payment_repo, notifications):
    return PaymentService(payment_repo, notifications, currency="R$")


@pytest.fixture
def session_service(session_repo):
    return SessionService(session_repo)


@pytest.fixture
def booking_service(schedule_service, payment_service, session_service, calendar, user_repo):
    return BookingService(
        schedules=schedule_service,
        payments=payment_service,
        sessions=session_service,
        calendar=calendar,
        users=user_repo,
        tz=TZ,
    )


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": USER_ID, "role": "user"}

    return _override


@pytest.fixture
def admin_override():
    def _override():
        return {"sub": OTHER_USER_ID, "role": "admin"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app, claims_override=None):
        app.dependency_overrides[auth_dependency] = claims_override or auth_override

    return _apply


@pytest.fixture
def apply_admin_override(admin_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = admin_override
        app.dependency_overrides[admin_dependency] = admin_override

    return _apply
