# app/models/domain/booking_domain.py
"""
Booking Domain Models
Schedules, payments, sessions and the read-side booking aggregate.
Used by repositories and services; API models live in app.models.api.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class ScheduleStatus(StrEnum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    COMPLETED = "completed"

    @classmethod
    def from_label(cls, value: "str | ScheduleStatus") -> "ScheduleStatus":
        """Accept the English values and the legacy Portuguese labels."""
        if isinstance(value, ScheduleStatus):
            return value
        label = str(value).strip().lower()
        return cls(_SCHEDULE_STATUS_ALIASES.get(label, label))


_SCHEDULE_STATUS_ALIASES = {
    "pendente": "pending",
    "agendado": "scheduled",
    "confirmado": "scheduled",
    "confirmed": "scheduled",
    "cancelado": "cancelled",
    "canceled": "cancelled",
    "reembolsado": "refunded",
    "concluído": "completed",
    "concluido": "completed",
}


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# pending -> scheduled|cancelled; scheduled -> completed|cancelled|refunded.
SCHEDULE_TRANSITIONS: dict[ScheduleStatus, frozenset[ScheduleStatus]] = {
    ScheduleStatus.PENDING: frozenset({ScheduleStatus.SCHEDULED, ScheduleStatus.CANCELLED}),
    ScheduleStatus.SCHEDULED: frozenset(
        {ScheduleStatus.COMPLETED, ScheduleStatus.CANCELLED, ScheduleStatus.REFUNDED}
    ),
    ScheduleStatus.CANCELLED: frozenset(),
    ScheduleStatus.REFUNDED: frozenset(),
    ScheduleStatus.COMPLETED: frozenset(),
}


def can_transition(current: ScheduleStatus, target: ScheduleStatus) -> bool:
    """Staying in the same status is always allowed."""
    return current == target or target in SCHEDULE_TRANSITIONS[current]


class Schedule(BaseModel):
    """A user's reserved time window."""

    id: str
    user_id: str
    start_date: datetime
    end_date: datetime
    status: ScheduleStatus = ScheduleStatus.PENDING
    google_event_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # True for rows synthesized from the external calendar feed
    external: bool = False

    def window(self) -> tuple[datetime, datetime]:
        return self.start_date, self.end_date

    def is_owned(self) -> bool:
        return bool(self.id and self.user_id) and not self.external


class Payment(BaseModel):
    id: str
    schedule_id: str
    price: float
    status: PaymentStatus = PaymentStatus.PENDING
    payment_intent_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Session(BaseModel):
    id: str
    schedule_id: str
    date: str
    price: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Notification(BaseModel):
    id: str
    user_id: str
    message: str
    read: bool = False
    created_at: datetime | None = None


class UserContact(BaseModel):
    """The slice of a user record the booking flow needs."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    email: str
    phone: str | None = None
    role: str = "user"


class SessionNotScheduled(BaseModel):
    state: Literal["not_scheduled"] = "not_scheduled"


class SessionScheduled(BaseModel):
    state: Literal["scheduled"] = "scheduled"
    session: Session


SessionState = Annotated[
    SessionNotScheduled | SessionScheduled, Field(discriminator="state")
]


def session_state(session: Session | None) -> SessionNotScheduled | SessionScheduled:
    if session is None:
        return SessionNotScheduled()
    return SessionScheduled(session=session)


class Booking(BaseModel):
    """Read-side composition of schedule, payment, session and owner."""

    schedule: Schedule
    payment: Payment | None = None
    session: SessionState = Field(default_factory=SessionNotScheduled)
    user: UserContact | None = None

    @property
    def session_record(self) -> Session | None:
        if isinstance(self.session, SessionScheduled):
            return self.session.session
        return None
