# app/models/api/booking_response.py
"""
Booking and schedule API response models.
Used by routes for output formatting.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.domain.booking_domain import (
    Booking,
    Payment,
    PaymentStatus,
    Schedule,
    ScheduleStatus,
    Session,
    SessionScheduled,
    UserContact,
)

# Shown in place of session details until payment is confirmed
SESSION_NOT_SCHEDULED_MESSAGE = (
    "Session not scheduled yet. It will be available once the payment is confirmed."
)


class ScheduleResponse(BaseModel):
    id: str
    user_id: str
    start_date: datetime
    end_date: datetime
    status: ScheduleStatus
    google_event_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    external: bool = Field(default=False, description="Busy time from the external calendar")

    @classmethod
    def from_domain(cls, schedule: Schedule) -> "ScheduleResponse":
        return cls.model_validate(schedule.model_dump())


class PaymentResponse(BaseModel):
    id: str
    schedule_id: str
    price: float
    status: PaymentStatus
    payment_intent_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SessionResponse(BaseModel):
    id: str
    schedule_id: str
    date: str
    price: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str | None = None


class BookingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schedule_data: ScheduleResponse = Field(..., alias="scheduleData")
    payment_data: PaymentResponse | None = Field(None, alias="paymentData")
    session_data: SessionResponse | str = Field(..., alias="sessionData")
    user_data: UserResponse | None = Field(None, alias="userData")

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingResponse":
        session_data: SessionResponse | str = SESSION_NOT_SCHEDULED_MESSAGE
        if isinstance(booking.session, SessionScheduled):
            session_data = _session(booking.session.session)

        return cls(
            schedule_data=ScheduleResponse.from_domain(booking.schedule),
            payment_data=_payment(booking.payment),
            session_data=session_data,
            user_data=_user(booking.user),
        )


def _payment(payment: Payment | None) -> PaymentResponse | None:
    return PaymentResponse.model_validate(payment.model_dump()) if payment else None


def _session(session: Session) -> SessionResponse:
    return SessionResponse.model_validate(session.model_dump())


def _user(user: UserContact | None) -> UserResponse | None:
    return UserResponse.model_validate(user.model_dump()) if user else None
