# app/models/api/booking_request.py
"""
Booking API request models.
Field names follow the public JSON contract (camelCase); snake_case is accepted too.
"""

from pydantic import BaseModel, ConfigDict, Field

from app.models.api.schedule_request import ScheduleCreateRequest, ScheduleUpdateRequest


class PaymentInput(BaseModel):
    price: float = Field(..., description="Amount charged for the session")
    payment_intent_id: str | None = Field(None, max_length=255)


class BookingCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schedule_data: ScheduleCreateRequest = Field(..., alias="scheduleData")
    payment_data: PaymentInput = Field(..., alias="paymentData")
    session_name: str | None = Field(None, alias="sessionName", max_length=200)


class BookingUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schedule_data: ScheduleUpdateRequest = Field(..., alias="scheduleData")
    session_name: str | None = Field(None, alias="sessionName", max_length=200)


class BookingDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_id: str = Field(..., alias="paymentId")
    session_id: str = Field(..., alias="sessionId")
    schedule_id: str = Field(..., alias="scheduleId")
