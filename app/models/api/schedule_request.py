# app/models/api/schedule_request.py
"""
Schedule API request models.
Used by routes for input validation.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.domain.booking_domain import ScheduleStatus


def _normalize_status(value):
    if value is None:
        return None
    try:
        return ScheduleStatus.from_label(value)
    except ValueError as e:
        raise ValueError(f"Unknown schedule status: {value}") from e


class ScheduleCreateRequest(BaseModel):
    """Request for reserving a time window. The owner comes from the token."""

    start_date: datetime = Field(..., description="Session start")
    end_date: datetime = Field(..., description="Session end")
    status: ScheduleStatus | None = Field(
        default=None, description="Initial status (default: pending)"
    )

    normalize_status = field_validator("status", mode="before")(_normalize_status)


class ScheduleUpdateRequest(BaseModel):
    """Partial schedule update. Omitted dates count as changed for notifications."""

    start_date: datetime | None = Field(None, description="New start")
    end_date: datetime | None = Field(None, description="New end")
    status: ScheduleStatus | None = Field(None, description="New status")

    normalize_status = field_validator("status", mode="before")(_normalize_status)


class DateRangeRequest(BaseModel):
    """Window for availability queries; without end_date the whole local day is used."""

    start_date: datetime
    end_date: datetime | None = None


class FilterSlotsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: date | datetime = Field(..., alias="date", description="Day to check")
    slots: list[str] = Field(..., description='Candidate slots, "HH:MM - HH:MM"')
