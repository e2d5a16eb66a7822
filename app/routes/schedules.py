"""
Schedule API Routes
Slot reservation, availability queries and per-schedule maintenance.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.verify import auth_dependency, require_owner_or_admin
from app.dependencies import get_schedule_service
from app.infrastructure.observability.logging import get_logger
from app.models.api.booking_response import ScheduleResponse
from app.models.api.schedule_request import (
    DateRangeRequest,
    FilterSlotsRequest,
    ScheduleCreateRequest,
    ScheduleUpdateRequest,
)
from app.routes.errors import http_error
from app.services.scheduling.schedule_service import ScheduleService

logger = get_logger(__name__)

router = APIRouter(prefix="/schedules", tags=["schedules"])


def _responses(schedules) -> list[ScheduleResponse]:
    return [ScheduleResponse.from_domain(schedule) for schedule in schedules]


async def _owned_schedule(service: ScheduleService, schedule_id: str, claims: dict, action: str):
    try:
        schedule = await service.read_one(schedule_id)
    except Exception as e:
        raise http_error(e, action, schedule_id=schedule_id) from e
    if schedule is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Schedule not found")
    require_owner_or_admin(claims, schedule.user_id, "schedule")
    return schedule


@router.post("", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    request: ScheduleCreateRequest,
    claims: dict = Depends(auth_dependency),
    service: ScheduleService = Depends(get_schedule_service),
):
    user_id = claims["sub"]
    data = request.model_dump(exclude_none=True)
    data["user_id"] = user_id
    try:
        schedule = await service.create(data)
    except Exception as e:
        raise http_error(e, "Create schedule", user_id=user_id) from e
    return ScheduleResponse.from_domain(schedule)


@router.get("", response_model=list[ScheduleResponse])
async def list_schedules(
    claims: dict = Depends(auth_dependency),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Admins see everything including calendar busy time; users see their own."""
    try:
        if claims.get("role") == "admin":
            schedules = await service.read()
        else:
            schedules = await service.find_by_user_id(claims["sub"])
    except Exception as e:
        raise http_error(e, "List schedules") from e
    return _responses(schedules)


@router.post("/calendar", response_model=list[ScheduleResponse])
async def public_availability(
    request: DateRangeRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Occupied windows for the booking calendar widget. No auth."""
    try:
        schedules = await service.find_by_date(request.start_date, request.end_date)
    except Exception as e:
        raise http_error(e, "Read calendar") from e
    return _responses(schedules)


@router.post("/date", response_model=list[ScheduleResponse])
async def schedules_by_date(
    request: DateRangeRequest,
    claims: dict = Depends(auth_dependency),
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        schedules = await service.find_by_date(request.start_date, request.end_date)
    except Exception as e:
        raise http_error(e, "Find schedules by date") from e
    return _responses(schedules)


@router.post("/filter-slots", response_model=list[str])
async def filter_slots(
    request: FilterSlotsRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Drop the candidate slots that are already taken on the given day."""
    try:
        return await service.filter_available_slots(request.day, request.slots)
    except ValueError as e:
        logger.info("Malformed slot in filter request", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": 'Slots must look like "HH:MM - HH:MM"'},
        ) from e
    except Exception as e:
        raise http_error(e, "Filter available slots") from e


@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(
    schedule_id: str,
    claims: dict = Depends(auth_dependency),
    service: ScheduleService = Depends(get_schedule_service),
):
    schedule = await _owned_schedule(service, schedule_id, claims, "Get schedule")
    return ScheduleResponse.from_domain(schedule)


@router.put("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: str,
    request: ScheduleUpdateRequest,
    claims: dict = Depends(auth_dependency),
    service: ScheduleService = Depends(get_schedule_service),
):
    await _owned_schedule(service, schedule_id, claims, "Update schedule")
    try:
        schedule = await service.update(schedule_id, request.model_dump(exclude_none=True))
    except Exception as e:
        raise http_error(e, "Update schedule", schedule_id=schedule_id) from e
    return ScheduleResponse.from_domain(schedule)


@router.delete("/{schedule_id}", response_model=ScheduleResponse)
async def delete_schedule(
    schedule_id: str,
    claims: dict = Depends(auth_dependency),
    service: ScheduleService = Depends(get_schedule_service),
):
    await _owned_schedule(service, schedule_id, claims, "Delete schedule")
    try:
        schedule = await service.delete(schedule_id)
    except Exception as e:
        raise http_error(e, "Delete schedule", schedule_id=schedule_id) from e
    return ScheduleResponse.from_domain(schedule)
