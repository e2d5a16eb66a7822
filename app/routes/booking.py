"""
Booking API Routes
Create, read, update and delete bookings (schedule + payment + session).
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.verify import admin_dependency, auth_dependency, require_owner_or_admin
from app.dependencies import get_booking_service
from app.infrastructure.observability.logging import get_logger
from app.models.api.booking_request import (
    BookingCreateRequest,
    BookingDeleteRequest,
    BookingUpdateRequest,
)
from app.models.api.booking_response import BookingResponse
from app.routes.errors import http_error
from app.services.booking.booking_service import BookingService

logger = get_logger(__name__)

router = APIRouter(prefix="/booking", tags=["booking"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreateRequest,
    claims: dict = Depends(auth_dependency),
    service: BookingService = Depends(get_booking_service),
):
    """Book a slot for the authenticated user."""
    user_id = claims["sub"]
    schedule_data = request.schedule_data.model_dump(exclude_none=True)
    schedule_data["user_id"] = user_id

    try:
        booking = await service.create_booking(
            schedule_data,
            request.payment_data.model_dump(),
            session_name=request.session_name,
        )
    except Exception as e:
        raise http_error(e, "Create booking", user_id=user_id) from e

    return BookingResponse.from_domain(booking)


@router.get("", response_model=list[BookingResponse])
async def list_my_bookings(
    claims: dict = Depends(auth_dependency),
    service: BookingService = Depends(get_booking_service),
):
    user_id = claims["sub"]
    try:
        bookings = await service.find_bookings_by_user(user_id)
    except Exception as e:
        raise http_error(e, "List bookings", user_id=user_id) from e
    return [BookingResponse.from_domain(booking) for booking in bookings]


@router.get("/all", response_model=list[BookingResponse])
async def list_all_bookings(
    claims: dict = Depends(admin_dependency),
    service: BookingService = Depends(get_booking_service),
):
    """Every booking, for the admin dashboard."""
    try:
        bookings = await service.find_all_bookings_for_admin()
    except Exception as e:
        raise http_error(e, "List all bookings") from e
    return [BookingResponse.from_domain(booking) for booking in bookings]


@router.post("/Delete", response_model=BookingResponse)
async def delete_booking(
    request: BookingDeleteRequest,
    claims: dict = Depends(auth_dependency),
    service: BookingService = Depends(get_booking_service),
):
    """Delete payment, session and schedule of one booking."""
    try:
        if claims.get("role") != "admin":
            booking = await service.find_booking_by_schedule_id(request.schedule_id)
            require_owner_or_admin(claims, booking.schedule.user_id)
        deleted = await service.delete_booking(
            request.payment_id, request.session_id, request.schedule_id
        )
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "Delete booking", schedule_id=request.schedule_id) from e

    return BookingResponse.from_domain(deleted)


@router.get("/{schedule_id}", response_model=BookingResponse)
async def get_booking(
    schedule_id: str,
    claims: dict = Depends(auth_dependency),
    service: BookingService = Depends(get_booking_service),
):
    try:
        booking = await service.find_booking_by_schedule_id(schedule_id)
    except Exception as e:
        raise http_error(e, "Get booking", schedule_id=schedule_id) from e

    require_owner_or_admin(claims, booking.schedule.user_id)
    return BookingResponse.from_domain(booking)


@router.put("/{schedule_id}", response_model=BookingResponse)
async def update_booking(
    schedule_id: str,
    request: BookingUpdateRequest,
    claims: dict = Depends(auth_dependency),
    service: BookingService = Depends(get_booking_service),
):
    """Reschedule or change the status of a booking."""
    try:
        current = await service.find_booking_by_schedule_id(schedule_id)
        require_owner_or_admin(claims, current.schedule.user_id)
        booking = await service.update_booking(
            schedule_id,
            request.schedule_data.model_dump(exclude_none=True),
            session_name=request.session_name,
        )
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "Update booking", schedule_id=schedule_id) from e

    return BookingResponse.from_domain(booking)
