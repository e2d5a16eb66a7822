"""
Service wiring for the routes.

Services are built once per process from settings. Tests swap them through
`app.dependency_overrides[get_booking_service]` and friends.
"""

from functools import lru_cache

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.repositories.notification_repository import NotificationRepository
from app.repositories.payment_repository import PaymentRepository
from app.repositories.schedule_repository import ScheduleRepository
from app.repositories.session_repository import SessionRepository
from app.repositories.user_repository import UserRepository
from app.services.booking.booking_service import BookingService
from app.services.calendar.booking_calendar import BookingCalendar
from app.services.calendar.google_client import GoogleCalendarService
from app.services.calendar.token_provider import RefreshTokenProvider
from app.services.notification_service import NotificationService
from app.services.payment_service import PaymentService
from app.services.scheduling.schedule_service import ScheduleService
from app.services.session_service import SessionService

logger = get_logger(__name__)


@lru_cache
def get_calendar_client() -> GoogleCalendarService | None:
    if not settings.calendar_configured():
        logger.warning("Google Calendar not configured, calendar sync disabled")
        return None
    token_provider = RefreshTokenProvider(
        settings.GOOGLE_CLIENT_ID,
        settings.GOOGLE_CLIENT_SECRET,
        settings.GOOGLE_CALENDAR_REFRESH_TOKEN,
    )
    return GoogleCalendarService(token_provider, calendar_id=settings.GOOGLE_CALENDAR_ID)


@lru_cache
def get_booking_calendar() -> BookingCalendar:
    return BookingCalendar(get_calendar_client())


@lru_cache
def get_notification_service() -> NotificationService:
    return NotificationService(NotificationRepository())


@lru_cache
def get_schedule_service() -> ScheduleService:
    return ScheduleService(
        ScheduleRepository(),
        get_notification_service(),
        get_booking_calendar(),
        settings.booking_tz(),
    )


@lru_cache
def get_booking_service() -> BookingService:
    return BookingService(
        schedules=get_schedule_service(),
        payments=PaymentService(
            PaymentRepository(), get_notification_service(), currency=settings.BOOKING_CURRENCY
        ),
        sessions=SessionService(SessionRepository()),
        calendar=get_booking_calendar(),
        users=UserRepository(),
        tz=settings.booking_tz(),
        auto_compensate=settings.BOOKING_AUTO_COMPENSATE,
    )


async def close_calendar_client() -> None:
    client = get_calendar_client()
    if client is None:
        return
    await client.close()
    await client.token_provider.close()
