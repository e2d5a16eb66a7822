"""
Notification sink.
Persists one notification per call; delivery to devices happens elsewhere.
"""

from app.infrastructure.observability.logging import get_logger
from app.models.domain.booking_domain import Notification
from app.repositories.notification_repository import NotificationRepository
from app.services.errors import ValidationError
from app.utils.ids import ensure_object_id

logger = get_logger(__name__)

MAX_MESSAGE_LENGTH = 255


class NotificationService:
    def __init__(self, repository: NotificationRepository):
        self.repository = repository

    async def create(self, user_id: str, message: str) -> Notification:
        user_id = ensure_object_id(user_id)
        message = message.strip()
        if not message or len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Notification message must be 1 to {MAX_MESSAGE_LENGTH} characters"
            )

        notification = await self.repository.create(
            {"user_id": user_id, "message": message, "read": False}
        )
        logger.info("Notification created", user_id=user_id, notification_id=notification.id)
        return notification

    async def find_by_user_id(self, user_id: str) -> list[Notification]:
        return await self.repository.find_by_user_id(ensure_object_id(user_id))
