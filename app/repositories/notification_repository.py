"""Persistence for user notifications."""

from app.models.domain.booking_domain import Notification
from app.repositories.base import EntityRepository


class NotificationRepository(EntityRepository[Notification]):
    table = "notifications"
    columns = ("id", "user_id", "message", "read", "created_at")
    model = Notification

    async def find_by_user_id(self, user_id: str) -> list[Notification]:
        return await self.read({"user_id": user_id})
