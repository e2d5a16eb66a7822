"""Persistence for booked sessions."""

from app.models.domain.booking_domain import Session
from app.repositories.base import EntityRepository


class SessionRepository(EntityRepository[Session]):
    table = "sessions"
    columns = ("id", "schedule_id", "date", "price", "created_at", "updated_at")
    model = Session

    async def find_by_schedule_id(self, schedule_id: str) -> Session | None:
        sessions = await self.read({"schedule_id": schedule_id})
        return sessions[0] if sessions else None
