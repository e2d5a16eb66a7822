"""Session records: one per paid schedule, describing who meets when."""

from typing import Any

from app.infrastructure.observability.logging import get_logger
from app.models.domain.booking_domain import Session
from app.repositories.session_repository import SessionRepository
from app.services.errors import NotFoundError, ValidationError
from app.utils.ids import ensure_object_id

logger = get_logger(__name__)


class SessionService:
    def __init__(self, repository: SessionRepository):
        self.repository = repository

    async def create(self, data: dict[str, Any]) -> Session:
        payload = dict(data)
        payload["schedule_id"] = ensure_object_id(payload.get("schedule_id"))
        if not payload.get("date"):
            raise ValidationError("Session description is required")

        session = await self.repository.create(payload)
        logger.info("Session created", session_id=session.id, schedule_id=session.schedule_id)
        return session

    async def update(self, session_id: str, changes: dict[str, Any]) -> Session:
        session = await self.repository.update(session_id, changes)
        if session is None:
            raise NotFoundError("Session", session_id)
        logger.info("Session updated", session_id=session_id)
        return session

    async def read_one(self, session_id: str) -> Session | None:
        return await self.repository.read_one(session_id)

    async def find_by_schedule_id(self, schedule_id: str) -> Session | None:
        return await self.repository.find_by_schedule_id(ensure_object_id(schedule_id))

    async def delete(self, session_id: str) -> Session | None:
        session = await self.repository.delete(session_id)
        if session:
            logger.info("Session deleted", session_id=session_id)
        return session
