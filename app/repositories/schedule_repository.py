"""
Persistence for schedules.

Besides generic CRUD this adds the window query behind the double-booking
rule and maps the table's exclusion/unique constraints to ConflictError.
"""

from datetime import datetime
from typing import Any

from psycopg import errors as pg_errors
from psycopg import sql

from app.db.helpers import DatabaseError, fetch_all, with_db_retry
from app.infrastructure.observability.logging import get_logger
from app.models.domain.booking_domain import Schedule, ScheduleStatus
from app.repositories.base import EntityRepository
from app.services.errors import ConflictError

logger = get_logger(__name__)

SLOT_TAKEN_MESSAGE = "Schedules already exist for this date"
PENDING_EXISTS_MESSAGE = "There are pending schedules"


def _constraint_conflict(error: DatabaseError) -> ConflictError | None:
    cause = error.__cause__
    if isinstance(cause, pg_errors.ExclusionViolation):
        return ConflictError(SLOT_TAKEN_MESSAGE, rule="slot_already_booked")
    if isinstance(cause, pg_errors.UniqueViolation):
        return ConflictError(PENDING_EXISTS_MESSAGE, rule="pending_schedule_exists")
    return None


class ScheduleRepository(EntityRepository[Schedule]):
    table = "schedules"
    columns = (
        "id",
        "user_id",
        "start_date",
        "end_date",
        "status",
        "google_event_id",
        "created_at",
        "updated_at",
    )
    model = Schedule

    async def create(self, obj: dict[str, Any]) -> Schedule:
        try:
            return await super().create(obj)
        except DatabaseError as e:
            conflict = _constraint_conflict(e)
            if conflict is None:
                raise
            logger.warning("Schedule insert rejected by constraint", rule=conflict.rule)
            raise conflict from e

    async def update(self, entity_id: str, changes: dict[str, Any]) -> Schedule | None:
        try:
            return await super().update(entity_id, changes)
        except DatabaseError as e:
            conflict = _constraint_conflict(e)
            if conflict is None:
                raise
            logger.warning(
                "Schedule update rejected by constraint", schedule_id=entity_id, rule=conflict.rule
            )
            raise conflict from e

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def find_intersecting(self, start: datetime, end: datetime) -> list[Schedule]:
        """Schedules whose [start_date, end_date] meets [start, end], bounds inclusive."""
        query = sql.SQL(
            "SELECT {returning} FROM schedules "
            "WHERE start_date <= %s AND end_date >= %s ORDER BY start_date"
        ).format(returning=self._returning())
        rows = await fetch_all(query, (end, start))
        return [self._row_to_model(row) for row in rows]

    async def find_by_user_id(self, user_id: str) -> list[Schedule]:
        return await self.read({"user_id": user_id})

    async def find_pending_by_user(self, user_id: str) -> list[Schedule]:
        return await self.read({"user_id": user_id, "status": ScheduleStatus.PENDING})
