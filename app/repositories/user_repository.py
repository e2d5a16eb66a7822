"""
Read-only user lookup for the booking flow.
User CRUD belongs to the users service; this only resolves contact details.
"""

from app.db.helpers import fetch_one, with_db_retry
from app.infrastructure.observability.logging import get_logger
from app.models.domain.booking_domain import UserContact
from app.utils.ids import is_object_id

logger = get_logger(__name__)


class UserRepository:
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def find_by_id(self, user_id: str) -> UserContact | None:
        if not is_object_id(user_id):
            return None

        query = "SELECT id, name, email, phone, role FROM users WHERE id = %s"
        row = await fetch_one(query, (user_id.lower(),))
        if not row:
            logger.info("User not found", user_id=user_id)
            return None
        return UserContact.model_validate(row)
