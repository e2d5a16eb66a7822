"""Persistence for payments (one per schedule, by convention)."""

from app.models.domain.booking_domain import Payment
from app.repositories.base import EntityRepository


class PaymentRepository(EntityRepository[Payment]):
    table = "payments"
    columns = (
        "id",
        "schedule_id",
        "price",
        "status",
        "payment_intent_id",
        "created_at",
        "updated_at",
    )
    model = Payment

    async def find_by_schedule_id(self, schedule_id: str) -> Payment | None:
        payments = await self.read({"schedule_id": schedule_id})
        return payments[0] if payments else None
