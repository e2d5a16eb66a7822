"""
Payment records attached to schedules.

Payment status is derived from the schedule by the booking flow; this service
validates, persists and tells the user what happened to their payment.
"""

from typing import Any

from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.booking_domain import Payment, PaymentStatus
from app.repositories.payment_repository import PaymentRepository
from app.services.errors import BookingError, NotFoundError, ValidationError
from app.services.notification_service import NotificationService
from app.utils.formatting import format_price
from app.utils.ids import ensure_object_id

logger = get_logger(__name__)

MIN_PRICE = 0.01
MAX_PRICE = 999999.99


def validate_price(price: Any) -> float:
    try:
        value = round(float(price), 2)
    except (TypeError, ValueError) as e:
        raise ValidationError("Price must be a number") from e
    if not MIN_PRICE <= value <= MAX_PRICE:
        raise ValidationError(f"Price must be between {MIN_PRICE} and {MAX_PRICE}")
    return value


class PaymentService:
    def __init__(
        self,
        repository: PaymentRepository,
        notifications: NotificationService,
        currency: str = "R$",
    ):
        self.repository = repository
        self.notifications = notifications
        self.currency = currency

    def _status_message(self, payment: Payment) -> str:
        if payment.status == PaymentStatus.PAID:
            return f"Your payment of {format_price(payment.price, self.currency)} was processed successfully."
        if payment.status == PaymentStatus.CANCELLED:
            return "Your payment was cancelled."
        if payment.status == PaymentStatus.REFUNDED:
            return f"Your payment of {format_price(payment.price, self.currency)} was refunded."
        return "Your payment has not been confirmed yet."

    async def _notify(self, payment: Payment, user_id: str) -> None:
        try:
            await self.notifications.create(user_id, self._status_message(payment))
        except (BookingError, DatabaseError) as e:
            logger.error(
                "Payment notification failed",
                payment_id=payment.id,
                user_id=user_id,
                error=str(e),
            )

    async def create(self, data: dict[str, Any], user_id: str | None = None) -> Payment:
        """Persist a payment; notify `user_id` when given."""
        payload = dict(data)
        payload["schedule_id"] = ensure_object_id(payload.get("schedule_id"))
        payload["price"] = validate_price(payload.get("price"))
        payload["status"] = PaymentStatus(payload.get("status") or PaymentStatus.PENDING)

        payment = await self.repository.create(payload)
        logger.info(
            "Payment created",
            payment_id=payment.id,
            schedule_id=payment.schedule_id,
            status=payment.status,
        )

        if user_id:
            await self._notify(payment, user_id)
        return payment

    async def update(
        self, payment_id: str, changes: dict[str, Any], user_id: str | None = None
    ) -> Payment:
        payload = dict(changes)
        if "price" in payload:
            payload["price"] = validate_price(payload["price"])
        if "status" in payload:
            payload["status"] = PaymentStatus(payload["status"])

        payment = await self.repository.update(payment_id, payload)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        logger.info("Payment updated", payment_id=payment.id, status=payment.status)

        if user_id:
            await self._notify(payment, user_id)
        return payment

    async def read(self) -> list[Payment]:
        return await self.repository.read()

    async def read_one(self, payment_id: str) -> Payment | None:
        return await self.repository.read_one(payment_id)

    async def find_by_schedule_id(self, schedule_id: str) -> Payment | None:
        return await self.repository.find_by_schedule_id(ensure_object_id(schedule_id))

    async def delete(self, payment_id: str) -> Payment | None:
        payment = await self.repository.delete(payment_id)
        if payment:
            logger.info("Payment deleted", payment_id=payment_id)
        return payment
