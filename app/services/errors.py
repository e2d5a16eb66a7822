"""
Domain errors raised by the scheduling and booking services.
Routes translate these into HTTP status codes; nothing below the route layer
knows about HTTP.
"""


class BookingError(Exception):
    """Base class for scheduling and booking failures."""

    def __init__(self, message: str, *, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(BookingError):
    """Input rejected before any write (bad dates, bad ids, bad transitions)."""


class InvalidIdError(ValidationError):
    """Identifier is not 24 hexadecimal characters."""

    def __init__(self, value: object):
        super().__init__("Invalid id format.", details={"id": str(value)})
        self.value = value


class ConflictError(BookingError):
    """Requested slot collides with an existing schedule or pending booking."""

    def __init__(self, message: str, *, rule: str, details: dict | None = None):
        super().__init__(message, details=details)
        self.rule = rule


class NotFoundError(BookingError):
    """Referenced schedule, payment or session does not exist."""

    def __init__(self, entity: str, entity_id: str | None = None):
        super().__init__(f"{entity} not found", details={"id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class PartialFailureError(BookingError):
    """
    A multi-entity operation failed after some of its writes were committed.

    `step` names the leg that failed and `completed_steps` lists the legs that
    were already persisted when it did.
    """

    def __init__(
        self,
        message: str,
        *,
        step: str,
        completed_steps: list[str] | None = None,
        compensated: bool = False,
    ):
        super().__init__(
            message,
            details={"step": step, "completed_steps": list(completed_steps or [])},
        )
        self.step = step
        self.completed_steps = list(completed_steps or [])
        self.compensated = compensated


class BookingDeletionError(PartialFailureError):
    """One of the payment/session/schedule deletes found nothing to delete."""

    def __init__(self, *, step: str, completed_steps: list[str] | None = None):
        super().__init__(
            "Failed to delete booking", step=step, completed_steps=completed_steps
        )
