"""
Step log for multi-entity booking writes.

Each committed write is recorded with an optional inverse. When a later step
fails the log raises PartialFailureError naming the failed step and the steps
already committed. Inverses run, newest first, only when auto-compensation is
switched on; otherwise the committed writes stay as they are.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from app.infrastructure.observability.logging import get_logger, log_booking_step
from app.services.errors import PartialFailureError

logger = get_logger(__name__)

T = TypeVar("T")

Inverse = Callable[[], Awaitable[Any]]


@dataclass
class CompletedStep:
    name: str
    inverse: Inverse | None = None


class BookingSteps:
    def __init__(self, operation: str, *, schedule_id: str | None = None, auto_compensate: bool = False):
        self.operation = operation
        self.schedule_id = schedule_id
        self.auto_compensate = auto_compensate
        self.completed: list[CompletedStep] = []

    @property
    def completed_names(self) -> list[str]:
        return [step.name for step in self.completed]

    def record(self, name: str, inverse: Inverse | None = None) -> None:
        """Register a write that already happened outside `run`."""
        self.completed.append(CompletedStep(name, inverse))
        log_booking_step(name, self.schedule_id, ok=True)

    async def run(
        self,
        name: str,
        action: Callable[[], Awaitable[T]],
        inverse: Callable[[T], Awaitable[Any]] | None = None,
    ) -> T:
        """
        Await `action` and record it.

        A failure before anything was committed propagates untouched; after
        that it becomes PartialFailureError.
        """
        try:
            result = await action()
        except Exception as e:
            log_booking_step(name, self.schedule_id, ok=False, error=str(e))
            if not self.completed:
                raise
            await self.fail(name, f"{self.operation} failed at step '{name}'", cause=e)

        self.completed.append(
            CompletedStep(name, (lambda: inverse(result)) if inverse else None)
        )
        log_booking_step(name, self.schedule_id, ok=True)
        return result

    async def lookup(self, name: str, action: Callable[[], Awaitable[T]]) -> T:
        """Await a read made between writes. Failures are reported like `run`; nothing is recorded."""
        try:
            return await action()
        except Exception as e:
            log_booking_step(name, self.schedule_id, ok=False, error=str(e))
            if not self.completed:
                raise
            await self.fail(name, f"{self.operation} failed at step '{name}'", cause=e)

    async def fail(self, name: str, message: str, cause: BaseException | None = None) -> None:
        """Compensate if enabled, then raise PartialFailureError for `name`."""
        completed = self.completed_names
        compensated = await self.compensate() if self.auto_compensate else False
        logger.error(
            "Booking operation partially applied",
            operation=self.operation,
            schedule_id=self.schedule_id,
            step=name,
            completed_steps=completed,
            compensated=compensated,
        )
        raise PartialFailureError(
            message, step=name, completed_steps=completed, compensated=compensated
        ) from cause

    async def compensate(self) -> bool:
        """Run inverses newest first. Returns True when every inverse succeeded."""
        ok = True
        for step in reversed(self.completed):
            if step.inverse is None:
                continue
            try:
                await step.inverse()
            except Exception as e:
                ok = False
                logger.error(
                    "Compensation failed",
                    operation=self.operation,
                    schedule_id=self.schedule_id,
                    step=step.name,
                    error=str(e),
                )
            else:
                logger.info("Step compensated", operation=self.operation, step=step.name)
        self.completed.clear()
        return ok
