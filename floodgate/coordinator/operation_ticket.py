from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from floodgate.admission import PendingTask
from floodgate.deadlines import DeadlineHandle

from .ticket_state import TicketState

T = TypeVar("T")

TicketContext = dict[str, str | int | float | bool | None]


@dataclass(slots=True)
class OperationTicket(Generic[T]):
    """
    Tracks one Coordinator.run() call.

    ``state`` follows the operation through the gate
    (QUEUED -> ADMITTED -> COMPLETED | FAILED). ``timed_out`` and
    ``answered`` are independent flags: the first records that the deadline
    won, the second that the caller has its one answer.
    """

    ticket_id: int
    timeout_ms: float
    created_at: float
    answer: asyncio.Future[T] = field(repr=False)
    context: TicketContext = field(default_factory=dict)
    state: TicketState = TicketState.QUEUED
    timed_out: bool = False
    answered: bool = False
    deliveries: int = 0
    deadline: DeadlineHandle | None = field(default=None, repr=False)
    task: PendingTask[T] | None = field(default=None, repr=False)
    gate_future: asyncio.Future[T] | None = field(default=None, repr=False)

    @property
    def settled(self):
        return self.state in (TicketState.COMPLETED, TicketState.FAILED)

    @property
    def orphaned(self):
        return self.timed_out and not self.settled

    def deliver_result(self, result: T) -> bool:
        if not self._mark_answered():
            return False

        self.answer.set_result(result)
        return True

    def deliver_error(self, error: BaseException) -> bool:
        if not self._mark_answered():
            return False

        self.answer.set_exception(error)
        return True

    def _mark_answered(self):
        if self.answered or self.answer.done():
            return False

        self.answered = True
        self.deliveries += 1
        return True

    async def wait(self) -> T:
        return await self.answer

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "timeout_ms": self.timeout_ms,
            "state": self.state.value,
            "timed_out": self.timed_out,
            "answered": self.answered,
            "context": dict(self.context),
        }
