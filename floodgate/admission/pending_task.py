from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]


@dataclass(slots=True)
class PendingTask(Generic[T]):
    """
    A submitted operation and the future its submitter awaits.

    The future is settled by the gate only, once, when the operation
    finishes running.
    """

    task_id: int
    operation: Operation[T]
    enqueued_at: float
    future: asyncio.Future[T] = field(repr=False)
    on_admit: Callable[[PendingTask[T]], None] | None = field(default=None, repr=False)
    admitted_at: float | None = None
    settled_at: float | None = None

    @property
    def admitted(self):
        return self.admitted_at is not None

    @property
    def settled(self):
        return self.settled_at is not None

    @property
    def wait_time(self):
        if self.admitted_at is None:
            return None

        return self.admitted_at - self.enqueued_at
