"""
FIFO admission gate with a fixed concurrency capacity.

At most ``capacity`` operations run at once; everything else waits in a FIFO
queue. When an admitted operation settles (returns or raises) its slot is
released and the queue is drained head-first until capacity is reached
again. The drain is a loop, so a long backlog never grows the call stack.

The gate has no notion of wait time and never cancels anything: a queued
operation can wait for as long as capacity stays saturated. Bounding how
long a caller waits is the Coordinator's job.

Usage:
    gate = AdmissionGate(capacity=3)

    rows = await gate.submit(lambda: database.fetch(query))
    print(gate.status().to_dict())  # {'running': 0, 'queued': 0, 'capacity': 3}
"""

import asyncio
import itertools
from collections import deque
from typing import Callable, Generic, TypeVar

from floodgate.errors import ConfigurationError, OperationError
from floodgate.logging import Logger
from floodgate.logging.floodgate_logging_models import (
    GateDebug,
    GateError,
    GateTrace,
)

from .gate_metrics import GateMetrics
from .gate_status import GateStatus
from .pending_task import Operation, PendingTask

T = TypeVar("T")


class AdmissionGate(Generic[T]):
    """
    Bounds concurrent operations against a shared resource.

    ``running`` and the wait queue are only mutated by ``_admit`` and
    ``_release``. Each admitted operation releases exactly once, from the
    ``finally`` of its execution task, whether or not anyone is still
    waiting for its result.
    """

    def __init__(
        self,
        capacity: int,
        name: str = "default",
        logger: Logger | None = None,
        logger_name: str = "floodgate",
    ) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise ConfigurationError(
                f"capacity must be an integer, got {type(capacity).__name__}"
            )

        if capacity < 1:
            raise ConfigurationError(
                f"capacity must be at least 1, got {capacity}"
            )

        self._name = name
        self._capacity = capacity
        self._running = 0
        self._queue: deque[PendingTask[T]] = deque()
        self._executions: set[asyncio.Task] = set()
        self._ids = itertools.count(1)
        self._metrics = GateMetrics()

        self._logger = logger or Logger()
        self._logger_name = logger_name

        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def name(self):
        return self._name

    @property
    def capacity(self):
        return self._capacity

    @property
    def running(self):
        return self._running

    @property
    def queued(self):
        return len(self._queue)

    @property
    def metrics(self):
        return self._metrics

    def status(self) -> GateStatus:
        return GateStatus(
            running=self._running,
            queued=len(self._queue),
            capacity=self._capacity,
        )

    def schedule(
        self,
        operation: Operation[T],
        on_admit: Callable[[PendingTask[T]], None] | None = None,
    ) -> asyncio.Future[T]:
        """
        Admit ``operation`` now if a slot is free, otherwise queue it.

        Returns the future the gate settles with the operation's result, or
        with an OperationError wrapping whatever it raised. ``on_admit`` is
        called when the operation is given its slot.
        """
        if not callable(operation):
            raise TypeError(
                f"operation must be a zero-argument callable, got {type(operation).__name__}"
            )

        loop = asyncio.get_running_loop()

        task = PendingTask(
            task_id=next(self._ids),
            operation=operation,
            enqueued_at=loop.time(),
            future=loop.create_future(),
            on_admit=on_admit,
        )

        self._metrics.total_submitted += 1
        self._idle.clear()

        if self._running < self._capacity:
            self._admit(task)

        else:
            self._queue.append(task)
            self._metrics.total_queued += 1
            self._metrics.peak_queued = max(
                self._metrics.peak_queued,
                len(self._queue),
            )

            self._log_transition(GateTrace, "Queued operation", task)

        return task.future

    async def submit(self, operation: Operation[T]) -> T:
        """
        Run ``operation`` through the gate and return its result.

        Cancelling the awaiting caller does not withdraw the operation: it
        keeps its place in the queue, or keeps running, to completion.
        """
        return await asyncio.shield(self.schedule(operation))

    async def wait_idle(self):
        """Wait until nothing is running or queued."""
        await self._idle.wait()

    def _admit(self, task: PendingTask[T]):
        self._running += 1
        self._metrics.total_admitted += 1
        self._metrics.peak_running = max(
            self._metrics.peak_running,
            self._running,
        )

        task.admitted_at = asyncio.get_running_loop().time()

        if task.on_admit is not None:
            try:
                task.on_admit(task)

            except Exception as err:
                self._logger.schedule(
                    GateError(
                        message="Admission hook raised",
                        gate=self._name,
                        task_id=task.task_id,
                        error=f"{type(err).__name__}: {err}",
                    ),
                    name=self._logger_name,
                )

        execution = asyncio.ensure_future(self._execute(task))
        self._executions.add(execution)
        execution.add_done_callback(self._executions.discard)

        self._log_transition(GateDebug, "Admitted operation", task)

    async def _execute(self, task: PendingTask[T]):
        try:
            result = await task.operation()

        except asyncio.CancelledError as err:
            # The caller was not cancelled, only the operation.
            self._metrics.total_failed += 1

            if not task.future.done():
                error = OperationError(err, task_id=task.task_id)
                error.__cause__ = err
                task.future.set_exception(error)

            raise

        except Exception as err:
            self._metrics.total_failed += 1

            if not task.future.done():
                error = OperationError(err, task_id=task.task_id)
                error.__cause__ = err
                task.future.set_exception(error)

        else:
            self._metrics.total_completed += 1

            if not task.future.done():
                task.future.set_result(result)

        finally:
            task.settled_at = asyncio.get_running_loop().time()
            self._release(task)

    def _release(self, task: PendingTask[T]):
        self._running -= 1
        self._log_transition(GateDebug, "Released slot", task)

        while self._queue and self._running < self._capacity:
            self._admit(self._queue.popleft())

        if self._running == 0 and not self._queue:
            self._idle.set()

    def _log_transition(
        self,
        model: type[GateDebug] | type[GateTrace],
        message: str,
        task: PendingTask[T],
    ):
        self._logger.schedule(
            model(
                message=message,
                gate=self._name,
                task_id=task.task_id,
                running=self._running,
                queued=len(self._queue),
                capacity=self._capacity,
            ),
            name=self._logger_name,
        )
