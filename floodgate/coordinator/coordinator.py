"""
Races an AdmissionGate against a per-call deadline.

Every call gets exactly one answer: the operation's result, its
OperationError, or an OperationTimeoutError if the deadline fires first. A
timeout only changes what the caller is told. The operation is never
cancelled: it keeps waiting for a slot or keeps running, and when it finally
settles its result is discarded while the gate releases its slot exactly as
it would have otherwise. Callers must not read a timeout as "the operation
did not happen".
"""

import asyncio
import functools
import itertools
import math
from typing import Generic, TypeVar

from floodgate.admission import AdmissionGate, GateStatus, Operation, PendingTask
from floodgate.deadlines import DeadlineSupervisor
from floodgate.errors import (
    ConfigurationError,
    OperationError,
    OperationTimeoutError,
)
from floodgate.logging import Logger
from floodgate.logging.floodgate_logging_models import (
    TicketDebug,
    TicketError,
    TicketInfo,
    TicketTimeout,
)

from .operation_ticket import OperationTicket, TicketContext
from .ticket_state import TicketState

T = TypeVar("T")


class Coordinator(Generic[T]):
    """
    Runs operations through a shared AdmissionGate with a deadline per call.

    Example:
        gate = AdmissionGate(capacity=3)
        coordinator = Coordinator(gate, default_timeout_ms=30000)

        try:
            entries = await coordinator.run(
                lambda: queries.user_entries(user_id),
                timeout_ms=5000,
                context={"path": "/api/entries", "user_id": user_id},
            )

        except OperationTimeoutError:
            ...  # stopped waiting; the query may still complete

        except OperationError as err:
            ...  # the query itself failed, see err.cause
    """

    def __init__(
        self,
        gate: AdmissionGate[T],
        supervisor: DeadlineSupervisor | None = None,
        default_timeout_ms: float = 30000,
        logger: Logger | None = None,
        logger_name: str = "floodgate",
    ) -> None:
        if isinstance(default_timeout_ms, bool) or not isinstance(
            default_timeout_ms, (int, float)
        ):
            raise ConfigurationError(
                f"default_timeout_ms must be a number, got {type(default_timeout_ms).__name__}"
            )

        if math.isnan(default_timeout_ms) or default_timeout_ms <= 0:
            raise ConfigurationError(
                f"default_timeout_ms must be positive, got {default_timeout_ms}"
            )

        self._logger = logger or Logger()
        self._logger_name = logger_name

        self._gate = gate
        self._supervisor = supervisor or DeadlineSupervisor(
            logger=self._logger,
            logger_name=logger_name,
        )
        self._default_timeout_ms = default_timeout_ms

        self._tickets: dict[int, OperationTicket[T]] = {}
        self._ids = itertools.count(1)

    @property
    def gate(self):
        return self._gate

    @property
    def supervisor(self):
        return self._supervisor

    @property
    def logger(self):
        return self._logger

    @property
    def default_timeout_ms(self):
        return self._default_timeout_ms

    @property
    def in_flight(self):
        return len(self._tickets)

    @property
    def orphaned(self):
        return len([
            ticket for ticket in self._tickets.values() if ticket.orphaned
        ])

    def status(self) -> GateStatus:
        return self._gate.status()

    async def close(self):
        """
        Flush pending log writes and close log files. Operations still
        queued or running are left alone.
        """
        await self._logger.close()

    def start(
        self,
        operation: Operation[T],
        timeout_ms: float | None = None,
        context: TicketContext | None = None,
    ) -> OperationTicket[T]:
        """
        Arm a deadline, submit ``operation`` to the gate and return the
        ticket the caller's single answer will be delivered to.
        """
        if timeout_ms is None:
            timeout_ms = self._default_timeout_ms

        loop = asyncio.get_running_loop()

        ticket: OperationTicket[T] = OperationTicket(
            ticket_id=next(self._ids),
            timeout_ms=timeout_ms,
            created_at=loop.time(),
            answer=loop.create_future(),
            context=dict(context or {}),
        )

        ticket.deadline = self._supervisor.arm(
            timeout_ms,
            functools.partial(self._expire, ticket),
        )

        try:
            ticket.gate_future = self._gate.schedule(
                operation,
                on_admit=functools.partial(self._admitted, ticket),
            )

        except Exception:
            self._supervisor.disarm(ticket.deadline)
            raise

        self._tickets[ticket.ticket_id] = ticket
        ticket.gate_future.add_done_callback(
            functools.partial(self._settle, ticket)
        )

        return ticket

    async def run(
        self,
        operation: Operation[T],
        timeout_ms: float | None = None,
        context: TicketContext | None = None,
    ) -> T:
        """
        Run ``operation`` through the gate, waiting at most ``timeout_ms``.

        Raises OperationTimeoutError when the deadline wins (the operation
        carries on in the background) and OperationError when the operation
        itself raised.
        """
        ticket = self.start(
            operation,
            timeout_ms=timeout_ms,
            context=context,
        )

        try:
            return await ticket.wait()

        finally:
            self._supervisor.disarm(ticket.deadline)

    def _admitted(
        self,
        ticket: OperationTicket[T],
        task: PendingTask[T],
    ):
        ticket.task = task
        ticket.state = TicketState.ADMITTED

        self._logger.schedule(
            TicketDebug(
                message="Ticket admitted",
                ticket_id=ticket.ticket_id,
                state=ticket.state.value,
                timed_out=ticket.timed_out,
            ),
            name=self._logger_name,
        )

    def _expire(self, ticket: OperationTicket[T]):
        if ticket.answered or ticket.answer.done():
            return

        ticket.timed_out = True
        ticket.deliver_error(
            OperationTimeoutError(
                ticket.timeout_ms,
                ticket_id=ticket.ticket_id,
            )
        )

        status = self._gate.status()

        self._logger.schedule(
            TicketTimeout(
                message="Operation timed out, it continues in the background",
                ticket_id=ticket.ticket_id,
                timeout_ms=ticket.timeout_ms,
                state=ticket.state.value,
                running=status.running,
                queued=status.queued,
                capacity=status.capacity,
                context=ticket.context,
            ),
            name=self._logger_name,
        )

    def _settle(
        self,
        ticket: OperationTicket[T],
        gate_future: asyncio.Future[T],
    ):
        try:
            self._supervisor.disarm(ticket.deadline)

            if gate_future.cancelled():
                error: BaseException | None = OperationError(
                    asyncio.CancelledError("Operation was cancelled"),
                )

            else:
                error = gate_future.exception()

            ticket.state = TicketState.FAILED if error else TicketState.COMPLETED

            if ticket.timed_out or ticket.answer.done():
                self._logger.schedule(
                    TicketInfo(
                        message="Discarded result of operation whose caller stopped waiting",
                        ticket_id=ticket.ticket_id,
                        state=ticket.state.value,
                        timed_out=ticket.timed_out,
                    ),
                    name=self._logger_name,
                )

            elif error is not None:
                ticket.deliver_error(error)

            else:
                ticket.deliver_result(gate_future.result())

        except Exception as err:
            self._logger.schedule(
                TicketError(
                    message="Failed to settle ticket",
                    ticket_id=ticket.ticket_id,
                    error=f"{type(err).__name__}: {err}",
                ),
                name=self._logger_name,
            )

        finally:
            self._tickets.pop(ticket.ticket_id, None)
