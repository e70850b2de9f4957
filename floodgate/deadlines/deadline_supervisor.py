"""
One-shot deadlines on the running event loop.

Each armed deadline fires its ``on_expire`` callback at most once. Disarming
and firing race on the handle's state: whichever moves it out of ARMED first
wins and the other becomes a no-op. Exceptions raised by ``on_expire`` never
reach the event loop; they are routed to the supervisor's error handler or,
when none is set, logged at error level.
"""

import asyncio
import functools
import inspect
import itertools
import math
from typing import Any, Callable

from floodgate.errors import ConfigurationError
from floodgate.logging import Logger
from floodgate.logging.floodgate_logging_models import (
    DeadlineDebug,
    DeadlineError,
)

from .deadline_handle import DeadlineHandle
from .deadline_state import DeadlineState

ErrorHandler = Callable[[DeadlineHandle, BaseException], None]


class DeadlineSupervisor:
    """
    Arms and disarms per-operation deadlines.

    Example:
        supervisor = DeadlineSupervisor()
        handle = supervisor.arm(50, lambda: print("expired"))
        ...
        supervisor.disarm(handle)  # safe even if already fired
    """

    __slots__ = (
        "_logger",
        "_logger_name",
        "_error_handler",
        "_handles",
        "_ids",
        "_callback_tasks",
        "_callback_errors",
    )

    def __init__(
        self,
        logger: Logger | None = None,
        error_handler: ErrorHandler | None = None,
        logger_name: str = "floodgate",
    ) -> None:
        self._logger = logger or Logger()
        self._logger_name = logger_name
        self._error_handler = error_handler
        self._handles: dict[int, DeadlineHandle] = {}
        self._ids = itertools.count(1)
        self._callback_tasks: set[asyncio.Future] = set()
        self._callback_errors = 0

    @property
    def armed(self):
        return len(self._handles)

    @property
    def callback_errors(self):
        return self._callback_errors

    def arm(
        self,
        timeout_ms: float,
        on_expire: Callable[[], Any],
    ) -> DeadlineHandle:
        """
        Start a one-shot timer that calls ``on_expire`` after ``timeout_ms``.

        A zero timeout fires on the next loop iteration. Must be called from
        a running event loop.
        """
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float)):
            raise ConfigurationError(
                f"timeout_ms must be a number, got {type(timeout_ms).__name__}"
            )

        if math.isnan(timeout_ms) or timeout_ms < 0:
            raise ConfigurationError(
                f"timeout_ms must be zero or positive, got {timeout_ms}"
            )

        if not callable(on_expire):
            raise ConfigurationError("on_expire must be callable")

        loop = asyncio.get_running_loop()
        now = loop.time()

        handle = DeadlineHandle(
            deadline_id=next(self._ids),
            timeout_ms=timeout_ms,
            armed_at=now,
            expires_at=now + (timeout_ms / 1000),
            on_expire=on_expire,
        )

        handle.timer = loop.call_at(
            handle.expires_at,
            self._fire,
            handle,
        )

        self._handles[handle.deadline_id] = handle

        return handle

    def disarm(self, handle: DeadlineHandle) -> bool:
        """
        Stop a deadline that has not fired yet. Returns ``False`` (and does
        nothing) when the deadline already fired or was already disarmed.
        """
        if handle.state != DeadlineState.ARMED:
            return False

        handle.state = DeadlineState.DISARMED
        self._handles.pop(handle.deadline_id, None)

        if handle.timer is not None:
            handle.timer.cancel()
            handle.timer = None

        return True

    def shutdown(self):
        """Disarm every deadline that is still armed."""
        for handle in list(self._handles.values()):
            self.disarm(handle)

    def _fire(self, handle: DeadlineHandle):
        if handle.state != DeadlineState.ARMED:
            return

        handle.state = DeadlineState.FIRED
        handle.timer = None
        self._handles.pop(handle.deadline_id, None)

        self._logger.schedule(
            DeadlineDebug(
                message="Deadline fired",
                deadline_id=handle.deadline_id,
                timeout_ms=handle.timeout_ms,
            ),
            name=self._logger_name,
        )

        try:
            result = handle.on_expire()

        except Exception as err:
            self._report(handle, err)
            return

        if inspect.isawaitable(result):
            callback_task = asyncio.ensure_future(result)
            self._callback_tasks.add(callback_task)
            callback_task.add_done_callback(
                functools.partial(self._on_callback_done, handle)
            )

    def _on_callback_done(
        self,
        handle: DeadlineHandle,
        callback_task: asyncio.Future,
    ):
        self._callback_tasks.discard(callback_task)

        if callback_task.cancelled():
            return

        if (err := callback_task.exception()) is not None:
            self._report(handle, err)

    def _report(self, handle: DeadlineHandle, err: BaseException):
        self._callback_errors += 1

        if self._error_handler is not None:
            try:
                self._error_handler(handle, err)
                return

            except Exception as handler_err:
                err = handler_err

        self._logger.schedule(
            DeadlineError(
                message="Deadline expiry callback raised",
                deadline_id=handle.deadline_id,
                timeout_ms=handle.timeout_ms,
                error=f"{type(err).__name__}: {err}",
            ),
            name=self._logger_name,
        )
