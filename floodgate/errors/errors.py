"""
Error taxonomy for admission and deadline handling.

Callers must be able to tell "the operation failed" (OperationError) apart
from "I stopped waiting" (OperationTimeoutError). A timeout says nothing about
whether the operation ran: it may still complete, with side effects, after
the caller was answered.
"""


class FloodgateError(Exception):
    """Base class for all floodgate errors."""
    pass


class ConfigurationError(FloodgateError, ValueError):
    """
    Raised synchronously when a gate, supervisor or coordinator is built
    (or a deadline armed) with invalid parameters, such as a capacity
    below one or a negative timeout.
    """
    pass


class OperationError(FloodgateError):
    """
    The wrapped unit of work raised. The original exception is kept as
    ``cause`` and chained as ``__cause__``.
    """

    def __init__(self, cause: BaseException, task_id: int | None = None):
        self.cause = cause
        self.task_id = task_id
        super().__init__(
            f"Operation failed - {type(cause).__name__}: {cause}"
        )


class OperationTimeoutError(FloodgateError, TimeoutError):
    """
    The deadline elapsed before the caller received a non-timeout answer.

    The operation is not cancelled and may still be queued or running.
    """

    def __init__(self, timeout_ms: float, ticket_id: int | None = None):
        self.timeout_ms = timeout_ms
        self.ticket_id = ticket_id
        super().__init__(
            f"Operation did not answer within {timeout_ms}ms"
        )
