import msgspec

from .models import Entry, LogLevel


class GateTrace(Entry, kw_only=True):
    gate: str
    task_id: int
    running: int
    queued: int
    capacity: int
    level: LogLevel = LogLevel.TRACE

class GateDebug(Entry, kw_only=True):
    gate: str
    task_id: int
    running: int
    queued: int
    capacity: int
    level: LogLevel = LogLevel.DEBUG

class GateError(Entry, kw_only=True):
    gate: str
    task_id: int
    error: str
    level: LogLevel = LogLevel.ERROR

class DeadlineDebug(Entry, kw_only=True):
    deadline_id: int
    timeout_ms: float
    level: LogLevel = LogLevel.DEBUG

class DeadlineError(Entry, kw_only=True):
    deadline_id: int
    timeout_ms: float
    error: str
    level: LogLevel = LogLevel.ERROR

class TicketDebug(Entry, kw_only=True):
    ticket_id: int
    state: str
    timed_out: bool
    level: LogLevel = LogLevel.DEBUG

class TicketInfo(Entry, kw_only=True):
    ticket_id: int
    state: str
    timed_out: bool
    level: LogLevel = LogLevel.INFO

class TicketTimeout(Entry, kw_only=True):
    ticket_id: int
    timeout_ms: float
    state: str
    running: int
    queued: int
    capacity: int
    context: dict[str, str | int | float | bool | None] = msgspec.field(
        default_factory=dict,
    )
    level: LogLevel = LogLevel.WARN

class TicketError(Entry, kw_only=True):
    ticket_id: int
    error: str
    level: LogLevel = LogLevel.ERROR
