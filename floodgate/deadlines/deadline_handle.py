import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable

from .deadline_state import DeadlineState


@dataclass(slots=True)
class DeadlineHandle:
    """
    One-shot deadline armed by a DeadlineSupervisor.

    ``state`` only ever leaves ARMED once: to FIRED when the timer runs,
    or to DISARMED when the supervisor disarms it first.
    """

    deadline_id: int
    timeout_ms: float
    armed_at: float
    expires_at: float
    on_expire: Callable[[], Any]
    state: DeadlineState = DeadlineState.ARMED
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    @property
    def armed(self):
        return self.state == DeadlineState.ARMED

    @property
    def fired(self):
        return self.state == DeadlineState.FIRED

    @property
    def disarmed(self):
        return self.state == DeadlineState.DISARMED
