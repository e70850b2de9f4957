from .deadline_handle import DeadlineHandle as DeadlineHandle
from .deadline_state import DeadlineState as DeadlineState
from .deadline_supervisor import (
    DeadlineSupervisor as DeadlineSupervisor,
    ErrorHandler as ErrorHandler,
)
