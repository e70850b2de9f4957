from .admission import (
    AdmissionGate as AdmissionGate,
    GateMetrics as GateMetrics,
    GateStatus as GateStatus,
    PendingTask as PendingTask,
)
from .config import (
    FloodgateConfig as FloodgateConfig,
    create_floodgate_config_from_env as create_floodgate_config_from_env,
)
from .coordinator import (
    Coordinator as Coordinator,
    OperationTicket as OperationTicket,
    TicketState as TicketState,
)
from .deadlines import (
    DeadlineHandle as DeadlineHandle,
    DeadlineState as DeadlineState,
    DeadlineSupervisor as DeadlineSupervisor,
)
from .env import Env as Env, load_env as load_env
from .errors import (
    ConfigurationError as ConfigurationError,
    FloodgateError as FloodgateError,
    OperationError as OperationError,
    OperationTimeoutError as OperationTimeoutError,
)
from .factory import create_coordinator as create_coordinator
