from .admission_gate import AdmissionGate as AdmissionGate
from .gate_metrics import GateMetrics as GateMetrics
from .gate_status import GateStatus as GateStatus
from .pending_task import (
    Operation as Operation,
    PendingTask as PendingTask,
)
