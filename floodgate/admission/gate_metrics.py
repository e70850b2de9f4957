from dataclasses import dataclass


@dataclass(slots=True)
class GateMetrics:
    """Cumulative counters for gate observability."""

    total_submitted: int = 0          # Operations handed to schedule()
    total_admitted: int = 0           # Operations that were given a slot
    total_completed: int = 0          # Admitted operations that returned
    total_failed: int = 0             # Admitted operations that raised
    total_queued: int = 0             # Submissions that had to wait for a slot

    peak_running: int = 0             # High water mark for running
    peak_queued: int = 0              # High water mark for the wait queue
