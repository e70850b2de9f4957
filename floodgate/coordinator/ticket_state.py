from enum import Enum


class TicketState(Enum):
    QUEUED = "QUEUED"
    ADMITTED = "ADMITTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
