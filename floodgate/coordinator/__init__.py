from .coordinator import Coordinator as Coordinator
from .operation_ticket import (
    OperationTicket as OperationTicket,
    TicketContext as TicketContext,
)
from .ticket_state import TicketState as TicketState
