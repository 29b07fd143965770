"""Support Module (``lifecycle_modules.support``): ticket assignment and resolution."""

from lifecycle_modules.support.models import KIND, TicketPriority, TicketStatus
from lifecycle_modules.support.workflows import TICKET_DEFINITION, TICKET_RULES, register

__all__ = [
    "KIND",
    "TicketPriority",
    "TicketStatus",
    "TICKET_DEFINITION",
    "TICKET_RULES",
    "register",
]
