"""
Support Domain Models.
"""

from enum import Enum

KIND = "support_ticket"


class TicketStatus(str, Enum):
    NEW = "new"
    OPEN = "open"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"
