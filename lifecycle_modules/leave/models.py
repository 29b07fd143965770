"""
Leave Domain Models.
"""

from enum import Enum

KIND = "leave_request"


class LeaveRequestStatus(str, Enum):
    """Leave request lifecycle states."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class LeaveType(str, Enum):
    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    PARENTAL = "parental"
    UNPAID = "unpaid"
