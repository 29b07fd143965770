"""Leave Module (``lifecycle_modules.leave``): leave request review."""

from lifecycle_modules.leave.models import KIND, LeaveRequestStatus, LeaveType
from lifecycle_modules.leave.workflows import (
    LEAVE_REQUEST_DEFINITION,
    LEAVE_REQUEST_RULES,
    register,
)

__all__ = [
    "KIND",
    "LeaveRequestStatus",
    "LeaveType",
    "LEAVE_REQUEST_DEFINITION",
    "LEAVE_REQUEST_RULES",
    "register",
]
