"""
Payroll Domain Models.
"""

from enum import Enum

KIND = "payroll_run"


class PayrollRunStatus(str, Enum):
    """Payroll run lifecycle states."""
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    PAID = "paid"


class PayrollItemStatus(str, Enum):
    """Per-employee item states; items follow their run via cascades."""
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
