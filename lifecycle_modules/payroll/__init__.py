"""
Payroll Module (``lifecycle_modules.payroll``).

Payroll run approval and payment; child items follow the run.
"""

from lifecycle_modules.payroll.models import KIND, PayrollItemStatus, PayrollRunStatus
from lifecycle_modules.payroll.workflows import (
    PAYROLL_RUN_DEFINITION,
    PAYROLL_RUN_RULES,
    register,
)

__all__ = [
    "KIND",
    "PayrollItemStatus",
    "PayrollRunStatus",
    "PAYROLL_RUN_DEFINITION",
    "PAYROLL_RUN_RULES",
    "register",
]
