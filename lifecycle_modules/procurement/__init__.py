"""
Procurement Module (``lifecycle_modules.procurement``).

Purchase order approval: a draft order with at least one line item is
submitted, then approved by an approver or rejected with a reason.
"""

from lifecycle_modules.procurement.models import KIND, POStatus
from lifecycle_modules.procurement.workflows import (
    PURCHASE_ORDER_DEFINITION,
    PURCHASE_ORDER_RULES,
    register,
)

__all__ = [
    "KIND",
    "POStatus",
    "PURCHASE_ORDER_DEFINITION",
    "PURCHASE_ORDER_RULES",
    "register",
]
