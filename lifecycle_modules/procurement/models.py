"""
Procurement Domain Models.

The nouns of purchase order approval.
"""

from enum import Enum

KIND = "purchase_order"


class POStatus(str, Enum):
    """Purchase order lifecycle states."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


APPROVER_ROLE = "approver"
