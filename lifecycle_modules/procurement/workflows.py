"""
Procurement Workflows.

State machine for purchase order approval:

    draft --submit--> pending_approval --approve--> approved
                                       --reject---> rejected
"""

from __future__ import annotations

from lifecycle_kernel.domain.guards import (
    payload_value,
    require_children,
    require_payload_text,
)
from lifecycle_kernel.domain.lifecycle import (
    StateDefinition,
    TransitionContext,
    TransitionRule,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_modules._notify import template_jobs
from lifecycle_modules.procurement.models import APPROVER_ROLE, KIND, POStatus

logger = get_logger("modules.procurement.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

HAS_LINE_ITEMS = require_children("lines", noun="line item")

REJECTION_REASON_PROVIDED = require_payload_text(
    "reason", "Rejection carries a non-empty reason"
)


# -----------------------------------------------------------------------------
# Stamps
# -----------------------------------------------------------------------------


def _stamp_submitted(snapshot, request, occurred_at):
    return {"submitted_at": occurred_at}


def _stamp_approved(snapshot, request, occurred_at):
    return {"approved_by_id": request.actor_id, "approved_at": occurred_at}


def _stamp_rejected(snapshot, request, occurred_at):
    return {
        "rejected_by_id": request.actor_id,
        "rejected_at": occurred_at,
        "rejection_reason": payload_value(request, "reason"),
    }


# -----------------------------------------------------------------------------
# Notifications
# -----------------------------------------------------------------------------


def _item_name(context: TransitionContext) -> str:
    return f"Purchase order {context.after.get('po_number')}"


def _notify_submitted(context: TransitionContext):
    return template_jobs(
        context,
        "approval_requested",
        [context.after.get("approver_id")],
        {
            "itemName": _item_name(context),
            "requesterName": str(context.request.actor_id),
            "description": context.after.get("description"),
        },
    )


def _notify_approved(context: TransitionContext):
    return template_jobs(
        context,
        "approval_approved",
        [context.after.get("requester_id")],
        {"itemName": _item_name(context), "approverName": str(context.request.actor_id)},
    )


def _notify_rejected(context: TransitionContext):
    return template_jobs(
        context,
        "approval_rejected",
        [context.after.get("requester_id")],
        {
            "itemName": _item_name(context),
            "approverName": str(context.request.actor_id),
            "reason": context.after.get("rejection_reason"),
        },
    )


# -----------------------------------------------------------------------------
# Definition
# -----------------------------------------------------------------------------

PURCHASE_ORDER_DEFINITION = StateDefinition(
    kind=KIND,
    states=tuple(POStatus),
    initial=POStatus.DRAFT,
    terminal=frozenset({POStatus.APPROVED, POStatus.REJECTED}),
    description="Purchase order approval",
)

PURCHASE_ORDER_RULES = (
    TransitionRule(
        kind=KIND,
        from_state=POStatus.DRAFT,
        to_state=POStatus.PENDING_APPROVAL,
        action="submit",
        guard=HAS_LINE_ITEMS,
        stamp=_stamp_submitted,
        notify=_notify_submitted,
    ),
    TransitionRule(
        kind=KIND,
        from_state=POStatus.PENDING_APPROVAL,
        to_state=POStatus.APPROVED,
        action="approve",
        requires_actor_role=APPROVER_ROLE,
        stamp=_stamp_approved,
        notify=_notify_approved,
    ),
    TransitionRule(
        kind=KIND,
        from_state=POStatus.PENDING_APPROVAL,
        to_state=POStatus.REJECTED,
        action="reject",
        guard=REJECTION_REASON_PROVIDED,
        stamp=_stamp_rejected,
        notify=_notify_rejected,
    ),
)


def register(registry, store, cascades=None) -> None:
    """Register the purchase order lifecycle and its storage."""
    from lifecycle_modules.procurement.orm import PurchaseOrderModel

    registry.register(PURCHASE_ORDER_DEFINITION, PURCHASE_ORDER_RULES)
    store.bind(KIND, PurchaseOrderModel, children=("lines",))
    logger.info(
        "purchase_order_workflow_registered",
        extra={"rule_count": len(PURCHASE_ORDER_RULES)},
    )
