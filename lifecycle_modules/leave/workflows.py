"""
Leave Workflows.

    pending --approve--> approved
            --reject---> rejected   (non-empty reason)
            --cancel---> cancelled

Every non-pending state is terminal, so an already-processed request
cannot be decided again.
"""

from __future__ import annotations

from lifecycle_kernel.domain.guards import payload_value, require_payload_text
from lifecycle_kernel.domain.lifecycle import (
    StateDefinition,
    TransitionContext,
    TransitionRule,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_modules._notify import template_jobs
from lifecycle_modules.leave.models import KIND, LeaveRequestStatus

logger = get_logger("modules.leave.workflows")

REJECTION_REASON_PROVIDED = require_payload_text(
    "reason", "Rejection carries a non-empty reason"
)


def _stamp_reviewed(snapshot, request, occurred_at):
    return {"reviewed_by_id": request.actor_id, "reviewed_at": occurred_at}


def _stamp_rejected(snapshot, request, occurred_at):
    return {
        "reviewed_by_id": request.actor_id,
        "reviewed_at": occurred_at,
        "rejection_reason": payload_value(request, "reason"),
    }


def _stamp_cancelled(snapshot, request, occurred_at):
    return {"cancelled_at": occurred_at}


def _item_name(context: TransitionContext) -> str:
    after = context.after
    return f"{after.get('leave_type')} leave {after.get('start_date')} to {after.get('end_date')}"


def _notify_approved(context: TransitionContext):
    return template_jobs(
        context,
        "approval_approved",
        [context.after.get("employee_id")],
        {"itemName": _item_name(context), "approverName": str(context.request.actor_id)},
    )


def _notify_rejected(context: TransitionContext):
    return template_jobs(
        context,
        "approval_rejected",
        [context.after.get("employee_id")],
        {
            "itemName": _item_name(context),
            "approverName": str(context.request.actor_id),
            "reason": context.after.get("rejection_reason"),
        },
    )


def _notify_cancelled(context: TransitionContext):
    # Only tell the employee when someone else cancelled on their behalf.
    employee_id = context.after.get("employee_id")
    if employee_id == context.request.actor_id:
        return []
    return template_jobs(
        context,
        "request_cancelled",
        [employee_id],
        {"itemName": _item_name(context)},
    )


LEAVE_REQUEST_DEFINITION = StateDefinition(
    kind=KIND,
    states=tuple(LeaveRequestStatus),
    initial=LeaveRequestStatus.PENDING,
    terminal=frozenset(
        {
            LeaveRequestStatus.APPROVED,
            LeaveRequestStatus.REJECTED,
            LeaveRequestStatus.CANCELLED,
        }
    ),
    description="Leave request review",
)

LEAVE_REQUEST_RULES = (
    TransitionRule(
        kind=KIND,
        from_state=LeaveRequestStatus.PENDING,
        to_state=LeaveRequestStatus.APPROVED,
        action="approve",
        stamp=_stamp_reviewed,
        notify=_notify_approved,
    ),
    TransitionRule(
        kind=KIND,
        from_state=LeaveRequestStatus.PENDING,
        to_state=LeaveRequestStatus.REJECTED,
        action="reject",
        guard=REJECTION_REASON_PROVIDED,
        stamp=_stamp_rejected,
        notify=_notify_rejected,
    ),
    TransitionRule(
        kind=KIND,
        from_state=LeaveRequestStatus.PENDING,
        to_state=LeaveRequestStatus.CANCELLED,
        action="cancel",
        stamp=_stamp_cancelled,
        notify=_notify_cancelled,
    ),
)


def register(registry, store, cascade_handler=None) -> None:
    from lifecycle_modules.leave.orm import LeaveRequestModel

    registry.register(LEAVE_REQUEST_DEFINITION, LEAVE_REQUEST_RULES)
    store.bind(KIND, LeaveRequestModel)
    logger.info(
        "leave_request_workflow_registered",
        extra={"rule_count": len(LEAVE_REQUEST_RULES)},
    )
