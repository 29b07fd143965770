"""
Timekeeping Workflows.

    submitted --approve--> approved
              --reject---> rejected
"""

from __future__ import annotations

from lifecycle_kernel.domain.guards import (
    all_of,
    payload_value,
    require_field,
    require_payload_text,
)
from lifecycle_kernel.domain.lifecycle import (
    StateDefinition,
    TransitionContext,
    TransitionRule,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_modules._notify import template_jobs
from lifecycle_modules.timekeeping.models import KIND, TimeEntryStatus

logger = get_logger("modules.timekeeping.workflows")

CLOCKED_OUT_WITH_HOURS = all_of(
    require_field("clock_out", "Entry has a clock-out time"),
    require_field("hours", "Worked hours are computed"),
)
REJECTION_REASON_PROVIDED = require_payload_text("reason")


def _stamp_approved(snapshot, request, occurred_at):
    return {"approved_by_id": request.actor_id, "approved_at": occurred_at}


def _stamp_rejected(snapshot, request, occurred_at):
    return {
        "rejected_by_id": request.actor_id,
        "rejected_at": occurred_at,
        "rejection_reason": payload_value(request, "reason"),
    }


def _item_name(context: TransitionContext) -> str:
    return f"Time entry for {context.after.get('work_date')}"


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


TIME_ENTRY_DEFINITION = StateDefinition(
    kind=KIND,
    states=tuple(TimeEntryStatus),
    initial=TimeEntryStatus.SUBMITTED,
    terminal=frozenset({TimeEntryStatus.APPROVED, TimeEntryStatus.REJECTED}),
    description="Time entry review",
)

TIME_ENTRY_RULES = (
    TransitionRule(
        kind=KIND,
        from_state=TimeEntryStatus.SUBMITTED,
        to_state=TimeEntryStatus.APPROVED,
        action="approve",
        guard=CLOCKED_OUT_WITH_HOURS,
        stamp=_stamp_approved,
        notify=_notify_approved,
    ),
    TransitionRule(
        kind=KIND,
        from_state=TimeEntryStatus.SUBMITTED,
        to_state=TimeEntryStatus.REJECTED,
        action="reject",
        guard=REJECTION_REASON_PROVIDED,
        stamp=_stamp_rejected,
        notify=_notify_rejected,
    ),
)


def register(registry, store, cascade_handler=None) -> None:
    from lifecycle_modules.timekeeping.orm import TimeEntryModel

    registry.register(TIME_ENTRY_DEFINITION, TIME_ENTRY_RULES)
    store.bind(KIND, TimeEntryModel)
    logger.info(
        "time_entry_workflow_registered",
        extra={"rule_count": len(TIME_ENTRY_RULES)},
    )
