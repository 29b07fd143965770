"""
Payroll Workflows.

    pending_approval --approve--> approved --process--> paid

Approval requires at least one payroll item.  Approval and payment each
cascade to the run's items.
"""

from __future__ import annotations

from lifecycle_kernel.domain.guards import require_children
from lifecycle_kernel.domain.lifecycle import (
    StateDefinition,
    TransitionContext,
    TransitionRule,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_modules._notify import template_jobs
from lifecycle_modules.payroll import cascades
from lifecycle_modules.payroll.models import KIND, PayrollRunStatus

logger = get_logger("modules.payroll.workflows")

HAS_PAYROLL_ITEMS = require_children("items", noun="payroll item")


def _stamp_approved(snapshot, request, occurred_at):
    return {"approved_by_id": request.actor_id, "approved_at": occurred_at}


def _stamp_paid(snapshot, request, occurred_at):
    return {"processed_by_id": request.actor_id, "paid_at": occurred_at}


def _notify_approved(context: TransitionContext):
    return template_jobs(
        context,
        "approval_approved",
        [context.after.get("prepared_by_id")],
        {
            "itemName": f"Payroll run {context.after.get('run_name')}",
            "approverName": str(context.request.actor_id),
        },
    )


def _notify_paid(context: TransitionContext):
    return template_jobs(
        context,
        "payroll_paid",
        [context.after.get("prepared_by_id")],
        {
            "itemName": context.after.get("run_name"),
            "itemCount": len(context.after.child_rows("items")),
        },
    )


PAYROLL_RUN_DEFINITION = StateDefinition(
    kind=KIND,
    states=tuple(PayrollRunStatus),
    initial=PayrollRunStatus.PENDING_APPROVAL,
    terminal=frozenset({PayrollRunStatus.PAID}),
    description="Payroll run approval and payment",
)

PAYROLL_RUN_RULES = (
    TransitionRule(
        kind=KIND,
        from_state=PayrollRunStatus.PENDING_APPROVAL,
        to_state=PayrollRunStatus.APPROVED,
        action="approve",
        guard=HAS_PAYROLL_ITEMS,
        stamp=_stamp_approved,
        notify=_notify_approved,
    ),
    TransitionRule(
        kind=KIND,
        from_state=PayrollRunStatus.APPROVED,
        to_state=PayrollRunStatus.PAID,
        action="process",
        stamp=_stamp_paid,
        notify=_notify_paid,
    ),
)


def register(registry, store, cascade_handler=None) -> None:
    from lifecycle_modules.payroll.orm import PayrollRunModel

    registry.register(PAYROLL_RUN_DEFINITION, PAYROLL_RUN_RULES)
    store.bind(KIND, PayrollRunModel, children=("items",))
    if cascade_handler is not None:
        cascade_handler.register(
            KIND,
            PayrollRunStatus.PENDING_APPROVAL.value,
            PayrollRunStatus.APPROVED.value,
            cascades.approve_items,
        )
        cascade_handler.register(
            KIND,
            PayrollRunStatus.APPROVED.value,
            PayrollRunStatus.PAID.value,
            cascades.pay_items,
        )
    logger.info(
        "payroll_run_workflow_registered",
        extra={"rule_count": len(PAYROLL_RUN_RULES)},
    )
