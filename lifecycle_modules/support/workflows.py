"""
Support Workflows.

    new --assign--> open --resolve--> resolved --close--> closed
     |                                   ^
     +-------------resolve---------------+

``assign`` needs the assignee's id in the request payload
(``assigned_to_user_id``).  ``resolve`` accepts an optional ``note`` which
the resolve cascade posts to the comment thread.
"""

from __future__ import annotations

from uuid import UUID

from lifecycle_kernel.domain.guards import payload_value
from lifecycle_kernel.domain.lifecycle import (
    EntitySnapshot,
    Guard,
    GuardReason,
    GuardResult,
    StateDefinition,
    TransitionContext,
    TransitionRequest,
    TransitionRule,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_modules._notify import template_jobs
from lifecycle_modules.support import cascades
from lifecycle_modules.support.models import KIND, TicketStatus

logger = get_logger("modules.support.workflows")


def _assignee(request: TransitionRequest) -> UUID | None:
    value = payload_value(request, "assigned_to_user_id")
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


def _check_assignee(snapshot: EntitySnapshot, request: TransitionRequest) -> GuardResult:
    if _assignee(request) is None:
        return GuardResult.deny(
            GuardReason.MISSING_PRECONDITION,
            "assigned_to_user_id must be a valid user id",
        )
    return GuardResult.allow()


ASSIGNEE_PROVIDED = Guard(
    name="assignee_provided",
    description="Assignment names a valid user id",
    check=_check_assignee,
)


def _stamp_assigned(snapshot, request, occurred_at):
    return {"assigned_to_user_id": _assignee(request), "assigned_at": occurred_at}


def _stamp_resolved(snapshot, request, occurred_at):
    return {"resolved_by_id": request.actor_id, "resolved_at": occurred_at}


def _stamp_closed(snapshot, request, occurred_at):
    return {"closed_at": occurred_at}


def _notify_assigned(context: TransitionContext):
    return template_jobs(
        context,
        "ticket_assigned",
        [context.after.get("assigned_to_user_id")],
        {
            "ticketSubject": context.after.get("subject"),
            "assignerName": str(context.request.actor_id),
        },
    )


def _notify_resolved(context: TransitionContext):
    return template_jobs(
        context,
        "ticket_resolved",
        [context.after.get("requester_id")],
        {
            "ticketSubject": context.after.get("subject"),
            "note": payload_value(context.request, "note"),
        },
    )


TICKET_DEFINITION = StateDefinition(
    kind=KIND,
    states=tuple(TicketStatus),
    initial=TicketStatus.NEW,
    terminal=frozenset({TicketStatus.CLOSED}),
    description="Support ticket handling",
)

TICKET_RULES = (
    TransitionRule(
        kind=KIND,
        from_state=TicketStatus.NEW,
        to_state=TicketStatus.OPEN,
        action="assign",
        guard=ASSIGNEE_PROVIDED,
        stamp=_stamp_assigned,
        notify=_notify_assigned,
    ),
    TransitionRule(
        kind=KIND,
        from_state=TicketStatus.NEW,
        to_state=TicketStatus.RESOLVED,
        action="resolve",
        stamp=_stamp_resolved,
        notify=_notify_resolved,
    ),
    TransitionRule(
        kind=KIND,
        from_state=TicketStatus.OPEN,
        to_state=TicketStatus.RESOLVED,
        action="resolve",
        stamp=_stamp_resolved,
        notify=_notify_resolved,
    ),
    TransitionRule(
        kind=KIND,
        from_state=TicketStatus.RESOLVED,
        to_state=TicketStatus.CLOSED,
        action="close",
        stamp=_stamp_closed,
    ),
)


def register(registry, store, cascade_handler=None) -> None:
    from lifecycle_modules.support.orm import SupportTicketModel

    registry.register(TICKET_DEFINITION, TICKET_RULES)
    store.bind(KIND, SupportTicketModel, children=("comments",))
    if cascade_handler is not None:
        for origin in (TicketStatus.NEW, TicketStatus.OPEN):
            cascade_handler.register(
                KIND,
                origin.value,
                TicketStatus.RESOLVED.value,
                cascades.post_resolution_note,
            )
    logger.info(
        "support_ticket_workflow_registered",
        extra={"rule_count": len(TICKET_RULES)},
    )
