"""
Events Workflows.

    active --cancel----> cancelled   (idempotent)
           --check_in--> checked_in  (idempotent)

Re-invoking either action on a registration already in its target state
returns the registration unchanged, without a second audit record,
cascade or notification.
"""

from __future__ import annotations

from lifecycle_kernel.domain.lifecycle import (
    StateDefinition,
    TransitionContext,
    TransitionRule,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_modules._notify import template_jobs
from lifecycle_modules.events import cascades
from lifecycle_modules.events.models import KIND, RegistrationStatus

logger = get_logger("modules.events.workflows")


def _stamp_cancelled(snapshot, request, occurred_at):
    return {"cancelled_by_id": request.actor_id}


def _stamp_checked_in(snapshot, request, occurred_at):
    return {"checked_in_by_id": request.actor_id, "checked_in_at": occurred_at}


def _notify_cancelled(context: TransitionContext):
    return template_jobs(
        context,
        "registration_cancelled",
        [context.after.get("attendee_id")],
        {
            "eventName": context.after.get("event_name"),
            "reason": context.after.get("cancellation_reason"),
        },
    )


def _notify_checked_in(context: TransitionContext):
    return template_jobs(
        context,
        "registration_checked_in",
        [context.after.get("attendee_id")],
        {"eventName": context.after.get("event_name")},
    )


REGISTRATION_DEFINITION = StateDefinition(
    kind=KIND,
    states=tuple(RegistrationStatus),
    initial=RegistrationStatus.ACTIVE,
    terminal=frozenset({RegistrationStatus.CANCELLED, RegistrationStatus.CHECKED_IN}),
    description="Event registration attendance",
)

REGISTRATION_RULES = (
    TransitionRule(
        kind=KIND,
        from_state=RegistrationStatus.ACTIVE,
        to_state=RegistrationStatus.CANCELLED,
        action="cancel",
        idempotent=True,
        stamp=_stamp_cancelled,
        notify=_notify_cancelled,
    ),
    TransitionRule(
        kind=KIND,
        from_state=RegistrationStatus.ACTIVE,
        to_state=RegistrationStatus.CHECKED_IN,
        action="check_in",
        idempotent=True,
        stamp=_stamp_checked_in,
        notify=_notify_checked_in,
    ),
)


def register(registry, store, cascade_handler=None) -> None:
    from lifecycle_modules.events.orm import EventRegistrationModel

    registry.register(REGISTRATION_DEFINITION, REGISTRATION_RULES)
    store.bind(KIND, EventRegistrationModel)
    if cascade_handler is not None:
        cascade_handler.register(
            KIND,
            RegistrationStatus.ACTIVE.value,
            RegistrationStatus.CANCELLED.value,
            cascades.stamp_cancellation,
        )
    logger.info(
        "event_registration_workflow_registered",
        extra={"rule_count": len(REGISTRATION_RULES)},
    )
