"""
Event registration cascades.

Cancellation stamps its reason and timestamp only where they are unset, so
re-running the cascade never rewrites history.
"""

from sqlalchemy import update
from sqlalchemy.orm import Session

from lifecycle_kernel.domain.guards import payload_value
from lifecycle_kernel.domain.lifecycle import TransitionContext
from lifecycle_kernel.logging_config import get_logger
from lifecycle_modules.events.models import DEFAULT_CANCELLATION_REASON
from lifecycle_modules.events.orm import EventRegistrationModel

logger = get_logger("modules.events.cascades")


def stamp_cancellation(session: Session, context: TransitionContext) -> None:
    registration_id = context.after.entity_id
    reason = payload_value(context.request, "reason") or DEFAULT_CANCELLATION_REASON

    session.execute(
        update(EventRegistrationModel)
        .where(
            EventRegistrationModel.id == registration_id,
            EventRegistrationModel.cancellation_reason.is_(None),
        )
        .values(cancellation_reason=reason)
        .execution_options(synchronize_session=False)
    )
    session.execute(
        update(EventRegistrationModel)
        .where(
            EventRegistrationModel.id == registration_id,
            EventRegistrationModel.cancelled_at.is_(None),
        )
        .values(cancelled_at=context.occurred_at)
        .execution_options(synchronize_session=False)
    )
    logger.info(
        "registration_cancellation_stamped",
        extra={"registration_id": str(registration_id)},
    )
