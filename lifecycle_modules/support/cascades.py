"""Support ticket cascades."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from lifecycle_kernel.domain.guards import payload_value
from lifecycle_kernel.domain.lifecycle import TransitionContext
from lifecycle_kernel.logging_config import get_logger
from lifecycle_modules.support.orm import TicketCommentModel

logger = get_logger("modules.support.cascades")


def post_resolution_note(session: Session, context: TransitionContext) -> None:
    """Append the resolver's note to the thread, once per transition."""
    note = payload_value(context.request, "note")
    if not note:
        return

    existing = session.execute(
        select(TicketCommentModel.id).where(
            TicketCommentModel.source_audit_record_id == context.audit_record_id
        )
    ).scalar_one_or_none()
    if existing is not None:
        return

    session.add(
        TicketCommentModel(
            ticket_id=context.after.entity_id,
            author_id=context.request.actor_id,
            body=note,
            is_internal=False,
            source_audit_record_id=context.audit_record_id,
            created_by_id=context.request.actor_id,
        )
    )
    session.flush()
    logger.info(
        "ticket_resolution_note_posted",
        extra={
            "ticket_id": str(context.after.entity_id),
            "audit_record_id": str(context.audit_record_id),
        },
    )
