"""
Payroll cascades: items follow their run.

Both cascades are idempotent; items already in the target status are left
untouched so a retry after a partial failure is safe.
"""

from sqlalchemy import update
from sqlalchemy.orm import Session

from lifecycle_kernel.domain.lifecycle import TransitionContext
from lifecycle_kernel.logging_config import get_logger
from lifecycle_modules.payroll.models import PayrollItemStatus
from lifecycle_modules.payroll.orm import PayrollItemModel

logger = get_logger("modules.payroll.cascades")


def approve_items(session: Session, context: TransitionContext) -> None:
    result = session.execute(
        update(PayrollItemModel)
        .where(
            PayrollItemModel.payroll_run_id == context.after.entity_id,
            PayrollItemModel.status == PayrollItemStatus.PENDING.value,
        )
        .values(
            status=PayrollItemStatus.APPROVED.value,
            approved_at=context.occurred_at,
            updated_by_id=context.request.actor_id,
        )
        .execution_options(synchronize_session=False)
    )
    logger.info(
        "payroll_items_approved",
        extra={"payroll_run_id": str(context.after.entity_id), "item_count": result.rowcount},
    )


def pay_items(session: Session, context: TransitionContext) -> None:
    result = session.execute(
        update(PayrollItemModel)
        .where(
            PayrollItemModel.payroll_run_id == context.after.entity_id,
            PayrollItemModel.status != PayrollItemStatus.PAID.value,
        )
        .values(
            status=PayrollItemStatus.PAID.value,
            paid_at=context.occurred_at,
            updated_by_id=context.request.actor_id,
        )
        .execution_options(synchronize_session=False)
    )
    logger.info(
        "payroll_items_paid",
        extra={"payroll_run_id": str(context.after.entity_id), "item_count": result.rowcount},
    )
