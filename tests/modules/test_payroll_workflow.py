"""Payroll run scenarios: items follow their run through approval and payment."""

from uuid import uuid4

import pytest
from sqlalchemy import select

from lifecycle_kernel.domain.lifecycle import GuardReason
from lifecycle_kernel.domain.notification import NotificationChannel
from lifecycle_kernel.exceptions import GuardFailedError, InvalidTransitionError
from lifecycle_modules.payroll.models import KIND, PayrollItemStatus, PayrollRunStatus
from lifecycle_modules.payroll.orm import PayrollItemModel


def _items(session, run_id) -> list[PayrollItemModel]:
    session.expire_all()
    return list(
        session.execute(
            select(PayrollItemModel).where(PayrollItemModel.payroll_run_id == run_id)
        ).scalars()
    )


def test_approve_then_pay_cascades_to_items(executor, factory, make_request, session, clock):
    run_id = factory.payroll_run(items=3)

    approved = executor.execute(make_request(KIND, run_id, PayrollRunStatus.APPROVED))
    items = _items(session, run_id)
    assert approved.cascade_error is None
    assert {i.status for i in items} == {PayrollItemStatus.APPROVED.value}
    assert all(i.approved_at == clock.now_utc() for i in items)

    clock.advance(3600)
    paid = executor.execute(make_request(KIND, run_id, PayrollRunStatus.PAID))
    items = _items(session, run_id)
    assert paid.entity.status == "paid"
    assert {i.status for i in items} == {PayrollItemStatus.PAID.value}
    assert all(i.paid_at == clock.now_utc() for i in items)


def test_outcome_reflects_cascaded_items(executor, factory, make_request):
    run_id = factory.payroll_run(items=2)

    outcome = executor.execute(make_request(KIND, run_id, PayrollRunStatus.APPROVED))

    assert {row["status"] for row in outcome.entity.child_rows("items")} == {"approved"}


def test_run_without_items_cannot_be_approved(executor, factory, make_request):
    run_id = factory.payroll_run(items=0)

    with pytest.raises(GuardFailedError) as exc_info:
        executor.execute(make_request(KIND, run_id, PayrollRunStatus.APPROVED))

    assert exc_info.value.reason is GuardReason.MISSING_PRECONDITION


def test_cannot_pay_unapproved_run(executor, factory, make_request):
    run_id = factory.payroll_run()

    with pytest.raises(InvalidTransitionError):
        executor.execute(make_request(KIND, run_id, PayrollRunStatus.PAID))


def test_paid_run_notifies_preparer_by_email(executor, factory, make_request, channels):
    preparer = uuid4()
    run_id = factory.payroll_run(items=3, status=PayrollRunStatus.APPROVED, prepared_by_id=preparer)

    executor.execute(make_request(KIND, run_id, PayrollRunStatus.PAID))

    (job,) = channels[NotificationChannel.EMAIL].sent
    assert job.recipient_id == preparer
    assert job.title == "Payroll paid: January 2024"
    assert "3 payments were released" in job.body


def test_paid_is_terminal(executor, factory, make_request):
    run_id = factory.payroll_run(status=PayrollRunStatus.PAID)

    with pytest.raises(InvalidTransitionError) as exc_info:
        executor.execute(make_request(KIND, run_id, PayrollRunStatus.PAID))

    assert exc_info.value.reason is GuardReason.TERMINAL_STATE
