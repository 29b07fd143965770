"""Time entry review and leave request scenarios."""

from uuid import uuid4

import pytest
from sqlalchemy import update

from lifecycle_kernel.domain.lifecycle import GuardReason
from lifecycle_kernel.exceptions import GuardFailedError, InvalidTransitionError
from lifecycle_modules.leave.models import KIND as LEAVE_REQUEST, LeaveRequestStatus
from lifecycle_modules.timekeeping.models import KIND as TIME_ENTRY, TimeEntryStatus
from lifecycle_modules.timekeeping.orm import TimeEntryModel


class TestTimeEntry:

    def test_open_entry_cannot_be_approved(self, executor, factory, make_request, store, session):
        entry_id = factory.time_entry(clocked_out=False)

        with pytest.raises(GuardFailedError) as exc_info:
            executor.execute(make_request(TIME_ENTRY, entry_id, TimeEntryStatus.APPROVED))

        assert exc_info.value.reason is GuardReason.MISSING_PRECONDITION
        assert store.load(session, TIME_ENTRY, entry_id).status == "submitted"

    def test_entry_without_hours_cannot_be_approved(self, executor, factory, make_request, session):
        entry_id = factory.time_entry()
        session.execute(
            update(TimeEntryModel).where(TimeEntryModel.id == entry_id).values(hours=None)
        )
        session.commit()

        with pytest.raises(GuardFailedError) as exc_info:
            executor.execute(make_request(TIME_ENTRY, entry_id, TimeEntryStatus.APPROVED))

        assert exc_info.value.reason is GuardReason.MISSING_PRECONDITION
        assert "hours" in str(exc_info.value)

    def test_approve_notifies_employee(self, executor, factory, make_request, sent_jobs):
        employee, manager = uuid4(), uuid4()
        entry_id = factory.time_entry(employee_id=employee)

        outcome = executor.execute(
            make_request(TIME_ENTRY, entry_id, TimeEntryStatus.APPROVED, actor_id=manager)
        )

        assert outcome.entity.get("approved_by_id") == manager
        (job,) = sent_jobs()
        assert job.recipient_id == employee
        assert "Time entry for 2024-01-02" in job.title

    def test_open_entry_can_still_be_rejected(self, executor, factory, make_request):
        entry_id = factory.time_entry(clocked_out=False)

        outcome = executor.execute(
            make_request(TIME_ENTRY, entry_id, TimeEntryStatus.REJECTED, reason="Forgot to clock out")
        )

        assert outcome.entity.status == "rejected"
        assert outcome.entity.get("rejection_reason") == "Forgot to clock out"

    def test_reject_requires_reason(self, executor, factory, make_request):
        entry_id = factory.time_entry()

        with pytest.raises(GuardFailedError):
            executor.execute(make_request(TIME_ENTRY, entry_id, TimeEntryStatus.REJECTED))


class TestLeaveRequest:

    def test_reject_with_reason(self, executor, factory, make_request, sent_jobs, session, audit):
        employee, manager = uuid4(), uuid4()
        leave_id = factory.leave_request(employee_id=employee)

        outcome = executor.execute(
            make_request(
                LEAVE_REQUEST, leave_id, LeaveRequestStatus.REJECTED, actor_id=manager, reason="Peak season"
            )
        )

        assert outcome.entity.status == "rejected"
        assert outcome.entity.get("reviewed_by_id") == manager
        assert outcome.entity.get("rejection_reason") == "Peak season"
        (job,) = sent_jobs()
        assert job.recipient_id == employee
        assert job.data["template"] == "approval_rejected"
        assert audit.count_for(session, LEAVE_REQUEST, leave_id) == 1

    def test_reject_blank_reason(self, executor, factory, make_request):
        leave_id = factory.leave_request()

        with pytest.raises(GuardFailedError) as exc_info:
            executor.execute(make_request(LEAVE_REQUEST, leave_id, LeaveRequestStatus.REJECTED, reason=" "))

        assert exc_info.value.reason is GuardReason.MISSING_PRECONDITION

    def test_processed_request_cannot_be_decided_again(self, executor, factory, make_request):
        leave_id = factory.leave_request()
        executor.execute(make_request(LEAVE_REQUEST, leave_id, LeaveRequestStatus.APPROVED))

        with pytest.raises(InvalidTransitionError) as exc_info:
            executor.execute(make_request(LEAVE_REQUEST, leave_id, LeaveRequestStatus.REJECTED, reason="Changed mind"))

        assert exc_info.value.reason is GuardReason.TERMINAL_STATE

    def test_self_cancel_is_silent(self, executor, factory, make_request, sent_jobs):
        employee = uuid4()
        leave_id = factory.leave_request(employee_id=employee)

        outcome = executor.execute(
            make_request(LEAVE_REQUEST, leave_id, LeaveRequestStatus.CANCELLED, actor_id=employee)
        )

        assert outcome.entity.get("cancelled_at") is not None
        assert sent_jobs() == []

    def test_cancel_on_behalf_notifies_employee(self, executor, factory, make_request, sent_jobs):
        employee = uuid4()
        leave_id = factory.leave_request(employee_id=employee)

        executor.execute(make_request(LEAVE_REQUEST, leave_id, LeaveRequestStatus.CANCELLED))

        (job,) = sent_jobs()
        assert job.recipient_id == employee
        assert job.data["template"] == "request_cancelled"
