"""
Tests for the operator scripts (scripts/verify_audit_chain.py,
scripts/retry_cascades.py).

Each script is driven through ``main(argv)`` against the per-test database;
the exit code is the contract operators and cron jobs rely on.
"""

from uuid import uuid4

import pytest
from sqlalchemy import select, update

from lifecycle_kernel.models.audit_record import TransitionAuditRecord
from lifecycle_kernel.models.cascade_failure import CascadeFailure
from lifecycle_modules.payroll import cascades as payroll_cascades
from lifecycle_modules.payroll.models import KIND as PAYROLL_RUN, PayrollRunStatus
from lifecycle_modules.payroll.orm import PayrollItemModel
from lifecycle_modules.support.models import KIND as SUPPORT_TICKET, TicketStatus
from scripts.retry_cascades import main as retry_cascades
from scripts.verify_audit_chain import main as verify_audit_chain


@pytest.fixture
def closed_ticket(executor, factory, make_request):
    ticket_id = factory.ticket(status=TicketStatus.RESOLVED)
    executor.execute(make_request(SUPPORT_TICKET, ticket_id, TicketStatus.CLOSED))
    return ticket_id


@pytest.fixture
def failed_payroll_cascade(executor, cascades, factory, make_request):
    """An approved payroll run whose item cascade failed and is still open."""

    def payments_down(session, context):
        raise RuntimeError("payments service unavailable")

    cascades.register(
        PAYROLL_RUN,
        PayrollRunStatus.PENDING_APPROVAL.value,
        PayrollRunStatus.APPROVED.value,
        payments_down,
    )
    run_id = factory.payroll_run()
    outcome = executor.execute(make_request(PAYROLL_RUN, run_id, PayrollRunStatus.APPROVED))
    assert outcome.cascade_error is not None
    return run_id


def _failure(session_factory, run_id) -> CascadeFailure:
    with session_factory() as s:
        return s.execute(
            select(CascadeFailure).where(CascadeFailure.entity_id == run_id)
        ).scalar_one()


class TestVerifyAuditChain:

    def test_clean_chains_exit_zero(self, closed_ticket, database_url, capsys):
        assert verify_audit_chain(["--all", "--db-url", database_url]) == 0

        out = capsys.readouterr().out
        assert f"ok      {SUPPORT_TICKET} {closed_ticket} (1 records)" in out
        assert "1 chain(s) checked, 0 broken" in out

    def test_single_chain(self, closed_ticket, database_url, capsys):
        argv = ["--kind", SUPPORT_TICKET, "--entity-id", str(closed_ticket), "--db-url", database_url]

        assert verify_audit_chain(argv) == 0
        assert "1 chain(s) checked" in capsys.readouterr().out

    def test_tampered_hash_exits_one(self, closed_ticket, factory, executor, make_request,
                                     session, database_url, capsys):
        untouched = factory.ticket(status=TicketStatus.RESOLVED)
        executor.execute(make_request(SUPPORT_TICKET, untouched, TicketStatus.CLOSED))
        session.execute(
            update(TransitionAuditRecord)
            .where(TransitionAuditRecord.entity_id == closed_ticket)
            .values(hash="0" * 64)
        )
        session.commit()

        assert verify_audit_chain(["--all", "--db-url", database_url]) == 1

        out = capsys.readouterr().out
        assert f"BROKEN  {SUPPORT_TICKET} {closed_ticket}" in out
        assert f"ok      {SUPPORT_TICKET} {untouched}" in out
        assert "2 chain(s) checked, 1 broken" in out

    def test_kind_without_entity_is_usage_error(self, database_url):
        with pytest.raises(SystemExit) as exc_info:
            verify_audit_chain(["--kind", SUPPORT_TICKET, "--db-url", database_url])
        assert exc_info.value.code == 2


class TestRetryCascades:

    def test_list_open_failures(self, failed_payroll_cascade, database_url, capsys):
        assert retry_cascades(["--list", "--db-url", database_url]) == 0

        out = capsys.readouterr().out
        assert str(failed_payroll_cascade) in out
        assert "pending_approval -> approved" in out
        assert "1 open failure(s)" in out

    def test_failure_still_open_exits_one(self, failed_payroll_cascade, session_factory,
                                          database_url, monkeypatch, capsys):
        def still_down(session, context):
            raise RuntimeError("payments service still unavailable")

        monkeypatch.setattr(payroll_cascades, "approve_items", still_down)

        assert retry_cascades(["--actor-id", str(uuid4()), "--db-url", database_url]) == 1

        failure = _failure(session_factory, failed_payroll_cascade)
        assert failure.resolved_at is None
        assert failure.attempts == 2
        assert "still unavailable" in failure.error
        assert "1 retried: 0 resolved, 1 failed, 0 exhausted" in capsys.readouterr().out

    def test_recovered_cascade_exits_zero(self, failed_payroll_cascade, session_factory,
                                          database_url, capsys):
        operator = uuid4()

        assert retry_cascades(["--actor-id", str(operator), "--db-url", database_url]) == 0

        failure = _failure(session_factory, failed_payroll_cascade)
        assert failure.resolved_by_id == operator
        with session_factory() as s:
            statuses = set(
                s.execute(
                    select(PayrollItemModel.status)
                    .where(PayrollItemModel.payroll_run_id == failed_payroll_cascade)
                ).scalars()
            )
        assert statuses == {"approved"}
        assert "1 retried: 1 resolved, 0 failed, 0 exhausted" in capsys.readouterr().out

    def test_exhausted_failure_exits_one(self, failed_payroll_cascade, session, database_url, capsys):
        session.execute(
            update(CascadeFailure)
            .where(CascadeFailure.entity_id == failed_payroll_cascade)
            .values(attempts=5)
        )
        session.commit()

        assert retry_cascades(["--actor-id", str(uuid4()), "--db-url", database_url]) == 1
        assert "0 retried: 0 resolved, 0 failed, 1 exhausted" in capsys.readouterr().out

    def test_actor_required_unless_listing(self, database_url):
        with pytest.raises(SystemExit) as exc_info:
            retry_cascades(["--db-url", database_url])
        assert exc_info.value.code == 2
