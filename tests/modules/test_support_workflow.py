"""Support ticket scenarios: assignment, resolution notes and closing."""

from uuid import uuid4

import pytest

from lifecycle_kernel.domain.lifecycle import GuardReason
from lifecycle_kernel.exceptions import GuardFailedError, InvalidTransitionError
from lifecycle_modules.support.models import KIND, TicketStatus


class TestAssign:

    @pytest.mark.parametrize("payload", [{}, {"assigned_to_user_id": "not-a-uuid"}, {"assigned_to_user_id": 7}])
    def test_assignee_must_be_a_user_id(self, executor, factory, make_request, payload):
        ticket_id = factory.ticket()

        with pytest.raises(GuardFailedError) as exc_info:
            executor.execute(make_request(KIND, ticket_id, TicketStatus.OPEN, **payload))

        assert exc_info.value.reason is GuardReason.MISSING_PRECONDITION

    def test_assign_stamps_and_notifies_assignee(self, executor, factory, make_request, sent_jobs, clock):
        agent, lead = uuid4(), uuid4()
        ticket_id = factory.ticket()

        outcome = executor.execute(
            make_request(KIND, ticket_id, TicketStatus.OPEN, actor_id=lead, assigned_to_user_id=str(agent))
        )

        assert outcome.entity.status == "open"
        assert outcome.entity.get("assigned_to_user_id") == agent
        assert outcome.entity.get("assigned_at") == clock.now_utc()
        (job,) = sent_jobs()
        assert job.recipient_id == agent
        assert job.title == "Ticket assigned: Printer on fire"
        assert str(lead) in job.body


class TestResolve:

    def test_resolve_note_becomes_comment(self, executor, factory, make_request, sent_jobs):
        requester, agent = uuid4(), uuid4()
        ticket_id = factory.ticket(status=TicketStatus.OPEN, requester_id=requester)

        outcome = executor.execute(
            make_request(KIND, ticket_id, TicketStatus.RESOLVED, actor_id=agent, note="Replaced the fuser")
        )

        (comment,) = outcome.entity.child_rows("comments")
        assert comment["body"] == "Replaced the fuser"
        assert comment["author_id"] == agent
        assert comment["source_audit_record_id"] == outcome.audit_record_id
        assert outcome.entity.get("resolved_by_id") == agent
        (job,) = sent_jobs()
        assert job.recipient_id == requester
        assert job.body.endswith("Replaced the fuser")

    def test_resolve_without_note_adds_no_comment(self, executor, factory, make_request):
        ticket_id = factory.ticket()

        outcome = executor.execute(make_request(KIND, ticket_id, TicketStatus.RESOLVED))

        assert outcome.entity.child_rows("comments") == ()

    def test_resolve_straight_from_new(self, executor, factory, make_request, session, audit):
        ticket_id = factory.ticket()

        executor.execute(make_request(KIND, ticket_id, TicketStatus.RESOLVED, note="Duplicate of #12"))

        (entry,) = audit.get_trail(session, KIND, ticket_id).entries
        assert (entry.from_state, entry.to_state) == ("new", "resolved")


class TestClose:

    def test_close_resolved_ticket(self, executor, factory, make_request, clock):
        ticket_id = factory.ticket(status=TicketStatus.RESOLVED)

        outcome = executor.execute(make_request(KIND, ticket_id, TicketStatus.CLOSED))

        assert outcome.entity.get("closed_at") == clock.now_utc()

    def test_open_ticket_cannot_close(self, executor, factory, make_request):
        ticket_id = factory.ticket(status=TicketStatus.OPEN)

        with pytest.raises(InvalidTransitionError):
            executor.execute(make_request(KIND, ticket_id, TicketStatus.CLOSED))

    def test_closed_ticket_is_final(self, executor, factory, make_request):
        ticket_id = factory.ticket(status=TicketStatus.CLOSED)

        with pytest.raises(InvalidTransitionError) as exc_info:
            executor.execute(make_request(KIND, ticket_id, TicketStatus.OPEN, assigned_to_user_id=str(uuid4())))

        assert exc_info.value.reason is GuardReason.TERMINAL_STATE
