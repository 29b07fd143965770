"""
Tests for GuardEvaluator and the guard builders.

Pure tests: snapshots and requests are built in memory.
"""

from uuid import uuid4

import pytest

from lifecycle_kernel.domain.guards import (
    GuardEvaluator,
    all_of,
    payload_value,
    require_children,
    require_field,
    require_payload_text,
)
from lifecycle_kernel.domain.lifecycle import (
    EntitySnapshot,
    Guard,
    GuardReason,
    GuardResult,
    StateDefinition,
    TransitionRequest,
    TransitionRule,
)
from lifecycle_kernel.domain.registry import StateRegistry

KIND = "expense_report"


def _snapshot(status="submitted", fields=None, children=None) -> EntitySnapshot:
    return EntitySnapshot(
        kind=KIND,
        entity_id=uuid4(),
        organization_id=uuid4(),
        status=status,
        version=1,
        fields=fields or {},
        children=children or {},
    )


def _request(to="approved", role=None, **payload) -> TransitionRequest:
    return TransitionRequest(
        kind=KIND,
        entity_id=uuid4(),
        requested_to=to,
        actor_id=uuid4(),
        actor_role=role,
        payload=payload,
    )


@pytest.fixture
def registry() -> StateRegistry:
    registry = StateRegistry()
    registry.register(
        StateDefinition(
            kind=KIND,
            states=("submitted", "approved", "paid"),
            initial="submitted",
            terminal=frozenset({"paid"}),
        ),
        (
            TransitionRule(KIND, "submitted", "approved", "approve"),
            TransitionRule(KIND, "approved", "paid", "pay"),
        ),
    )
    return registry


@pytest.fixture
def evaluator(registry) -> GuardEvaluator:
    return GuardEvaluator(registry)


class TestGuardEvaluator:

    def test_allows_plain_edge(self, evaluator):
        rule = TransitionRule(KIND, "submitted", "approved", "approve")
        assert evaluator.evaluate(rule, _snapshot(), _request()).allowed

    def test_terminal_origin_denied_first(self, evaluator):
        rule = TransitionRule(KIND, "submitted", "approved", "approve")
        result = evaluator.evaluate(rule, _snapshot(status="paid"), _request())
        assert not result.allowed
        assert result.reason is GuardReason.TERMINAL_STATE

    def test_already_in_target(self, evaluator):
        rule = TransitionRule(KIND, "submitted", "approved", "approve")
        result = evaluator.evaluate(rule, _snapshot(status="approved"), _request())
        assert result.reason is GuardReason.ALREADY_IN_TARGET_STATE

    def test_wrong_origin_is_missing_precondition(self, evaluator):
        rule = TransitionRule(KIND, "approved", "paid", "pay")
        result = evaluator.evaluate(rule, _snapshot(status="submitted"), _request(to="paid"))
        assert result.reason is GuardReason.MISSING_PRECONDITION

    def test_role_checked_before_guard(self, evaluator):
        calls = []
        guard = Guard("spy", "records calls", lambda s, r: calls.append(1) or GuardResult.allow())
        rule = TransitionRule(KIND, "submitted", "approved", "approve", guard=guard, requires_actor_role="manager")

        denied = evaluator.evaluate(rule, _snapshot(), _request(role="clerk"))
        assert denied.reason is GuardReason.WRONG_ACTOR_ROLE
        assert calls == []

        assert evaluator.evaluate(rule, _snapshot(), _request(role="manager")).allowed
        assert calls == [1]

    def test_guard_exception_becomes_denial(self, evaluator, captured_logs):
        def explode(snapshot, request):
            raise KeyError("amount")

        rule = TransitionRule(KIND, "submitted", "approved", "approve", guard=Guard("explodes", "raises", explode))
        result = evaluator.evaluate(rule, _snapshot(), _request())

        assert not result.allowed
        assert result.reason is GuardReason.MISSING_PRECONDITION
        assert "explodes" in result.message
        assert any(r["message"] == "guard_evaluation_failed" for r in captured_logs())


class TestGuardBuilders:

    def test_require_children(self):
        guard = require_children("lines", noun="line item")
        empty = guard.check(_snapshot(children={"lines": ()}), _request())
        assert empty.reason is GuardReason.MISSING_PRECONDITION
        assert "line item" in empty.message

        one = guard.check(_snapshot(children={"lines": ({"line_number": 1},)}), _request())
        assert one.allowed

    def test_require_children_minimum(self):
        guard = require_children("items", minimum=2)
        rows = ({"n": 1},)
        assert not guard.check(_snapshot(children={"items": rows}), _request()).allowed

    def test_require_field(self):
        guard = require_field("clock_out")
        assert not guard.check(_snapshot(fields={"clock_out": None}), _request()).allowed
        assert guard.check(_snapshot(fields={"clock_out": "17:00"}), _request()).allowed

    @pytest.mark.parametrize("reason", [None, "", "   ", 42])
    def test_require_payload_text_rejects_blank(self, reason):
        guard = require_payload_text("reason")
        payload = {} if reason is None else {"reason": reason}
        assert not guard.check(_snapshot(), _request(**payload)).allowed

    def test_require_payload_text_accepts_text(self):
        guard = require_payload_text("reason")
        assert guard.check(_snapshot(), _request(reason="over budget")).allowed

    def test_all_of_first_denial_wins(self):
        guard = all_of(require_field("amount"), require_payload_text("reason"))
        result = guard.check(_snapshot(fields={"amount": None}), _request())
        assert "amount" in result.message
        assert guard.name == "amount_set+reason_provided"

    def test_payload_value_strips(self):
        assert payload_value(_request(note="  hi  "), "note") == "hi"
        assert payload_value(_request(note="   "), "note") is None
        assert payload_value(_request(), "note") is None
