"""
Hypothesis fuzzing across every registered entity kind.

Fuzzes sequences of transition requests (any target state, any role, any
payload) against fresh entities and checks:
- Every request either succeeds or raises a typed transition error
- Status never leaves the kind's declared state set
- The audit trail only contains registered edges and ends at the current status
- One audit record per applied transition, none for idempotent repeats
"""

from __future__ import annotations

from uuid import UUID, uuid4

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from lifecycle_kernel.exceptions import ConcurrencyConflictError, TransitionError
from lifecycle_modules.catalog import COLLECTIONS
from lifecycle_modules.events.models import KIND as EVENT_REGISTRATION

KINDS = sorted(COLLECTIONS.values())

FUZZ_SETTINGS = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)

payloads = st.fixed_dictionaries(
    {},
    optional={
        "reason": st.sampled_from(["", "  ", "Over budget", "Duplicate"]),
        "note": st.sampled_from(["", "Fixed it"]),
        "assigned_to_user_id": st.sampled_from(["", "bogus", str(uuid4())]),
    },
)

steps = st.tuples(
    st.integers(min_value=0, max_value=10),  # index into the kind's state list
    st.sampled_from([None, "approver", "clerk"]),
    payloads,
)


def _create(factory, kind: str) -> UUID:
    creators = {
        "purchase_order": factory.purchase_order,
        "payroll_run": factory.payroll_run,
        "time_entry": factory.time_entry,
        "leave_request": factory.leave_request,
        "event_registration": factory.registration,
        "support_ticket": factory.ticket,
    }
    return creators[kind]()


@FUZZ_SETTINGS
@given(kind=st.sampled_from(KINDS), sequence=st.lists(steps, min_size=1, max_size=6))
def test_random_requests_respect_the_state_machine(
    executor, registry, factory, make_request, session_factory, store, audit, kind, sequence
):
    definition = registry.lookup(kind)
    entity_id = _create(factory, kind)
    applied = 0

    for index, role, payload in sequence:
        target = definition.states[index % len(definition.states)]
        try:
            outcome = executor.execute(make_request(kind, entity_id, target, role=role, **payload))
        except (TransitionError, ConcurrencyConflictError):
            continue
        assert outcome.entity.status == target
        applied += int(outcome.applied)

    with session_factory() as session:
        current = store.load(session, kind, entity_id)
        trail = audit.get_trail(session, kind, entity_id)

        assert current.status in definition.states
        assert current.version == 1 + applied
        assert len(trail.entries) == applied
        for entry in trail.entries:
            rule = registry.find_rule(kind, entry.from_state, entry.to_state)
            assert rule is not None
            assert rule.action == entry.action
        if trail.entries:
            assert trail.states[0] == definition.initial
            assert trail.states[-1] == current.status
            assert audit.validate_chain(session, kind, entity_id)


@FUZZ_SETTINGS
@given(
    target=st.sampled_from(["cancelled", "checked_in"]),
    repeats=st.integers(min_value=2, max_value=5),
)
def test_idempotent_edge_records_once(
    executor, factory, make_request, session_factory, audit, target, repeats
):
    registration_id = factory.registration()

    outcomes = [
        executor.execute(make_request(EVENT_REGISTRATION, registration_id, target))
        for _ in range(repeats)
    ]

    assert [o.applied for o in outcomes] == [True] + [False] * (repeats - 1)
    assert len({o.entity.version for o in outcomes}) == 1
    with session_factory() as session:
        assert audit.count_for(session, EVENT_REGISTRATION, registration_id) == 1
