"""
StateRegistry -- Per-kind state definitions and transition rules.

Responsibility:
    Holds, for each entity kind, the finite state set and the directed
    edges between states, and answers structural questions about them
    (which edges leave a state, which rule covers an edge, which state an
    HTTP action targets).

Architecture position:
    Kernel > Domain -- pure data plus pure functions.  Populated once at
    startup by lifecycle_modules and read-only afterwards.

Invariants enforced at registration time:
    - initial and every terminal state belong to the state set.
    - At most one rule per (kind, from, to); from != to.
    - Both endpoints of every rule belong to the state set.
    - No rule leaves a terminal state; no rule enters the initial state.
    - An action name always targets the same state within a kind.
    - A kind is registered at most once.

Failure modes:
    - DuplicateTransitionRuleError, InvalidStateDefinitionError at
      registration; UnknownEntityKindError, UnknownActionError on lookup.
"""

from __future__ import annotations

from collections.abc import Iterable

from lifecycle_kernel.domain.lifecycle import (
    StateDefinition,
    TransitionRule,
    state_value,
)
from lifecycle_kernel.exceptions import (
    DuplicateTransitionRuleError,
    InvalidStateDefinitionError,
    UnknownActionError,
    UnknownEntityKindError,
)
from lifecycle_kernel.logging_config import get_logger

logger = get_logger("domain.registry")


class StateRegistry:
    """
    Registry of lifecycle definitions keyed by entity kind.

    Rules are stored per kind as ``{(from_state, to_state): rule}`` in
    registration order so ``edges_from`` is deterministic.
    """

    def __init__(self) -> None:
        self._definitions: dict[str, StateDefinition] = {}
        self._rules: dict[str, dict[tuple[str, str], TransitionRule]] = {}
        self._actions: dict[str, dict[str, str]] = {}

    def register(
        self,
        definition: StateDefinition,
        rules: Iterable[TransitionRule],
    ) -> None:
        """Validate and register one kind.  Nothing is stored on failure."""
        kind = definition.kind
        if kind in self._definitions:
            raise InvalidStateDefinitionError(kind, "kind already registered")

        self._validate_definition(definition)

        states = set(definition.states)
        edges: dict[tuple[str, str], TransitionRule] = {}
        actions: dict[str, str] = {}

        for rule in rules:
            if rule.kind != kind:
                raise InvalidStateDefinitionError(
                    kind, f"rule {rule.name} belongs to kind '{rule.kind}'"
                )
            if rule.from_state == rule.to_state:
                raise InvalidStateDefinitionError(
                    kind, f"rule {rule.name} is a self-transition"
                )
            for state in (rule.from_state, rule.to_state):
                if state not in states:
                    raise InvalidStateDefinitionError(
                        kind, f"rule {rule.name} references unknown state '{state}'"
                    )
            if rule.from_state in definition.terminal:
                raise InvalidStateDefinitionError(
                    kind, f"rule {rule.name} leaves terminal state '{rule.from_state}'"
                )
            if rule.to_state == definition.initial:
                raise InvalidStateDefinitionError(
                    kind, f"rule {rule.name} enters initial state '{definition.initial}'"
                )
            key = (rule.from_state, rule.to_state)
            if key in edges:
                raise DuplicateTransitionRuleError(kind, *key)
            existing_target = actions.get(rule.action)
            if existing_target is not None and existing_target != rule.to_state:
                raise InvalidStateDefinitionError(
                    kind,
                    f"action '{rule.action}' targets both "
                    f"'{existing_target}' and '{rule.to_state}'",
                )
            edges[key] = rule
            actions[rule.action] = rule.to_state

        self._definitions[kind] = definition
        self._rules[kind] = edges
        self._actions[kind] = actions

        logger.info(
            "lifecycle_registered",
            extra={
                "entity_kind": kind,
                "state_count": len(definition.states),
                "rule_count": len(edges),
            },
        )

    @staticmethod
    def _validate_definition(definition: StateDefinition) -> None:
        kind = definition.kind
        if not definition.states:
            raise InvalidStateDefinitionError(kind, "state set is empty")
        if len(set(definition.states)) != len(definition.states):
            raise InvalidStateDefinitionError(kind, "duplicate state names")
        if definition.initial not in definition.states:
            raise InvalidStateDefinitionError(
                kind, f"initial state '{definition.initial}' is not a state"
            )
        unknown = definition.terminal - set(definition.states)
        if unknown:
            raise InvalidStateDefinitionError(
                kind, f"terminal states {sorted(unknown)} are not states"
            )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def lookup(self, kind: str) -> StateDefinition:
        definition = self._definitions.get(kind)
        if definition is None:
            raise UnknownEntityKindError(kind)
        return definition

    def kinds(self) -> tuple[str, ...]:
        return tuple(self._definitions)

    def edges_from(self, kind: str, state: str) -> tuple[TransitionRule, ...]:
        self.lookup(kind)
        state = state_value(state)
        return tuple(
            rule
            for (from_state, _), rule in self._rules[kind].items()
            if from_state == state
        )

    def find_rule(
        self, kind: str, from_state: str, to_state: str
    ) -> TransitionRule | None:
        self.lookup(kind)
        return self._rules[kind].get((state_value(from_state), state_value(to_state)))

    def resolve_action(self, kind: str, action: str) -> str:
        """Map an action verb (``approve``) to the state it targets."""
        self.lookup(kind)
        target = self._actions[kind].get(action)
        if target is None:
            raise UnknownActionError(kind, action)
        return target

    def actions(self, kind: str) -> tuple[str, ...]:
        self.lookup(kind)
        return tuple(self._actions[kind])

    def is_terminal(self, kind: str, state: str) -> bool:
        return state_value(state) in self.lookup(kind).terminal

    def is_idempotent_target(self, kind: str, state: str) -> bool:
        """True if any idempotent edge of ``kind`` enters ``state``."""
        self.lookup(kind)
        state = state_value(state)
        return any(
            rule.idempotent and rule.to_state == state
            for rule in self._rules[kind].values()
        )
