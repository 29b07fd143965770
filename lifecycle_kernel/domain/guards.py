"""
Guard evaluation -- allow or deny a transition with a structured reason.

Responsibility:
    GuardEvaluator checks a requested transition against the entity
    snapshot: terminal origin, already-in-target, actor role, then the
    rule's own guard.  The builders below compose the pure checks that
    lifecycle_modules attach to their rules.

Architecture position:
    Kernel > Domain -- pure; the only side effect is a warning log when a
    guard check raises.
"""

from __future__ import annotations

from typing import Any

from lifecycle_kernel.domain.lifecycle import (
    EntitySnapshot,
    Guard,
    GuardReason,
    GuardResult,
    TransitionRequest,
    TransitionRule,
)
from lifecycle_kernel.domain.registry import StateRegistry
from lifecycle_kernel.logging_config import get_logger

logger = get_logger("domain.guards")


class GuardEvaluator:
    """Evaluates transition rules against entity snapshots."""

    def __init__(self, registry: StateRegistry):
        self._registry = registry

    def evaluate(
        self,
        rule: TransitionRule,
        snapshot: EntitySnapshot,
        request: TransitionRequest,
    ) -> GuardResult:
        if self._registry.is_terminal(snapshot.kind, snapshot.status):
            return GuardResult.deny(
                GuardReason.TERMINAL_STATE,
                f"{snapshot.kind} is in terminal state '{snapshot.status}'",
            )

        if snapshot.status == rule.to_state:
            return GuardResult.deny(
                GuardReason.ALREADY_IN_TARGET_STATE,
                f"{snapshot.kind} is already '{rule.to_state}'",
            )

        if snapshot.status != rule.from_state:
            return GuardResult.deny(
                GuardReason.MISSING_PRECONDITION,
                f"{snapshot.kind} is '{snapshot.status}', "
                f"rule applies from '{rule.from_state}'",
            )

        if (
            rule.requires_actor_role is not None
            and request.actor_role != rule.requires_actor_role
        ):
            return GuardResult.deny(
                GuardReason.WRONG_ACTOR_ROLE,
                f"Action '{rule.action}' requires role '{rule.requires_actor_role}'",
            )

        if rule.guard is None:
            return GuardResult.allow()

        try:
            return rule.guard.check(snapshot, request)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "guard_evaluation_failed",
                extra={
                    "guard_name": rule.guard.name,
                    "entity_kind": snapshot.kind,
                    "entity_id": str(snapshot.entity_id),
                    "error": str(e),
                },
            )
            return GuardResult.deny(
                GuardReason.MISSING_PRECONDITION,
                f"Guard '{rule.guard.name}' could not be evaluated",
            )


# ---------------------------------------------------------------------------
# Guard builders
# ---------------------------------------------------------------------------


def _missing(message: str) -> GuardResult:
    return GuardResult.deny(GuardReason.MISSING_PRECONDITION, message)


def require_children(collection: str, minimum: int = 1, noun: str | None = None) -> Guard:
    """Entity must have at least ``minimum`` rows in ``collection``."""
    noun = noun or collection

    def check(snapshot: EntitySnapshot, request: TransitionRequest) -> GuardResult:
        if len(snapshot.child_rows(collection)) < minimum:
            return _missing(f"{snapshot.kind} requires at least {minimum} {noun}")
        return GuardResult.allow()

    return Guard(
        name=f"has_{collection}",
        description=f"At least {minimum} {noun}",
        check=check,
    )


def require_field(name: str, description: str | None = None) -> Guard:
    """Entity field ``name`` must be set."""

    def check(snapshot: EntitySnapshot, request: TransitionRequest) -> GuardResult:
        if snapshot.get(name) is None:
            return _missing(f"{snapshot.kind} requires {name} to be set")
        return GuardResult.allow()

    return Guard(
        name=f"{name}_set",
        description=description or f"{name} is set",
        check=check,
    )


def require_payload_text(key: str, description: str | None = None) -> Guard:
    """Request payload must carry a non-blank string under ``key``."""

    def check(snapshot: EntitySnapshot, request: TransitionRequest) -> GuardResult:
        value = request.payload.get(key)
        if not isinstance(value, str) or not value.strip():
            return _missing(f"A non-empty {key} is required")
        return GuardResult.allow()

    return Guard(
        name=f"{key}_provided",
        description=description or f"{key} provided",
        check=check,
    )


def all_of(*guards: Guard) -> Guard:
    """Combine guards; the first denial wins."""

    def check(snapshot: EntitySnapshot, request: TransitionRequest) -> GuardResult:
        for guard in guards:
            result = guard.check(snapshot, request)
            if not result.allowed:
                return result
        return GuardResult.allow()

    return Guard(
        name="+".join(g.name for g in guards),
        description="; ".join(g.description for g in guards),
        check=check,
    )


def payload_value(request: TransitionRequest, key: str) -> Any:
    """Stripped string payload value or None."""
    value = request.payload.get(key)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value

