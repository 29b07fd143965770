"""
lifecycle_services.transition_executor -- Atomic, audited status transitions.

Responsibility:
    Executes one transition request end to end: load, idempotency check,
    rule resolution, guard evaluation, compare-and-set write with its audit
    record, then cascades and notification fan-out.  Thin coordinator:
    structure lives in StateRegistry, eligibility in GuardEvaluator,
    persistence in EntityStore and AuditRecorder.

Architecture position:
    Services layer.  May import from lifecycle_kernel (domain, services,
    models, db).  Called by lifecycle_api and by batch tooling.

Invariants enforced:
    - The status write is a single conditional UPDATE keyed on the status
      read at the start of the request; a lost race is a
      ConcurrencyConflictError, never an overwrite.
    - Exactly one audit record per applied transition, written in the same
      database transaction as the status write.
    - Idempotent edges re-requested on an entity already in the target
      state return the entity with applied=False and no side effects.
    - Cascades run only after commit; their failures are recorded and
      reported, never rolled back into the state change.
    - Notification failures never reach the caller.

Failure modes:
    - EntityNotFoundError, InvalidTransitionError, GuardFailedError,
      ConcurrencyConflictError propagate to the caller unchanged.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from lifecycle_kernel.domain.clock import Clock, SystemClock
from lifecycle_kernel.domain.guards import GuardEvaluator
from lifecycle_kernel.domain.lifecycle import (
    EntitySnapshot,
    GuardReason,
    TransitionContext,
    TransitionOutcome,
    TransitionRequest,
    TransitionRule,
)
from lifecycle_kernel.domain.notification import NotificationJob
from lifecycle_kernel.domain.registry import StateRegistry
from lifecycle_kernel.exceptions import (
    ConcurrencyConflictError,
    EntityNotFoundError,
    GuardFailedError,
    InvalidTransitionError,
)
from lifecycle_kernel.logging_config import LogContext, get_logger
from lifecycle_kernel.services.audit_recorder import AuditRecorder
from lifecycle_kernel.services.entity_store import EntityStore
from lifecycle_services.cascade_handler import CascadeHandler
from lifecycle_services.notification_dispatcher import NotificationDispatcher

logger = get_logger("services.transition_executor")

# Trace message and outcome codes for structured logging
TRACE_TYPE_LIFECYCLE_TRANSITION = "LIFECYCLE_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_NOOP = "noop"
OUTCOME_NOT_FOUND = "not_found"
OUTCOME_INVALID_TRANSITION = "invalid_transition"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_CONFLICT = "conflict"

NotificationMode = Literal["deferred", "inline"]


def _emit_transition_trace(
    request: TransitionRequest,
    outcome: str,
    duration_ms: float,
    from_state: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    audit_record_id: UUID | None = None,
    outcome_sink: Callable[[dict], None] | None = None,
) -> None:
    """Emit a structured lifecycle transition record."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_LIFECYCLE_TRANSITION,
        "ts": datetime.now(UTC).isoformat(),
        "entity_kind": request.kind,
        "entity_id": str(request.entity_id),
        "actor_id": str(request.actor_id),
        "requested_to": request.requested_to,
        "outcome": outcome,
        "duration_ms": round(duration_ms, 3),
    }
    if from_state is not None:
        record["from_state"] = from_state
    if action is not None:
        record["action"] = action
    if reason is not None:
        record["reason"] = reason
    if audit_record_id is not None:
        record["audit_record_id"] = str(audit_record_id)
    record.update(LogContext.get_all())

    if outcome in (OUTCOME_SUCCESS, OUTCOME_NOOP):
        logger.info("lifecycle_transition", extra=record)
    else:
        logger.warning("lifecycle_transition", extra=record)

    if outcome_sink is not None:
        outcome_sink({**record, "message": "lifecycle_transition"})


class TransitionExecutor:
    """Coordinates one transition request per call.  Safe to share across threads."""

    def __init__(
        self,
        registry: StateRegistry,
        store: EntityStore,
        session_factory: sessionmaker[Session],
        cascades: CascadeHandler | None = None,
        dispatcher: NotificationDispatcher | None = None,
        audit: AuditRecorder | None = None,
        clock: Clock | None = None,
        notification_mode: NotificationMode = "deferred",
        outcome_sink: Callable[[dict], None] | None = None,
    ):
        self._registry = registry
        self._store = store
        self._session_factory = session_factory
        self._cascades = cascades
        self._dispatcher = dispatcher
        self._audit = audit or AuditRecorder()
        self._clock = clock or SystemClock()
        self._guards = GuardEvaluator(registry)
        self._notification_mode = notification_mode
        self._outcome_sink = outcome_sink

    @property
    def registry(self) -> StateRegistry:
        return self._registry

    def execute(self, request: TransitionRequest) -> TransitionOutcome:
        """
        Execute ``request``.

        Raises:
            EntityNotFoundError: The entity does not exist.
            InvalidTransitionError: No rule covers the requested edge.
            GuardFailedError: A precondition failed (reason attached).
            ConcurrencyConflictError: The status changed since it was read.
        """
        self._registry.lookup(request.kind)
        start = time.monotonic()
        trace: dict[str, Any] = {}

        with LogContext.bind(
            correlation_id=request.correlation_id,
            actor_id=str(request.actor_id),
            entity_kind=request.kind,
            entity_id=str(request.entity_id),
        ):
            try:
                outcome = self._execute(request, trace)
            except EntityNotFoundError as exc:
                self._trace(request, OUTCOME_NOT_FOUND, start, trace, reason=str(exc))
                raise
            except InvalidTransitionError as exc:
                reason = exc.reason.value if exc.reason else None
                self._trace(request, OUTCOME_INVALID_TRANSITION, start, trace, reason=reason)
                raise
            except GuardFailedError as exc:
                self._trace(request, OUTCOME_GUARD_FAILED, start, trace, reason=exc.reason.value)
                raise
            except ConcurrencyConflictError as exc:
                self._trace(request, OUTCOME_CONFLICT, start, trace, reason=str(exc))
                raise

            self._trace(
                request,
                OUTCOME_SUCCESS if outcome.applied else OUTCOME_NOOP,
                start,
                trace,
                audit_record_id=outcome.audit_record_id,
            )
            return outcome

    def _trace(
        self,
        request: TransitionRequest,
        outcome: str,
        start: float,
        trace: dict[str, Any],
        reason: str | None = None,
        audit_record_id: UUID | None = None,
    ) -> None:
        _emit_transition_trace(
            request,
            outcome,
            (time.monotonic() - start) * 1000,
            from_state=trace.get("from_state"),
            action=trace.get("action"),
            reason=reason,
            audit_record_id=audit_record_id,
            outcome_sink=self._outcome_sink,
        )

    def _execute(
        self, request: TransitionRequest, trace: dict[str, Any]
    ) -> TransitionOutcome:
        kind = request.kind
        session = self._session_factory()
        try:
            before = self._store.load(session, kind, request.entity_id)
            if before is None:
                raise EntityNotFoundError(kind, str(request.entity_id))
            trace["from_state"] = before.status

            if (
                before.status == request.requested_to
                and self._registry.is_idempotent_target(kind, request.requested_to)
            ):
                session.rollback()
                return TransitionOutcome(entity=before, applied=False)

            rule = self._resolve_rule(before, request)
            trace["action"] = rule.action

            if (
                request.expected_current_state is not None
                and request.expected_current_state != before.status
            ):
                raise ConcurrencyConflictError(
                    kind,
                    str(request.entity_id),
                    request.expected_current_state,
                    before.status,
                )

            verdict = self._guards.evaluate(rule, before, request)
            if not verdict.allowed:
                raise GuardFailedError(
                    kind, str(request.entity_id), verdict.reason, verdict.message
                )

            occurred_at = self._clock.now_utc()
            stamps = dict(rule.stamp(before, request, occurred_at)) if rule.stamp else {}

            won = self._store.compare_and_set(
                session,
                kind,
                request.entity_id,
                expected_status=before.status,
                new_status=rule.to_state,
                actor_id=request.actor_id,
                occurred_at=occurred_at,
                values=stamps,
            )
            if not won:
                session.rollback()
                actual = self._store.current_status(session, kind, request.entity_id)
                raise ConcurrencyConflictError(
                    kind, str(request.entity_id), before.status, actual
                )

            record = self._audit.record(
                session,
                before,
                rule,
                request,
                occurred_at,
                metadata=self._audit_metadata(request, stamps),
            )
            audit_record_id = record.id
            session.commit()

            after = self._store.load(session, kind, request.entity_id)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        context = TransitionContext(
            rule=rule,
            request=request,
            before=before,
            after=after,
            audit_record_id=audit_record_id,
            occurred_at=occurred_at,
        )

        cascade_error = None
        if self._cascades is not None:
            cascade_error = self._cascades.run_isolated(context)
            if cascade_error is None and self._cascades.has_cascades(
                kind, rule.from_state, rule.to_state
            ):
                after = self._reload(kind, request.entity_id, fallback=after)
                context = TransitionContext(
                    rule=rule,
                    request=request,
                    before=before,
                    after=after,
                    audit_record_id=audit_record_id,
                    occurred_at=occurred_at,
                )

        self._notify(context)

        return TransitionOutcome(
            entity=after,
            applied=True,
            audit_record_id=audit_record_id,
            cascade_error=cascade_error,
        )

    def _resolve_rule(
        self, before: EntitySnapshot, request: TransitionRequest
    ) -> TransitionRule:
        kind = request.kind
        rule = self._registry.find_rule(kind, before.status, request.requested_to)
        if rule is not None:
            return rule

        if self._registry.is_terminal(kind, before.status):
            raise InvalidTransitionError(
                kind,
                str(request.entity_id),
                before.status,
                request.requested_to,
                reason=GuardReason.TERMINAL_STATE,
            )
        if before.status == request.requested_to:
            raise GuardFailedError(
                kind,
                str(request.entity_id),
                GuardReason.ALREADY_IN_TARGET_STATE,
                f"{kind} is already '{before.status}'",
            )
        raise InvalidTransitionError(
            kind, str(request.entity_id), before.status, request.requested_to
        )

    @staticmethod
    def _audit_metadata(
        request: TransitionRequest, stamps: dict[str, Any]
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {}
        if request.payload:
            metadata["payload"] = dict(request.payload)
        if stamps:
            metadata["stamps"] = stamps
        if request.actor_role is not None:
            metadata["actor_role"] = request.actor_role
        if request.correlation_id is not None:
            metadata["correlation_id"] = request.correlation_id
        return metadata

    def _reload(
        self, kind: str, entity_id: UUID, fallback: EntitySnapshot
    ) -> EntitySnapshot:
        session = self._session_factory()
        try:
            return self._store.load(session, kind, entity_id) or fallback
        finally:
            session.close()

    def _notify(self, context: TransitionContext) -> None:
        if self._dispatcher is None or context.rule.notify is None:
            return
        try:
            jobs: Sequence[NotificationJob] = list(context.rule.notify(context))
        except Exception:  # noqa: BLE001
            logger.exception(
                "notification_build_failed",
                extra={"transition": context.rule.name},
            )
            return
        if not jobs:
            return
        if self._notification_mode == "inline":
            self._dispatcher.dispatch(jobs)
        else:
            self._dispatcher.dispatch_deferred(jobs)
