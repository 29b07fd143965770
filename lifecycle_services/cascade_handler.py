"""
lifecycle_services.cascade_handler -- Follow-up writes after a transition.

Responsibility:
    Runs the kind-specific cascades registered for an edge (payroll items
    follow their run, a cancelled registration gets its reason stamped, a
    resolution note becomes a ticket comment).  Cascades run after the
    transition has committed, in their own transaction.

Architecture position:
    Services layer.  Called by TransitionExecutor; operational tooling calls
    ``retry_failures`` to re-run cascades that failed.

Invariants enforced:
    - A cascade failure never rolls back the state change.  It is logged,
      recorded as a CascadeFailure row and reported on the outcome.
    - Cascades must be idempotent: a retry may re-run a cascade whose first
      attempt partially applied.
    - MAX_ATTEMPTS caps retries so a permanently broken cascade stops being
      re-run and stays visible to operators.

Retry contract:
  - Re-run with the original request payload, actor and audit record id.
  - The entity snapshot is re-read; cascades see current data.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from lifecycle_kernel.db.engine import session_scope
from lifecycle_kernel.domain.clock import Clock, SystemClock
from lifecycle_kernel.domain.lifecycle import TransitionContext, TransitionRequest
from lifecycle_kernel.domain.registry import StateRegistry
from lifecycle_kernel.exceptions import CascadeFailureError
from lifecycle_kernel.logging_config import get_logger
from lifecycle_kernel.models.cascade_failure import CascadeFailure
from lifecycle_kernel.services.entity_store import EntityStore
from lifecycle_kernel.utils.hashing import to_json_safe

logger = get_logger("services.cascade_handler")

CascadeFn = Callable[[Session, TransitionContext], None]


@dataclass(frozen=True)
class RetryReport:
    """Summary of one ``retry_failures`` pass."""

    resolved: tuple[UUID, ...] = ()
    failed: tuple[UUID, ...] = ()
    exhausted: tuple[UUID, ...] = ()

    @property
    def attempted(self) -> int:
        return len(self.resolved) + len(self.failed)


class CascadeHandler:
    """Registry and runner of post-transition cascades."""

    MAX_ATTEMPTS = 5

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        registry: StateRegistry,
        store: EntityStore,
        clock: Clock | None = None,
        max_attempts: int | None = None,
    ):
        self._session_factory = session_factory
        self._registry = registry
        self._store = store
        self._clock = clock or SystemClock()
        self._max_attempts = max_attempts or self.MAX_ATTEMPTS
        self._cascades: dict[tuple[str, str, str], list[CascadeFn]] = {}

    def register(
        self, kind: str, from_state: str, to_state: str, fn: CascadeFn
    ) -> None:
        self._cascades.setdefault((kind, from_state, to_state), []).append(fn)
        logger.debug(
            "cascade_registered",
            extra={
                "entity_kind": kind,
                "from_state": from_state,
                "to_state": to_state,
                "cascade": getattr(fn, "__name__", repr(fn)),
            },
        )

    def has_cascades(self, kind: str, from_state: str, to_state: str) -> bool:
        return bool(self._cascades.get((kind, from_state, to_state)))

    def run(self, session: Session, context: TransitionContext) -> int:
        """Run every cascade for the context's edge.  Returns how many ran."""
        key = (context.rule.kind, context.rule.from_state, context.rule.to_state)
        fns = self._cascades.get(key, [])
        for fn in fns:
            fn(session, context)
        if fns:
            session.flush()
        return len(fns)

    def run_isolated(self, context: TransitionContext) -> str | None:
        """
        Run cascades in their own transaction.

        Returns None on success, or the failure message after the failure
        has been logged and recorded.
        """
        rule = context.rule
        if not self.has_cascades(rule.kind, rule.from_state, rule.to_state):
            return None

        try:
            with session_scope(self._session_factory) as session:
                count = self.run(session, context)
        except Exception as exc:  # noqa: BLE001
            failure = CascadeFailureError(
                rule.kind, str(context.after.entity_id), rule.name, str(exc)
            )
            logger.error(
                "cascade_failed",
                extra={
                    "entity_kind": rule.kind,
                    "entity_id": str(context.after.entity_id),
                    "transition": rule.name,
                    "audit_record_id": str(context.audit_record_id),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            self._record_failure(context, exc)
            return str(failure)

        logger.info(
            "cascade_completed",
            extra={
                "entity_kind": rule.kind,
                "entity_id": str(context.after.entity_id),
                "transition": rule.name,
                "cascade_count": count,
            },
        )
        return None

    def _record_failure(self, context: TransitionContext, exc: Exception) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.add(
                    CascadeFailure(
                        entity_kind=context.rule.kind,
                        entity_id=context.after.entity_id,
                        from_state=context.rule.from_state,
                        to_state=context.rule.to_state,
                        audit_record_id=context.audit_record_id,
                        actor_id=context.request.actor_id,
                        request_payload=to_json_safe(dict(context.request.payload)),
                        error_type=type(exc).__name__,
                        error=str(exc),
                        occurred_at=context.occurred_at,
                        attempts=1,
                    )
                )
        except Exception:  # noqa: BLE001
            # The transition is already committed; losing the follow-up row
            # must not surface to the caller.
            logger.exception(
                "cascade_failure_not_recorded",
                extra={
                    "entity_kind": context.rule.kind,
                    "entity_id": str(context.after.entity_id),
                },
            )

    # ------------------------------------------------------------------
    # Operator follow-up
    # ------------------------------------------------------------------

    def open_failures(self, session: Session) -> list[CascadeFailure]:
        return list(
            session.execute(
                select(CascadeFailure)
                .where(CascadeFailure.resolved_at.is_(None))
                .order_by(CascadeFailure.occurred_at)
            ).scalars()
        )

    def retry_failures(self, actor_id: UUID) -> RetryReport:
        """
        Re-run unresolved cascades.

        Success marks the failure resolved; another error increments
        ``attempts``.  Failures already at the cap are reported as
        exhausted and left untouched.
        """
        resolved: list[UUID] = []
        failed: list[UUID] = []
        exhausted: list[UUID] = []

        with session_scope(self._session_factory) as session:
            pending = [(f.id, f.attempts) for f in self.open_failures(session)]

        for failure_id, attempts in pending:
            if attempts >= self._max_attempts:
                exhausted.append(failure_id)
                continue
            if self._retry_one(failure_id, actor_id):
                resolved.append(failure_id)
            else:
                failed.append(failure_id)

        report = RetryReport(
            resolved=tuple(resolved),
            failed=tuple(failed),
            exhausted=tuple(exhausted),
        )
        logger.info(
            "cascade_retry_completed",
            extra={
                "retry_actor_id": str(actor_id),
                "resolved_count": len(report.resolved),
                "failed_count": len(report.failed),
                "exhausted_count": len(report.exhausted),
            },
        )
        return report

    def _retry_one(self, failure_id: UUID, actor_id: UUID) -> bool:
        now = self._clock.now_utc()
        error: Exception | None = None

        try:
            with session_scope(self._session_factory) as session:
                failure = session.get(CascadeFailure, failure_id)
                context = self._rebuild_context(session, failure)
                self.run(session, context)
                failure.resolved_at = now
                failure.resolved_by_id = actor_id
                failure.last_attempt_at = now
        except Exception as exc:  # noqa: BLE001
            error = exc

        if error is None:
            logger.info(
                "cascade_retry_succeeded",
                extra={"cascade_failure_id": str(failure_id)},
            )
            return True

        with session_scope(self._session_factory) as session:
            failure = session.get(CascadeFailure, failure_id)
            failure.attempts += 1
            failure.last_attempt_at = now
            failure.error_type = type(error).__name__
            failure.error = str(error)
            attempts = failure.attempts

        logger.warning(
            "cascade_retry_failed",
            extra={
                "cascade_failure_id": str(failure_id),
                "attempts": attempts,
                "max_attempts": self._max_attempts,
                "error": str(error),
            },
        )
        return False

    def _rebuild_context(
        self, session: Session, failure: CascadeFailure
    ) -> TransitionContext:
        rule = self._registry.find_rule(
            failure.entity_kind, failure.from_state, failure.to_state
        )
        if rule is None:
            raise CascadeFailureError(
                failure.entity_kind,
                str(failure.entity_id),
                f"{failure.from_state}->{failure.to_state}",
                "transition rule no longer registered",
            )
        after = self._store.load(session, failure.entity_kind, failure.entity_id)
        if after is None:
            raise CascadeFailureError(
                failure.entity_kind,
                str(failure.entity_id),
                rule.name,
                "entity no longer exists",
            )
        payload: dict[str, Any] = dict(failure.request_payload or {})
        request = TransitionRequest(
            kind=failure.entity_kind,
            entity_id=failure.entity_id,
            requested_to=failure.to_state,
            actor_id=failure.actor_id,
            payload=payload,
        )
        return TransitionContext(
            rule=rule,
            request=request,
            before=dataclasses.replace(after, status=failure.from_state),
            after=after,
            audit_record_id=failure.audit_record_id,
            occurred_at=failure.occurred_at,
        )
