"""
AuditRecorder -- Append-only, per-entity hash-chained transition trail.

Responsibility:
    Appends exactly one TransitionAuditRecord per successful transition and
    reads or validates an entity's trail.

Architecture position:
    Kernel > Services.  Called only by the transition executor, inside the
    same database transaction as the compare-and-set write.  Never commits.

Invariants enforced:
    - One record per applied transition (the executor only calls ``record``
      after winning the compare-and-set).
    - seq is contiguous per entity; prev_hash links to the previous record.
    - hash = H(kind | entity_id | seq | action | payload_hash | prev_hash).

Failure modes:
    - AuditChainBrokenError from ``validate_chain`` on any mismatch.
    - IntegrityError if two writers race for one seq (cannot happen for
      CAS winners; the unique constraint backs it anyway).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lifecycle_kernel.domain.lifecycle import (
    EntitySnapshot,
    TransitionRequest,
    TransitionRule,
)
from lifecycle_kernel.exceptions import AuditChainBrokenError
from lifecycle_kernel.logging_config import get_logger
from lifecycle_kernel.models.audit_record import TransitionAuditRecord
from lifecycle_kernel.utils.hashing import (
    hash_audit_record,
    hash_payload,
    to_json_safe,
)

logger = get_logger("services.audit_recorder")


@dataclass(frozen=True)
class AuditTrailEntry:
    """A single record in an entity's transition trail."""

    audit_record_id: UUID
    seq: int
    actor_id: UUID
    from_state: str
    to_state: str
    action: str
    occurred_at: datetime
    metadata: Mapping[str, Any]
    hash: str


@dataclass(frozen=True)
class AuditTrail:
    """Ordered transition history of one entity."""

    entity_kind: str
    entity_id: UUID
    entries: tuple[AuditTrailEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def states(self) -> tuple[str, ...]:
        """Visited states, starting from the first recorded origin."""
        if not self.entries:
            return ()
        return (self.entries[0].from_state,) + tuple(e.to_state for e in self.entries)


def _payload_for(
    organization_id: UUID,
    actor_id: UUID,
    from_state: str,
    to_state: str,
    action: str,
    occurred_at: datetime,
    metadata: Mapping[str, Any] | None,
) -> dict[str, Any]:
    return {
        "organization_id": organization_id,
        "actor_id": actor_id,
        "from_state": from_state,
        "to_state": to_state,
        "action": action,
        "occurred_at": occurred_at,
        "metadata": metadata or {},
    }


class AuditRecorder:
    """Writes and reads the transition audit trail."""

    def record(
        self,
        session: Session,
        snapshot: EntitySnapshot,
        rule: TransitionRule,
        request: TransitionRequest,
        occurred_at: datetime,
        metadata: Mapping[str, Any] | None = None,
    ) -> TransitionAuditRecord:
        """Append one record for ``snapshot`` moving along ``rule``."""
        safe_metadata = to_json_safe(dict(metadata or {}))

        last = session.execute(
            select(TransitionAuditRecord)
            .where(
                TransitionAuditRecord.entity_kind == snapshot.kind,
                TransitionAuditRecord.entity_id == snapshot.entity_id,
            )
            .order_by(TransitionAuditRecord.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

        seq = 1 if last is None else last.seq + 1
        prev_hash = None if last is None else last.hash

        payload_hash = hash_payload(
            _payload_for(
                snapshot.organization_id,
                request.actor_id,
                rule.from_state,
                rule.to_state,
                rule.action,
                occurred_at,
                safe_metadata,
            )
        )

        record = TransitionAuditRecord(
            entity_kind=snapshot.kind,
            entity_id=snapshot.entity_id,
            organization_id=snapshot.organization_id,
            seq=seq,
            actor_id=request.actor_id,
            from_state=rule.from_state,
            to_state=rule.to_state,
            action=rule.action,
            occurred_at=occurred_at,
            record_metadata=safe_metadata,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=hash_audit_record(
                snapshot.kind,
                str(snapshot.entity_id),
                seq,
                rule.action,
                payload_hash,
                prev_hash,
            ),
        )
        session.add(record)
        session.flush()

        logger.info(
            "audit_record_appended",
            extra={
                "audit_record_id": str(record.id),
                "entity_kind": snapshot.kind,
                "entity_id": str(snapshot.entity_id),
                "seq": seq,
                "from_state": rule.from_state,
                "to_state": rule.to_state,
            },
        )
        return record

    def _records(
        self, session: Session, kind: str, entity_id: UUID
    ) -> list[TransitionAuditRecord]:
        return list(
            session.execute(
                select(TransitionAuditRecord)
                .where(
                    TransitionAuditRecord.entity_kind == kind,
                    TransitionAuditRecord.entity_id == entity_id,
                )
                .order_by(TransitionAuditRecord.seq)
            ).scalars()
        )

    def get_trail(self, session: Session, kind: str, entity_id: UUID) -> AuditTrail:
        entries = tuple(
            AuditTrailEntry(
                audit_record_id=r.id,
                seq=r.seq,
                actor_id=r.actor_id,
                from_state=r.from_state,
                to_state=r.to_state,
                action=r.action,
                occurred_at=r.occurred_at,
                metadata=r.record_metadata or {},
                hash=r.hash,
            )
            for r in self._records(session, kind, entity_id)
        )
        return AuditTrail(entity_kind=kind, entity_id=entity_id, entries=entries)

    def count_for(self, session: Session, kind: str, entity_id: UUID) -> int:
        return session.execute(
            select(func.count())
            .select_from(TransitionAuditRecord)
            .where(
                TransitionAuditRecord.entity_kind == kind,
                TransitionAuditRecord.entity_id == entity_id,
            )
        ).scalar_one()

    def validate_chain(self, session: Session, kind: str, entity_id: UUID) -> bool:
        """
        Validate one entity's chain.

        Recomputes each payload hash and record hash, and checks seq
        contiguity and prev_hash linkage.

        Raises:
            AuditChainBrokenError: If validation fails at any point.
        """
        records = self._records(session, kind, entity_id)
        prev: TransitionAuditRecord | None = None

        for position, record in enumerate(records, start=1):
            expected_prev = None if prev is None else prev.hash
            if record.seq != position or record.prev_hash != expected_prev:
                logger.critical(
                    "audit_chain_broken",
                    extra={"audit_record_id": str(record.id), "seq": record.seq},
                )
                raise AuditChainBrokenError(
                    str(record.id),
                    expected_prev or "None",
                    record.prev_hash or "None",
                )

            payload_hash = hash_payload(
                _payload_for(
                    record.organization_id,
                    record.actor_id,
                    record.from_state,
                    record.to_state,
                    record.action,
                    record.occurred_at,
                    record.record_metadata,
                )
            )
            expected_hash = hash_audit_record(
                record.entity_kind,
                str(record.entity_id),
                record.seq,
                record.action,
                payload_hash,
                record.prev_hash,
            )
            if payload_hash != record.payload_hash or expected_hash != record.hash:
                logger.critical(
                    "audit_chain_broken",
                    extra={"audit_record_id": str(record.id), "seq": record.seq},
                )
                raise AuditChainBrokenError(str(record.id), expected_hash, record.hash)
            prev = record

        logger.info(
            "audit_chain_valid",
            extra={
                "entity_kind": kind,
                "entity_id": str(entity_id),
                "record_count": len(records),
            },
        )
        return True
