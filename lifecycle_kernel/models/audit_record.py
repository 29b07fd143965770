"""
Module: lifecycle_kernel.models.audit_record
Responsibility: ORM persistence for the per-entity transition audit trail.
Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions only.

Invariants enforced:
    - Audit records are append-only; ORM listeners reject UPDATE and DELETE.
    - (entity_kind, entity_id, seq) is unique, so two writers can never both
      append the same position of one entity's chain.
    - hash = H(entity_kind | entity_id | seq | action | payload_hash | prev_hash).
      Validated by AuditRecorder.validate_chain.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, Integer, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from lifecycle_kernel.db.base import Base, UTCDateTime, UUIDString
from lifecycle_kernel.exceptions import ImmutabilityViolationError


class TransitionAuditRecord(Base):
    """
    One immutable row per successful transition.

    Guarantees:
        - seq starts at 1 per entity and increases by one per transition.
        - prev_hash is None only for an entity's first record.
    """

    __tablename__ = "lifecycle_audit_records"
    __table_args__ = (
        UniqueConstraint(
            "entity_kind", "entity_id", "seq", name="uq_audit_entity_seq"
        ),
        Index("idx_audit_entity", "entity_kind", "entity_id"),
        Index("idx_audit_org", "organization_id"),
        Index("idx_audit_occurred", "occurred_at"),
    )

    entity_kind: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Position within this entity's chain
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    from_state: Mapped[str] = mapped_column(String(50), nullable=False)
    to_state: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    # "metadata" is reserved on declarative classes
    record_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<TransitionAuditRecord {self.entity_kind}:{self.entity_id} "
            f"#{self.seq} {self.from_state}->{self.to_state}>"
        )

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None


@event.listens_for(TransitionAuditRecord, "before_update")
def _reject_audit_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="TransitionAuditRecord",
        entity_id=str(target.id),
        reason="Audit records are immutable and cannot be modified",
    )


@event.listens_for(TransitionAuditRecord, "before_delete")
def _reject_audit_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="TransitionAuditRecord",
        entity_id=str(target.id),
        reason="Audit records cannot be deleted",
    )
