"""Operator follow-up records for cascades that failed after commit."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lifecycle_kernel.db.base import Base, UTCDateTime, UUIDString


class CascadeFailure(Base):
    """
    A cascade that raised after its transition was committed.

    The state change stands; this row tells an operator (or
    ``CascadeHandler.retry_failures``) which follow-up writes are missing.
    ``request_payload`` keeps the original request payload so a retry sees
    the same inputs the first attempt did.
    """

    __tablename__ = "lifecycle_cascade_failures"
    __table_args__ = (
        Index("idx_cascade_failure_entity", "entity_kind", "entity_id"),
        Index("idx_cascade_failure_open", "resolved_at"),
    )

    entity_kind: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    from_state: Mapped[str] = mapped_column(String(50), nullable=False)
    to_state: Mapped[str] = mapped_column(String(50), nullable=False)
    audit_record_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    request_payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )

    error_type: Mapped[str] = mapped_column(String(200), nullable=False)
    error: Mapped[str] = mapped_column(Text, nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    last_attempt_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    resolved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    def __repr__(self) -> str:
        return (
            f"<CascadeFailure {self.entity_kind}:{self.entity_id} "
            f"{self.from_state}->{self.to_state} attempts={self.attempts}>"
        )
