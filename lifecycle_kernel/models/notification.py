"""In-app notification inbox."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lifecycle_kernel.db.base import Base, UTCDateTime, UUIDString


class InAppNotification(Base):
    """A notification row shown in the recipient's inbox."""

    __tablename__ = "lifecycle_inbox_notifications"
    __table_args__ = (
        Index("idx_inbox_recipient", "recipient_id", "read"),
        Index("idx_inbox_source", "source_entity", "source_id"),
    )

    recipient_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    source_entity: Mapped[str] = mapped_column(String(50), nullable=False)
    source_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<InAppNotification {self.source_entity}:{self.source_id} -> {self.recipient_id}>"
