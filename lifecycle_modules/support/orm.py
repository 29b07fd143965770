"""
SQLAlchemy ORM persistence models for the Support module.

Responsibility
--------------
Persist support tickets and their comment thread.  Resolution notes are
appended to the thread by the resolve cascade; each such comment is keyed
by the audit record of the transition that produced it, so a retried
cascade cannot post the same note twice.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lifecycle_kernel.db.base import LifecycleEntityBase, TrackedBase
from lifecycle_modules.support.models import TicketPriority


class SupportTicketModel(LifecycleEntityBase):
    """
    A customer support ticket.

    Guarantees:
        - ``status`` follows new -> open -> resolved -> closed, with
          new -> resolved allowed for tickets closed out on first touch.
        - ``assigned_to_user_id`` is set by the assign transition only.
    """

    __tablename__ = "support_tickets"

    __table_args__ = (
        Index("idx_ticket_status", "status"),
        Index("idx_ticket_assignee", "assigned_to_user_id"),
    )

    subject: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    requester_id: Mapped[UUID]
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketPriority.NORMAL.value
    )
    assigned_to_user_id: Mapped[UUID | None]
    assigned_at: Mapped[datetime | None]
    resolved_at: Mapped[datetime | None]
    resolved_by_id: Mapped[UUID | None]
    closed_at: Mapped[datetime | None]

    comments: Mapped[list["TicketCommentModel"]] = relationship(
        "TicketCommentModel",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketCommentModel.created_at",
        lazy="selectin",
    )


class TicketCommentModel(TrackedBase):
    """One comment on a ticket."""

    __tablename__ = "support_ticket_comments"

    __table_args__ = (
        Index("idx_ticket_comment_ticket", "ticket_id"),
    )

    ticket_id: Mapped[UUID] = mapped_column(
        ForeignKey("support_tickets.id"), nullable=False
    )
    author_id: Mapped[UUID]
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source_audit_record_id: Mapped[UUID | None] = mapped_column(unique=True)

    ticket: Mapped[SupportTicketModel] = relationship(
        "SupportTicketModel", back_populates="comments"
    )
