"""
SQLAlchemy ORM persistence models for the Events module.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lifecycle_kernel.db.base import LifecycleEntityBase


class EventRegistrationModel(LifecycleEntityBase):
    """
    One attendee's registration for one event.

    Guarantees:
        - An attendee registers at most once per event.
        - ``status`` follows active -> cancelled | checked_in.
        - ``cancellation_reason`` and ``cancelled_at`` are stamped once, by
          the cancel cascade, and never overwritten.
    """

    __tablename__ = "event_registrations"

    __table_args__ = (
        UniqueConstraint("event_id", "attendee_id", name="uq_registration_attendee"),
        Index("idx_registration_event", "event_id", "status"),
    )

    event_id: Mapped[UUID]
    event_name: Mapped[str] = mapped_column(String(200), nullable=False)
    attendee_id: Mapped[UUID]
    attendee_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ticket_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None]
    cancelled_by_id: Mapped[UUID | None]
    checked_in_at: Mapped[datetime | None]
    checked_in_by_id: Mapped[UUID | None]
