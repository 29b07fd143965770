"""
SQLAlchemy ORM persistence models for the Timekeeping module.

A time entry is one clock-in / clock-out span submitted for review.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lifecycle_kernel.db.base import LifecycleEntityBase


class TimeEntryModel(LifecycleEntityBase):
    """
    A submitted time punch.

    Guarantees:
        - ``status`` follows submitted -> approved | rejected.
        - An entry without ``clock_out`` and computed ``hours`` cannot be approved.
    """

    __tablename__ = "time_entries"

    __table_args__ = (
        Index("idx_time_entry_employee", "employee_id", "work_date"),
        Index("idx_time_entry_status", "status"),
    )

    employee_id: Mapped[UUID]
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    clock_in: Mapped[datetime]
    clock_out: Mapped[datetime | None]
    hours: Mapped[Decimal | None]
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    approved_by_id: Mapped[UUID | None]
    approved_at: Mapped[datetime | None]
    rejected_by_id: Mapped[UUID | None]
    rejected_at: Mapped[datetime | None]
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
