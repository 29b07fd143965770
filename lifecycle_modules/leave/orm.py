"""
SQLAlchemy ORM persistence models for the Leave module.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lifecycle_kernel.db.base import LifecycleEntityBase
from lifecycle_modules.leave.models import LeaveType


class LeaveRequestModel(LifecycleEntityBase):
    """
    An employee's request for time off.

    Guarantees:
        - ``status`` follows pending -> approved | rejected | cancelled.
        - A rejected request always carries ``rejection_reason``.
    """

    __tablename__ = "leave_requests"

    __table_args__ = (
        Index("idx_leave_request_employee", "employee_id"),
        Index("idx_leave_request_status", "status"),
    )

    employee_id: Mapped[UUID]
    leave_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default=LeaveType.ANNUAL.value
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    days: Mapped[Decimal] = mapped_column(default=Decimal("1"))
    request_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by_id: Mapped[UUID | None]
    reviewed_at: Mapped[datetime | None]
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None]
