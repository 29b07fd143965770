"""
SQLAlchemy ORM persistence models for the Payroll module.

Responsibility
--------------
Persist payroll runs and their per-employee items.  The run's status is
owned by the lifecycle engine; item statuses are written only by the
payroll cascades, after the run's transition has committed.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* ``PayrollItemModel`` belongs to exactly one ``PayrollRunModel``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lifecycle_kernel.db.base import LifecycleEntityBase, TrackedBase
from lifecycle_modules.payroll.models import PayrollItemStatus


class PayrollRunModel(LifecycleEntityBase):
    """
    One pay period's payroll for an organization.

    Guarantees:
        - ``status`` follows pending_approval -> approved -> paid.
    """

    __tablename__ = "payroll_runs"

    __table_args__ = (
        Index("idx_payroll_run_status", "status"),
        Index("idx_payroll_run_period", "period_start", "period_end"),
    )

    run_name: Mapped[str] = mapped_column(String(200), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_gross: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    prepared_by_id: Mapped[UUID | None]
    approved_by_id: Mapped[UUID | None]
    approved_at: Mapped[datetime | None]
    processed_by_id: Mapped[UUID | None]
    paid_at: Mapped[datetime | None]

    items: Mapped[list["PayrollItemModel"]] = relationship(
        "PayrollItemModel",
        back_populates="payroll_run",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PayrollItemModel(TrackedBase):
    """A single employee's pay within a run."""

    __tablename__ = "payroll_items"

    __table_args__ = (
        Index("idx_payroll_item_run", "payroll_run_id"),
        Index("idx_payroll_item_employee", "employee_id"),
    )

    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_runs.id"), nullable=False
    )
    employee_id: Mapped[UUID]
    gross_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    net_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=PayrollItemStatus.PENDING.value
    )
    approved_at: Mapped[datetime | None]
    paid_at: Mapped[datetime | None]

    payroll_run: Mapped[PayrollRunModel] = relationship(
        "PayrollRunModel", back_populates="items"
    )
