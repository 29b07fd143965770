"""
SQLAlchemy ORM persistence models for the Procurement module.

Responsibility
--------------
Persist purchase orders and their line items.  The order's ``status`` and
``version`` are owned by the lifecycle engine; everything else is written
by the procurement collaborator that creates the order.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* ``PurchaseOrderLineModel`` belongs to exactly one ``PurchaseOrderModel``.
* Approval and rejection stamps are written by the same conditional
  UPDATE that moves the status.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lifecycle_kernel.db.base import LifecycleEntityBase, TrackedBase


class PurchaseOrderModel(LifecycleEntityBase):
    """
    A purchase order awaiting (or past) approval.

    Guarantees:
        - ``po_number`` is unique.
        - ``status`` follows draft -> pending_approval -> approved | rejected.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_purchase_order_number"),
        Index("idx_purchase_order_status", "status"),
        Index("idx_purchase_order_requester", "requester_id"),
    )

    po_number: Mapped[str] = mapped_column(String(50), nullable=False)
    vendor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    requester_id: Mapped[UUID]
    approver_id: Mapped[UUID | None]
    submitted_at: Mapped[datetime | None]
    approved_by_id: Mapped[UUID | None]
    approved_at: Mapped[datetime | None]
    rejected_by_id: Mapped[UUID | None]
    rejected_at: Mapped[datetime | None]
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["PurchaseOrderLineModel"]] = relationship(
        "PurchaseOrderLineModel",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseOrderLineModel.line_number",
    )


class PurchaseOrderLineModel(TrackedBase):
    """A single line item on a purchase order."""

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        UniqueConstraint(
            "purchase_order_id", "line_number", name="uq_purchase_order_line"
        ),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(default=Decimal("1"))
    unit_price: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    purchase_order: Mapped[PurchaseOrderModel] = relationship(
        "PurchaseOrderModel", back_populates="lines"
    )

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price
