"""
Manufacturing orders and their required components.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mfgorders.db.base import Base
from mfgorders.db.models.common import HasId, HasCreatedAt
from mfgorders.db.models.catalog import Product, BillOfMaterial

STATUS_DRAFT = "Draft"
STATUS_CONFIRMED = "Confirmed"
STATUS_IN_PROGRESS = "In-Progress"
STATUS_TO_CLOSE = "To-Close"
STATUS_DONE = "Done"
STATUS_CANCELLED = "Cancelled"
ORDER_STATUSES = (
    STATUS_DRAFT,
    STATUS_CONFIRMED,
    STATUS_IN_PROGRESS,
    STATUS_TO_CLOSE,
    STATUS_DONE,
    STATUS_CANCELLED,
)

PRIORITIES = ("Low", "Medium", "High")


class ManufacturingOrder(Base, HasId, HasCreatedAt):
    __tablename__ = "mfg_order"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_mfg_order_quantity_positive"),
        CheckConstraint("planned_start_date <= planned_end_date", name="ck_mfg_order_planned_dates"),
    )

    reference: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("catalog_product.id"), nullable=False, index=True)
    bom_id: Mapped[str] = mapped_column(String(36), ForeignKey("catalog_bom.id"), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    planned_start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    planned_end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    priority: Mapped[str] = mapped_column(String(16), default="Medium", nullable=False, index=True)  # Low|Medium|High
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=STATUS_DRAFT, nullable=False, index=True)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # 0..100
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by: Mapped[str] = mapped_column(String(128), nullable=False, default="anonymous")

    product: Mapped[Product] = relationship("Product")
    bom: Mapped[Optional[BillOfMaterial]] = relationship("BillOfMaterial")
    components: Mapped[List["ManufacturingOrderComponent"]] = relationship(
        "ManufacturingOrderComponent",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ManufacturingOrderComponent.sequence",
    )


class ManufacturingOrderComponent(Base, HasId, HasCreatedAt):
    """A component the order must consume: BOM quantity per unit scaled by the order quantity."""

    __tablename__ = "mfg_order_component"

    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("mfg_order.id"), nullable=False, index=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    component_product_id: Mapped[str] = mapped_column(String(36), ForeignKey("catalog_product.id"), nullable=False)

    quantity_per_unit: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    quantity_required: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=0, nullable=False)

    order: Mapped[ManufacturingOrder] = relationship("ManufacturingOrder", back_populates="components")
    component_product: Mapped[Product] = relationship("Product")


class ReferenceSequence(Base):
    """Named counters backing human-readable document references (MO-000001, ...)."""

    __tablename__ = "mfg_reference_sequence"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


Index("ix_mfg_order_status_created", ManufacturingOrder.status, ManufacturingOrder.created_at)
