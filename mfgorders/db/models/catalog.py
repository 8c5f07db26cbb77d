"""
Product catalog and bills of materials.

These tables are the read store of the order flow: products and BOMs are
maintained through the catalog endpoints (or the demo seed) and only read when
an order is created.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mfgorders.db.base import Base
from mfgorders.db.models.common import HasId, HasCreatedAt

RAW_MATERIAL = "RAW_MATERIAL"
WORK_IN_PROGRESS = "WORK_IN_PROGRESS"
FINISHED_GOOD = "FINISHED_GOOD"
PRODUCT_CATEGORIES = (RAW_MATERIAL, WORK_IN_PROGRESS, FINISHED_GOOD)


class Product(Base, HasId, HasCreatedAt):
    __tablename__ = "catalog_product"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)  # RAW_MATERIAL|WORK_IN_PROGRESS|FINISHED_GOOD
    unit_of_measure: Mapped[str] = mapped_column(String(16), default="Units", nullable=False)

    standard_cost: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=0, nullable=False)
    current_stock: Mapped[Decimal] = mapped_column(Numeric(18, 6), default=0, nullable=False)
    reorder_point: Mapped[Decimal] = mapped_column(Numeric(18, 6), default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class BillOfMaterial(Base, HasId, HasCreatedAt):
    __tablename__ = "catalog_bom"
    __table_args__ = (
        UniqueConstraint("product_id", "version", name="uq_catalog_bom_product_version"),
    )

    reference: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("catalog_product.id"), nullable=False, index=True)
    version: Mapped[str] = mapped_column(String(16), default="1.0", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    product: Mapped[Product] = relationship("Product")
    components: Mapped[List["BomComponent"]] = relationship(
        "BomComponent",
        back_populates="bom",
        cascade="all, delete-orphan",
        order_by="BomComponent.sequence",
    )
    operations: Mapped[List["BomOperation"]] = relationship(
        "BomOperation",
        back_populates="bom",
        cascade="all, delete-orphan",
        order_by="BomOperation.sequence",
    )


class BomComponent(Base, HasId, HasCreatedAt):
    __tablename__ = "catalog_bom_component"

    bom_id: Mapped[str] = mapped_column(String(36), ForeignKey("catalog_bom.id"), nullable=False, index=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    component_product_id: Mapped[str] = mapped_column(String(36), ForeignKey("catalog_product.id"), nullable=False)
    # Quantity of the component consumed per unit of the parent product
    quantity_per_unit: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)

    bom: Mapped[BillOfMaterial] = relationship("BillOfMaterial", back_populates="components")
    component_product: Mapped[Product] = relationship("Product")


class BomOperation(Base, HasId, HasCreatedAt):
    __tablename__ = "catalog_bom_operation"

    bom_id: Mapped[str] = mapped_column(String(36), ForeignKey("catalog_bom.id"), nullable=False, index=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    operation: Mapped[str] = mapped_column(String(128), nullable=False)
    work_center: Mapped[str | None] = mapped_column(String(128), nullable=True)
    expected_duration_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    bom: Mapped[BillOfMaterial] = relationship("BillOfMaterial", back_populates="operations")


Index("ix_catalog_product_category_active", Product.category, Product.is_active)
