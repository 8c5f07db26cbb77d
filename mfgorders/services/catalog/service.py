from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from mfgorders.core.errors import EntityNotFound, InvalidOperation, RequestValidationFailed
from mfgorders.db.models.catalog import (
    FINISHED_GOOD,
    PRODUCT_CATEGORIES,
    BillOfMaterial,
    BomComponent,
    BomOperation,
    Product,
)
from mfgorders.services.catalog.resolver import LIKE_ESCAPE, like_pattern

logger = logging.getLogger(__name__)


def num(value: Decimal | int | float | None) -> int | float | None:
    """JSON-friendly number: integral decimals become ints, others floats."""
    if value is None:
        return None
    d = Decimal(str(value))
    if d == d.to_integral_value():
        return int(d)
    return float(d)


def product_summary(p: Product) -> dict[str, Any]:
    return {"id": p.id, "name": p.name, "sku": p.sku, "category": p.category}


def serialize_product(p: Product) -> dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "sku": p.sku,
        "description": p.description,
        "category": p.category,
        "unit_of_measure": p.unit_of_measure,
        "standard_cost": num(p.standard_cost),
        "current_stock": num(p.current_stock),
        "reorder_point": num(p.reorder_point),
        "is_active": p.is_active,
    }


def serialize_bom(b: BillOfMaterial) -> dict[str, Any]:
    return {
        "id": b.id,
        "reference": b.reference,
        "version": b.version,
        "is_active": b.is_active,
        "product": product_summary(b.product),
        "components": [
            {
                "sequence": c.sequence,
                "component_product": {
                    "id": c.component_product.id,
                    "name": c.component_product.name,
                    "sku": c.component_product.sku,
                    "unit_of_measure": c.component_product.unit_of_measure,
                },
                "quantity_per_unit": num(c.quantity_per_unit),
            }
            for c in b.components
        ],
        "operations": [
            {
                "sequence": o.sequence,
                "operation": o.operation,
                "work_center": o.work_center,
                "expected_duration_minutes": o.expected_duration_minutes,
                "description": o.description,
            }
            for o in b.operations
        ],
    }


def get_product(db: Session, product_id: str) -> Product:
    p = db.query(Product).filter(Product.id == product_id).first()
    if not p:
        raise EntityNotFound("Product", product_id)
    return p


def list_products(db: Session, *, category: str | None = None, search: str | None = None, limit: int = 200) -> list[Product]:
    q = db.query(Product).filter(Product.is_active == True)  # noqa: E712
    if category:
        q = q.filter(Product.category == category)
    if search and search.strip():
        q = q.filter(Product.name.ilike(like_pattern(search.strip()), escape=LIKE_ESCAPE))
    return q.order_by(Product.name.asc()).limit(limit).all()


def create_product(db: Session, **fields: Any) -> Product:
    category = fields.get("category")
    if category not in PRODUCT_CATEGORIES:
        raise RequestValidationFailed([f"category: must be one of {', '.join(PRODUCT_CATEGORIES)}"])
    if db.query(Product).filter(Product.sku == fields["sku"]).first():
        raise InvalidOperation(f"Product SKU '{fields['sku']}' already exists")
    p = Product(**fields)
    db.add(p)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise InvalidOperation(f"Product SKU '{fields['sku']}' already exists") from exc
    db.refresh(p)
    logger.info("created product %s (%s)", p.name, p.sku)
    return p


def get_bom(db: Session, bom_id: str) -> BillOfMaterial:
    b = (
        db.query(BillOfMaterial)
        .options(
            selectinload(BillOfMaterial.components).selectinload(BomComponent.component_product),
            selectinload(BillOfMaterial.operations),
        )
        .filter(BillOfMaterial.id == bom_id)
        .first()
    )
    if not b:
        raise EntityNotFound("BOM", bom_id)
    return b


def list_boms(db: Session, *, product_id: str | None = None, limit: int = 200) -> list[BillOfMaterial]:
    q = db.query(BillOfMaterial).options(
        selectinload(BillOfMaterial.components).selectinload(BomComponent.component_product),
        selectinload(BillOfMaterial.operations),
    )
    if product_id:
        q = q.filter(BillOfMaterial.product_id == product_id)
    return q.order_by(BillOfMaterial.created_at.desc()).limit(limit).all()


def create_bom(
    db: Session,
    *,
    product_id: str,
    version: str,
    components: Iterable[dict],
    operations: Iterable[dict] = (),
    reference: str | None = None,
) -> BillOfMaterial:
    """Create a BOM for a finished good; all component products must exist.

    Components and operations are numbered by their position in the request.
    """
    product = get_product(db, product_id)
    if product.category != FINISHED_GOOD:
        raise InvalidOperation(f"Product '{product.name}' is not a finished good")
    if db.query(BillOfMaterial).filter(
        BillOfMaterial.product_id == product.id, BillOfMaterial.version == version
    ).first():
        raise InvalidOperation(f"BOM version '{version}' already exists for '{product.name}'")

    components = list(components)
    if not components:
        raise RequestValidationFailed(["components: at least one component is required"])

    b = BillOfMaterial(
        reference=reference or f"BOM-{str(uuid.uuid4())[:8].upper()}",
        product_id=product.id,
        version=version,
        is_active=True,
    )
    for i, ln in enumerate(components, start=1):
        component = get_product(db, ln["component_product_id"])
        if component.id == product.id:
            raise InvalidOperation("A product cannot be a component of its own BOM")
        b.components.append(
            BomComponent(sequence=i, component_product=component, quantity_per_unit=Decimal(str(ln["quantity_per_unit"])))
        )
    for i, op in enumerate(operations, start=1):
        b.operations.append(
            BomOperation(
                sequence=i,
                operation=op["operation"],
                work_center=op.get("work_center"),
                expected_duration_minutes=op.get("expected_duration_minutes") or 0,
                description=op.get("description"),
            )
        )
    db.add(b)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise InvalidOperation("BOM reference or version already exists") from exc
    logger.info("created BOM %s for %s with %d components", b.reference, product.name, len(b.components))
    return get_bom(db, b.id)
