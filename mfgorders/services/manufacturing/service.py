"""
Manufacturing order service.

Order creation runs in two phases: a read phase (product resolution and BOM
expansion) that may fail with domain errors before anything is written, then a
single transaction that allocates the reference and writes the header, the
required-component rows and the audit record together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from mfgorders.core.audit import audit
from mfgorders.core.config import Settings
from mfgorders.core.errors import (
    EntityNotFound,
    InvalidOperation,
    PersistenceError,
    RequestValidationFailed,
)
from mfgorders.db.models.catalog import FINISHED_GOOD, BillOfMaterial
from mfgorders.db.models.manufacturing import (
    ORDER_STATUSES,
    PRIORITIES,
    STATUS_CANCELLED,
    STATUS_DONE,
    STATUS_DRAFT,
    ManufacturingOrder,
    ManufacturingOrderComponent,
)
from mfgorders.services.catalog import service as catalog
from mfgorders.services.catalog.bom import MAX_ORDER_QUANTITY, BomExpansion, expand_bom, expand_for_product
from mfgorders.services.catalog.resolver import resolve_product
from mfgorders.services.catalog.service import num, product_summary
from mfgorders.services.manufacturing.references import next_order_reference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderPlan:
    quantity: int
    planned_start_date: date
    planned_end_date: date
    priority: str = "Medium"
    description: str | None = None


def validate_plan(plan: OrderPlan) -> None:
    errors: list[str] = []
    if plan.quantity is None or plan.quantity <= 0:
        errors.append("quantity: must be greater than 0")
    elif plan.quantity > MAX_ORDER_QUANTITY:
        errors.append(f"quantity: must be at most {MAX_ORDER_QUANTITY}")
    if plan.planned_start_date is None:
        errors.append("planned_start_date: is required")
    if plan.planned_end_date is None:
        errors.append("planned_end_date: is required")
    if plan.planned_start_date and plan.planned_end_date and plan.planned_start_date > plan.planned_end_date:
        errors.append("planned_end_date: must be on or after planned_start_date")
    if plan.priority not in PRIORITIES:
        errors.append(f"priority: must be one of {', '.join(PRIORITIES)}")
    if errors:
        raise RequestValidationFailed(errors)


def _persist_order(
    db: Session,
    *,
    expansion: BomExpansion,
    plan: OrderPlan,
    actor: str,
    settings: Settings,
) -> ManufacturingOrder:
    bom = expansion.bom
    try:
        reference = next_order_reference(db, settings.mo_reference_prefix)
        order = ManufacturingOrder(
            reference=reference,
            product_id=bom.product_id,
            bom_id=bom.id,
            quantity=expansion.quantity,
            planned_start_date=plan.planned_start_date,
            planned_end_date=plan.planned_end_date,
            priority=plan.priority,
            description=plan.description,
            status=STATUS_DRAFT,
            created_by=actor,
        )
        for req in expansion.requirements:
            order.components.append(
                ManufacturingOrderComponent(
                    sequence=req.sequence,
                    component_product_id=req.component.id,
                    quantity_per_unit=req.quantity_per_unit,
                    quantity_required=req.quantity_required,
                    total_cost=req.total_cost,
                )
            )
        db.add(order)
        db.flush()
        audit(
            db,
            actor=actor,
            action="manufacturing_order.created",
            entity_type="manufacturing_order",
            entity_id=order.id,
            payload={
                "reference": reference,
                "product_id": bom.product_id,
                "bom_id": bom.id,
                "quantity": expansion.quantity,
                "components": len(expansion.requirements),
            },
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("failed to persist manufacturing order for BOM %s", bom.reference)
        raise PersistenceError("Failed to create manufacturing order") from exc

    logger.info(
        "created manufacturing order %s: %s x %s (%d components)",
        order.reference,
        expansion.quantity,
        bom.product.name,
        len(expansion.requirements),
    )
    return get_order(db, order.id)


def create_order_by_product_search(
    db: Session,
    *,
    product_search: str,
    quantity: int,
    planned_start_date: date,
    planned_end_date: date,
    priority: str = "Medium",
    description: str | None = None,
    actor: str = "anonymous",
    settings: Settings | None = None,
) -> ManufacturingOrder:
    """Resolve a finished good by name, expand its BOM and persist the order.

    Resolution and expansion errors propagate unchanged and happen before any
    write. Storage failures surface as ``PersistenceError`` with nothing
    committed, so the call is safe to retry.
    """
    plan = OrderPlan(
        quantity=quantity,
        planned_start_date=planned_start_date,
        planned_end_date=planned_end_date,
        priority=priority,
        description=description,
    )
    validate_plan(plan)
    product = resolve_product(db, product_search)
    expansion = expand_for_product(db, product, quantity)
    return _persist_order(db, expansion=expansion, plan=plan, actor=actor, settings=settings or Settings())


def create_order_for_product(
    db: Session,
    *,
    product_id: str,
    quantity: int,
    planned_start_date: date,
    planned_end_date: date,
    bom_id: str | None = None,
    priority: str = "Medium",
    description: str | None = None,
    actor: str = "anonymous",
    settings: Settings | None = None,
) -> ManufacturingOrder:
    plan = OrderPlan(
        quantity=quantity,
        planned_start_date=planned_start_date,
        planned_end_date=planned_end_date,
        priority=priority,
        description=description,
    )
    validate_plan(plan)
    product = catalog.get_product(db, product_id)
    if product.category != FINISHED_GOOD:
        raise InvalidOperation(f"Product '{product.name}' is not a finished good")
    if bom_id:
        bom = catalog.get_bom(db, bom_id)
        if bom.product_id != product.id:
            raise InvalidOperation(f"BOM '{bom.reference}' does not belong to '{product.name}'")
        expansion = expand_bom(bom, quantity)
    else:
        expansion = expand_for_product(db, product, quantity)
    return _persist_order(db, expansion=expansion, plan=plan, actor=actor, settings=settings or Settings())


def _order_query(db: Session):
    return db.query(ManufacturingOrder).options(
        selectinload(ManufacturingOrder.product),
        selectinload(ManufacturingOrder.bom),
        selectinload(ManufacturingOrder.components).selectinload(ManufacturingOrderComponent.component_product),
    )


def get_order(db: Session, order_id: str) -> ManufacturingOrder:
    o = _order_query(db).filter(ManufacturingOrder.id == order_id).first()
    if not o:
        raise EntityNotFound("Manufacturing order", order_id)
    return o


def list_orders(
    db: Session,
    *,
    status: str | None = None,
    priority: str | None = None,
    product_id: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[ManufacturingOrder], int]:
    q = _order_query(db)
    if status:
        q = q.filter(ManufacturingOrder.status == status)
    if priority:
        q = q.filter(ManufacturingOrder.priority == priority)
    if product_id:
        q = q.filter(ManufacturingOrder.product_id == product_id)
    total = q.order_by(None).count()
    rows = (
        q.order_by(
            ManufacturingOrder.created_at.desc(),
            # MO-1000000 is newer than MO-999999
            func.length(ManufacturingOrder.reference).desc(),
            ManufacturingOrder.reference.desc(),
        )
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def order_statistics(db: Session) -> dict[str, int]:
    counts = dict(
        db.query(ManufacturingOrder.status, func.count(ManufacturingOrder.id))
        .group_by(ManufacturingOrder.status)
        .all()
    )
    return {s: int(counts.get(s, 0)) for s in ORDER_STATUSES}


def _commit(db: Session, action: str, order: ManufacturingOrder) -> ManufacturingOrder:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("failed to %s manufacturing order %s", action, order.reference)
        raise PersistenceError(f"Failed to {action} manufacturing order") from exc
    return get_order(db, order.id)


def update_status(db: Session, order_id: str, *, status: str, notes: str | None = None, actor: str) -> ManufacturingOrder:
    """Set any listed status; transitions are not restricted except out of Cancelled."""
    if status not in ORDER_STATUSES:
        raise RequestValidationFailed([f"status: must be one of {', '.join(ORDER_STATUSES)}"])
    o = get_order(db, order_id)
    if o.status == STATUS_CANCELLED and status != STATUS_CANCELLED:
        raise InvalidOperation(f"Manufacturing order {o.reference} is cancelled")
    previous = o.status
    o.status = status
    if status == STATUS_DONE:
        o.progress = 100
    if notes:
        o.notes = notes
    audit(
        db,
        actor=actor,
        action="manufacturing_order.status_changed",
        entity_type="manufacturing_order",
        entity_id=o.id,
        payload={"reference": o.reference, "from": previous, "to": status, "notes": notes},
    )
    return _commit(db, "update", o)


def cancel_order(db: Session, order_id: str, *, reason: str | None = None, actor: str) -> ManufacturingOrder:
    o = get_order(db, order_id)
    if o.status in (STATUS_DONE, STATUS_CANCELLED):
        raise InvalidOperation(f"Manufacturing order {o.reference} is {o.status} and cannot be cancelled")
    previous = o.status
    o.status = STATUS_CANCELLED
    if reason:
        o.notes = reason
    audit(
        db,
        actor=actor,
        action="manufacturing_order.cancelled",
        entity_type="manufacturing_order",
        entity_id=o.id,
        payload={"reference": o.reference, "from": previous, "reason": reason},
    )
    return _commit(db, "cancel", o)


EDITABLE_FIELDS = ("quantity", "planned_start_date", "planned_end_date", "priority", "description")


def update_order(db: Session, order_id: str, changes: dict[str, Any], *, actor: str) -> ManufacturingOrder:
    """Edit the plan of an open order.

    The merged plan is validated as a whole. A new quantity rescales the
    required components from the order's BOM in the same transaction.
    """
    o = get_order(db, order_id)
    if o.status in (STATUS_DONE, STATUS_CANCELLED):
        raise InvalidOperation(f"Manufacturing order {o.reference} is {o.status} and cannot be edited")

    changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
    plan = OrderPlan(
        quantity=changes.get("quantity", o.quantity),
        planned_start_date=changes.get("planned_start_date", o.planned_start_date),
        planned_end_date=changes.get("planned_end_date", o.planned_end_date),
        priority=changes.get("priority", o.priority),
        description=changes.get("description", o.description),
    )
    validate_plan(plan)

    rescaled = plan.quantity != o.quantity
    if rescaled:
        expansion = expand_bom(o.bom, plan.quantity)
        o.components.clear()
        for req in expansion.requirements:
            o.components.append(
                ManufacturingOrderComponent(
                    sequence=req.sequence,
                    component_product_id=req.component.id,
                    quantity_per_unit=req.quantity_per_unit,
                    quantity_required=req.quantity_required,
                    total_cost=req.total_cost,
                )
            )

    previous = {k: getattr(o, k) for k in changes}
    o.quantity = plan.quantity
    o.planned_start_date = plan.planned_start_date
    o.planned_end_date = plan.planned_end_date
    o.priority = plan.priority
    o.description = plan.description
    audit(
        db,
        actor=actor,
        action="manufacturing_order.updated",
        entity_type="manufacturing_order",
        entity_id=o.id,
        payload={"reference": o.reference, "from": previous, "to": changes, "components_rescaled": rescaled},
    )
    return _commit(db, "update", o)


def material_requirements(order: ManufacturingOrder) -> dict[str, Any]:
    lines = []
    for c in order.components:
        on_hand = Decimal(str(c.component_product.current_stock or 0))
        required = Decimal(str(c.quantity_required))
        shortage = max(required - on_hand, Decimal("0"))
        lines.append(
            {
                "component_product": {
                    "id": c.component_product.id,
                    "name": c.component_product.name,
                    "sku": c.component_product.sku,
                    "unit_of_measure": c.component_product.unit_of_measure,
                },
                "quantity_required": num(required),
                "current_stock": num(on_hand),
                "shortage": num(shortage),
                "available": shortage == 0,
            }
        )
    return {
        "reference": order.reference,
        "quantity": order.quantity,
        "components": lines,
        "all_available": all(ln["available"] for ln in lines),
    }


def serialize_order(o: ManufacturingOrder) -> dict[str, Any]:
    bom: BillOfMaterial | None = o.bom
    return {
        "id": o.id,
        "reference": o.reference,
        "status": o.status,
        "priority": o.priority,
        "description": o.description,
        "notes": o.notes,
        "quantity": o.quantity,
        "planned_start_date": o.planned_start_date.isoformat(),
        "planned_end_date": o.planned_end_date.isoformat(),
        "progress": o.progress,
        "product": product_summary(o.product),
        "bom": {"id": bom.id, "reference": bom.reference, "version": bom.version} if bom else None,
        "components_required": [
            {
                "component_product": {
                    "id": c.component_product.id,
                    "name": c.component_product.name,
                    "sku": c.component_product.sku,
                    "unit_of_measure": c.component_product.unit_of_measure,
                },
                "quantity_per_unit": num(c.quantity_per_unit),
                "quantity_required": num(c.quantity_required),
                "total_cost": num(c.total_cost),
            }
            for c in o.components
        ],
        "created_by": o.created_by,
        "created_at": o.created_at.isoformat() if o.created_at else None,
    }
