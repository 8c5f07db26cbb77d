from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from mfgorders.core.config import Settings, app_settings
from mfgorders.core.security import (
    ADMIN,
    INVENTORY_MANAGER,
    MANUFACTURING_MANAGER,
    PRODUCTION_OPERATOR,
    Principal,
    require_roles,
)
from mfgorders.db.session import get_db
from mfgorders.services.catalog.bom import MAX_ORDER_QUANTITY
from mfgorders.services.manufacturing import service

router = APIRouter(prefix="/api/v1/manufacturing-orders", tags=["manufacturing"])

_planners = require_roles(ADMIN, MANUFACTURING_MANAGER)
_floor = require_roles(ADMIN, MANUFACTURING_MANAGER, PRODUCTION_OPERATOR)
_inventory = require_roles(ADMIN, MANUFACTURING_MANAGER, INVENTORY_MANAGER)

Priority = Literal["Low", "Medium", "High"]


# ---- Schemas ----
class OrderByProductSearchIn(BaseModel):
    product_search: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0, le=MAX_ORDER_QUANTITY)
    planned_start_date: date
    planned_end_date: date
    priority: Priority = "Medium"
    description: str | None = Field(default=None, max_length=2000)


class OrderForProductIn(BaseModel):
    product_id: str
    bom_id: str | None = None
    quantity: int = Field(..., gt=0, le=MAX_ORDER_QUANTITY)
    planned_start_date: date
    planned_end_date: date
    priority: Priority = "Medium"
    description: str | None = Field(default=None, max_length=2000)


class OrderUpdateIn(BaseModel):
    quantity: int | None = Field(default=None, gt=0, le=MAX_ORDER_QUANTITY)
    planned_start_date: date | None = None
    planned_end_date: date | None = None
    priority: Priority | None = None
    description: str | None = Field(default=None, max_length=2000)


class StatusIn(BaseModel):
    status: str
    notes: str | None = None


class CancelIn(BaseModel):
    reason: str | None = None


# ---- Create ----
@router.post("/by-product-search", status_code=201)
def create_by_product_search(
    payload: OrderByProductSearchIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(app_settings),
    principal: Principal = Depends(_planners),
):
    order = service.create_order_by_product_search(
        db,
        product_search=payload.product_search,
        quantity=payload.quantity,
        planned_start_date=payload.planned_start_date,
        planned_end_date=payload.planned_end_date,
        priority=payload.priority,
        description=payload.description,
        actor=principal.username,
        settings=settings,
    )
    return {"manufacturing_order": service.serialize_order(order)}


@router.post("", status_code=201)
def create_for_product(
    payload: OrderForProductIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(app_settings),
    principal: Principal = Depends(_planners),
):
    order = service.create_order_for_product(
        db,
        product_id=payload.product_id,
        bom_id=payload.bom_id,
        quantity=payload.quantity,
        planned_start_date=payload.planned_start_date,
        planned_end_date=payload.planned_end_date,
        priority=payload.priority,
        description=payload.description,
        actor=principal.username,
        settings=settings,
    )
    return {"manufacturing_order": service.serialize_order(order)}


# ---- Read ----
@router.get("")
def list_orders(
    status: str | None = None,
    priority: str | None = None,
    product_id: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(app_settings),
    principal: Principal = Depends(_floor),
):
    limit = min(limit or settings.default_page_size, settings.max_page_size)
    rows, total = service.list_orders(db, status=status, priority=priority, product_id=product_id, page=page, limit=limit)
    return {
        "data": [service.serialize_order(o) for o in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


@router.get("/statistics")
def statistics(db: Session = Depends(get_db), principal: Principal = Depends(_planners)):
    counts = service.order_statistics(db)
    return {"data": counts, "total": sum(counts.values())}


@router.get("/{order_id}")
def get_order(order_id: str, db: Session = Depends(get_db), principal: Principal = Depends(_floor)):
    return {"manufacturing_order": service.serialize_order(service.get_order(db, order_id))}


@router.get("/{order_id}/material-requirements")
def material_requirements(order_id: str, db: Session = Depends(get_db), principal: Principal = Depends(_inventory)):
    return {"data": service.material_requirements(service.get_order(db, order_id))}


# ---- Update ----
@router.put("/{order_id}")
def update_order(
    order_id: str,
    payload: OrderUpdateIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(_planners),
):
    # Only fields present in the body are changed
    changes = payload.model_dump(exclude_unset=True)
    order = service.update_order(db, order_id, changes, actor=principal.username)
    return {"manufacturing_order": service.serialize_order(order)}


@router.patch("/{order_id}/status")
def update_status(
    order_id: str,
    payload: StatusIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(_floor),
):
    order = service.update_status(db, order_id, status=payload.status, notes=payload.notes, actor=principal.username)
    return {"manufacturing_order": service.serialize_order(order)}


@router.patch("/{order_id}/cancel")
def cancel(
    order_id: str,
    payload: CancelIn | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(_planners),
):
    order = service.cancel_order(db, order_id, reason=payload.reason if payload else None, actor=principal.username)
    return {"manufacturing_order": service.serialize_order(order)}
