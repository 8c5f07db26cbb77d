from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from mfgorders.core.security import ADMIN, MANUFACTURING_MANAGER, require_roles
from mfgorders.db.session import get_db
from mfgorders.services.catalog import service
from mfgorders.services.catalog.resolver import search_finished_goods

router = APIRouter(prefix="/api/v1", tags=["catalog"])


# ---- Schemas ----
class ProductIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    sku: str = Field(..., min_length=1, max_length=64)
    category: str = Field(..., max_length=32)  # RAW_MATERIAL|WORK_IN_PROGRESS|FINISHED_GOOD
    description: str | None = Field(default=None, max_length=1000)
    unit_of_measure: str = Field(default="Units", max_length=16)
    standard_cost: Decimal = Field(default=Decimal("0"), ge=0)
    current_stock: Decimal = Field(default=Decimal("0"), ge=0)
    reorder_point: Decimal = Field(default=Decimal("0"), ge=0)


class BomComponentIn(BaseModel):
    component_product_id: str
    quantity_per_unit: Decimal = Field(..., gt=0)


class BomOperationIn(BaseModel):
    operation: str = Field(..., max_length=128)
    work_center: str | None = Field(default=None, max_length=128)
    expected_duration_minutes: int = Field(default=0, ge=0)
    description: str | None = None


class BomIn(BaseModel):
    product_id: str
    version: str = Field(default="1.0", max_length=16)
    reference: str | None = Field(default=None, max_length=64)
    components: list[BomComponentIn] = Field(..., min_length=1)
    operations: list[BomOperationIn] = Field(default_factory=list)


# ---- Products ----
@router.get("/products")
def list_products(
    category: str | None = None,
    search: str | None = None,
    limit: int = 200,
    db: Session = Depends(get_db),
    principal=Depends(require_roles()),
):
    rows = service.list_products(db, category=category, search=search, limit=limit)
    return [service.serialize_product(p) for p in rows]


@router.get("/products/search")
def search_products(q: str = "", limit: int = 20, db: Session = Depends(get_db), principal=Depends(require_roles())):
    """Finished goods whose name contains ``q`` (for the order form's product picker)."""
    return [service.product_summary(p) for p in search_finished_goods(db, q, limit=limit)]


@router.post("/products", status_code=201)
def create_product(payload: ProductIn, db: Session = Depends(get_db), principal=Depends(require_roles(ADMIN))):
    p = service.create_product(db, **payload.model_dump())
    return service.serialize_product(p)


# ---- BOMs ----
@router.get("/boms")
def list_boms(product_id: str | None = None, db: Session = Depends(get_db), principal=Depends(require_roles())):
    return [service.serialize_bom(b) for b in service.list_boms(db, product_id=product_id)]


@router.get("/boms/{bom_id}")
def get_bom(bom_id: str, db: Session = Depends(get_db), principal=Depends(require_roles())):
    return service.serialize_bom(service.get_bom(db, bom_id))


@router.post("/boms", status_code=201)
def create_bom(
    payload: BomIn,
    db: Session = Depends(get_db),
    principal=Depends(require_roles(ADMIN, MANUFACTURING_MANAGER)),
):
    b = service.create_bom(
        db,
        product_id=payload.product_id,
        version=payload.version,
        reference=payload.reference,
        components=[c.model_dump() for c in payload.components],
        operations=[o.model_dump() for o in payload.operations],
    )
    return service.serialize_bom(b)
