from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.orm import Session, selectinload

from mfgorders.core.errors import MissingBillOfMaterials, RequestValidationFailed
from mfgorders.db.models.catalog import BillOfMaterial, BomComponent, Product

logger = logging.getLogger(__name__)

# Matches the scale of the quantity columns (Numeric(18, 6))
QUANTITY_QUANT = Decimal("0.000001")
COST_QUANT = Decimal("0.0001")

MAX_ORDER_QUANTITY = 1_000_000
# Integer digits left in Numeric(18, 6) and Numeric(18, 4)
QUANTITY_CEILING = Decimal(10) ** 12
COST_CEILING = Decimal(10) ** 14


def _dec(x) -> Decimal:
    return Decimal(str(x))


def scale_quantity(quantity_per_unit, quantity: int) -> Decimal:
    """quantity_per_unit x quantity, exact in Decimal and rounded half-up to 6 dp."""
    return (_dec(quantity_per_unit) * _dec(quantity)).quantize(QUANTITY_QUANT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class ComponentRequirement:
    sequence: int
    component: Product
    quantity_per_unit: Decimal
    quantity_required: Decimal

    @property
    def total_cost(self) -> Decimal:
        return (_dec(self.component.standard_cost or 0) * self.quantity_required).quantize(
            COST_QUANT, rounding=ROUND_HALF_UP
        )


@dataclass(frozen=True)
class BomExpansion:
    bom: BillOfMaterial
    quantity: int
    requirements: list[ComponentRequirement]


def find_active_bom(db: Session, product: Product) -> BillOfMaterial | None:
    """First active BOM owned by ``product`` (oldest first, then by version)."""
    return (
        db.query(BillOfMaterial)
        .options(selectinload(BillOfMaterial.components).selectinload(BomComponent.component_product))
        .filter(BillOfMaterial.product_id == product.id, BillOfMaterial.is_active == True)  # noqa: E712
        .order_by(BillOfMaterial.created_at.asc(), BillOfMaterial.version.asc())
        .first()
    )


def expand_bom(bom: BillOfMaterial, quantity: int) -> BomExpansion:
    if quantity is None or int(quantity) <= 0:
        raise RequestValidationFailed(["quantity: must be greater than 0"])
    if int(quantity) > MAX_ORDER_QUANTITY:
        raise RequestValidationFailed([f"quantity: must be at most {MAX_ORDER_QUANTITY}"])
    requirements = [
        ComponentRequirement(
            sequence=c.sequence,
            component=c.component_product,
            quantity_per_unit=_dec(c.quantity_per_unit),
            quantity_required=scale_quantity(c.quantity_per_unit, quantity),
        )
        for c in sorted(bom.components, key=lambda c: c.sequence)
    ]
    for req in requirements:
        # Compared unquantized: quantizing an oversized cost raises decimal.InvalidOperation
        raw_cost = _dec(req.component.standard_cost or 0) * req.quantity_required
        if req.quantity_required >= QUANTITY_CEILING or raw_cost >= COST_CEILING:
            raise RequestValidationFailed(
                [f"quantity: {quantity} x '{req.component.name}' exceeds the storable range"]
            )
    return BomExpansion(bom=bom, quantity=int(quantity), requirements=requirements)


def expand_for_product(db: Session, product: Product, quantity: int) -> BomExpansion:
    """Load the product's BOM and scale every component by ``quantity``.

    Raises ``MissingBillOfMaterials`` when the product has no active BOM; an
    order without components is never produced silently.
    """
    bom = find_active_bom(db, product)
    if bom is None:
        logger.warning("product %s (%s) has no active BOM", product.name, product.sku)
        raise MissingBillOfMaterials(product.name)
    return expand_bom(bom, quantity)
