"""
Demo catalog: raw materials, three finished goods and their BOMs.

Idempotent by SKU and BOM reference, so it can be re-run against a populated
database. Run with ``python -m mfgorders.services.catalog.seed``.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from mfgorders.db.models.catalog import (
    FINISHED_GOOD,
    RAW_MATERIAL,
    BillOfMaterial,
    BomComponent,
    BomOperation,
    Product,
)

logger = logging.getLogger(__name__)

PRODUCTS = [
    # sku, name, category, uom, standard_cost, current_stock, reorder_point
    ("WTT-001", "Wooden Table Top", RAW_MATERIAL, "Units", "25.00", 50, 10),
    ("TL-001", "Table Leg", RAW_MATERIAL, "Units", "8.50", 200, 50),
    ("SCR-001", "Wood Screws", RAW_MATERIAL, "Units", "0.15", 1000, 200),
    ("VAR-001", "Wood Varnish", RAW_MATERIAL, "Liters", "12.00", 20, 5),
    ("CS-001", "Chair Seat", RAW_MATERIAL, "Units", "14.00", 40, 10),
    ("CL-001", "Chair Leg", RAW_MATERIAL, "Units", "4.25", 160, 40),
    ("WT-001", "Wooden Table", FINISHED_GOOD, "Units", "85.00", 5, 2),
    ("CT-001", "Coffee Table", FINISHED_GOOD, "Units", "65.00", 3, 1),
    ("WC-001", "Wooden Chair", FINISHED_GOOD, "Units", "45.00", 8, 2),
]

BOMS = [
    # reference, parent sku, [(component sku, qty per unit)], [(operation, work center, minutes)]
    (
        "BOM-WT-001",
        "WT-001",
        [("WTT-001", "1"), ("TL-001", "4"), ("SCR-001", "12"), ("VAR-001", "1")],
        [("Assembly", "Assembly Station 1", 45), ("Finishing", "Finishing Station", 30)],
    ),
    (
        "BOM-CT-001",
        "CT-001",
        [("WTT-001", "1"), ("TL-001", "4"), ("SCR-001", "8"), ("VAR-001", "0.5")],
        [("Assembly", "Assembly Station 1", 30), ("Finishing", "Finishing Station", 20)],
    ),
    (
        "BOM-WC-001",
        "WC-001",
        [("CL-001", "4"), ("CS-001", "1"), ("SCR-001", "8")],
        [("Assembly", "Assembly Station 1", 25)],
    ),
]


def seed_demo_catalog(db: Session) -> dict[str, int]:
    created = {"products": 0, "boms": 0}
    by_sku: dict[str, Product] = {}
    for sku, name, category, uom, cost, stock, reorder in PRODUCTS:
        p = db.query(Product).filter(Product.sku == sku).first()
        if not p:
            p = Product(
                sku=sku,
                name=name,
                category=category,
                unit_of_measure=uom,
                standard_cost=Decimal(cost),
                current_stock=Decimal(stock),
                reorder_point=Decimal(reorder),
                is_active=True,
            )
            db.add(p)
            created["products"] += 1
        by_sku[sku] = p
    db.flush()

    for reference, parent_sku, components, operations in BOMS:
        if db.query(BillOfMaterial).filter(BillOfMaterial.reference == reference).first():
            continue
        b = BillOfMaterial(reference=reference, product_id=by_sku[parent_sku].id, version="1.0", is_active=True)
        for i, (sku, qty) in enumerate(components, start=1):
            b.components.append(BomComponent(sequence=i, component_product_id=by_sku[sku].id, quantity_per_unit=Decimal(qty)))
        for i, (operation, work_center, minutes) in enumerate(operations, start=1):
            b.operations.append(
                BomOperation(sequence=i, operation=operation, work_center=work_center, expected_duration_minutes=minutes)
            )
        db.add(b)
        created["boms"] += 1

    db.commit()
    logger.info("seeded demo catalog: %(products)d products, %(boms)d BOMs", created)
    return created


if __name__ == "__main__":
    from mfgorders.core.config import get_settings
    from mfgorders.core.logging_config import configure_logging
    from mfgorders.db.session import build_engine, build_session_factory

    settings = get_settings()
    configure_logging(settings.log_level)
    SessionLocal = build_session_factory(build_engine(settings.database_url))
    with SessionLocal() as db:
        seed_demo_catalog(db)
