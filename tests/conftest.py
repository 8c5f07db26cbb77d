"""
Shared fixtures.

Tests run against in-memory SQLite through the real app factory; the schema is
created by ``CREATE_SCHEMA`` rather than migrations.
"""
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from mfgorders.core.config import Settings
from mfgorders.core.security import (
    ADMIN,
    INVENTORY_MANAGER,
    MANUFACTURING_MANAGER,
    PRODUCTION_OPERATOR,
    create_access_token,
)
from mfgorders.db.models.catalog import (
    FINISHED_GOOD,
    RAW_MATERIAL,
    BillOfMaterial,
    BomComponent,
    Product,
)
from mfgorders.main import create_app

START = date(2025, 9, 21)
END = date(2025, 9, 25)


def make_settings(database_url="sqlite://"):
    return Settings(
        database_url=database_url,
        jwt_secret="test-secret",
        create_schema=True,
        log_level="WARNING",
    )


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def token_for(settings):
    def _make(*roles, subject="planner@example.com"):
        return {"Authorization": f"Bearer {create_access_token(settings, subject, roles)}"}

    return _make


@pytest.fixture
def planner(token_for):
    return token_for(MANUFACTURING_MANAGER)


@pytest.fixture
def admin(token_for):
    return token_for(ADMIN, subject="admin@example.com")


@pytest.fixture
def operator(token_for):
    return token_for(PRODUCTION_OPERATOR, subject="operator@example.com")


@pytest.fixture
def inventory(token_for):
    return token_for(INVENTORY_MANAGER, subject="stock@example.com")


def add_product(db, name, sku, category=RAW_MATERIAL, cost="0", stock="0", active=True):
    p = Product(
        name=name,
        sku=sku,
        category=category,
        unit_of_measure="Units",
        standard_cost=Decimal(cost),
        current_stock=Decimal(stock),
        reorder_point=Decimal("0"),
        is_active=active,
    )
    db.add(p)
    db.flush()
    return p


def add_bom(db, product, reference, components, version="1.0", active=True):
    b = BillOfMaterial(reference=reference, product_id=product.id, version=version, is_active=active)
    for i, (component, qty) in enumerate(components, start=1):
        b.components.append(BomComponent(sequence=i, component_product_id=component.id, quantity_per_unit=Decimal(str(qty))))
    db.add(b)
    db.flush()
    return b


@pytest.fixture
def catalog(db):
    """Wooden Chair (Leg x4, Seat x1, Screw x8), a table without a BOM and a few raw materials."""
    leg = add_product(db, "Leg", "LEG-1", cost="4.25", stock="100")
    seat = add_product(db, "Seat", "SEAT-1", cost="14.00", stock="3")
    screw = add_product(db, "Screw", "SCR-1", cost="0.15", stock="1000")
    varnish = add_product(db, "Varnish", "VAR-1", cost="12.00", stock="2")
    chair = add_product(db, "Wooden Chair", "WC-1", category=FINISHED_GOOD, cost="45.00")
    table = add_product(db, "Wooden Table", "WT-1", category=FINISHED_GOOD, cost="85.00")
    stool = add_product(db, "Garden Stool", "GS-1", category=FINISHED_GOOD, cost="20.00")
    bom = add_bom(db, chair, "BOM-WC-1", [(leg, 4), (seat, 1), (screw, 8)])
    add_bom(db, stool, "BOM-GS-1", [(leg, 3), (varnish, "0.25")])
    db.commit()
    return {
        "leg": leg,
        "seat": seat,
        "screw": screw,
        "varnish": varnish,
        "chair": chair,
        "table": table,
        "stool": stool,
        "chair_bom": bom,
    }
