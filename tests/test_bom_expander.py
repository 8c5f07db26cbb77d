from decimal import Decimal

import pytest

from mfgorders.core.errors import MissingBillOfMaterials, RequestValidationFailed
from mfgorders.services.catalog.bom import expand_bom, expand_for_product, find_active_bom, scale_quantity

from conftest import add_bom, add_product


def test_wooden_chair_expansion(db, catalog):
    expansion = expand_for_product(db, catalog["chair"], 5)
    assert expansion.bom.reference == "BOM-WC-1"
    assert [(r.component.name, r.quantity_required) for r in expansion.requirements] == [
        ("Leg", Decimal("20")),
        ("Seat", Decimal("5")),
        ("Screw", Decimal("40")),
    ]


@pytest.mark.parametrize("quantity", [1, 3, 17])
def test_rows_mirror_bom_components(db, catalog, quantity):
    bom = catalog["chair_bom"]
    expansion = expand_for_product(db, catalog["chair"], quantity)
    assert len(expansion.requirements) == len(bom.components)
    for req, comp in zip(expansion.requirements, bom.components):
        assert req.component.id == comp.component_product_id
        assert req.sequence == comp.sequence
        assert req.quantity_required == Decimal(str(comp.quantity_per_unit)) * quantity


def test_fractional_quantities_stay_exact(db, catalog):
    expansion = expand_for_product(db, catalog["stool"], 3)
    varnish = expansion.requirements[1]
    assert varnish.quantity_required == Decimal("0.75")


def test_rounding_is_half_up_at_six_places():
    assert scale_quantity(Decimal("0.0000005"), 1) == Decimal("0.000001")
    assert scale_quantity("0.3333333", 3) == Decimal("1.000000")


def test_total_cost_uses_component_standard_cost(db, catalog):
    expansion = expand_for_product(db, catalog["chair"], 2)
    assert [r.total_cost for r in expansion.requirements] == [Decimal("34.0000"), Decimal("28.0000"), Decimal("2.4000")]


def test_missing_bom_is_rejected(db, catalog):
    with pytest.raises(MissingBillOfMaterials) as ei:
        expand_for_product(db, catalog["table"], 1)
    assert "Wooden Table" in ei.value.message


def test_inactive_bom_is_ignored(db, catalog):
    add_bom(db, catalog["table"], "BOM-WT-OLD", [(catalog["leg"], 4)], active=False)
    db.commit()
    assert find_active_bom(db, catalog["table"]) is None


def test_first_active_bom_is_used(db, catalog):
    add_bom(db, catalog["chair"], "BOM-WC-2", [(catalog["leg"], 3)], version="2.0")
    db.commit()
    assert find_active_bom(db, catalog["chair"]).reference == "BOM-WC-1"


def test_non_positive_quantity_is_rejected(db, catalog):
    with pytest.raises(RequestValidationFailed):
        expand_bom(catalog["chair_bom"], 0)


def test_quantity_above_order_limit_is_rejected(catalog):
    with pytest.raises(RequestValidationFailed) as ei:
        expand_bom(catalog["chair_bom"], 10**25)
    assert ei.value.details == ["quantity: must be at most 1000000"]


def test_scaled_quantity_beyond_column_range_is_rejected(db, catalog):
    bulk = add_product(db, "Glue", "GLUE-1", cost="0")
    bom = add_bom(db, catalog["table"], "BOM-WT-BIG", [(bulk, "10000000")])
    db.commit()
    with pytest.raises(RequestValidationFailed) as ei:
        expand_bom(bom, 1_000_000)
    assert ei.value.details[0].startswith("quantity:")


def test_extended_cost_beyond_column_range_is_rejected(db, catalog):
    gold = add_product(db, "Gold Inlay", "GOLD-1", cost="100000000000")
    bom = add_bom(db, catalog["table"], "BOM-WT-GOLD", [(gold, "1000")])
    db.commit()
    with pytest.raises(RequestValidationFailed):
        expand_bom(bom, 1000)
