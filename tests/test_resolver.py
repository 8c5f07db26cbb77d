import pytest

from mfgorders.core.errors import AmbiguousProductMatch, ProductNotFound, RequestValidationFailed
from mfgorders.db.models.catalog import FINISHED_GOOD
from mfgorders.services.catalog.resolver import resolve_product, search_finished_goods

from conftest import add_product


def test_exact_name_resolves(db, catalog):
    assert resolve_product(db, "Wooden Chair").id == catalog["chair"].id


def test_match_is_case_insensitive_and_trimmed(db, catalog):
    assert resolve_product(db, "  wooden CHAIR ").id == catalog["chair"].id


def test_unique_substring_resolves(db, catalog):
    assert resolve_product(db, "stool").id == catalog["stool"].id


def test_no_match_raises_not_found_with_term(db, catalog):
    with pytest.raises(ProductNotFound) as ei:
        resolve_product(db, "Nonexistent Widget")
    assert "Nonexistent Widget" in ei.value.message


def test_raw_materials_are_not_candidates(db, catalog):
    with pytest.raises(ProductNotFound):
        resolve_product(db, "Screw")


def test_inactive_finished_goods_are_ignored(db, catalog):
    add_product(db, "Rocking Chair", "RC-1", category=FINISHED_GOOD, active=False)
    db.commit()
    with pytest.raises(ProductNotFound):
        resolve_product(db, "Rocking")


def test_several_substring_matches_are_ambiguous(db, catalog):
    with pytest.raises(AmbiguousProductMatch) as ei:
        resolve_product(db, "wooden")
    assert ei.value.details == ["Wooden Chair (WC-1)", "Wooden Table (WT-1)"]


def test_exact_match_wins_over_longer_names(db, catalog):
    add_product(db, "Wooden Chair Deluxe", "WCD-1", category=FINISHED_GOOD)
    db.commit()
    assert resolve_product(db, "Wooden Chair").id == catalog["chair"].id


def test_duplicate_exact_names_are_ambiguous(db, catalog):
    add_product(db, "Wooden Chair", "WC-2", category=FINISHED_GOOD)
    db.commit()
    with pytest.raises(AmbiguousProductMatch):
        resolve_product(db, "Wooden Chair")


def test_like_wildcards_are_literal(db, catalog):
    with pytest.raises(ProductNotFound):
        resolve_product(db, "%")
    add_product(db, "100% Oak Bench", "OB-1", category=FINISHED_GOOD)
    db.commit()
    assert resolve_product(db, "100%").sku == "OB-1"


def test_blank_search_is_a_validation_error(db, catalog):
    with pytest.raises(RequestValidationFailed):
        resolve_product(db, "   ")


def test_search_finished_goods_orders_by_name(db, catalog):
    names = [p.name for p in search_finished_goods(db, "o")]
    assert names == ["Garden Stool", "Wooden Chair", "Wooden Table"]
