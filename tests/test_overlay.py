"""
Overlay resolver tests — existing vs. proposal, legacy vs. current product links.

Tests:
1-3.  Proposal detection (flag, id marker, neither)
4-7.  Product link resolution
8-10. Load-time normalization
"""

from survey_core.aggregator import aggregate, all_elements
from survey_core.overlay import (
    is_proposal,
    normalize_legacy_products,
    resolve_element,
    resolve_products,
)
from survey_core.schemas import Building, Device, Switch


# ============================================================
# 1-3. Proposal detection
# ============================================================

def test_flagged_element_is_proposal():
    assert is_proposal(Switch(id="sw-1", is_future_proposal=True))


def test_proposal_id_marker_is_fallback():
    """Elements saved before the flag existed are recognized by their id."""
    assert is_proposal(Switch(id="switch-proposal-1700000000"))
    assert is_proposal(Switch(id="RACK-PROPOSAL-7"))
    assert is_proposal(Switch(id="sw-new-9", is_future_proposal=False), marker="new")


def test_existing_element_is_not_proposal():
    assert not is_proposal(Switch(id="sw-core"))
    assert not is_proposal(Switch(id="switch-proposal-1"), marker="")


# ============================================================
# 4-7. Product links
# ============================================================

def test_current_products_used_verbatim():
    element = Device(id="d", products=[{"productId": "P1", "quantity": 3},
                                       {"productId": "P2", "quantity": 1}])
    products = resolve_products(element)
    assert [(p.product_id, p.quantity) for p in products] == [("P1", 3), ("P2", 1)]


def test_legacy_product_id_synthesized():
    element = Device(id="d", product_id="P1", quantity=4)
    products = resolve_products(element)
    assert [(p.product_id, p.quantity) for p in products] == [("P1", 4)]


def test_legacy_quantity_defaults_to_one():
    element = Switch(id="sw", product_id="P1")
    assert resolve_products(element)[0].quantity == 1


def test_current_wins_over_legacy():
    """Both present: products wins, legacy productId never added on top."""
    element = Device(id="d", product_id="P1", quantity=9,
                     products=[{"productId": "P1", "quantity": 4}])
    normalized = resolve_element(element)
    assert [(p.product_id, p.quantity) for p in normalized.products] == [("P1", 4)]


def test_element_with_nothing_is_empty():
    normalized = resolve_element(Switch(id="sw-core"))
    assert normalized.is_empty
    assert normalized.kind == "switch"
    assert normalized.is_proposal is False


# ============================================================
# 8-10. Normalization
# ============================================================

def _legacy_building():
    return Building.model_validate({
        "id": "B", "name": "B",
        "centralRack": {"id": "CR", "switches": [
            {"id": "sw-1", "productId": "P1", "quantity": 2},
            {"id": "sw-2", "productId": "P1", "products": [{"productId": "P1", "quantity": 5}]},
            {"id": "sw-3"},
        ]},
    })


def test_normalization_moves_legacy_links():
    normalized = normalize_legacy_products(_legacy_building())
    sw1, sw2, sw3 = normalized.central_rack.switches
    assert sw1.product_id is None
    assert [(p.product_id, p.quantity) for p in sw1.products] == [("P1", 2)]
    assert sw2.product_id is None
    assert [(p.product_id, p.quantity) for p in sw2.products] == [("P1", 5)]
    assert sw3.products == ()


def test_normalization_is_idempotent():
    once = normalize_legacy_products(_legacy_building())
    assert normalize_legacy_products(once) is once


def test_normalization_shares_canonical_tree(building):
    """Nothing legacy to rewrite: the very same object comes back."""
    assert normalize_legacy_products(building) is building


def test_normalization_does_not_change_aggregation(catalog):
    raw = _legacy_building()
    before = aggregate(raw, all_elements, {}, catalog)
    after = aggregate(normalize_legacy_products(raw), all_elements, {}, catalog)
    assert before == after
    assert before.line_items[0].quantity == 7
