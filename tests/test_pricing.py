"""
Pricing resolver and ledger totals tests.

Tests:
1-6.  resolve_price (override, partial override, catalog only, missing, services,
      malformed override)
7-8.  line_total
9-11. PricingEngine.summarize / with_margin
"""

import pytest

from survey_core.catalog import InMemoryCatalog
from survey_core.pricing_engine import PricingEngine, line_total, resolve_price
from survey_core.schemas import LineItem, LineKind, PriceOverride


def _catalog():
    return InMemoryCatalog(
        products=[{"id": "P1", "name": "Patch panel", "price": 10.0},
                  {"id": "P2", "name": "Unpriced cable"}],
        services=[{"id": "S1", "name": "Installation", "price": 40.0}],
    )


def _item(kind, quantity, unit_price, margin):
    return LineItem(
        id=f"{kind.value}-x", source_id="x", name="x", kind=kind,
        quantity=quantity, unit_price=unit_price, margin=margin,
        total_price=line_total(quantity, unit_price, margin),
    )


# ============================================================
# 1-6. resolve_price
# ============================================================

def test_override_wins():
    price = resolve_price("P1", {"P1": PriceOverride(unit_price=12.5, margin=20)}, _catalog())
    assert price.unit_price == 12.5
    assert price.margin == 20.0
    assert price.catalog_missing is False


def test_partial_override_falls_back_to_catalog_price():
    price = resolve_price("P1", {"P1": {"margin": 15}}, _catalog())
    assert price.unit_price == 10.0
    assert price.margin == 15.0

    price = resolve_price("P1", {"P1": {"unitPrice": 9.0}}, _catalog())
    assert price.unit_price == 9.0
    assert price.margin == 0.0


def test_catalog_price_without_override():
    price = resolve_price("P1", {}, _catalog())
    assert (price.unit_price, price.margin) == (10.0, 0.0)
    price = resolve_price("P2", None, _catalog())
    assert (price.unit_price, price.margin, price.catalog_missing) == (0.0, 0.0, False)


def test_missing_catalog_entry_prices_zero_without_raising():
    price = resolve_price("NOPE", {}, _catalog())
    assert (price.unit_price, price.margin) == (0.0, 0.0)
    assert price.catalog_missing is True


def test_service_lookup():
    price = resolve_price("S1", {"S1": {"margin": 10}}, _catalog(), LineKind.SERVICE)
    assert (price.unit_price, price.margin) == (40.0, 10.0)
    assert resolve_price("S1", {}, _catalog()).catalog_missing is True


def test_malformed_override_falls_back_to_catalog(caplog):
    overrides = {"P1": {"unitPrice": "n/a", "margin": 5}, "S1": "cheap"}
    price = resolve_price("P1", overrides, _catalog())
    assert (price.unit_price, price.margin) == (10.0, 0.0)
    assert price.catalog_missing is False
    assert "malformed price override for P1" in caplog.text

    service = resolve_price("S1", overrides, _catalog(), LineKind.SERVICE)
    assert (service.unit_price, service.margin) == (40.0, 0.0)


# ============================================================
# 7-8. line_total
# ============================================================

def test_line_total_applies_margin():
    assert line_total(3, 100.0, 20) == 360.0
    assert line_total(2, 500.0, 0) == 1000.0


def test_line_total_rounds_to_cents():
    assert line_total(3, 3.333, 0) == 10.0
    assert line_total(1, 10.0, 12.345) == pytest.approx(11.23)


# ============================================================
# 9-11. PricingEngine
# ============================================================

def test_summarize_totals():
    items = [
        _item(LineKind.PRODUCT, 2, 100.0, 10),
        _item(LineKind.PRODUCT, 1, 50.0, 0),
        _item(LineKind.SERVICE, 3, 40.0, 25),
    ]
    summary = PricingEngine().summarize(items)
    assert summary.product_subtotal == 250.0
    assert summary.service_subtotal == 120.0
    assert summary.margin_amount == 50.0
    assert summary.total == 420.0
    assert summary.average_margin_pct == pytest.approx(13.51, abs=0.01)


def test_summarize_empty_ledger():
    summary = PricingEngine().summarize([])
    assert summary.total == 0.0
    assert summary.average_margin_pct == 0.0


def test_with_margin_reprices_copy():
    item = _item(LineKind.PRODUCT, 4, 25.0, 0)
    repriced = PricingEngine().with_margin(item, 30)
    assert repriced.total_price == 130.0
    assert repriced.margin == 30.0
    assert item.total_price == 100.0
