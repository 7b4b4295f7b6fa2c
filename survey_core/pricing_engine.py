"""
Pricing — effective unit price and margin per catalog id, and ledger totals.

Pure math. Quantity × unit price × (1 + margin%).
Overrides come from the survey snapshot (productPricing / servicePricing);
anything not overridden falls back to the catalog price with zero margin.
"""

import logging
from typing import NamedTuple, Optional, Union

from pydantic import ValidationError

from .catalog import CatalogLookup
from .schemas import LineItem, LineKind, PriceOverride, PricingSummary

logger = logging.getLogger(__name__)


class ResolvedPrice(NamedTuple):
    unit_price: float
    margin: float
    catalog_missing: bool


def _lookup(catalog: CatalogLookup, item_id: str, kind: LineKind):
    if kind == LineKind.SERVICE:
        return catalog.get_service(item_id)
    return catalog.get_product(item_id)


def _as_override(item_id: str,
                 value: Union[PriceOverride, dict, None]) -> Optional[PriceOverride]:
    if value is None or isinstance(value, PriceOverride):
        return value
    try:
        return PriceOverride.model_validate(value)
    except ValidationError as e:
        # Stored overrides are user input; fall back to the catalog price
        logger.warning("Ignoring malformed price override for %s: %s", item_id, e)
        return None


def resolve_price(item_id: str, overrides: Optional[dict], catalog: CatalogLookup,
                  kind: LineKind = LineKind.PRODUCT) -> ResolvedPrice:
    """
    Effective unit price and margin for one product or service id.

    Never raises. A missing catalog entry prices at 0 and sets catalog_missing,
    leaving it to the caller to report.
    """
    entry = _lookup(catalog, item_id, kind)
    catalog_price = entry.price if entry is not None and entry.price is not None else 0.0

    override = _as_override(item_id, (overrides or {}).get(item_id))
    if override is not None:
        unit_price = override.unit_price if override.unit_price is not None else catalog_price
        margin = override.margin if override.margin is not None else 0.0
    else:
        unit_price = catalog_price
        margin = 0.0

    return ResolvedPrice(float(unit_price), float(margin), entry is None)


def line_total(quantity: float, unit_price: float, margin: float) -> float:
    """quantity × unit_price × (1 + margin/100), rounded to cents."""
    return round(quantity * unit_price * (1 + margin / 100.0), 2)


class PricingEngine:
    """
    Totals for a priced ledger: what the proposal's pricing table shows
    under the product and service lists.
    """

    def summarize(self, line_items) -> PricingSummary:
        products = [item for item in line_items if item.kind == LineKind.PRODUCT]
        services = [item for item in line_items if item.kind == LineKind.SERVICE]

        product_subtotal = self._calculate_subtotal(products)
        service_subtotal = self._calculate_subtotal(services)
        margin_amount = self._calculate_margin_amount(line_items)
        total = round(sum(item.total_price for item in line_items), 2)

        base = product_subtotal + service_subtotal
        average_margin_pct = round(margin_amount / base * 100, 2) if base else 0.0

        return PricingSummary(
            product_subtotal=product_subtotal,
            service_subtotal=service_subtotal,
            margin_amount=margin_amount,
            total=total,
            average_margin_pct=average_margin_pct,
        )

    def _calculate_subtotal(self, line_items: list) -> float:
        """Sum of quantity × unit_price, before margin."""
        return round(sum(item.quantity * item.unit_price for item in line_items), 2)

    def _calculate_margin_amount(self, line_items) -> float:
        return round(
            sum(item.quantity * item.unit_price * item.margin / 100.0 for item in line_items),
            2,
        )

    def with_margin(self, line_item: LineItem, margin: float) -> LineItem:
        """Copy of a line item repriced at a different margin percentage."""
        return line_item.model_copy(update={
            "margin": float(margin),
            "total_price": line_total(line_item.quantity, line_item.unit_price, margin),
        })
