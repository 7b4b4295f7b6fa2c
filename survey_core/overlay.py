"""
Overlay resolver — decides whether an equipment element belongs to the
existing survey or to the future proposal, and which product links count.

Two generations of product links coexist in stored surveys:
  legacy:  productId + quantity on the element itself
  current: products = [{productId, quantity}, ...]
A non-empty products list always wins; the legacy field is never added on top.
"""

import logging
from typing import Optional

from .config import settings
from .registry import element_kind, map_equipment
from .schemas import Building, EquipmentElement, NormalizedElement, ProductAssociation

logger = logging.getLogger(__name__)


def is_proposal(element: EquipmentElement, marker: Optional[str] = None) -> bool:
    """
    True for future-proposal elements.

    Elements created before the isFutureProposal flag existed are recognized by
    the proposal marker in their id (e.g. "switch-proposal-1700000000").
    """
    if element.is_future_proposal:
        return True
    marker = settings.PROPOSAL_ID_MARKER if marker is None else marker
    if not marker:
        return False
    return marker.lower() in (element.id or "").lower()


def resolve_products(element: EquipmentElement) -> tuple[ProductAssociation, ...]:
    """Canonical product links for an element. Never combines both sources."""
    if element.products:
        return element.products
    if element.product_id:
        quantity = element.quantity if element.quantity is not None else 1
        return (ProductAssociation(product_id=element.product_id, quantity=quantity),)
    return ()


def resolve_element(element: EquipmentElement, marker: Optional[str] = None) -> NormalizedElement:
    return NormalizedElement(
        id=element.id,
        kind=element_kind(element),
        is_proposal=is_proposal(element, marker),
        products=resolve_products(element),
        services=element.services,
    )


def normalize_element(element: EquipmentElement) -> EquipmentElement:
    """Moves a legacy productId into products. Same object back if already canonical."""
    if element.product_id is None:
        return element
    return element.model_copy(update={
        "products": resolve_products(element),
        "product_id": None,
    })


def normalize_legacy_products(building: Building) -> Building:
    """
    One-time load pass: rewrites every legacy product link into the products list.

    Idempotent. Aggregating the result gives the same ledger as the raw building.
    """
    normalized = map_equipment(building, normalize_element)
    if normalized is not building:
        logger.debug("Normalized legacy product links in building %s", building.id)
    return normalized
