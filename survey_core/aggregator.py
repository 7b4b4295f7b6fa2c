"""
Aggregation engine — walks a survey tree and produces the deduplicated,
priced, quantity-correct ledger behind the BOM, RFP and proposal documents.

Traversal order (fixed, so output is reproducible):
  central rack: terminations, switches, routers, servers, voipPbx, headend, nvr, ata, connections
  floors in stored order: racks (same order as the central rack), then rooms
  rooms: devices, outlets, connections

Pure function. No I/O; the catalog and pricing maps are passed in as snapshots.
"""

import logging
from typing import Callable, Iterable, Optional

from .catalog import CatalogLookup
from .multiplier import multiplier, repeat_factor
from .overlay import resolve_element
from .pricing_engine import line_total, resolve_price
from .registry import KIND_CATEGORIES, iter_equipment
from .schemas import (
    AggregationResult,
    Building,
    LineItem,
    LineKind,
    NormalizedElement,
    SkippedRef,
)

logger = logging.getLogger(__name__)

Predicate = Callable[[NormalizedElement], bool]

NOT_FOUND_REASONS = {
    LineKind.PRODUCT: "product not found",
    LineKind.SERVICE: "service not found",
}


def proposal_only(element: NormalizedElement) -> bool:
    """RFP/proposal predicate: future-proposal elements only."""
    return element.is_proposal


def all_elements(element: NormalizedElement) -> bool:
    """BOM predicate: everything in the survey."""
    return True


def _label(*parts: str, factor: int = 1) -> str:
    label = " / ".join(part for part in parts if part)
    if factor > 1:
        label += f" (x{factor})"
    return label


def walk(building: Building):
    """
    Yields (element, multiplier, location) for every equipment element of a building,
    in traversal order.
    """
    if building.central_rack is not None:
        location = _label(building.name, building.central_rack.name or "Central Rack")
        for _, element in iter_equipment(building.central_rack):
            yield element, 1, location

    for floor in building.floors:
        factor = multiplier(floor)
        for rack in floor.racks:
            location = _label(building.name, floor.name, rack.name, factor=factor)
            for _, element in iter_equipment(rack):
                yield element, factor, location
        for room in floor.rooms:
            room_factor = factor * repeat_factor(room)
            location = _label(building.name, floor.name, room.name or room.number,
                              factor=room_factor)
            for _, element in iter_equipment(room):
                yield element, room_factor, location


class _Ledger:
    """Accumulates occurrences keyed by (kind, id). First occurrence fixes price."""

    def __init__(self, overrides: dict, catalog: CatalogLookup):
        self.overrides = overrides
        self.catalog = catalog
        self.entries: dict = {}
        self.skipped: dict = {}

    def add(self, kind: LineKind, item_id: str, quantity: int,
            element_kind: str, location: str):
        key = (kind, item_id)

        if key in self.skipped:
            self._add_location(self.skipped[key]["locations"], location)
            return

        entry = self.entries.get(key)
        if entry is None:
            catalog_entry = self._lookup(kind, item_id)
            if catalog_entry is None:
                logger.warning("Skipping %s %s: not in catalog (%s)", kind.value, item_id, location)
                self.skipped[key] = {"locations": [location]}
                return
            # Priced once per distinct id
            price = resolve_price(item_id, self.overrides[kind], self.catalog, kind)
            entry = {
                "catalog": catalog_entry,
                "category": catalog_entry.category or KIND_CATEGORIES.get(element_kind, ""),
                "unit_price": price.unit_price,
                "margin": price.margin,
                "quantity": 0,
                "locations": [],
            }
            self.entries[key] = entry

        entry["quantity"] += quantity
        self._add_location(entry["locations"], location)

    def _lookup(self, kind: LineKind, item_id: str):
        if kind == LineKind.SERVICE:
            return self.catalog.get_service(item_id)
        return self.catalog.get_product(item_id)

    @staticmethod
    def _add_location(locations: list, location: str):
        if location not in locations:
            locations.append(location)

    def result(self) -> AggregationResult:
        line_items = []
        for kind in (LineKind.PRODUCT, LineKind.SERVICE):
            for (entry_kind, item_id), entry in self.entries.items():
                if entry_kind != kind:
                    continue
                catalog_entry = entry["catalog"]
                line_items.append(LineItem(
                    id=f"{kind.value}-{item_id}",
                    source_id=item_id,
                    name=catalog_entry.name,
                    category=entry["category"],
                    brand=catalog_entry.brand,
                    kind=kind,
                    quantity=entry["quantity"],
                    unit_price=entry["unit_price"],
                    margin=entry["margin"],
                    total_price=line_total(entry["quantity"], entry["unit_price"], entry["margin"]),
                    locations=tuple(entry["locations"]),
                ))

        skipped = [
            SkippedRef(
                id=item_id,
                kind=kind,
                reason=NOT_FOUND_REASONS[kind],
                locations=tuple(info["locations"]),
            )
            for (kind, item_id), info in self.skipped.items()
        ]
        return AggregationResult(line_items=tuple(line_items), skipped=tuple(skipped))


def aggregate_buildings(buildings: Iterable[Building], predicate: Predicate,
                        product_pricing: Optional[dict], catalog: CatalogLookup,
                        service_pricing: Optional[dict] = None) -> AggregationResult:
    """
    Aggregates every element accepted by predicate across several buildings.

    Quantities are association quantity × typical floor/room multiplier, summed per
    product/service id. Ids missing from the catalog land in `skipped` and never
    stop the run.
    """
    ledger = _Ledger(
        overrides={
            LineKind.PRODUCT: product_pricing or {},
            LineKind.SERVICE: service_pricing or {},
        },
        catalog=catalog,
    )

    for building in buildings:
        for element, factor, location in walk(building):
            normalized = resolve_element(element)
            if normalized.is_empty or not predicate(normalized):
                continue
            for association in normalized.products:
                ledger.add(LineKind.PRODUCT, association.product_id,
                           association.quantity * factor, normalized.kind, location)
            for association in normalized.services:
                ledger.add(LineKind.SERVICE, association.service_id,
                           association.quantity * factor, normalized.kind, location)

    return ledger.result()


def aggregate(building: Building, predicate: Predicate, pricing_overrides: Optional[dict],
              catalog: CatalogLookup, service_pricing: Optional[dict] = None) -> AggregationResult:
    """
    Single-building ledger.

    pricing_overrides is keyed by product id. Service overrides go in
    service_pricing; when it is omitted, pricing_overrides is used for both,
    matching a combined id → {unitPrice, margin} map.
    """
    if service_pricing is None:
        service_pricing = pricing_overrides
    return aggregate_buildings([building], predicate, pricing_overrides, catalog, service_pricing)
