"""
Survey schemas — the site's network infrastructure tree and the priced ledger built from it.

Building → {central rack, floors} → floor → {racks, rooms} → equipment elements.

Every tree node is immutable. Edits go through mutations.py, which returns new
Building values and shares every untouched subtree with the input.
The persisted snapshot uses camelCase JSON keys; Python code uses snake_case.
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, model_validator
from pydantic.alias_generators import to_camel


class SurveyNode(BaseModel):
    """Base for everything that round-trips through the persisted snapshot."""

    class Config:
        frozen = True
        populate_by_name = True
        alias_generator = to_camel
        extra = "allow"

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data):
        # Older snapshots write null for absent collections, flags and counts
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


# --- Associations ---

class ProductAssociation(SurveyNode):
    product_id: str
    quantity: int = 1


class ServiceAssociation(SurveyNode):
    id: str
    service_id: str
    quantity: int = 1
    notes: Optional[str] = None


# --- Equipment elements ---
# DECISION: device/outlet/cable types stay plain strings so unknown values in old
# surveys still load. See the *_TYPES tuples for the values the wizard offers.

DEVICE_TYPES = ("PHONE", "VOIP_PHONE", "PC", "TV", "AP", "CAMERA", "IOT", "OTHER")
OUTLET_TYPES = ("DATA", "POWER", "COMBINED")
CABLE_TYPES = ("CAT6", "CAT6A", "CAT5e", "FIBER_SM", "FIBER_MM")
ROOM_TYPES = ("NORMAL", "STANDARD", "TYPICAL")


class EquipmentElement(SurveyNode):
    """
    Fields shared by every equipment kind.

    product_id/quantity is the legacy single-product link; products is the
    current multi-product form. overlay.resolve_element decides which one counts.

    enriched_existing marks surveyed hardware that was later pulled into the proposal.
    It keeps such elements out of reach of remove_equipment.
    """
    id: str
    is_future_proposal: bool = False
    enriched_existing: bool = False
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    products: tuple[ProductAssociation, ...] = ()
    services: tuple[ServiceAssociation, ...] = ()


class BrandedEquipment(EquipmentElement):
    brand: str = ""
    model: str = ""


class CableTermination(EquipmentElement):
    kind: Literal["cable_termination"] = "cable_termination"
    cable_type: str = "CAT6"
    total_fibers: Optional[int] = None
    terminated_fibers: Optional[int] = None
    from_location: Optional[str] = None
    to_location: Optional[str] = None


class Switch(BrandedEquipment):
    kind: Literal["switch"] = "switch"
    ports: int = 0
    poe_enabled: bool = False
    poe_ports_count: Optional[int] = None


class Router(BrandedEquipment):
    kind: Literal["router"] = "router"


class Server(BrandedEquipment):
    kind: Literal["server"] = "server"


class VoipPbx(BrandedEquipment):
    kind: Literal["voip_pbx"] = "voip_pbx"
    extensions: Optional[int] = None


class Headend(BrandedEquipment):
    kind: Literal["headend"] = "headend"


class Nvr(BrandedEquipment):
    kind: Literal["nvr"] = "nvr"
    channels: Optional[int] = None
    storage_capacity: Optional[str] = None


class Ata(BrandedEquipment):
    kind: Literal["ata"] = "ata"
    ports: Optional[int] = None


class Connection(EquipmentElement):
    kind: Literal["connection"] = "connection"
    from_device: str = ""
    to_device: str = ""
    cable_type: Optional[str] = None


class Device(EquipmentElement):
    kind: Literal["device"] = "device"
    type: str = "OTHER"
    brand: Optional[str] = None
    model: Optional[str] = None


class Outlet(EquipmentElement):
    kind: Literal["outlet"] = "outlet"
    type: str = "DATA"


# --- Containers ---

class Rack(SurveyNode):
    """Central rack or floor rack. Collections are listed in traversal order."""
    id: str
    name: str = ""
    location: str = ""
    units: Optional[int] = None
    is_future_proposal: bool = False
    cable_terminations: tuple[CableTermination, ...] = ()
    switches: tuple[Switch, ...] = ()
    routers: tuple[Router, ...] = ()
    servers: tuple[Server, ...] = ()
    voip_pbx: tuple[VoipPbx, ...] = ()
    headend: tuple[Headend, ...] = ()
    nvr: tuple[Nvr, ...] = ()
    ata: tuple[Ata, ...] = ()
    connections: tuple[Connection, ...] = ()


class Room(SurveyNode):
    id: str
    name: str = ""
    number: str = ""
    type: str = "NORMAL"
    is_typical: bool = False
    repeat_count: int = 1
    is_future_proposal: bool = False
    notes: Optional[str] = None
    devices: tuple[Device, ...] = ()
    outlets: tuple[Outlet, ...] = ()
    connections: tuple[Connection, ...] = ()


class Floor(SurveyNode):
    """One stored floor. A typical floor stands for repeat_count identical floors."""
    id: str
    name: str = ""
    level: int = 0
    is_typical: bool = False
    repeat_count: int = 1
    is_future_proposal: bool = False
    notes: Optional[str] = None
    racks: tuple[Rack, ...] = ()
    rooms: tuple[Room, ...] = ()


class Building(SurveyNode):
    id: str
    name: str = ""
    address: Optional[str] = None
    central_rack: Optional[Rack] = None
    floors: tuple[Floor, ...] = ()


# --- Persisted snapshot ---

class PriceOverride(SurveyNode):
    unit_price: Optional[float] = None
    margin: Optional[float] = None


class SurveySnapshot(SurveyNode):
    buildings: tuple[Building, ...] = ()
    product_pricing: dict[str, PriceOverride] = {}
    service_pricing: dict[str, PriceOverride] = {}


class CatalogEntry(SurveyNode):
    """Read-only product or service record from the catalog services."""
    id: str
    name: str
    category: str = ""
    brand: Optional[str] = None
    price: Optional[float] = None


# --- Mutation paths ---

class NodePath(SurveyNode):
    """
    Addresses an equipment container inside one building.

    No floor and no room → central rack. floor + rack → floor rack.
    floor + room → room.
    """
    floor_id: Optional[str] = None
    rack_id: Optional[str] = None
    room_id: Optional[str] = None


class EquipmentPath(NodePath):
    kind: str
    element_id: str


# --- Ledger output ---

class LineKind(str, Enum):
    PRODUCT = "product"
    SERVICE = "service"


class NormalizedElement(SurveyNode):
    """Overlay view of one equipment element, as seen by aggregation predicates."""
    id: str
    kind: str
    is_proposal: bool
    products: tuple[ProductAssociation, ...] = ()
    services: tuple[ServiceAssociation, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.products and not self.services


class LineItem(SurveyNode):
    id: str
    source_id: str
    name: str
    category: str = ""
    brand: Optional[str] = None
    kind: LineKind
    quantity: int
    unit_price: float
    margin: float
    total_price: float
    locations: tuple[str, ...] = ()


class SkippedRef(SurveyNode):
    id: str
    kind: LineKind
    reason: str
    locations: tuple[str, ...] = ()


class AggregationResult(SurveyNode):
    line_items: tuple[LineItem, ...] = ()
    skipped: tuple[SkippedRef, ...] = ()


class PricingSummary(SurveyNode):
    product_subtotal: float = 0.0
    service_subtotal: float = 0.0
    margin_amount: float = 0.0
    total: float = 0.0
    average_margin_pct: float = 0.0


class DocumentType(str, Enum):
    BOM = "bom"
    RFP = "rfp"
    PROPOSAL = "proposal"


class DocumentLedger(SurveyNode):
    document_type: DocumentType
    title: str
    company_name: str
    currency: str
    line_items: tuple[LineItem, ...] = ()
    skipped: tuple[SkippedRef, ...] = ()
    summary: PricingSummary
    generated_at: datetime
