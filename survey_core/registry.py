"""
Equipment registry — maps equipment kind strings to schema classes and to the
container collection that holds them.

Collection order here is the traversal order used by the aggregator, so BOM/RFP
output is deterministic.
"""

from .schemas import (
    Ata,
    CableTermination,
    Connection,
    Device,
    EquipmentElement,
    Headend,
    Nvr,
    Outlet,
    Rack,
    Room,
    Router,
    Server,
    Switch,
    VoipPbx,
)

EQUIPMENT_REGISTRY: dict[str, type] = {
    "cable_termination": CableTermination,
    "switch": Switch,
    "router": Router,
    "server": Server,
    "voip_pbx": VoipPbx,
    "headend": Headend,
    "nvr": Nvr,
    "ata": Ata,
    "connection": Connection,
    "device": Device,
    "outlet": Outlet,
}

# kind -> collection field, in traversal order
RACK_COLLECTIONS: dict[str, str] = {
    "cable_termination": "cable_terminations",
    "switch": "switches",
    "router": "routers",
    "server": "servers",
    "voip_pbx": "voip_pbx",
    "headend": "headend",
    "nvr": "nvr",
    "ata": "ata",
    "connection": "connections",
}

ROOM_COLLECTIONS: dict[str, str] = {
    "device": "devices",
    "outlet": "outlets",
    "connection": "connections",
}

# Category used on line items when the catalog entry has none
KIND_CATEGORIES: dict[str, str] = {
    "cable_termination": "Cable Termination",
    "switch": "Network Switch",
    "router": "Network Router",
    "server": "Server",
    "voip_pbx": "VoIP PBX",
    "headend": "Headend",
    "nvr": "NVR",
    "ata": "ATA",
    "connection": "Connection",
    "device": "Device",
    "outlet": "Outlet",
}


def get_equipment_class(kind: str) -> type:
    """Returns the schema class for an equipment kind, or raises ValueError."""
    if kind not in EQUIPMENT_REGISTRY:
        raise ValueError(
            f"No equipment kind registered: {kind}. "
            f"Available: {list(EQUIPMENT_REGISTRY.keys())}"
        )
    return EQUIPMENT_REGISTRY[kind]


def has_kind(kind: str) -> bool:
    """Check if an equipment kind exists."""
    return kind in EQUIPMENT_REGISTRY


def list_kinds() -> list[str]:
    """List all registered equipment kinds."""
    return list(EQUIPMENT_REGISTRY.keys())


def collections_for(container) -> dict[str, str]:
    """kind -> collection field for a rack or a room."""
    if isinstance(container, Rack):
        return RACK_COLLECTIONS
    if isinstance(container, Room):
        return ROOM_COLLECTIONS
    return {}


def iter_equipment(container):
    """
    Yields (kind, element) for every element in a rack or room, in traversal order.
    """
    for kind, field_name in collections_for(container).items():
        for element in getattr(container, field_name):
            yield kind, element


def element_kind(element: EquipmentElement) -> str:
    return getattr(element, "kind", "")


def map_container(container, fn):
    """
    Applies fn to every element of a rack or room.
    Returns the same container object when fn changed nothing.
    """
    updates = {}
    for field_name in collections_for(container).values():
        elements = getattr(container, field_name)
        mapped = tuple(fn(element) for element in elements)
        if any(new is not old for new, old in zip(mapped, elements)):
            updates[field_name] = mapped
    if not updates:
        return container
    return container.model_copy(update=updates)


def map_equipment(building, fn):
    """Applies fn to every equipment element of a building, sharing unchanged subtrees."""
    updates = {}
    if building.central_rack is not None:
        central = map_container(building.central_rack, fn)
        if central is not building.central_rack:
            updates["central_rack"] = central

    floors = []
    floors_changed = False
    for floor in building.floors:
        racks = tuple(map_container(rack, fn) for rack in floor.racks)
        rooms = tuple(map_container(room, fn) for room in floor.rooms)
        floor_updates = {}
        if any(new is not old for new, old in zip(racks, floor.racks)):
            floor_updates["racks"] = racks
        if any(new is not old for new, old in zip(rooms, floor.rooms)):
            floor_updates["rooms"] = rooms
        if floor_updates:
            floors_changed = True
            floor = floor.model_copy(update=floor_updates)
        floors.append(floor)
    if floors_changed:
        updates["floors"] = tuple(floors)

    if not updates:
        return building
    return building.model_copy(update=updates)
