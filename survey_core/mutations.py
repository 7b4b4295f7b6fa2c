"""
Structural edits on a survey tree.

Every operator takes a Building and returns a Building. Only the ancestors of the
edited node are rebuilt; everything else is shared with the input, so
`new is old` tells a caller whether anything changed.

Operators never raise for a path that no longer exists (another tab may have
removed the node first). They log at DEBUG and return the input unchanged.
"""

import logging
import uuid
from typing import Optional

from pydantic import ValidationError

from .overlay import is_proposal, normalize_element
from .registry import collections_for, get_equipment_class, iter_equipment
from .schemas import (
    Building,
    EquipmentElement,
    EquipmentPath,
    Floor,
    NodePath,
    ProductAssociation,
    Rack,
    Room,
    ServiceAssociation,
)

logger = logging.getLogger(__name__)

# Fields that only dedicated operators may change
PROTECTED_FIELDS = {
    "id", "kind", "products", "services",
    "product_id", "is_future_proposal", "enriched_existing",
}

_REMOVE = object()


# --- Factories ---

def new_id(kind: str, proposal: bool = False) -> str:
    """Fresh node id. Proposal nodes carry the proposal marker in their id."""
    suffix = uuid.uuid4().hex[:12]
    if proposal:
        return f"{kind}-proposal-{suffix}"
    return f"{kind}-{suffix}"


def new_equipment(kind: str, is_future_proposal: bool = True, **fields) -> EquipmentElement:
    cls = get_equipment_class(kind)
    return cls(id=new_id(kind, is_future_proposal), is_future_proposal=is_future_proposal, **fields)


def new_floor(name: str, level: int = 0, **fields) -> Floor:
    return Floor(id=new_id("floor"), name=name, level=level, **fields)


def new_room(name: str, **fields) -> Room:
    return Room(id=new_id("room"), name=name, **fields)


def new_rack(name: str, is_future_proposal: bool = False, **fields) -> Rack:
    return Rack(id=new_id("rack", is_future_proposal), name=name,
                is_future_proposal=is_future_proposal, **fields)


# --- Path helpers ---

def _index_of(nodes, node_id: str) -> Optional[int]:
    for index, node in enumerate(nodes):
        if node.id == node_id:
            return index
    return None


def _replace_at(nodes: tuple, index: int, node) -> tuple:
    if node is _REMOVE:
        return nodes[:index] + nodes[index + 1:]
    return nodes[:index] + (node,) + nodes[index + 1:]


def _update_floor(building: Building, floor_id: str, fn) -> Building:
    index = _index_of(building.floors, floor_id)
    if index is None:
        logger.debug("Floor %s not found in building %s", floor_id, building.id)
        return building
    floor = building.floors[index]
    updated = fn(floor)
    if updated is floor:
        return building
    return building.model_copy(update={"floors": _replace_at(building.floors, index, updated)})


def _update_container(building: Building, path: NodePath, fn) -> Building:
    """Applies fn to the rack or room addressed by path."""
    if path.floor_id is None:
        rack = building.central_rack
        if path.room_id is not None or rack is None:
            return building
        if path.rack_id is not None and path.rack_id != rack.id:
            logger.debug("Central rack %s not found in building %s", path.rack_id, building.id)
            return building
        updated = fn(rack)
        if updated is rack:
            return building
        return building.model_copy(update={"central_rack": updated})

    if path.rack_id is not None and path.room_id is None:
        field_name, node_id = "racks", path.rack_id
    elif path.room_id is not None and path.rack_id is None:
        field_name, node_id = "rooms", path.room_id
    else:
        return building

    def on_floor(floor: Floor) -> Floor:
        nodes = getattr(floor, field_name)
        index = _index_of(nodes, node_id)
        if index is None:
            logger.debug("%s %s not found on floor %s", field_name, node_id, floor.id)
            return floor
        updated = fn(nodes[index])
        if updated is nodes[index]:
            return floor
        return floor.model_copy(update={field_name: _replace_at(nodes, index, updated)})

    return _update_floor(building, path.floor_id, on_floor)


def _update_element(building: Building, path: EquipmentPath, fn) -> Building:
    """Applies fn to one element. fn may return _REMOVE to delete it."""

    def on_container(container):
        field_name = collections_for(container).get(path.kind)
        if field_name is None:
            return container
        elements = getattr(container, field_name)
        index = _index_of(elements, path.element_id)
        if index is None:
            logger.debug("%s %s not found in %s", path.kind, path.element_id, container.id)
            return container
        updated = fn(elements[index])
        if updated is elements[index]:
            return container
        return container.model_copy(update={field_name: _replace_at(elements, index, updated)})

    return _update_container(building, path, on_container)


# --- Proposal flag ---

def flag_for_proposal(element: EquipmentElement) -> EquipmentElement:
    """
    One-way transition: existing equipment that gets new products or services
    becomes part of the proposal. Never reverted by removing associations.
    """
    if element.is_future_proposal:
        return element
    update = {"is_future_proposal": True}
    if not is_proposal(element):
        update["enriched_existing"] = True
    return element.model_copy(update=update)


def is_removable(element: EquipmentElement) -> bool:
    """Only equipment that entered the tree as a proposal may be deleted."""
    return is_proposal(element) and not element.enriched_existing


# --- Equipment operators ---

def add_equipment(building: Building, path: NodePath, element: EquipmentElement) -> Building:
    kind = getattr(element, "kind", None)

    def on_container(container):
        field_name = collections_for(container).get(kind)
        if field_name is None:
            logger.debug("%s cannot be placed in %s", kind, container.id)
            return container
        elements = getattr(container, field_name)
        if _index_of(elements, element.id) is not None:
            return container
        return container.model_copy(update={field_name: elements + (element,)})

    return _update_container(building, path, on_container)


def remove_equipment(building: Building, path: EquipmentPath) -> Building:
    """
    Removes a future-proposal element. Surveyed equipment is never deleted,
    including surveyed equipment that was later enriched for the proposal.
    """

    def on_element(element):
        if not is_removable(element):
            logger.debug("Refusing to remove existing equipment %s", element.id)
            return element
        return _REMOVE

    return _update_element(building, path, on_element)


def update_equipment_field(building: Building, path: EquipmentPath, field: str, value) -> Building:
    """Sets one descriptive field. Ids, kinds and associations have their own operators."""

    def on_element(element):
        if field in PROTECTED_FIELDS or field not in type(element).model_fields:
            logger.debug("Field %s is not editable on %s", field, element.id)
            return element
        if getattr(element, field) == value:
            return element
        if value is None and type(element).model_fields[field].default is not None:
            # _drop_nulls would reset the field to its default
            logger.warning("Rejected %s=None on %s: field is required", field, element.id)
            return element
        data = element.model_dump()
        data[field] = value
        try:
            return type(element).model_validate(data)
        except ValidationError as e:
            logger.warning("Rejected %s=%r on %s: %s", field, value, element.id, e)
            return element

    return _update_element(building, path, on_element)


def add_product_association(building: Building, path: EquipmentPath,
                            product_id: str, quantity: int = 1) -> Building:
    """
    Links a catalog product to an element. Quantities merge into an existing link
    for the same product. Existing equipment is flagged for the proposal.
    """

    def on_element(element):
        element = normalize_element(element)
        products = list(element.products)
        for index, association in enumerate(products):
            if association.product_id == product_id:
                products[index] = association.model_copy(
                    update={"quantity": association.quantity + quantity})
                break
        else:
            products.append(ProductAssociation(product_id=product_id, quantity=quantity))
        return flag_for_proposal(element.model_copy(update={"products": tuple(products)}))

    return _update_element(building, path, on_element)


def enrich_existing_equipment(building: Building, path: EquipmentPath,
                              product_id: str, quantity: int = 1) -> Building:
    """
    Enhances surveyed hardware with a new proposal product (e.g. an SFP module for an
    existing switch). The element then shows up in proposal-only documents.
    """
    return add_product_association(building, path, product_id, quantity)


def remove_product_association(building: Building, path: EquipmentPath,
                               product_id: str) -> Building:
    """Unlinks a product. The proposal flag stays set."""

    def on_element(element):
        normalized = normalize_element(element)
        products = tuple(a for a in normalized.products if a.product_id != product_id)
        if len(products) == len(normalized.products):
            return element
        return normalized.model_copy(update={"products": products})

    return _update_element(building, path, on_element)


def add_service_association(building: Building, path: EquipmentPath, service_id: str,
                            quantity: int = 1, notes: Optional[str] = None) -> Building:
    """Links a catalog service (installation, testing, ...). Flags existing equipment."""
    association = ServiceAssociation(
        id=new_id("service"), service_id=service_id, quantity=quantity, notes=notes,
    )

    def on_element(element):
        updated = element.model_copy(update={"services": element.services + (association,)})
        return flag_for_proposal(updated)

    return _update_element(building, path, on_element)


def remove_service_association(building: Building, path: EquipmentPath,
                               association_id: str) -> Building:
    """Unlinks one service association by its id. The proposal flag stays set."""

    def on_element(element):
        services = tuple(s for s in element.services if s.id != association_id)
        if len(services) == len(element.services):
            return element
        return element.model_copy(update={"services": services})

    return _update_element(building, path, on_element)


# --- Structure operators ---

def add_floor(building: Building, floor: Floor) -> Building:
    if _index_of(building.floors, floor.id) is not None:
        return building
    return building.model_copy(update={"floors": building.floors + (floor,)})


def add_room(building: Building, floor_id: str, room: Room) -> Building:

    def on_floor(floor: Floor) -> Floor:
        if _index_of(floor.rooms, room.id) is not None:
            return floor
        return floor.model_copy(update={"rooms": floor.rooms + (room,)})

    return _update_floor(building, floor_id, on_floor)


def add_rack(building: Building, floor_id: Optional[str], rack: Rack) -> Building:
    """Adds a floor rack, or installs the central rack when floor_id is None."""
    if floor_id is None:
        if building.central_rack is not None:
            logger.debug("Building %s already has a central rack", building.id)
            return building
        return building.model_copy(update={"central_rack": rack})

    def on_floor(floor: Floor) -> Floor:
        if _index_of(floor.racks, rack.id) is not None:
            return floor
        return floor.model_copy(update={"racks": floor.racks + (rack,)})

    return _update_floor(building, floor_id, on_floor)

def _holds_surveyed_equipment(*containers) -> bool:
    for container in containers:
        for _, element in iter_equipment(container):
            if not is_removable(element):
                return True
    return False


def remove_floor(building: Building, floor_id: str) -> Building:
    """
    Removes a floor with its racks and rooms. Refused while any of them still holds
    surveyed equipment.
    """
    index = _index_of(building.floors, floor_id)
    if index is None:
        logger.debug("Floor %s not found in building %s", floor_id, building.id)
        return building
    floor = building.floors[index]
    if _holds_surveyed_equipment(*floor.racks, *floor.rooms):
        logger.debug("Refusing to remove floor %s: it holds surveyed equipment", floor_id)
        return building
    return building.model_copy(update={"floors": _replace_at(building.floors, index, _REMOVE)})


def _remove_from_floor(building: Building, floor_id: str, field_name: str, node_id: str) -> Building:

    def on_floor(floor: Floor) -> Floor:
        nodes = getattr(floor, field_name)
        index = _index_of(nodes, node_id)
        if index is None:
            logger.debug("%s %s not found on floor %s", field_name, node_id, floor.id)
            return floor
        if _holds_surveyed_equipment(nodes[index]):
            logger.debug("Refusing to remove %s: it holds surveyed equipment", node_id)
            return floor
        return floor.model_copy(update={field_name: _replace_at(nodes, index, _REMOVE)})

    return _update_floor(building, floor_id, on_floor)


def remove_room(building: Building, floor_id: str, room_id: str) -> Building:
    return _remove_from_floor(building, floor_id, "rooms", room_id)


def remove_rack(building: Building, floor_id: Optional[str], rack_id: str) -> Building:
    """Removes a floor rack, or the central rack when floor_id is None."""
    if floor_id is not None:
        return _remove_from_floor(building, floor_id, "racks", rack_id)
    rack = building.central_rack
    if rack is None or rack.id != rack_id:
        logger.debug("Central rack %s not found in building %s", rack_id, building.id)
        return building
    if _holds_surveyed_equipment(rack):
        logger.debug("Refusing to remove central rack %s: it holds surveyed equipment", rack_id)
        return building
    return building.model_copy(update={"central_rack": None})



def set_typical(building: Building, path: NodePath, is_typical: bool,
                repeat_count: int = 1) -> Building:
    """Marks a floor (or a room on it, when path.room_id is set) as typical × repeat_count."""
    if path.floor_id is None:
        return building
    repeat_count = max(1, int(repeat_count or 1))

    def on_node(node):
        if node.is_typical == is_typical and node.repeat_count == repeat_count:
            return node
        return node.model_copy(update={"is_typical": is_typical, "repeat_count": repeat_count})

    if path.room_id is None:
        return _update_floor(building, path.floor_id, on_node)
    return _update_container(building, NodePath(floor_id=path.floor_id, room_id=path.room_id),
                             on_node)
