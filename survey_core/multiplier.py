"""
Typical floor/room multiplier.

A typical floor or room is stored once and stands for repeat_count identical copies.
The multiplier is applied at aggregation time only, never written back to stored quantities.
"""

from typing import Optional

from .schemas import Floor, Room


def repeat_factor(node) -> int:
    """repeat_count for a typical floor/room, 1 otherwise. Never below 1."""
    if node is None or not node.is_typical:
        return 1
    return max(1, node.repeat_count or 1)


def multiplier(floor: Optional[Floor], room: Optional[Room] = None) -> int:
    """
    Effective quantity multiplier for a node owned by a floor (and optionally a room).

    Central-rack elements have no owning floor and always get 1.
    """
    if floor is None:
        return 1
    return repeat_factor(floor) * repeat_factor(room)
