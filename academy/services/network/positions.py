"""
Ternary tree position math.

Every level is numbered left to right starting at 1, so a node's children,
parent and slot follow from its position alone:

    children(p) = (p-1)*3 + 1, 2, 3
    parent(p)   = (p-1)//3 + 1
    slot(p)     = (p-1)%3 + 1

Position ids have the form L{level:03d}P{position:010d}; the root is
L000P0000000001.
"""

import re

from academy.config.constants import (
    ROOT_LEVEL,
    ROOT_POSITION,
    TREE_BRANCHING_FACTOR,
)

_POSITION_ID_RE = re.compile(r"^L(\d{3})P(\d{10})$")


def format_position_id(level: int, position: int) -> str:
    """Build a position id, e.g. (2, 5) -> 'L002P0000000005'."""
    if level < 0 or position < 1:
        raise ValueError(f"Invalid tree coordinates: level={level}, position={position}")
    return f"L{level:03d}P{position:010d}"


def parse_position_id(position_id: str) -> tuple[int, int]:
    """
    Split a position id into (level, position).

    Raises:
        ValueError: malformed id
    """
    match = _POSITION_ID_RE.match(position_id or "")
    if not match:
        raise ValueError(f"Malformed network position id: {position_id!r}")
    level, position = int(match.group(1)), int(match.group(2))
    if position < 1:
        raise ValueError(f"Malformed network position id: {position_id!r}")
    return level, position


def get_child_positions(position: int) -> list[int]:
    """Positions of the three children one level down."""
    first = (position - 1) * TREE_BRANCHING_FACTOR + 1
    return [first + offset for offset in range(TREE_BRANCHING_FACTOR)]


def get_parent_position(position: int, level: int | None = None) -> int | None:
    """Parent position one level up; None for the root."""
    if level == ROOT_LEVEL:
        return None
    if level is None and position == ROOT_POSITION:
        return None
    return (position - 1) // TREE_BRANCHING_FACTOR + 1


def get_slot_number(position: int) -> int:
    """Slot (1-3) a position occupies under its parent."""
    return (position - 1) % TREE_BRANCHING_FACTOR + 1


def get_branch_for_position(position: int) -> int:
    """Branch (1-3) of the position relative to its parent."""
    return get_slot_number(position)


def branch_root(referrer_position: int, branch: int) -> int:
    """Position of the referrer's direct child in the given branch."""
    if branch not in (1, 2, 3):
        raise ValueError(f"Branch must be 1-3, got {branch}")
    return (referrer_position - 1) * TREE_BRANCHING_FACTOR + branch


def positions_at_relative_depth(position: int, depth: int) -> range:
    """
    Positions of all descendants exactly `depth` levels below `position`.

    depth 0 is the node itself.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    width = TREE_BRANCHING_FACTOR ** depth
    start = (position - 1) * width + 1
    return range(start, start + width)


def get_ancestor_position_ids(position_id: str) -> list[str]:
    """
    Position ids of all ancestors, nearest first, ending with the root.

    Empty for the root itself.
    """
    level, position = parse_position_id(position_id)
    ancestors = []
    while level > ROOT_LEVEL:
        level -= 1
        position = (position - 1) // TREE_BRANCHING_FACTOR + 1
        ancestors.append(format_position_id(level, position))
    return ancestors


def next_branch(last_referral_branch: int | None) -> int:
    """Round-robin: the branch after the last one used (1 -> 2 -> 3 -> 1)."""
    return (last_referral_branch or 1) % TREE_BRANCHING_FACTOR + 1


def branch_rotation(start: int) -> list[int]:
    """All three branches in rotation order beginning with `start`."""
    return [
        (start - 1 + offset) % TREE_BRANCHING_FACTOR + 1
        for offset in range(TREE_BRANCHING_FACTOR)
    ]
