"""Collision detection — pure placement predicates for the rack U-grid.

Nothing in this module mutates a rack, so every function is safe to call
speculatively (e.g. to grey out an invalid drop target).

Occupancy is tracked in half-U cells: a device at ``position`` with height
``h`` occupies the closed cell range ``[position, position + h - 0.5]``.
For whole-U devices this is the familiar ``[position, position + h - 1]``
slot range; for 0.5U devices it keeps the interval non-empty.
"""

from __future__ import annotations

import logging

from rackplanner.catalog.registry import CatalogLike, get_device_type
from rackplanner.config import RACK_RULES

from .models import PlacedDevice, PlacementResult, Rack, Reason, URange, check_face


log = logging.getLogger("rackplanner.engine.collision")


# ── Ranges and faces ───────────────────────────────────────────────


def device_u_range(position: float, u_height: float) -> URange:
    """Range of U slots a device covers, as labelled on the rack."""
    return URange(bottom=position, top=position + u_height - 1)


def occupied_range(position: float, u_height: float) -> URange:
    """Closed range of half-U cells a device occupies."""
    return URange(bottom=position, top=position + u_height - RACK_RULES.granularity_u)


def ranges_overlap(a: URange, b: URange) -> bool:
    """Closed ranges overlap iff max(bottoms) <= min(tops); edge touch counts."""
    return max(a.bottom, b.bottom) <= min(a.top, b.top)


def effective_face(face: str, is_full_depth: bool) -> str:
    """Full-depth devices always occupy both faces."""
    return "both" if is_full_depth else face


def faces_collide(
    face_a: str, face_b: str,
    full_depth_a: bool = True, full_depth_b: bool = True,
) -> bool:
    """True if devices mounted on these faces compete for the same space.

    ``both`` intersects everything, equal faces intersect, and opposite
    faces intersect only when either device is full-depth.
    """
    if face_a == "both" or face_b == "both":
        return True
    if face_a == face_b:
        return True
    return full_depth_a or full_depth_b


def in_bounds(rack: Rack, position: float, u_height: float) -> bool:
    """Position on the half-U grid, bottom >= 1 and top <= rack height."""
    if not RACK_RULES.is_on_grid(position):
        return False
    return position >= 1 and position + u_height - 1 <= rack.height


# ── Core checks ────────────────────────────────────────────────────


def _placement_geometry(
    catalog: CatalogLike, placed: PlacedDevice,
) -> tuple[float, bool]:
    """(u_height, is_full_depth) of an existing placement.

    Unknown device types count as 1U full-depth so they still block.
    """
    dt = get_device_type(catalog, placed.device_type)
    if dt is None:
        log.warning("Unknown device type '%s' at U%s treated as 1U full-depth",
                    placed.device_type, placed.position)
        return 1.0, True
    return dt.u_height, dt.is_full_depth


def find_collisions(
    rack: Rack,
    catalog: CatalogLike,
    u_height: float,
    position: float,
    *,
    face: str = RACK_RULES.default_face,
    is_full_depth: bool = True,
    exclude_index: int | None = None,
) -> list[PlacedDevice]:
    """Every existing placement a candidate would collide with.

    Parameters
    ----------
    rack : Rack
        Rack whose current placements are checked.
    catalog : CatalogLike
        Device-type lookup for the existing placements.
    u_height, position : float
        Candidate height and bottom U.
    face : str
        Candidate face ("front", "rear" or "both").
    is_full_depth : bool
        Whether the candidate device is full-depth.
    exclude_index : int, optional
        Index in ``rack.devices`` to ignore (the device being moved).

    Returns
    -------
    list[PlacedDevice]
        The complete blocking set, in rack order (empty = no collision).
    """
    check_face(face)
    new_range = occupied_range(position, u_height)
    collisions: list[PlacedDevice] = []

    for i, placed in enumerate(rack.devices):
        if exclude_index is not None and i == exclude_index:
            continue
        h, full = _placement_geometry(catalog, placed)
        if (ranges_overlap(new_range, occupied_range(placed.position, h))
                and faces_collide(face, placed.face, is_full_depth, full)):
            collisions.append(placed)

    return collisions


def can_place_device(
    rack: Rack,
    catalog: CatalogLike,
    u_height: float,
    position: float,
    *,
    face: str = RACK_RULES.default_face,
    is_full_depth: bool = True,
    exclude_index: int | None = None,
) -> bool:
    """True if the candidate is in bounds and collides with nothing."""
    if not in_bounds(rack, position, u_height):
        return False
    return not find_collisions(
        rack, catalog, u_height, position,
        face=face, is_full_depth=is_full_depth, exclude_index=exclude_index,
    )


def check_placement(
    rack: Rack,
    catalog: CatalogLike,
    u_height: float,
    position: float,
    *,
    face: str = RACK_RULES.default_face,
    is_full_depth: bool = True,
    exclude_index: int | None = None,
) -> PlacementResult:
    """Bounds + collision check as a result object (nothing is placed)."""
    if not in_bounds(rack, position, u_height):
        return PlacementResult.fail(
            Reason.OUT_OF_BOUNDS,
            f"{u_height}U at U{position} does not fit a {rack.height}U rack",
        )
    blocking = find_collisions(
        rack, catalog, u_height, position,
        face=face, is_full_depth=is_full_depth, exclude_index=exclude_index,
    )
    if blocking:
        return PlacementResult.fail(
            Reason.COLLISION,
            f"{u_height}U at U{position} ({face}) overlaps {len(blocking)} device(s)",
            collisions=blocking,
        )
    return PlacementResult(True, Reason.OK)


# ── Drop-target helpers ────────────────────────────────────────────


def find_valid_drop_positions(
    rack: Rack,
    catalog: CatalogLike,
    u_height: float,
    *,
    face: str = RACK_RULES.default_face,
    is_full_depth: bool = True,
    step: float = 1.0,
) -> list[float]:
    """All bottom positions (ascending, every *step* U from U1) that accept the device."""
    valid: list[float] = []
    max_position = rack.height - u_height + 1
    n = int((max_position - 1) // step) + 1 if max_position >= 1 else 0
    for k in range(n):
        position = 1 + k * step
        if can_place_device(rack, catalog, u_height, position,
                            face=face, is_full_depth=is_full_depth):
            valid.append(position)
    return valid


def snap_to_nearest_valid_position(
    rack: Rack,
    catalog: CatalogLike,
    u_height: float,
    target_position: float,
    *,
    face: str = RACK_RULES.default_face,
    is_full_depth: bool = True,
) -> float | None:
    """Closest valid whole-U drop position to *target_position* (ties → lower U)."""
    valid = find_valid_drop_positions(rack, catalog, u_height,
                                      face=face, is_full_depth=is_full_depth)
    if not valid:
        return None
    return min(valid, key=lambda p: (abs(target_position - p), p))


def get_blocked_slots(
    rack: Rack, view_face: str, catalog: CatalogLike,
) -> list[URange]:
    """U ranges hidden behind half-depth devices mounted on the other face.

    Full-depth and ``both`` devices are visible from either side, so they
    are never reported.  Placements with unknown types are skipped.
    Adjacent devices give separate ranges.
    """
    check_face(view_face)
    blocked: list[URange] = []
    for placed in rack.devices:
        dt = get_device_type(catalog, placed.device_type)
        if dt is None or dt.is_full_depth:
            continue
        if placed.face == "both" or placed.face == view_face:
            continue
        blocked.append(device_u_range(placed.position, dt.u_height))
    return blocked
