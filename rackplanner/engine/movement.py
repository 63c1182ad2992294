"""Movement engine — directional "leapfrog" nudges.

A nudge advances the candidate position by ``direction * step`` until a
clear, in-bounds spot turns up.  Blocked candidates are skipped rather
than refused, so a device jumps over a contiguous run of neighbours to
the next gap.  Two failure reasons are kept apart on purpose:

  at_boundary         the very first step leaves the rack
  no_valid_position   blocked all the way to the wall (or lookup failed)
"""

from __future__ import annotations

import logging
import math

from rackplanner.catalog.models import DeviceType
from rackplanner.catalog.registry import CatalogLike, get_device_type
from rackplanner.config import RACK_RULES

from .collision import can_place_device, in_bounds
from .models import MoveResult, PlacedDevice, Rack, Reason


log = logging.getLogger("rackplanner.engine.movement")

UP = 1
DOWN = -1


def get_device_with_type(
    rack: Rack, catalog: CatalogLike, index: int,
) -> tuple[PlacedDevice, DeviceType] | None:
    """Placement at *index* together with its resolved type, or None."""
    if not 0 <= index < len(rack.devices):
        return None
    placed = rack.devices[index]
    dt = get_device_type(catalog, placed.device_type)
    if dt is None:
        return None
    return placed, dt


def _check_args(direction: int, step: float | None) -> None:
    if direction not in (UP, DOWN):
        raise ValueError(f"direction must be +1 or -1, got {direction!r}")
    if step is not None and (step <= 0 or not RACK_RULES.is_on_grid(step)):
        raise ValueError(
            f"step must be a positive multiple of {RACK_RULES.granularity_u}, got {step!r}"
        )


def find_next_valid_position(
    rack: Rack,
    catalog: CatalogLike,
    index: int,
    direction: int,
    step: float | None = None,
) -> MoveResult:
    """Search for the next position a device can be nudged to.

    Parameters
    ----------
    rack : Rack
        Current rack state; never modified.
    catalog : CatalogLike
        Device-type lookup.
    index : int
        Index in ``rack.devices`` of the device to move.
    direction : int
        ``+1`` (up) or ``-1`` (down).
    step : float, optional
        Distance per candidate.  Defaults to the device's own height, so a
        2U device hops in 2U steps; 0.5 gives fine control.

    Returns
    -------
    MoveResult
        ``moved`` with the new position, or ``at_boundary`` /
        ``no_valid_position`` with ``new_position=None``.
    """
    _check_args(direction, step)
    found = get_device_with_type(rack, catalog, index)
    if found is None:
        return MoveResult(False, None, Reason.NO_VALID_POSITION)
    placed, dt = found

    step = dt.u_height if step is None else step
    if step <= 0:
        return MoveResult(False, None, Reason.NO_VALID_POSITION)
    max_steps = math.ceil(rack.height / step)
    candidate = placed.position

    for attempt in range(max_steps):
        candidate += direction * step
        if not in_bounds(rack, candidate, dt.u_height):
            reason = Reason.AT_BOUNDARY if attempt == 0 else Reason.NO_VALID_POSITION
            return MoveResult(False, None, reason)
        if can_place_device(rack, catalog, dt.u_height, candidate,
                            face=placed.face, is_full_depth=dt.is_full_depth,
                            exclude_index=index):
            return MoveResult(True, candidate, Reason.MOVED)

    return MoveResult(False, None, Reason.NO_VALID_POSITION)


def can_move_up(rack: Rack, catalog: CatalogLike, index: int) -> bool:
    return find_next_valid_position(rack, catalog, index, UP).success


def can_move_down(rack: Rack, catalog: CatalogLike, index: int) -> bool:
    return find_next_valid_position(rack, catalog, index, DOWN).success


def move_device(
    rack: Rack,
    catalog: CatalogLike,
    index: int,
    direction: int,
    step: float | None = None,
) -> MoveResult:
    """Nudge a device and apply the result to the rack when it succeeds."""
    result = find_next_valid_position(rack, catalog, index, direction, step)
    if result.success:
        placed = rack.devices[index]
        log.info("Moved %s from U%s to U%s", placed.id, placed.position, result.new_position)
        placed.position = result.new_position
    else:
        log.debug("Nudge of device %d refused: %s", index, result.reason.value)
    return result
