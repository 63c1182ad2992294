"""Resize validation — is a rack height change safe for the current placements?

Growing is always allowed.  Shrinking is refused when any placement's
top U (rounded up for half-U devices) would end above the new height;
every conflict is reported, not just the first.
"""

from __future__ import annotations

import logging
import math

from rackplanner.catalog.models import DeviceType
from rackplanner.catalog.registry import CatalogLike, get_device_type
from rackplanner.config import RACK_RULES

from .models import ConflictInfo, PlacedDevice, Rack, ResizeValidationResult


log = logging.getLogger("rackplanner.engine.resize")


def _fmt_u(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def device_top(position: float, u_height: float) -> int:
    """Smallest whole U that fully contains the device."""
    return math.ceil(position + u_height - 1)


def can_resize_rack_to(
    rack: Rack, new_height: int, catalog: CatalogLike,
) -> ResizeValidationResult:
    """Check a proposed height change without applying it.

    Unknown device types count as 1U so a missing catalog entry can never
    hide a conflict.
    """
    if new_height >= rack.height:
        return ResizeValidationResult(allowed=True)

    conflicts: list[PlacedDevice] = []
    for placed in rack.devices:
        dt = get_device_type(catalog, placed.device_type)
        u_height = dt.u_height if dt is not None else 1
        if device_top(placed.position, u_height) > new_height:
            conflicts.append(placed)

    return ResizeValidationResult(allowed=not conflicts, conflicts=conflicts)


# ── Presentation helpers ───────────────────────────────────────────


def get_device_range_text(device: PlacedDevice, device_type: DeviceType | None) -> str:
    """``"U15"`` for a device within one U, ``"U10-11"`` otherwise."""
    u_height = device_type.u_height if device_type is not None else 1
    top = device_top(device.position, u_height)
    if top <= device.position:
        return f"U{_fmt_u(device.position)}"
    return f"U{_fmt_u(device.position)}-{top}"


def get_conflict_details(
    conflicts: list[PlacedDevice], catalog: CatalogLike,
) -> list[ConflictInfo]:
    return [ConflictInfo(d, get_device_type(catalog, d.device_type)) for d in conflicts]


def format_conflict_message(conflicts: list[ConflictInfo]) -> str:
    """e.g. ``"Switch at U40, Storage at U38-40"``."""
    parts = []
    for info in conflicts:
        dt = info.device_type
        # blank names and models fall through to the next label
        label = (info.device.name
                 or (dt.model if dt is not None else None)
                 or (dt.slug if dt is not None else None)
                 or "Device")
        parts.append(f"{label} at {get_device_range_text(info.device, dt)}")
    return ", ".join(parts)


def resize_rack(
    rack: Rack, new_height: int, catalog: CatalogLike,
) -> ResizeValidationResult:
    """Apply a height change when it is allowed; the rack is untouched otherwise."""
    if not RACK_RULES.valid_rack_height(new_height):
        raise ValueError(
            f"Rack height must be a whole number between {RACK_RULES.min_rack_height} "
            f"and {RACK_RULES.max_rack_height}, got {new_height!r}"
        )
    result = can_resize_rack_to(rack, new_height, catalog)
    if result.allowed:
        log.info("Resized rack '%s' from %dU to %dU", rack.name, rack.height, new_height)
        rack.height = new_height
    else:
        log.debug("Resize of '%s' to %dU refused: %d conflict(s)",
                  rack.name, new_height, len(result.conflicts))
    return result
