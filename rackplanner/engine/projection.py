"""Export / render projection — a flat, read-only view of a rack elevation."""

from __future__ import annotations

from dataclasses import dataclass

from rackplanner.catalog.models import DeviceType
from rackplanner.catalog.registry import CatalogLike, get_device_type
from rackplanner.config import CATEGORY_COLOURS

from .collision import effective_face, faces_collide
from .models import PlacedDevice, Rack, check_face


DEFAULT_COLOUR = CATEGORY_COLOURS["other"]


@dataclass
class ElevationEntry:
    device: PlacedDevice
    device_type: DeviceType
    face: str                           # effective face ("both" for full-depth)
    colour: str


def effective_colour(placed: PlacedDevice, dt: DeviceType) -> str:
    """Placement override, then type colour, then the category default."""
    return (placed.colour_override
            or dt.colour
            or CATEGORY_COLOURS.get(dt.category, DEFAULT_COLOUR))


def build_elevation(
    rack: Rack, catalog: CatalogLike, view: str | None = None,
) -> list[ElevationEntry]:
    """Entries for every placement with a known type, bottom to top.

    With *view* ("front" or "rear") only devices visible from that side
    are returned.
    """
    if view is not None:
        check_face(view)
    entries: list[ElevationEntry] = []
    for placed in sorted(rack.devices, key=lambda d: d.position):
        dt = get_device_type(catalog, placed.device_type)
        if dt is None:
            continue
        face = effective_face(placed.face, dt.is_full_depth)
        if view is not None and not faces_collide(view, face, False, dt.is_full_depth):
            continue
        entries.append(ElevationEntry(placed, dt, face, effective_colour(placed, dt)))
    return entries
