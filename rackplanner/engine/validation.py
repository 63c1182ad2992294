"""Whole-layout audit — every invariant violation in a loaded rack.

Engine operations keep a rack consistent on their own; this is for data
that arrived from elsewhere (a saved file, a hand-edited JSON).
"""

from __future__ import annotations

import logging

from rackplanner.catalog.registry import CatalogLike, get_device_type
from rackplanner.config import FACES, RACK_RULES

from .collision import faces_collide, in_bounds, occupied_range, ranges_overlap
from .containers import check_slot_placement
from .models import Rack


log = logging.getLogger("rackplanner.engine.validation")


def validate_layout(rack: Rack, catalog: CatalogLike) -> list[str]:
    """Return human-readable problems; an empty list means the layout is clean."""
    errors: list[str] = []

    if not RACK_RULES.valid_rack_height(rack.height):
        errors.append(f"Rack height {rack.height!r} outside "
                      f"{RACK_RULES.min_rack_height}-{RACK_RULES.max_rack_height}")

    seen_ids: set[str] = set()
    known = []
    for placed in rack.devices:
        label = placed.name or placed.id
        if placed.id in seen_ids:
            errors.append(f"Duplicate placement id '{placed.id}'")
        seen_ids.add(placed.id)

        if placed.face not in FACES:
            errors.append(f"{label}: unknown face '{placed.face}'")
            continue
        dt = get_device_type(catalog, placed.device_type)
        if dt is None:
            errors.append(f"{label}: unknown device type '{placed.device_type}'")
            continue
        if not RACK_RULES.is_on_grid(placed.position):
            errors.append(f"{label}: position {placed.position} is not on the "
                          f"{RACK_RULES.granularity_u}U grid")
        elif not in_bounds(rack, placed.position, dt.u_height):
            errors.append(f"{label}: {dt.u_height}U at U{placed.position} "
                          f"does not fit a {rack.height}U rack")
        known.append((placed, dt))

    for i, (a, dta) in enumerate(known):
        range_a = occupied_range(a.position, dta.u_height)
        for b, dtb in known[i + 1:]:
            if (ranges_overlap(range_a, occupied_range(b.position, dtb.u_height))
                    and faces_collide(a.face, b.face, dta.is_full_depth, dtb.is_full_depth)):
                errors.append(f"{a.name or a.id} overlaps {b.name or b.id}")

    for child in rack.children:
        if child.id in seen_ids:
            errors.append(f"Duplicate placement id '{child.id}'")
        seen_ids.add(child.id)
        check = check_slot_placement(rack, catalog, child.container_id, child.slot_id,
                                     child.device_type, exclude_child_id=child.id)
        if not check.success:
            errors.append(f"Child {child.name or child.id}: {check.message}")

    if errors:
        log.debug("Layout '%s' has %d problem(s)", rack.name, len(errors))
    return errors
