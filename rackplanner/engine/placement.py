"""Placement operations — place, remove and reposition devices on the U-grid.

Every operation validates first and mutates only on success, so a refused
request leaves the rack exactly as it was.  Cascades (a container's bay
children, image overrides, a deleted device type's placements) are
handled here, never in the collision detector.
"""

from __future__ import annotations

import logging
import re

from rackplanner.catalog.models import CatalogError
from rackplanner.catalog.registry import CatalogLike, DeviceCatalog, get_device_type
from rackplanner.config import RACK_RULES

from .collision import check_placement
from .containers import check_slot_placement, remove_children_of
from .images import ImageStore, placement_image_key, release_keys, sanitize_filename
from .models import PlacedDevice, PlacementResult, Rack, Reason, check_face, generate_id


log = logging.getLogger("rackplanner.engine.placement")

_COLOUR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
_GEOMETRY_FIELDS = ("u_height", "is_full_depth", "slots", "subdevice_role")


def _resolve_index(rack: Rack, target: str | int) -> int | None:
    """Index of a placement given its id or its index in ``rack.devices``."""
    if isinstance(target, int) and not isinstance(target, bool):
        return target if 0 <= target < len(rack.devices) else None
    return rack.index_of(target)


def _not_found(target: str | int) -> PlacementResult:
    return PlacementResult.fail(Reason.NOT_FOUND, f"No placement '{target}'")


# ── Place / remove / reposition ────────────────────────────────────


def place_device(
    rack: Rack,
    catalog: CatalogLike,
    device_type: str,
    position: float,
    face: str = RACK_RULES.default_face,
    *,
    name: str | None = None,
) -> PlacementResult:
    """Mount a new device with its bottom at *position*.

    Returns
    -------
    PlacementResult
        ``OK`` with the new PlacedDevice (fresh id), or ``NOT_FOUND`` /
        ``OUT_OF_BOUNDS`` / ``COLLISION`` (with the blocking set) and the
        rack untouched.
    """
    check_face(face)
    dt = get_device_type(catalog, device_type)
    if dt is None:
        return PlacementResult.fail(Reason.NOT_FOUND, f"Unknown device type '{device_type}'")

    result = check_placement(rack, catalog, dt.u_height, position,
                             face=face, is_full_depth=dt.is_full_depth)
    if not result.success:
        log.debug("Place %s at U%s refused: %s", device_type, position, result.reason.value)
        return result

    placed = PlacedDevice(
        id=generate_id(),
        device_type=device_type,
        position=position,
        face=face,
        name=name or None,
    )
    rack.devices.append(placed)
    log.info("Placed %s at U%s (%s) as %s", device_type, position, face, placed.id)
    return PlacementResult(True, Reason.OK, device=placed)


def remove_device(
    rack: Rack, target: str | int, images: ImageStore | None = None,
) -> PlacementResult:
    """Remove a placement by id or index, releasing its image overrides.

    Removing a container also removes every child in its bays.
    """
    idx = _resolve_index(rack, target)
    if idx is None:
        return _not_found(target)

    placed = rack.devices.pop(idx)
    released = remove_children_of(rack, placed.id, images)
    released += release_keys(images, [placement_image_key(placed.id)])
    log.info("Removed %s (%s) from U%s", placed.id, placed.device_type, placed.position)
    return PlacementResult(True, Reason.OK, device=placed, released=released)


def reposition_device(
    rack: Rack,
    catalog: CatalogLike,
    target: str | int,
    new_position: float,
    new_face: str | None = None,
) -> PlacementResult:
    """Absolute move (drag and drop) with the moving device excluded from collisions."""
    idx = _resolve_index(rack, target)
    if idx is None:
        return _not_found(target)
    placed = rack.devices[idx]
    face = check_face(new_face) if new_face is not None else placed.face

    dt = get_device_type(catalog, placed.device_type)
    if dt is None:
        return PlacementResult.fail(Reason.NOT_FOUND,
                                    f"Unknown device type '{placed.device_type}'")

    result = check_placement(rack, catalog, dt.u_height, new_position,
                             face=face, is_full_depth=dt.is_full_depth,
                             exclude_index=idx)
    if not result.success:
        return result

    placed.position = new_position
    placed.face = face
    log.info("Repositioned %s to U%s (%s)", placed.id, new_position, face)
    return PlacementResult(True, Reason.OK, device=placed)


def update_device_face(
    rack: Rack, catalog: CatalogLike, target: str | int, face: str,
) -> PlacementResult:
    """Flip a device to another face, re-validated like any move."""
    idx = _resolve_index(rack, target)
    if idx is None:
        return _not_found(target)
    return reposition_device(rack, catalog, idx, rack.devices[idx].position, face)


# ── Cosmetic per-placement overrides ───────────────────────────────


def update_device_name(rack: Rack, target: str | int, name: str | None) -> PlacementResult:
    idx = _resolve_index(rack, target)
    if idx is None:
        return _not_found(target)
    placed = rack.devices[idx]
    placed.name = name.strip() if name and name.strip() else None
    return PlacementResult(True, Reason.OK, device=placed)


def set_colour_override(rack: Rack, target: str | int, colour: str | None) -> PlacementResult:
    idx = _resolve_index(rack, target)
    if idx is None:
        return _not_found(target)
    if colour is not None and not _COLOUR_RE.match(colour):
        raise ValueError(f"Colour must look like #RRGGBB, got '{colour}'")
    placed = rack.devices[idx]
    placed.colour_override = colour
    return PlacementResult(True, Reason.OK, device=placed)


def set_placement_image(
    rack: Rack, target: str | int, face: str, filename: str | None,
    images: ImageStore | None = None,
) -> PlacementResult:
    """Set (or clear with None) the front / rear image override of one placement.

    When an existing override is cleared or replaced, that face of the
    ``placement-{id}`` key is dropped from *images* and the key is reported
    in ``released``.
    """
    if face not in ("front", "rear"):
        raise ValueError(f"Image face must be 'front' or 'rear', got '{face}'")
    idx = _resolve_index(rack, target)
    if idx is None:
        return _not_found(target)
    placed = rack.devices[idx]
    value = sanitize_filename(filename) or None
    attr = "front_image" if face == "front" else "rear_image"
    previous = getattr(placed, attr)
    setattr(placed, attr, value)

    released: list[str] = []
    if previous is not None and previous != value:
        key = placement_image_key(placed.id)
        if images is not None:
            images.remove_device_image(key, face)
        released.append(key)
    return PlacementResult(True, Reason.OK, device=placed, released=released)


def clear_rack(rack: Rack, images: ImageStore | None = None) -> PlacementResult:
    """Remove every placement and bay child."""
    keys = [placement_image_key(c.id) for c in rack.children]
    keys += [placement_image_key(d.id) for d in rack.devices]
    count = len(rack.devices)
    rack.devices.clear()
    rack.children.clear()
    released = release_keys(images, keys)
    log.info("Cleared rack '%s' (%d device(s))", rack.name, count)
    return PlacementResult(True, Reason.OK, released=released)


# ── Device-type level changes ──────────────────────────────────────


def delete_device_type(
    rack: Rack,
    catalog: DeviceCatalog,
    slug: str,
    images: ImageStore | None = None,
) -> PlacementResult:
    """Delete a layout device type together with every placement of it."""
    if slug not in {dt.slug for dt in catalog.layout_types}:
        return PlacementResult.fail(Reason.NOT_FOUND, f"'{slug}' is not a layout device type")

    released: list[str] = []
    for placed in [d for d in rack.devices if d.device_type == slug]:
        released += remove_device(rack, placed.id, images).released
    for child in [c for c in rack.children if c.device_type == slug]:
        rack.children.remove(child)
        released += release_keys(images, [placement_image_key(child.id)])

    catalog.remove(slug)
    released += release_keys(images, [slug])
    log.info("Deleted device type %s (%d image key(s) released)", slug, len(released))
    return PlacementResult(True, Reason.OK, released=released)


def update_device_type(
    rack: Rack, catalog: DeviceCatalog, slug: str, **changes,
) -> PlacementResult:
    """Replace a device type, refusing changes that would break current placements.

    Geometry changes are re-checked for every placement of *slug* (bounds,
    collisions) and every bay child of it, against a probe catalog that
    already holds the new definition.
    """
    current = catalog.resolve(slug)
    if current is None:
        return PlacementResult.fail(Reason.NOT_FOUND, f"Unknown device type '{slug}'")

    if any(f in changes for f in _GEOMETRY_FIELDS):
        try:
            probe_type = DeviceCatalog([current]).update(slug, **changes)
        except CatalogError as exc:
            raise ValueError(str(exc)) from exc
        probe = DeviceCatalog([probe_type], [catalog.all_device_types()])

        for i, placed in enumerate(rack.devices):
            if placed.device_type != slug:
                continue
            result = check_placement(rack, probe, probe_type.u_height, placed.position,
                                     face=placed.face,
                                     is_full_depth=probe_type.is_full_depth,
                                     exclude_index=i)
            if not result.success:
                return result
        for child in rack.children:
            container = rack.get_device(child.container_id)
            if child.device_type != slug and (container is None or container.device_type != slug):
                continue
            check = check_slot_placement(rack, probe, child.container_id, child.slot_id,
                                         child.device_type, exclude_child_id=child.id)
            if not check.success:
                return PlacementResult.fail(check.reason, check.message)

    catalog.update(slug, **changes)
    return PlacementResult(True, Reason.OK)
