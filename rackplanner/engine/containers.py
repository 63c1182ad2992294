"""Sub-slot container engine — bay occupancy inside shelves and chassis.

Bays are a separate occupancy namespace from the U-grid: a child is
identified by ``(container_id, slot_id)`` and never has a U position.
The container's own footprint still collides on the U-grid like any other
placement; that is handled by ``collision``, not here.
"""

from __future__ import annotations

import logging

from rackplanner.catalog.models import DeviceType, Slot
from rackplanner.catalog.registry import CatalogLike, get_device_type

from .images import ImageStore, placement_image_key, release_keys
from .models import ChildPlacement, Rack, Reason, SlotResult, generate_id


log = logging.getLogger("rackplanner.engine.containers")


# ── Bay rules ──────────────────────────────────────────────────────


def is_container(dt: DeviceType | None) -> bool:
    return dt is not None and dt.subdevice_role == "parent" and len(dt.slots) > 0


def get_slot(dt: DeviceType, slot_id: str) -> Slot | None:
    return next((s for s in dt.slots if s.id == slot_id), None)


def slot_accepts(slot: Slot, dt: DeviceType) -> bool:
    """Category allow-list check; a bay without ``accepts`` takes anything."""
    if not slot.accepts:
        return True
    return dt.category in slot.accepts


def get_children(rack: Rack, container_id: str) -> list[ChildPlacement]:
    return [c for c in rack.children if c.container_id == container_id]


def get_slot_occupancy(rack: Rack, container_id: str) -> dict[str, ChildPlacement]:
    """slot_id -> child for one container."""
    return {c.slot_id: c for c in get_children(rack, container_id)}


# ── Checks ─────────────────────────────────────────────────────────


def check_slot_placement(
    rack: Rack,
    catalog: CatalogLike,
    container_id: str,
    slot_id: str,
    child_slug: str,
    *,
    exclude_child_id: str | None = None,
) -> SlotResult:
    """Would *child_slug* fit bay *slot_id* of *container_id*? Nothing is changed."""
    container = rack.get_device(container_id)
    if container is None:
        return SlotResult(False, Reason.NOT_FOUND,
                          message=f"No placement with id '{container_id}'")
    container_type = get_device_type(catalog, container.device_type)
    if not is_container(container_type):
        return SlotResult(False, Reason.NOT_CONTAINER,
                          message=f"'{container.device_type}' has no bays")
    slot = get_slot(container_type, slot_id)
    if slot is None:
        return SlotResult(False, Reason.SLOT_NOT_FOUND,
                          message=f"'{container_type.slug}' has no slot '{slot_id}'")

    child_type = get_device_type(catalog, child_slug)
    if child_type is None:
        return SlotResult(False, Reason.NOT_FOUND,
                          message=f"Unknown device type '{child_slug}'")
    if child_type.u_height > slot.height_units:
        return SlotResult(False, Reason.TOO_TALL,
                          message=f"{child_type.u_height}U does not fit a "
                                  f"{slot.height_units}U bay")
    if not slot_accepts(slot, child_type):
        return SlotResult(False, Reason.CATEGORY_REJECTED,
                          message=f"Bay '{slot_id}' does not accept '{child_type.category}'")

    occupant = get_slot_occupancy(rack, container_id).get(slot_id)
    if occupant is not None and occupant.id != exclude_child_id:
        return SlotResult(False, Reason.SLOT_OCCUPIED, blocking=occupant,
                          message=f"Bay '{slot_id}' is already occupied")

    return SlotResult(True, Reason.OK)


# ── Operations ─────────────────────────────────────────────────────


def place_in_slot(
    rack: Rack,
    catalog: CatalogLike,
    container_id: str,
    slot_id: str,
    child_slug: str,
    *,
    name: str | None = None,
) -> SlotResult:
    """Put a new child device into a container bay."""
    result = check_slot_placement(rack, catalog, container_id, slot_id, child_slug)
    if not result.success:
        log.debug("Bay placement refused: %s", result.message)
        return result

    child = ChildPlacement(
        id=generate_id(),
        device_type=child_slug,
        container_id=container_id,
        slot_id=slot_id,
        name=name or None,
    )
    rack.children.append(child)
    log.info("Placed %s in %s/%s", child_slug, container_id, slot_id)
    return SlotResult(True, Reason.OK, child=child)


def move_to_slot(
    rack: Rack,
    catalog: CatalogLike,
    child_id: str,
    container_id: str,
    slot_id: str,
) -> SlotResult:
    """Move an existing child to another bay (same or different container)."""
    child = rack.get_child(child_id)
    if child is None:
        return SlotResult(False, Reason.NOT_FOUND,
                          message=f"No child placement with id '{child_id}'")
    result = check_slot_placement(rack, catalog, container_id, slot_id,
                                  child.device_type, exclude_child_id=child_id)
    if not result.success:
        return result

    child.container_id = container_id
    child.slot_id = slot_id
    log.info("Moved child %s to %s/%s", child_id, container_id, slot_id)
    return SlotResult(True, Reason.OK, child=child)


def remove_from_slot(
    rack: Rack, child_id: str, images: ImageStore | None = None,
) -> SlotResult:
    child = rack.get_child(child_id)
    if child is None:
        return SlotResult(False, Reason.NOT_FOUND,
                          message=f"No child placement with id '{child_id}'")
    rack.children.remove(child)
    released = release_keys(images, [placement_image_key(child.id)])
    log.info("Removed child %s from %s/%s", child.id, child.container_id, child.slot_id)
    return SlotResult(True, Reason.OK, child=child, released=released)


def remove_children_of(
    rack: Rack, container_id: str, images: ImageStore | None = None,
) -> list[str]:
    """Drop every child of a container; returns the released image keys."""
    doomed = get_children(rack, container_id)
    if not doomed:
        return []
    rack.children = [c for c in rack.children if c.container_id != container_id]
    return release_keys(images, [placement_image_key(c.id) for c in doomed])
