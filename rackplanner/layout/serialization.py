"""Layout serialization — Rack <-> JSON-safe dicts for saving and loading.

A layout file holds one rack plus the layout-level device types it uses:

  {
    "version": "1.0",
    "name": "...",
    "rack": {"name", "height", "width", "starting_unit", "devices", "children"},
    "device_types": [...]
  }

Persistence never reinterprets positions: a 0.5U device saved at 10.5
loads back at exactly 10.5.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from rackplanner.catalog.models import CatalogResult, DeviceType, ValidationError
from rackplanner.catalog.registry import DeviceCatalog
from rackplanner.catalog.loader import parse_device_type, validate_device_type
from rackplanner.catalog.serialization import device_type_to_dict
from rackplanner.config import RACK_RULES
from rackplanner.engine.models import ChildPlacement, PlacedDevice, Rack, generate_id


log = logging.getLogger("rackplanner.layout.serialization")

LAYOUT_VERSION = "1.0"


# ── To dict ────────────────────────────────────────────────────────


def placed_device_to_dict(d: PlacedDevice) -> dict:
    out: dict[str, Any] = {
        "id": d.id,
        "device_type": d.device_type,
        "position": d.position,
        "face": d.face,
    }
    for key in ("name", "colour_override", "front_image", "rear_image"):
        value = getattr(d, key)
        if value is not None:
            out[key] = value
    return out


def child_to_dict(c: ChildPlacement) -> dict:
    out: dict[str, Any] = {
        "id": c.id,
        "device_type": c.device_type,
        "container_id": c.container_id,
        "slot_id": c.slot_id,
    }
    if c.name is not None:
        out["name"] = c.name
    return out


def rack_to_dict(rack: Rack) -> dict:
    return {
        "name": rack.name,
        "height": rack.height,
        "width": rack.width,
        "starting_unit": rack.starting_unit,
        "devices": [placed_device_to_dict(d) for d in rack.devices],
        "children": [child_to_dict(c) for c in rack.children],
    }


def layout_to_dict(rack: Rack, catalog: DeviceCatalog | None = None) -> dict:
    """Full layout document, including the catalog's layout-level types."""
    types = catalog.layout_types if catalog is not None else []
    return {
        "version": LAYOUT_VERSION,
        "name": rack.name,
        "rack": rack_to_dict(rack),
        "device_types": [device_type_to_dict(dt) for dt in types],
    }


# ── From dict ──────────────────────────────────────────────────────


def parse_placed_device(data: dict) -> PlacedDevice:
    """A placement from plain data; a missing id gets a fresh one."""
    return PlacedDevice(
        id=str(data.get("id") or generate_id()),
        device_type=data["device_type"],
        position=float(data["position"]),
        face=data.get("face", RACK_RULES.default_face),
        name=data.get("name"),
        colour_override=data.get("colour_override"),
        front_image=data.get("front_image"),
        rear_image=data.get("rear_image"),
    )


def parse_child(data: dict) -> ChildPlacement:
    return ChildPlacement(
        id=str(data.get("id") or generate_id()),
        device_type=data["device_type"],
        container_id=str(data["container_id"]),
        slot_id=str(data["slot_id"]),
        name=data.get("name"),
    )


def parse_rack(data: dict) -> Rack:
    return Rack(
        height=int(data.get("height", RACK_RULES.default_rack_height)),
        name=data.get("name", "Rack"),
        width=int(data.get("width", RACK_RULES.default_rack_width)),
        starting_unit=int(data.get("starting_unit", 1)),
        devices=[parse_placed_device(d) for d in data.get("devices", [])],
        children=[parse_child(c) for c in data.get("children", [])],
    )


def parse_layout(data: dict) -> tuple[Rack, CatalogResult]:
    """Rack plus the layout's own device types (with any validation errors).

    Raises KeyError / TypeError / ValueError on structurally broken data;
    invariant violations are left to ``validate_layout``.
    """
    rack_data = data.get("rack", data)
    rack = parse_rack(rack_data)
    if "name" not in rack_data and "name" in data:
        rack.name = data["name"]

    device_types: list[DeviceType] = []
    errors: list[ValidationError] = []
    for i, entry in enumerate(data.get("device_types", [])):
        try:
            dt = parse_device_type(entry, source_file="layout")
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            slug = entry.get("slug", f"layout[{i}]") if isinstance(entry, dict) else f"layout[{i}]"
            errors.append(ValidationError(slug, "parse", f"Missing/invalid field: {exc}"))
            continue
        errors.extend(validate_device_type(dt))
        device_types.append(dt)

    log.info("Parsed layout '%s': %d device(s), %d child(ren), %d device type(s)",
             rack.name, len(rack.devices), len(rack.children), len(device_types))
    return rack, CatalogResult(device_types, errors)


def load_layout_file(path: Path) -> tuple[Rack, CatalogResult]:
    return parse_layout(json.loads(Path(path).read_text(encoding="utf-8")))


def save_layout_file(path: Path, rack: Rack, catalog: DeviceCatalog | None = None) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(layout_to_dict(rack, catalog), indent=2, ensure_ascii=False),
                 encoding="utf-8")
    return p
