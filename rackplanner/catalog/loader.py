"""Catalog loader — reads device-type library *.json files, parses and validates them."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from shapely.geometry import box as shapely_box

from rackplanner.config import RACK_RULES, DEVICE_CATEGORIES, SUBDEVICE_ROLES

from .models import (
    DeviceType, Slot, SlotPosition, ValidationError, CatalogResult,
)
from .slug import is_valid_slug


log = logging.getLogger("rackplanner.catalog.loader")

LIBRARY_DIR = Path(__file__).resolve().parent / "data"
STARTER_LIBRARY = LIBRARY_DIR / "starter.json"

_AREA_EPS = 1e-9


# ── Validation ─────────────────────────────────────────────────────

def slot_box(slot: Slot):
    """Shapely box of a bay on the container face.

    The face spans x ∈ [0, 1] (width fraction) and y ∈ [0, u_height].
    Bays form a grid: column *c* starts at ``c * width_fraction``, row
    *r* starts at ``r * height_units``.
    """
    x0 = slot.position.col * slot.width_fraction
    y0 = slot.position.row * slot.height_units
    return shapely_box(x0, y0, x0 + slot.width_fraction, y0 + slot.height_units)


def _validate_slots(dt: DeviceType) -> list[ValidationError]:
    errs: list[ValidationError] = []
    slug = dt.slug

    if dt.slots and dt.subdevice_role != "parent":
        errs.append(ValidationError(slug, "slots",
                                    "Only subdevice_role 'parent' may define slots"))
    if dt.subdevice_role == "parent" and not dt.slots:
        errs.append(ValidationError(slug, "slots",
                                    "Container device types need at least one slot"))

    seen: set[str] = set()
    for s in dt.slots:
        if s.id in seen:
            errs.append(ValidationError(slug, f"slots.{s.id}", "Duplicate slot ID"))
        seen.add(s.id)
        if not (0 < s.width_fraction <= 1):
            errs.append(ValidationError(slug, f"slots.{s.id}.width_fraction",
                                        "Must be in (0, 1]"))
        if s.height_units <= 0 or not RACK_RULES.is_on_grid(s.height_units):
            errs.append(ValidationError(slug, f"slots.{s.id}.height_units",
                                        f"Must be a positive multiple of {RACK_RULES.granularity_u}"))
        if s.position.row < 0 or s.position.col < 0:
            errs.append(ValidationError(slug, f"slots.{s.id}.position",
                                        "Row and column must be >= 0"))
        for cat in s.accepts or ():
            if cat not in DEVICE_CATEGORIES:
                errs.append(ValidationError(slug, f"slots.{s.id}.accepts",
                                            f"Unknown category '{cat}'"))
    if errs:
        return errs

    # Geometry: every bay inside the face, no two bays overlapping
    face = shapely_box(0.0, 0.0, 1.0, dt.u_height).buffer(_AREA_EPS)
    boxes = [(s.id, slot_box(s)) for s in dt.slots]
    for sid, b in boxes:
        if not face.contains(b):
            errs.append(ValidationError(slug, f"slots.{sid}",
                                        "Extends outside the container face"))
    for i, (sid_a, a) in enumerate(boxes):
        for sid_b, b in boxes[i + 1:]:
            if a.intersection(b).area > _AREA_EPS:
                errs.append(ValidationError(slug, f"slots.{sid_a}",
                                            f"Overlaps slot '{sid_b}'"))
    return errs


def validate_device_type(dt: DeviceType) -> list[ValidationError]:
    """Run all validation checks on a single device type."""
    errs: list[ValidationError] = []
    slug = dt.slug

    if not is_valid_slug(slug):
        errs.append(ValidationError(slug, "slug",
                                    "Must be lowercase alphanumerics separated by single hyphens"))

    h = dt.u_height
    if not (RACK_RULES.min_device_height <= h <= RACK_RULES.max_device_height):
        errs.append(ValidationError(slug, "u_height",
                                    f"Must be between {RACK_RULES.min_device_height} "
                                    f"and {RACK_RULES.max_device_height}"))
    elif not RACK_RULES.is_on_grid(h):
        errs.append(ValidationError(slug, "u_height",
                                    f"Must be a multiple of {RACK_RULES.granularity_u}"))

    if dt.slot_width not in (1, 2):
        errs.append(ValidationError(slug, "slot_width", "Must be 1 (half) or 2 (full)"))
    if dt.category not in DEVICE_CATEGORIES:
        errs.append(ValidationError(slug, "category", f"Unknown category '{dt.category}'"))
    if dt.subdevice_role not in SUBDEVICE_ROLES:
        errs.append(ValidationError(slug, "subdevice_role",
                                    f"Unknown role '{dt.subdevice_role}'"))

    errs.extend(_validate_slots(dt))
    return errs


# ── Parsing ────────────────────────────────────────────────────────

def _parse_slot(data: dict) -> Slot:
    pos = data.get("position", {})
    accepts = data.get("accepts")
    return Slot(
        id=str(data["id"]),
        position=SlotPosition(row=int(pos.get("row", 0)), col=int(pos.get("col", 0))),
        width_fraction=float(data.get("width_fraction", 1.0)),
        height_units=float(data["height_units"]),
        accepts=tuple(accepts) if accepts else None,
    )


def parse_device_type(data: dict, source_file: str = "") -> DeviceType:
    return DeviceType(
        slug=data["slug"],
        u_height=float(data["u_height"]),
        category=data.get("category", "other"),
        model=data.get("model"),
        manufacturer=data.get("manufacturer"),
        colour=data.get("colour"),
        is_full_depth=data.get("is_full_depth", True) is not False,
        slot_width=int(data.get("slot_width", 2)),
        slots=tuple(_parse_slot(s) for s in data.get("slots") or ()),
        subdevice_role=data.get("subdevice_role") or "none",
        source_file=source_file,
    )


# ── Public API ─────────────────────────────────────────────────────

def load_library_file(path: Path) -> CatalogResult:
    """Load one library file: a JSON list of device types, or
    ``{"device_types": [...]}``."""
    device_types: list[DeviceType] = []
    errors: list[ValidationError] = []

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        errors.append(ValidationError(path.stem, "json", f"Parse error: {exc}"))
        return CatalogResult(device_types, errors)
    except OSError as exc:
        errors.append(ValidationError(path.stem, "file", f"Read error: {exc}"))
        return CatalogResult(device_types, errors)

    entries = raw.get("device_types", []) if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        errors.append(ValidationError(path.stem, "device_types", "Expected a list"))
        return CatalogResult(device_types, errors)

    for i, entry in enumerate(entries):
        try:
            dt = parse_device_type(entry, source_file=str(path))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            slug = entry.get("slug", f"{path.stem}[{i}]") if isinstance(entry, dict) else f"{path.stem}[{i}]"
            errors.append(ValidationError(slug, "parse", f"Missing/invalid field: {exc}"))
            continue
        errors.extend(validate_device_type(dt))
        device_types.append(dt)

    return CatalogResult(device_types, errors)


def load_catalog(catalog_dir: Path | None = None) -> CatalogResult:
    """Load all *.json library files in a directory, parse and validate.

    Entries that fail to parse are skipped (error recorded).
    Entries that parse but have validation issues are still included.
    """
    d = catalog_dir or LIBRARY_DIR
    device_types: list[DeviceType] = []
    errors: list[ValidationError] = []

    json_files = sorted(d.glob("*.json"))
    if not json_files:
        errors.append(ValidationError("_catalog", "files", f"No .json files found in {d}"))
        return CatalogResult(device_types, errors)

    for path in json_files:
        result = load_library_file(path)
        device_types.extend(result.device_types)
        errors.extend(result.errors)

    # Duplicate slugs across files
    counts: dict[str, int] = {}
    for dt in device_types:
        counts[dt.slug] = counts.get(dt.slug, 0) + 1
    for slug, count in counts.items():
        if count > 1:
            errors.append(ValidationError(slug, "slug", f"Duplicate slug (appears {count} times)"))

    if errors:
        log.warning("Catalog %s loaded with %d validation error(s)", d, len(errors))
    log.info("Loaded %d device types from %s", len(device_types), d)
    return CatalogResult(device_types, errors)


def load_starter_library() -> CatalogResult:
    """The packaged generic device library."""
    return load_library_file(STARTER_LIBRARY)
