"""Catalog serialization — convert device-type dataclasses to JSON-safe dicts."""

from __future__ import annotations

from typing import Any

from .models import DeviceType, Slot, CatalogResult


def catalog_to_dict(result: CatalogResult) -> dict:
    """Serialize a CatalogResult to a JSON-safe dict for the web API."""
    return {
        "ok": result.ok,
        "device_type_count": len(result.device_types),
        "device_types": [device_type_to_dict(dt) for dt in result.device_types],
        "errors": [{"slug": e.slug, "field": e.field, "message": e.message}
                   for e in result.errors],
    }


def slot_to_dict(s: Slot) -> dict:
    d: dict[str, Any] = {
        "id": s.id,
        "position": {"row": s.position.row, "col": s.position.col},
        "width_fraction": s.width_fraction,
        "height_units": s.height_units,
    }
    if s.accepts:
        d["accepts"] = list(s.accepts)
    return d


def device_type_to_dict(dt: DeviceType) -> dict:
    """Serialize a DeviceType to a JSON-safe dict.

    Defaults are omitted so library files stay compact.
    """
    d: dict[str, Any] = {
        "slug": dt.slug,
        "u_height": dt.u_height,
        "category": dt.category,
    }

    if dt.model is not None:
        d["model"] = dt.model
    if dt.manufacturer is not None:
        d["manufacturer"] = dt.manufacturer
    if dt.colour is not None:
        d["colour"] = dt.colour
    if not dt.is_full_depth:
        d["is_full_depth"] = False
    if dt.slot_width != 2:
        d["slot_width"] = dt.slot_width
    if dt.subdevice_role != "none":
        d["subdevice_role"] = dt.subdevice_role
    if dt.slots:
        d["slots"] = [slot_to_dict(s) for s in dt.slots]

    return d
