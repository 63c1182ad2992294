"""
FastAPI web server — single-editor HTTP surface over the rack engine.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from rackplanner.catalog import (
    CatalogError, CatalogResult, DeviceCatalog, catalog_to_dict, device_type_to_dict,
    load_catalog, parse_device_type, validate_device_type,
)
from rackplanner.config import RACK_RULES, load_settings
from rackplanner.engine import (
    InMemoryImageStore, Rack, Reason, build_elevation, can_resize_rack_to,
    delete_device_type, format_conflict_message, get_conflict_details, move_device,
    place_device, place_in_slot, remove_device, remove_from_slot, reposition_device,
    resize_rack, update_device_face, validate_layout,
)
from rackplanner.layout.serialization import (
    child_to_dict, layout_to_dict, parse_layout, placed_device_to_dict,
)


log = logging.getLogger("rackplanner.web.server")

# ── App ────────────────────────────────────────────────────────────

app = FastAPI(title="Rack Planner")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Editor state (persists across requests) ────────────────────────

_extra_libraries: list = []           # device types from RACKPLANNER_CATALOG_DIR
_catalog: DeviceCatalog | None = None
_rack: Rack = Rack()
_images = InMemoryImageStore()


def _load_extra_libraries() -> list:
    settings = load_settings()
    if settings.catalog_dir is None:
        return []
    result = load_catalog(settings.catalog_dir)
    for err in result.errors:
        log.warning("Catalog %s: %s", settings.catalog_dir, err)
    return [result.device_types]


def _get_catalog() -> DeviceCatalog:
    global _catalog, _extra_libraries
    if _catalog is None:
        _extra_libraries = _load_extra_libraries()
        _catalog = DeviceCatalog.with_starter_library(extra_libraries=_extra_libraries)
    return _catalog


# ── Result → HTTP mapping ──────────────────────────────────────────

_STATUS: dict[Reason, int] = {
    Reason.NOT_FOUND: 404,
    Reason.COLLISION: 409,
    Reason.SLOT_OCCUPIED: 409,
    Reason.AT_BOUNDARY: 409,
    Reason.NO_VALID_POSITION: 409,
    Reason.RESIZE_CONFLICT: 409,
    Reason.OUT_OF_BOUNDS: 422,
    Reason.NOT_CONTAINER: 422,
    Reason.SLOT_NOT_FOUND: 422,
    Reason.TOO_TALL: 422,
    Reason.CATEGORY_REJECTED: 422,
}


def _raise_for(reason: Reason, message: str = "", **payload: Any) -> None:
    detail = {"reason": reason.value, "message": message, **payload}
    raise HTTPException(_STATUS.get(reason, 400), detail)


def _device_index(device_id: str) -> int:
    idx = _rack.index_of(device_id)
    if idx is None:
        _raise_for(Reason.NOT_FOUND, f"No placement with id '{device_id}'")
    return idx


# ── Models ─────────────────────────────────────────────────────────

Face = Literal["front", "rear", "both"]


class PlaceRequest(BaseModel):
    device_type: str
    position: float
    face: Face = "front"
    name: str | None = None


class PositionRequest(BaseModel):
    position: float
    face: Face | None = None


class NudgeRequest(BaseModel):
    direction: Literal[1, -1]
    step: float | None = None


class FaceRequest(BaseModel):
    face: Face


class ResizeRequest(BaseModel):
    height: int


class ChildRequest(BaseModel):
    device_type: str
    name: str | None = None


# ── Layout ─────────────────────────────────────────────────────────

@app.get("/api/layout")
def get_layout():
    return layout_to_dict(_rack, _get_catalog())


@app.post("/api/layout")
def load_layout(data: dict[str, Any]):
    """Replace the current layout with plain layout data (after a full audit)."""
    global _catalog, _rack, _images
    try:
        rack, types = parse_layout(data)
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(422, f"Malformed layout: {e}")
    if not types.ok:
        raise HTTPException(422, {"errors": [str(e) for e in types.errors]})

    _get_catalog()
    catalog = DeviceCatalog.with_starter_library(types.device_types, _extra_libraries)
    errors = validate_layout(rack, catalog)
    if errors:
        raise HTTPException(422, {"errors": errors})

    _catalog, _rack = catalog, rack
    _images = InMemoryImageStore()
    log.info("Loaded layout '%s' (%d devices)", rack.name, len(rack.devices))
    return layout_to_dict(_rack, _catalog)


@app.post("/api/reset")
def reset_layout():
    """Start over with an empty default rack and the bundled libraries."""
    global _catalog, _rack, _images
    _catalog = None
    _rack = Rack()
    _images = InMemoryImageStore()
    return {"status": "ok"}


# ── Catalog ────────────────────────────────────────────────────────

@app.get("/api/catalog")
def get_catalog():
    catalog = _get_catalog()
    return catalog_to_dict(CatalogResult(catalog.all_device_types()))


@app.post("/api/catalog")
def add_device_type(data: dict[str, Any]):
    catalog = _get_catalog()
    try:
        dt = parse_device_type(data, source_file="layout")
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(422, f"Malformed device type: {e}")
    errors = validate_device_type(dt)
    if errors:
        raise HTTPException(422, {"errors": [str(e) for e in errors]})
    try:
        catalog.add(dt)
    except CatalogError as e:
        raise HTTPException(409, str(e))
    return device_type_to_dict(dt)


@app.delete("/api/catalog/{slug}")
def delete_catalog_entry(slug: str):
    result = delete_device_type(_rack, _get_catalog(), slug, _images)
    if not result.success:
        _raise_for(result.reason, result.message)
    return {"status": "ok", "released": result.released}


# ── Devices ────────────────────────────────────────────────────────

@app.post("/api/devices")
def add_device(req: PlaceRequest):
    result = place_device(_rack, _get_catalog(), req.device_type, req.position,
                          req.face, name=req.name)
    if not result.success:
        _raise_for(result.reason, result.message,
                   collisions=[d.id for d in result.collisions])
    return placed_device_to_dict(result.device)


@app.delete("/api/devices/{device_id}")
def delete_device(device_id: str):
    result = remove_device(_rack, device_id, _images)
    if not result.success:
        _raise_for(result.reason, result.message)
    return {"status": "ok", "released": result.released}


@app.put("/api/devices/{device_id}/position")
def set_device_position(device_id: str, req: PositionRequest):
    result = reposition_device(_rack, _get_catalog(), device_id, req.position, req.face)
    if not result.success:
        _raise_for(result.reason, result.message,
                   collisions=[d.id for d in result.collisions])
    return placed_device_to_dict(result.device)


@app.post("/api/devices/{device_id}/nudge")
def nudge_device(device_id: str, req: NudgeRequest):
    idx = _device_index(device_id)
    try:
        result = move_device(_rack, _get_catalog(), idx, req.direction, req.step)
    except ValueError as e:
        raise HTTPException(422, str(e))
    if not result.success:
        _raise_for(result.reason)
    return {"reason": result.reason.value, "position": result.new_position}


@app.put("/api/devices/{device_id}/face")
def set_device_face(device_id: str, req: FaceRequest):
    result = update_device_face(_rack, _get_catalog(), device_id, req.face)
    if not result.success:
        _raise_for(result.reason, result.message,
                   collisions=[d.id for d in result.collisions])
    return placed_device_to_dict(result.device)


# ── Rack ───────────────────────────────────────────────────────────

def _resize_payload(height: int, result) -> dict:
    details = get_conflict_details(result.conflicts, _get_catalog())
    return {
        "height": height,
        "allowed": result.allowed,
        "conflicts": [d.id for d in result.conflicts],
        "message": format_conflict_message(details),
    }


@app.get("/api/rack/resize-check")
def check_resize(height: int):
    if not RACK_RULES.valid_rack_height(height):
        raise HTTPException(422, f"Rack height must be between "
                                 f"{RACK_RULES.min_rack_height} and {RACK_RULES.max_rack_height}")
    return _resize_payload(height, can_resize_rack_to(_rack, height, _get_catalog()))


@app.post("/api/rack/resize")
def resize(req: ResizeRequest):
    try:
        result = resize_rack(_rack, req.height, _get_catalog())
    except ValueError as e:
        raise HTTPException(422, str(e))
    payload = _resize_payload(req.height, result)
    if not result.allowed:
        _raise_for(result.reason, payload["message"], conflicts=payload["conflicts"])
    return payload


@app.get("/api/elevation")
def get_elevation(view: Face | None = None):
    entries = build_elevation(_rack, _get_catalog(), view)
    return {
        "rack": {"name": _rack.name, "height": _rack.height,
                 "width": _rack.width, "starting_unit": _rack.starting_unit},
        "devices": [
            {
                **placed_device_to_dict(e.device),
                "u_height": e.device_type.u_height,
                "label": e.device.name or e.device_type.display_name,
                "effective_face": e.face,
                "colour": e.colour,
            }
            for e in entries
        ],
    }


# ── Container bays ─────────────────────────────────────────────────

@app.post("/api/devices/{device_id}/slots/{slot_id}")
def add_child(device_id: str, slot_id: str, req: ChildRequest):
    result = place_in_slot(_rack, _get_catalog(), device_id, slot_id,
                           req.device_type, name=req.name)
    if not result.success:
        _raise_for(result.reason, result.message,
                   blocking=result.blocking.id if result.blocking else None)
    return child_to_dict(result.child)


@app.delete("/api/children/{child_id}")
def delete_child(child_id: str):
    result = remove_from_slot(_rack, child_id, _images)
    if not result.success:
        _raise_for(result.reason, result.message)
    return {"status": "ok", "released": result.released}


def main(host: str = "127.0.0.1", port: int = 8000):
    import uvicorn
    uvicorn.run("rackplanner.web.server:app", host=host, port=port, reload=False)
