"""Engine dataclasses — rack state, placements and operation results."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

from rackplanner.catalog.models import DeviceType
from rackplanner.config import RACK_RULES, FACES


def generate_id() -> str:
    """Stable placement id, assigned once at placement time."""
    return str(uuid.uuid4())


def check_face(face: str) -> str:
    if face not in FACES:
        raise ValueError(f"Unknown face '{face}', expected one of {FACES}")
    return face


# ── Rack state ─────────────────────────────────────────────────────


@dataclass
class PlacedDevice:
    """A device mounted on the rack's U-grid."""

    id: str
    device_type: str                    # DeviceType.slug
    position: float                     # bottom U, 1-based, 0.5 granularity
    face: str = "front"                 # "front" | "rear" | "both"
    name: str | None = None
    colour_override: str | None = None
    front_image: str | None = None
    rear_image: str | None = None


@dataclass
class ChildPlacement:
    """A device sitting in a bay of a container placement.

    Bay occupancy is keyed by (container_id, slot_id), never by U position.
    """

    id: str
    device_type: str
    container_id: str                   # PlacedDevice.id of the container
    slot_id: str
    name: str | None = None


@dataclass
class Rack:
    height: int = RACK_RULES.default_rack_height
    name: str = "Rack"
    width: int = RACK_RULES.default_rack_width
    starting_unit: int = 1              # label offset only
    devices: list[PlacedDevice] = field(default_factory=list)
    children: list[ChildPlacement] = field(default_factory=list)

    def index_of(self, device_id: str) -> int | None:
        for i, d in enumerate(self.devices):
            if d.id == device_id:
                return i
        return None

    def get_device(self, device_id: str) -> PlacedDevice | None:
        i = self.index_of(device_id)
        return None if i is None else self.devices[i]

    def get_child(self, child_id: str) -> ChildPlacement | None:
        return next((c for c in self.children if c.id == child_id), None)

    def unit_label(self, position: float) -> float:
        """Displayed U number for an engine position."""
        return position + self.starting_unit - 1


@dataclass(frozen=True)
class URange:
    """Closed U range occupied by a device, as shown to users."""

    bottom: float
    top: float


# ── Results ────────────────────────────────────────────────────────


class Reason(str, Enum):
    OK = "ok"
    MOVED = "moved"
    NOT_FOUND = "not_found"
    OUT_OF_BOUNDS = "out_of_bounds"
    COLLISION = "collision"
    AT_BOUNDARY = "at_boundary"
    NO_VALID_POSITION = "no_valid_position"
    RESIZE_CONFLICT = "resize_conflict"
    # bay-level outcomes
    NOT_CONTAINER = "not_container"
    SLOT_NOT_FOUND = "slot_not_found"
    TOO_TALL = "too_tall"
    CATEGORY_REJECTED = "category_rejected"
    SLOT_OCCUPIED = "slot_occupied"


@dataclass
class PlacementResult:
    """Outcome of a place / remove / reposition style operation."""

    success: bool
    reason: Reason
    device: PlacedDevice | None = None
    collisions: list[PlacedDevice] = field(default_factory=list)
    released: list[str] = field(default_factory=list)   # image-store keys
    message: str = ""

    @classmethod
    def fail(cls, reason: Reason, message: str = "",
             collisions: list[PlacedDevice] | None = None) -> "PlacementResult":
        return cls(False, reason, collisions=collisions or [], message=message)


@dataclass
class MoveResult:
    """Outcome of a directional nudge search."""

    success: bool
    new_position: float | None
    reason: Reason


@dataclass
class ResizeValidationResult:
    allowed: bool
    conflicts: list[PlacedDevice] = field(default_factory=list)

    @property
    def reason(self) -> Reason:
        return Reason.OK if self.allowed else Reason.RESIZE_CONFLICT


@dataclass
class ConflictInfo:
    device: PlacedDevice
    device_type: DeviceType | None


@dataclass
class SlotResult:
    """Outcome of a bay-level operation on a container."""

    success: bool
    reason: Reason
    child: ChildPlacement | None = None
    blocking: ChildPlacement | None = None
    released: list[str] = field(default_factory=list)
    message: str = ""
