"""Catalog dataclasses — typed representations of device-type library entries."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SlotPosition:
    row: int                            # 0 = bottom row of the container face
    col: int                            # 0 = left-most column


@dataclass(frozen=True)
class Slot:
    """A bay inside a container device (shelf, chassis)."""
    id: str
    position: SlotPosition
    width_fraction: float               # share of the container width, 0–1
    height_units: float                 # tallest child the bay can hold (U)
    accepts: tuple[str, ...] | None = None   # category allow-list, None = anything


@dataclass(frozen=True)
class DeviceType:
    slug: str
    u_height: float
    category: str = "other"
    model: str | None = None
    manufacturer: str | None = None
    colour: str | None = None
    is_full_depth: bool = True
    slot_width: int = 2                 # 1 = half width, 2 = full width
    slots: tuple[Slot, ...] = ()
    subdevice_role: str = "none"        # "none" | "parent" | "child"
    source_file: str = ""               # path of the JSON file (for error reporting)

    @property
    def display_name(self) -> str:
        return self.model or self.slug


@dataclass
class ValidationError:
    slug: str
    field: str
    message: str

    def __str__(self) -> str:
        return f"[{self.slug}] {self.field}: {self.message}"


@dataclass
class CatalogResult:
    """Result of loading a library — device types + any validation errors."""
    device_types: list[DeviceType]
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return len(self.errors) == 0


class CatalogError(Exception):
    """Raised when a catalog mutation references a bad or duplicate slug."""

    def __init__(self, slug: str, reason: str) -> None:
        self.slug = slug
        self.reason = reason
        super().__init__(f"Device type '{slug}': {reason}")
