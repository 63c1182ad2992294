"""Shared constants for the rack placement engine.

These values describe the physical grid a rack elevation lives on.  The
collision detector, the nudge search, the resize validator and the
catalog loader all derive their limits from this single source of truth.

Change a value here and every stage will stay in sync automatically.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class RackRules:
    """Grid and limit rules for rack elevations.

    All heights and positions are in rack units (U).
    """

    granularity_u: float = 0.5
    """Smallest position / height increment.  Positions and device
    heights must be whole multiples of this value."""

    min_rack_height: int = 1
    max_rack_height: int = 100

    default_rack_height: int = 42
    default_rack_width: int = 19
    allowed_rack_widths: tuple[int, ...] = (10, 19, 21, 23)

    min_device_height: float = 0.5
    max_device_height: float = 100.0

    default_face: str = "front"

    # ── Derived helpers ────────────────────────────────────────────

    def is_on_grid(self, value: float) -> bool:
        """True when *value* is an exact multiple of the granularity."""
        scaled = value / self.granularity_u
        return math.isfinite(scaled) and float(scaled).is_integer()

    def valid_rack_height(self, height: int) -> bool:
        return (
            isinstance(height, int)
            and self.min_rack_height <= height <= self.max_rack_height
        )


# Module-level singleton, importable everywhere.
RACK_RULES = RackRules()


# ── Device categories ──────────────────────────────────────────────

DEVICE_CATEGORIES: tuple[str, ...] = (
    "server",
    "network",
    "patch-panel",
    "power",
    "storage",
    "kvm",
    "av-media",
    "cooling",
    "shelf",
    "blank",
    "cable-management",
    "other",
)

CATEGORY_COLOURS: dict[str, str] = {
    "server": "#4A7A8A",
    "network": "#7B6BA8",
    "patch-panel": "#6272A4",
    "power": "#A84A4A",
    "storage": "#3D7A4A",
    "kvm": "#A87A4A",
    "av-media": "#A85A7A",
    "cooling": "#8A8A4A",
    "shelf": "#6272A4",
    "blank": "#44475A",
    "cable-management": "#6272A4",
    "other": "#6272A4",
}

FACES: tuple[str, ...] = ("front", "rear", "both")
SUBDEVICE_ROLES: tuple[str, ...] = ("none", "parent", "child")


# ── Environment / server settings ──────────────────────────────────

ROOT = Path(__file__).resolve().parent.parent


def _load_env(root: Path = ROOT) -> None:
    """Load KEY=VALUE pairs from .env files without overriding os.environ."""
    for name in (".env", ".env.local"):
        p = root / name
        if p.exists():
            for line in p.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if line and "=" in line and not line.startswith("#"):
                    k, v = line.split("=", 1)
                    k = k.strip()
                    v = v.strip().strip('"').strip("'")
                    if k and k not in os.environ:
                        os.environ[k] = v


@dataclass
class ServerSettings:
    host: str = "127.0.0.1"
    port: int = 8000
    catalog_dir: Path | None = None     # extra JSON libraries on top of the starter pack


def load_settings() -> ServerSettings:
    """Build ServerSettings from RACKPLANNER_* environment variables."""
    _load_env()
    catalog_dir = os.environ.get("RACKPLANNER_CATALOG_DIR")
    return ServerSettings(
        host=os.environ.get("RACKPLANNER_HOST", "127.0.0.1"),
        port=int(os.environ.get("RACKPLANNER_PORT", "8000")),
        catalog_dir=Path(catalog_dir) if catalog_dir else None,
    )
