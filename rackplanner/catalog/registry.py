"""Device catalog lookup — layered slug → DeviceType resolution.

Priority order:
  1. Layout device types (the user's custom / imported types)
  2. Starter library (generic devices)
  3. Any further libraries, in the order given

Lookups go through an explicit read-through cache owned by the catalog.
Every mutation (add / update / remove) invalidates it.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Iterable, Union

from .models import DeviceType, CatalogResult, CatalogError
from .loader import validate_device_type, load_starter_library


log = logging.getLogger("rackplanner.catalog.registry")


def _usable(types: Iterable[DeviceType]) -> dict[str, DeviceType]:
    """Index *types* by slug, skipping any that fail validation."""
    out: dict[str, DeviceType] = {}
    for dt in types:
        errors = validate_device_type(dt)
        if errors:
            log.warning("Skipping invalid device type %s: %s", dt.slug,
                        "; ".join(f"{e.field}: {e.message}" for e in errors))
            continue
        out[dt.slug] = dt
    return out


class DeviceCatalog:
    """Read-mostly device-type registry used by every engine operation."""

    def __init__(
        self,
        layout_types: Iterable[DeviceType] = (),
        libraries: Iterable[Iterable[DeviceType]] = (),
    ) -> None:
        self._layout: dict[str, DeviceType] = _usable(layout_types)
        self._libraries: list[dict[str, DeviceType]] = [_usable(lib) for lib in libraries]
        self._cache: dict[str, DeviceType | None] = {}

    @classmethod
    def with_starter_library(
        cls,
        layout_types: Iterable[DeviceType] = (),
        extra_libraries: Iterable[Iterable[DeviceType]] = (),
    ) -> "DeviceCatalog":
        starter = load_starter_library()
        for err in starter.errors:
            log.warning("Starter library: %s", err)
        return cls(layout_types, [starter.device_types, *extra_libraries])

    # ── Lookup ─────────────────────────────────────────────────────

    def resolve(self, slug: str) -> DeviceType | None:
        """Return the highest-priority DeviceType for *slug*, or None."""
        if slug in self._cache:
            return self._cache[slug]
        found = self._layout.get(slug)
        if found is None:
            for lib in self._libraries:
                found = lib.get(slug)
                if found is not None:
                    break
        self._cache[slug] = found
        return found

    def __contains__(self, slug: object) -> bool:
        return isinstance(slug, str) and self.resolve(slug) is not None

    @property
    def layout_types(self) -> list[DeviceType]:
        return list(self._layout.values())

    def all_device_types(self) -> list[DeviceType]:
        """Every resolvable device type, shadowed entries removed."""
        seen: set[str] = set()
        out: list[DeviceType] = []
        for source in (self._layout, *self._libraries):
            for slug, dt in source.items():
                if slug not in seen:
                    seen.add(slug)
                    out.append(dt)
        return out

    def is_custom(self, slug: str) -> bool:
        """True when *slug* is not provided by any bundled library."""
        return not any(slug in lib for lib in self._libraries)

    # ── Mutation ───────────────────────────────────────────────────

    def invalidate(self) -> None:
        self._cache.clear()

    def add(self, dt: DeviceType) -> DeviceType:
        """Add a layout-level device type. Raises CatalogError on clash or bad data."""
        if dt.slug in self._layout:
            raise CatalogError(dt.slug, "already exists in this layout")
        errors = validate_device_type(dt)
        if errors:
            raise CatalogError(dt.slug, "; ".join(f"{e.field}: {e.message}" for e in errors))
        self._layout[dt.slug] = dt
        self.invalidate()
        log.info("Added device type %s", dt.slug)
        return dt

    def update(self, slug: str, **changes) -> DeviceType:
        """Replace a device type with a modified copy.

        Updating a library type stores the copy as a layout-level override.
        """
        current = self.resolve(slug)
        if current is None:
            raise CatalogError(slug, "not found")
        if "slug" in changes and changes["slug"] != slug:
            raise CatalogError(slug, "slug cannot be changed")
        updated = dataclasses.replace(current, **changes)
        errors = validate_device_type(updated)
        if errors:
            raise CatalogError(slug, "; ".join(f"{e.field}: {e.message}" for e in errors))
        self._layout[slug] = updated
        self.invalidate()
        log.info("Updated device type %s (%s)", slug, ", ".join(sorted(changes)))
        return updated

    def remove(self, slug: str) -> DeviceType:
        """Remove a layout-level device type. Library types cannot be removed."""
        if slug not in self._layout:
            raise CatalogError(slug, "not a layout device type")
        dt = self._layout.pop(slug)
        self.invalidate()
        log.info("Removed device type %s", slug)
        return dt


CatalogLike = Union[DeviceCatalog, CatalogResult, list]   # list of DeviceType


def get_device_type(catalog: CatalogLike, slug: str) -> DeviceType | None:
    """Look up a device type by slug in any catalog form. Returns None if not found."""
    if isinstance(catalog, DeviceCatalog):
        return catalog.resolve(slug)
    types = catalog.device_types if isinstance(catalog, CatalogResult) else catalog
    for dt in types:
        if dt.slug == slug:
            return dt
    return None
