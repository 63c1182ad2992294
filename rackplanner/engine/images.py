"""Image-store collaborator — per-placement and per-type image overrides.

The engine never touches image bytes.  It only tells the store which keys
to drop when a placement or a device type goes away:

  placement-{id}   per-placement override (front / rear)
  {slug}           device-type image
"""

from __future__ import annotations

import logging
import re
from typing import Protocol


log = logging.getLogger("rackplanner.engine.images")

MAX_FILENAME_LENGTH = 255


def placement_image_key(placement_id: str) -> str:
    return f"placement-{placement_id}"


def sanitize_filename(filename: str | None) -> str:
    """Strip path components and unsafe characters from an uploaded filename."""
    if not filename:
        return ""
    s = re.sub(r"[/\\]", "", filename)
    s = s.replace("..", "").replace("\0", "")
    s = re.sub(r"[^a-zA-Z0-9._-]", "", s)
    s = s[:MAX_FILENAME_LENGTH]
    if s.startswith("."):
        s = s[1:]
    return s


class ImageStore(Protocol):
    def remove_device_image(self, key: str, face: str) -> None: ...

    def remove_all_device_images(self, key: str) -> None: ...


class InMemoryImageStore:
    """Filename-only image registry keyed by slug or ``placement-{id}``."""

    def __init__(self) -> None:
        self._images: dict[str, dict[str, str]] = {}

    def set_device_image(self, key: str, face: str, filename: str) -> None:
        self._images.setdefault(key, {})[face] = filename

    def get_device_image(self, key: str, face: str) -> str | None:
        return self._images.get(key, {}).get(face)

    def has_image(self, key: str, face: str) -> bool:
        return self.get_device_image(key, face) is not None

    def remove_device_image(self, key: str, face: str) -> None:
        faces = self._images.get(key)
        if faces is not None:
            faces.pop(face, None)
            if not faces:
                del self._images[key]

    def remove_all_device_images(self, key: str) -> None:
        if self._images.pop(key, None) is not None:
            log.debug("Released images for %s", key)

    def keys(self) -> list[str]:
        return sorted(self._images)


def release_keys(images: ImageStore | None, keys: list[str]) -> list[str]:
    """Notify *images* (if any) that *keys* are gone; returns *keys*."""
    if images is not None:
        for key in keys:
            images.remove_all_device_images(key)
    return keys
