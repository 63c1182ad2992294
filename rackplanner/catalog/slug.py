"""Slug generation and validation for device-type identifiers."""

from __future__ import annotations

import re
import time


SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def slugify(text: str) -> str:
    """Convert any string to a valid slug.

    >>> slugify("Synology DS920+")
    'synology-ds920-plus'
    """
    if not text:
        return ""
    s = text.lower().strip()
    s = s.replace("+", "-plus")
    s = re.sub(r"[^a-z0-9]+", "-", s)
    return s.strip("-")


def is_valid_slug(slug: str) -> bool:
    """Lowercase alphanumerics separated by single hyphens."""
    return bool(slug) and SLUG_PATTERN.match(slug) is not None


def ensure_unique_slug(slug: str, existing: set[str]) -> str:
    """Append -2, -3, … until *slug* no longer clashes with *existing*."""
    if slug not in existing:
        return slug
    counter = 2
    candidate = f"{slug}-{counter}"
    while candidate in existing:
        counter += 1
        candidate = f"{slug}-{counter}"
    return candidate


def generate_device_slug(
    manufacturer: str | None = None,
    model: str | None = None,
    name: str | None = None,
) -> str:
    """Slug from manufacturer + model, else name, else a timestamp."""
    if manufacturer and model:
        return slugify(f"{manufacturer}-{model}")
    if name:
        return slugify(name)
    return f"device-{int(time.time() * 1000)}"
