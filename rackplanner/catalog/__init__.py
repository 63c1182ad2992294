"""Device catalog — load, validate, query, and serialize device-type libraries."""

from .models import (
    DeviceType, Slot, SlotPosition,
    ValidationError, CatalogResult, CatalogError,
)
from .loader import (
    load_catalog, load_library_file, load_starter_library,
    parse_device_type, validate_device_type, LIBRARY_DIR,
)
from .registry import DeviceCatalog, CatalogLike, get_device_type
from .serialization import catalog_to_dict, device_type_to_dict
from .slug import slugify, is_valid_slug, ensure_unique_slug, generate_device_slug

__all__ = [
    # Models
    "DeviceType", "Slot", "SlotPosition",
    "ValidationError", "CatalogResult", "CatalogError",
    # Loader
    "load_catalog", "load_library_file", "load_starter_library",
    "parse_device_type", "validate_device_type", "LIBRARY_DIR",
    # Lookup
    "DeviceCatalog", "CatalogLike", "get_device_type",
    # Serialization
    "catalog_to_dict", "device_type_to_dict",
    # Slugs
    "slugify", "is_valid_slug", "ensure_unique_slug", "generate_device_slug",
]
