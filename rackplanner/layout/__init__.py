"""Layout persistence — plain-data round-trip of a rack and its device types."""

from .serialization import (
    rack_to_dict, layout_to_dict, parse_rack, parse_layout,
    load_layout_file, save_layout_file, LAYOUT_VERSION,
)
