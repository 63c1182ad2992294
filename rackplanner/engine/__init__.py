"""Rack engine — placement, collision, movement, resize and bay containers.

Submodules:
  models      — Rack, PlacedDevice, ChildPlacement, result objects, Reason
  collision   — pure bounds / overlap / face predicates
  placement   — place, remove, reposition, device-type cascades
  movement    — directional leapfrog nudges
  resize      — rack height change validation
  containers  — bay occupancy inside shelves and chassis
  images      — image-store key release
  projection  — flat elevation view for exporters
  validation  — whole-layout audit
"""

from .models import (
    PlacedDevice, ChildPlacement, Rack, URange, Reason,
    PlacementResult, MoveResult, ResizeValidationResult, ConflictInfo, SlotResult,
    generate_id,
)
from .collision import (
    find_collisions, can_place_device, check_placement,
    find_valid_drop_positions, snap_to_nearest_valid_position, get_blocked_slots,
)
from .placement import (
    place_device, remove_device, reposition_device, update_device_face,
    update_device_name, set_colour_override, set_placement_image, clear_rack,
    delete_device_type, update_device_type,
)
from .movement import (
    find_next_valid_position, can_move_up, can_move_down, move_device,
    get_device_with_type, UP, DOWN,
)
from .resize import (
    can_resize_rack_to, resize_rack, get_device_range_text,
    get_conflict_details, format_conflict_message,
)
from .containers import (
    place_in_slot, move_to_slot, remove_from_slot, check_slot_placement,
    get_slot_occupancy, is_container,
)
from .images import InMemoryImageStore, placement_image_key, sanitize_filename
from .projection import ElevationEntry, build_elevation
from .validation import validate_layout
