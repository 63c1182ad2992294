"""Tests for the movement engine (directional leapfrog nudges).

Default step is the device's own height; an explicit step overrides it.
Failures distinguish ``at_boundary`` (first step leaves the rack) from
``no_valid_position`` (blocked all the way to the wall).
"""

from __future__ import annotations

import copy
import unittest

from rackplanner.catalog.models import DeviceType
from rackplanner.engine.models import Reason
from rackplanner.engine.movement import (
    DOWN,
    UP,
    can_move_down,
    can_move_up,
    find_next_valid_position,
    get_device_with_type,
    move_device,
)
from tests.rack_fixture import device, make_device_types, make_rack


class MovementCase(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.types = make_device_types()

    def nudge(self, devices, direction, step=None, height=42, index=0):
        rack = make_rack(height=height, devices=devices)
        return find_next_valid_position(rack, self.types, index, direction, step)

    def assertMoved(self, result, position):
        self.assertTrue(result.success)
        self.assertEqual(result.reason, Reason.MOVED)
        self.assertEqual(result.new_position, position)

    def assertRefused(self, result, reason):
        self.assertFalse(result.success)
        self.assertIsNone(result.new_position)
        self.assertEqual(result.reason, reason)


class TestBasicMovement(MovementCase):

    def test_1u_up_and_down(self):
        self.assertMoved(self.nudge([device("server-1u", 10)], UP), 11)
        self.assertMoved(self.nudge([device("server-1u", 10)], DOWN), 9)

    def test_step_defaults_to_device_height(self):
        self.assertMoved(self.nudge([device("server-2u", 10)], UP), 12)
        self.assertMoved(self.nudge([device("server-4u", 10)], DOWN), 6)

    def test_step_override(self):
        self.assertMoved(self.nudge([device("server-2u", 10)], UP, step=0.5), 10.5)

    def test_half_u_device(self):
        self.assertMoved(self.nudge([device("blank-half", 10)], UP), 10.5)
        self.assertMoved(self.nudge([device("blank-half", 10.5)], DOWN), 10)


class TestBoundaries(MovementCase):

    def test_top_and_bottom(self):
        self.assertRefused(self.nudge([device("server-1u", 42)], UP), Reason.AT_BOUNDARY)
        self.assertRefused(self.nudge([device("server-1u", 1)], DOWN), Reason.AT_BOUNDARY)

    def test_multi_u_at_top(self):
        self.assertRefused(self.nudge([device("server-2u", 41)], UP), Reason.AT_BOUNDARY)
        self.assertRefused(self.nudge([device("server-4u", 39)], UP), Reason.AT_BOUNDARY)

    def test_boundary_at_rack_height(self):
        result = self.nudge([device("server-1u", 10)], UP, height=10)
        self.assertRefused(result, Reason.AT_BOUNDARY)


class TestLeapfrog(MovementCase):

    def test_over_one_blocker(self):
        up = [device("server-1u", 10), device("server-1u", 11)]
        down = [device("server-1u", 10), device("server-1u", 9)]
        self.assertMoved(self.nudge(up, UP), 12)
        self.assertMoved(self.nudge(down, DOWN), 8)

    def test_over_a_run_of_blockers(self):
        devices = [device("server-1u", 10)] + [device("server-1u", u) for u in (11, 12, 13)]
        self.assertMoved(self.nudge(devices, UP), 14)

    def test_over_multi_u_blocker(self):
        devices = [device("server-1u", 10), device("server-4u", 11)]
        self.assertMoved(self.nudge(devices, UP), 15)

    def test_blocked_to_the_wall(self):
        devices = [device("server-1u", u) for u in range(5, 11)]
        self.assertRefused(self.nudge(devices, UP, height=10), Reason.NO_VALID_POSITION)

    def test_idempotent(self):
        rack = make_rack(devices=[device("server-1u", 10), device("server-1u", 11)])
        first = find_next_valid_position(rack, self.types, 0, UP)
        second = find_next_valid_position(rack, self.types, 0, UP)
        self.assertEqual(first, second)


class TestFaces(MovementCase):

    def test_opposite_half_depth_ignored(self):
        devices = [device("patch-1u", 10, "front"), device("patch-1u", 11, "rear")]
        self.assertMoved(self.nudge(devices, UP), 11)

    def test_same_face_leapfrogs(self):
        devices = [device("patch-1u", 10, "front"), device("patch-1u", 11, "front")]
        self.assertMoved(self.nudge(devices, UP), 12)

    def test_full_depth_blocked_by_rear_device(self):
        devices = [device("server-1u", 10, "front"), device("patch-1u", 11, "rear")]
        self.assertMoved(self.nudge(devices, UP), 12)

    def test_both_face_device(self):
        self.assertMoved(self.nudge([device("server-1u", 10, "both")], UP), 11)


class TestErrors(MovementCase):

    def test_bad_index(self):
        self.assertRefused(self.nudge([device("server-1u", 10)], UP, index=5),
                           Reason.NO_VALID_POSITION)

    def test_unknown_type(self):
        self.assertRefused(self.nudge([device("ghost-device", 10)], UP),
                           Reason.NO_VALID_POSITION)

    def test_zero_height_type_refused(self):
        # plain list catalogs are not validated
        types = [DeviceType("flat", 0), *self.types]
        rack = make_rack(height=10, devices=[device("flat", 5)])
        for direction in (UP, DOWN):
            self.assertRefused(find_next_valid_position(rack, types, 0, direction),
                               Reason.NO_VALID_POSITION)

    def test_bad_direction(self):
        with self.assertRaises(ValueError):
            self.nudge([device("server-1u", 10)], 2)

    def test_bad_step(self):
        for step in (0, -1, 0.3):
            with self.assertRaises(ValueError):
                self.nudge([device("server-1u", 10)], UP, step=step)

    def test_get_device_with_type(self):
        rack = make_rack(devices=[device("server-2u", 10), device("ghost-device", 20)])
        placed, dt = get_device_with_type(rack, self.types, 0)
        self.assertEqual(dt.slug, "server-2u")
        self.assertIsNone(get_device_with_type(rack, self.types, 1))
        self.assertIsNone(get_device_with_type(rack, self.types, -1))


class TestWrappers(MovementCase):

    def test_can_move(self):
        rack = make_rack(devices=[device("server-1u", 42)])
        self.assertFalse(can_move_up(rack, self.types, 0))
        self.assertTrue(can_move_down(rack, self.types, 0))

        packed = make_rack(height=10, devices=[device("server-1u", u) for u in range(5, 11)])
        self.assertFalse(can_move_up(packed, self.types, 0))

    def test_move_device_applies(self):
        rack = make_rack(devices=[device("server-1u", 10), device("server-1u", 11)])
        result = move_device(rack, self.types, 0, UP)
        self.assertMoved(result, 12)
        self.assertEqual(rack.devices[0].position, 12)

    def test_refused_move_leaves_rack(self):
        rack = make_rack(devices=[device("server-1u", 42)])
        before = copy.deepcopy(rack)
        move_device(rack, self.types, 0, UP)
        self.assertEqual(rack, before)


if __name__ == "__main__":
    unittest.main()
