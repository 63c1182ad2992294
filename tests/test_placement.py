"""Tests for placement operations and their cascades."""

from __future__ import annotations

import copy
import unittest

from rackplanner.catalog.registry import DeviceCatalog
from rackplanner.engine.containers import place_in_slot
from rackplanner.engine.images import InMemoryImageStore
from rackplanner.engine.models import Reason
from rackplanner.engine.placement import (
    clear_rack,
    delete_device_type,
    place_device,
    remove_device,
    reposition_device,
    set_colour_override,
    set_placement_image,
    update_device_face,
    update_device_name,
    update_device_type,
)
from tests.rack_fixture import child, device, make_device_types, make_rack


class TestPlaceDevice(unittest.TestCase):

    def setUp(self):
        self.types = make_device_types()
        self.rack = make_rack(height=42)

    def test_place_assigns_fresh_id(self):
        a = place_device(self.rack, self.types, "server-1u", 1)
        b = place_device(self.rack, self.types, "server-1u", 2, name="web-01")
        self.assertTrue(a.success)
        self.assertEqual(a.reason, Reason.OK)
        self.assertNotEqual(a.device.id, b.device.id)
        self.assertEqual(b.device.name, "web-01")
        self.assertEqual(len(self.rack.devices), 2)

    def test_unknown_type(self):
        result = place_device(self.rack, self.types, "nope", 1)
        self.assertEqual(result.reason, Reason.NOT_FOUND)
        self.assertEqual(self.rack.devices, [])

    def test_out_of_bounds_leaves_rack_untouched(self):
        place_device(self.rack, self.types, "server-1u", 1)
        before = copy.deepcopy(self.rack)
        result = place_device(self.rack, self.types, "server-2u", 42)
        self.assertEqual(result.reason, Reason.OUT_OF_BOUNDS)
        self.assertEqual(self.rack, before)

    def test_collision_reports_blocking_set(self):
        first = place_device(self.rack, self.types, "server-2u", 10).device
        before = copy.deepcopy(self.rack)
        result = place_device(self.rack, self.types, "server-1u", 11)
        self.assertEqual(result.reason, Reason.COLLISION)
        self.assertEqual([d.id for d in result.collisions], [first.id])
        self.assertEqual(self.rack, before)

    def test_half_u_position_preserved(self):
        result = place_device(self.rack, self.types, "blank-half", 10.5)
        self.assertTrue(result.success)
        self.assertEqual(self.rack.devices[0].position, 10.5)

    def test_bad_face_raises(self):
        with self.assertRaises(ValueError):
            place_device(self.rack, self.types, "server-1u", 1, "top")

    def test_non_finite_position_out_of_bounds(self):
        rack = make_rack(height=10)
        for position in (float("inf"), float("nan")):
            result = place_device(rack, self.types, "server-1u", position)
            self.assertEqual(result.reason, Reason.OUT_OF_BOUNDS)
        self.assertEqual(rack.devices, [])


class TestRemoveAndReposition(unittest.TestCase):

    def setUp(self):
        self.types = make_device_types()
        self.images = InMemoryImageStore()
        self.rack = make_rack(devices=[
            device("server-2u", 10, id="srv"),
            device("server-1u", 20, id="sw"),
        ])

    def test_remove_by_id_releases_image(self):
        self.images.set_device_image("placement-srv", "front", "srv.png")
        result = remove_device(self.rack, "srv", self.images)
        self.assertTrue(result.success)
        self.assertIn("placement-srv", result.released)
        self.assertFalse(self.images.has_image("placement-srv", "front"))
        self.assertEqual([d.id for d in self.rack.devices], ["sw"])

    def test_remove_by_index(self):
        result = remove_device(self.rack, 1)
        self.assertEqual(result.device.id, "sw")

    def test_remove_missing(self):
        self.assertEqual(remove_device(self.rack, "nope").reason, Reason.NOT_FOUND)
        self.assertEqual(remove_device(self.rack, 5).reason, Reason.NOT_FOUND)

    def test_reposition_excludes_self(self):
        result = reposition_device(self.rack, self.types, "srv", 11)
        self.assertTrue(result.success)
        self.assertEqual(self.rack.devices[0].position, 11)

    def test_reposition_collision_untouched(self):
        before = copy.deepcopy(self.rack)
        result = reposition_device(self.rack, self.types, "srv", 19)
        self.assertEqual(result.reason, Reason.COLLISION)
        self.assertEqual(self.rack, before)

    def test_reposition_with_face(self):
        result = reposition_device(self.rack, self.types, "sw", 30, "rear")
        self.assertTrue(result.success)
        self.assertEqual(self.rack.devices[1].face, "rear")

    def test_face_flip_revalidated(self):
        rack = make_rack(devices=[
            device("patch-1u", 10, "front", id="p1"),
            device("patch-1u", 10, "rear", id="p2"),
        ])
        self.assertEqual(update_device_face(rack, self.types, "p1", "rear").reason,
                         Reason.COLLISION)
        self.assertEqual(rack.devices[0].face, "front")
        self.assertEqual(update_device_face(rack, self.types, "p1", "front").reason,
                         Reason.OK)


class TestCosmeticUpdates(unittest.TestCase):

    def setUp(self):
        self.rack = make_rack(devices=[device("server-1u", 5, id="srv")])

    def test_rename_and_clear(self):
        update_device_name(self.rack, "srv", "  db-01 ")
        self.assertEqual(self.rack.devices[0].name, "db-01")
        update_device_name(self.rack, "srv", "   ")
        self.assertIsNone(self.rack.devices[0].name)

    def test_colour_override(self):
        set_colour_override(self.rack, "srv", "#FF8800")
        self.assertEqual(self.rack.devices[0].colour_override, "#FF8800")
        with self.assertRaises(ValueError):
            set_colour_override(self.rack, "srv", "orange")

    def test_placement_image_sanitised(self):
        set_placement_image(self.rack, "srv", "front", "../../etc/front image.png")
        self.assertEqual(self.rack.devices[0].front_image, "etcfrontimage.png")
        set_placement_image(self.rack, "srv", "front", None)
        self.assertIsNone(self.rack.devices[0].front_image)
        with self.assertRaises(ValueError):
            set_placement_image(self.rack, "srv", "both", "x.png")

    def test_placement_image_release(self):
        images = InMemoryImageStore()
        images.set_device_image("placement-srv", "front", "a.png")
        images.set_device_image("placement-srv", "rear", "b.png")
        first = set_placement_image(self.rack, "srv", "front", "a.png", images)
        self.assertEqual(first.released, [])

        replaced = set_placement_image(self.rack, "srv", "front", "c.png", images)
        self.assertEqual(replaced.released, ["placement-srv"])
        self.assertIsNone(images.get_device_image("placement-srv", "front"))
        self.assertEqual(images.get_device_image("placement-srv", "rear"), "b.png")

        images.set_device_image("placement-srv", "front", "c.png")
        cleared = set_placement_image(self.rack, "srv", "front", None, images)
        self.assertEqual(cleared.released, ["placement-srv"])
        self.assertFalse(images.has_image("placement-srv", "front"))

        set_placement_image(self.rack, "srv", "rear", "b.png", images)
        set_placement_image(self.rack, "srv", "rear", None, images)
        self.assertEqual(images.keys(), [])


class TestCascades(unittest.TestCase):

    def setUp(self):
        self.types = make_device_types()
        self.images = InMemoryImageStore()

    def test_removing_container_removes_children(self):
        rack = make_rack(devices=[device("shelf-2bay", 5, id="shelf")])
        kid = place_in_slot(rack, self.types, "shelf", "left", "mini-pc").child
        self.images.set_device_image(f"placement-{kid.id}", "front", "pc.png")

        result = remove_device(rack, "shelf", self.images)
        self.assertEqual(rack.children, [])
        self.assertIn(f"placement-{kid.id}", result.released)
        self.assertEqual(self.images.keys(), [])

    def test_clear_rack(self):
        rack = make_rack(devices=[device("shelf-2bay", 5, id="shelf"),
                                  device("server-1u", 1, id="srv")],
                         children=[child("mini-pc", "shelf", "left", id="kid")])
        result = clear_rack(rack, self.images)
        self.assertEqual(rack.devices, [])
        self.assertEqual(rack.children, [])
        self.assertEqual(sorted(result.released),
                         ["placement-kid", "placement-shelf", "placement-srv"])

    def test_delete_device_type_cascades(self):
        custom = [dt for dt in self.types if dt.slug == "server-2u"]
        catalog = DeviceCatalog(custom, [self.types])
        rack = make_rack(devices=[device("server-2u", 1, id="a"),
                                  device("server-1u", 5, id="b"),
                                  device("server-2u", 10, id="c")])
        self.images.set_device_image("server-2u", "front", "srv.png")

        result = delete_device_type(rack, catalog, "server-2u", self.images)
        self.assertTrue(result.success)
        self.assertEqual([d.id for d in rack.devices], ["b"])
        self.assertEqual(sorted(result.released),
                         ["placement-a", "placement-c", "server-2u"])
        self.assertEqual(self.images.keys(), [])
        # library entry of the same slug is visible again
        self.assertIsNotNone(catalog.resolve("server-2u"))

    def test_delete_library_type_refused(self):
        catalog = DeviceCatalog([], [self.types])
        rack = make_rack(devices=[device("server-1u", 1)])
        result = delete_device_type(rack, catalog, "server-1u")
        self.assertEqual(result.reason, Reason.NOT_FOUND)
        self.assertEqual(len(rack.devices), 1)


class TestUpdateDeviceType(unittest.TestCase):

    def setUp(self):
        self.catalog = DeviceCatalog([], [make_device_types()])

    def test_growth_into_neighbour_refused(self):
        rack = make_rack(devices=[device("server-1u", 10, id="a"),
                                  device("server-2u", 11, id="b")])
        result = update_device_type(rack, self.catalog, "server-1u", u_height=2)
        self.assertEqual(result.reason, Reason.COLLISION)
        self.assertEqual(self.catalog.resolve("server-1u").u_height, 1)

    def test_growth_past_top_refused(self):
        rack = make_rack(height=10, devices=[device("server-2u", 9)])
        result = update_device_type(rack, self.catalog, "server-2u", u_height=3)
        self.assertEqual(result.reason, Reason.OUT_OF_BOUNDS)

    def test_safe_change_applied(self):
        rack = make_rack(devices=[device("patch-1u", 10, "front"),
                                  device("patch-1u", 20, "rear")])
        result = update_device_type(rack, self.catalog, "patch-1u", u_height=2)
        self.assertTrue(result.success)
        self.assertEqual(self.catalog.resolve("patch-1u").u_height, 2)

    def test_depth_change_checked(self):
        rack = make_rack(devices=[device("patch-1u", 10, "front"),
                                  device("patch-1u", 10, "rear")])
        result = update_device_type(rack, self.catalog, "patch-1u", is_full_depth=True)
        self.assertEqual(result.reason, Reason.COLLISION)

    def test_shrunk_bay_refused(self):
        rack = make_rack(devices=[device("shelf-2bay", 5, id="shelf")],
                         children=[child("nas-2u", "shelf", "left")])
        shelf = self.catalog.resolve("shelf-2bay")
        smaller = tuple(type(s)(s.id, s.position, s.width_fraction, 1) for s in shelf.slots)
        result = update_device_type(rack, self.catalog, "shelf-2bay", slots=smaller)
        self.assertEqual(result.reason, Reason.TOO_TALL)

    def test_unknown_slug(self):
        result = update_device_type(make_rack(), self.catalog, "nope", u_height=2)
        self.assertEqual(result.reason, Reason.NOT_FOUND)


if __name__ == "__main__":
    unittest.main()
