"""Unit tests for axis-aligned bounding boxes.

Tests cover:
- Empty boxes and growth by points and boxes
- Commutativity and idempotence of add
- Longest axis selection with ties
- Host slab test and its agreement with the device slab test
"""

import numpy as np
import pytest
import taichi as ti


class TestBoxConstruction:
    """Tests for building boxes on the host."""

    def test_empty_box(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox()
        assert box.is_empty()
        assert box.volume() == 0.0

    def test_add_point_to_empty_box(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox()
        box.add((1.0, 2.0, 3.0))
        assert not box.is_empty()
        np.testing.assert_array_equal(box.minimum, [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(box.maximum, [1.0, 2.0, 3.0])

    def test_from_points(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox.from_points([(0, 0, 0), (2, -1, 1), (1, 3, -2)])
        np.testing.assert_array_equal(box.minimum, [0.0, -1.0, -2.0])
        np.testing.assert_array_equal(box.maximum, [2.0, 3.0, 1.0])
        assert box.volume() == pytest.approx(2.0 * 4.0 * 3.0)

    def test_clear(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox((0, 0, 0), (1, 1, 1))
        box.clear()
        assert box.is_empty()

    def test_add_numpy_point(self):
        import typing

        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox((0, 0, 0), (1, 1, 1))
        box.add(np.array([2.0, -1.0, 0.5]))
        assert box == AxisAlignedBoundingBox((0, -1, 0), (2, 1, 1))
        # The annotation of add() must evaluate
        hints = typing.get_type_hints(AxisAlignedBoundingBox.add)
        assert "item" in hints

    def test_add_is_commutative(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        rng = np.random.default_rng(7)
        for _ in range(20):
            a_pts = rng.uniform(-5, 5, size=(4, 3))
            b_pts = rng.uniform(-5, 5, size=(4, 3))
            a = AxisAlignedBoundingBox.from_points(a_pts)
            b = AxisAlignedBoundingBox.from_points(b_pts)

            ab = a.copy()
            ab.add(b)
            ba = b.copy()
            ba.add(a)
            assert ab == ba

    def test_add_is_idempotent(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox((-1, 0, 2), (3, 4, 5))
        grown = box.copy()
        grown.add(box)
        assert grown == box
        grown.add(box)
        assert grown == box

    def test_add_empty_box_changes_nothing(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox((-1, 0, 2), (3, 4, 5))
        box.add(AxisAlignedBoundingBox())
        assert box == AxisAlignedBoundingBox((-1, 0, 2), (3, 4, 5))

    def test_overlaps_and_contains(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        outer = AxisAlignedBoundingBox((0, 0, 0), (4, 4, 4))
        inner = AxisAlignedBoundingBox((1, 1, 1), (2, 2, 2))
        apart = AxisAlignedBoundingBox((5, 5, 5), (6, 6, 6))
        assert outer.overlaps(inner)
        assert outer.contains(inner)
        assert not inner.contains(outer)
        assert not outer.overlaps(apart)


class TestLongestAxis:
    """Tests for longest axis selection."""

    @pytest.mark.parametrize(
        "maximum, expected",
        [
            ((3.0, 1.0, 1.0), 0),
            ((1.0, 3.0, 1.0), 1),
            ((1.0, 1.0, 3.0), 2),
            ((2.0, 2.0, 1.0), 0),
            ((1.0, 2.0, 2.0), 1),
            ((2.0, 2.0, 2.0), 0),
        ],
    )
    def test_longest_axis(self, maximum, expected):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox((0.0, 0.0, 0.0), maximum)
        assert int(box.longest_axis()) == expected


class TestSlabTest:
    """Tests for ray/box intersection."""

    def test_hit_through_center(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox((-1, -1, -1), (1, 1, 1))
        assert box.intersect((0, 0, 5), (0, 0, -1))

    def test_miss_beside_box(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox((-1, -1, -1), (1, 1, 1))
        assert not box.intersect((3, 0, 5), (0, 0, -1))

    def test_box_behind_ray(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox((-1, -1, -1), (1, 1, 1))
        assert not box.intersect((0, 0, 5), (0, 0, 1))

    def test_interval_end_before_box(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox((-1, -1, -1), (1, 1, 1))
        assert not box.intersect((0, 0, 5), (0, 0, -1), 0.0, 3.0)
        assert box.intersect((0, 0, 5), (0, 0, -1), 0.0, 4.5)

    def test_origin_inside_box(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        box = AxisAlignedBoundingBox((-1, -1, -1), (1, 1, 1))
        assert box.intersect((0, 0, 0), (0.3, 0.4, 0.5))

    def test_empty_box_never_hit(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox

        assert not AxisAlignedBoundingBox().intersect((0, 0, 5), (0, 0, -1))

    def test_device_matches_host(self):
        from raycore.accel.aabb import AxisAlignedBoundingBox, hit_box
        from raycore.core.ray import make_ray, vec3

        rng = np.random.default_rng(3)
        n = 200
        origins = rng.uniform(-4, 4, size=(n, 3)).astype(np.float32)
        directions = rng.normal(size=(n, 3))
        directions /= np.linalg.norm(directions, axis=1, keepdims=True)
        directions = directions.astype(np.float32)

        origin_field = ti.Vector.field(3, dtype=ti.f32, shape=n)
        direction_field = ti.Vector.field(3, dtype=ti.f32, shape=n)
        hits = ti.field(dtype=ti.i32, shape=n)
        origin_field.from_numpy(origins)
        direction_field.from_numpy(directions)

        @ti.kernel
        def test_kernel(box_min: vec3, box_max: vec3):
            for i in range(n):
                ray = make_ray(origin_field[i], direction_field[i], 0.0, 10.0)
                hits[i] = hit_box(box_min, box_max, ray)

        box = AxisAlignedBoundingBox((-1.0, -0.5, -2.0), (1.5, 1.0, 0.5))
        test_kernel(vec3(*box.minimum), vec3(*box.maximum))
        device = hits.to_numpy()
        host = [box.intersect(origins[i], directions[i], 0.0, 10.0) for i in range(n)]
        assert device.tolist() == [int(h) for h in host]
        assert 0 < device.sum() < n
