"""Unit tests for rays and frames.

Tests cover:
- Ray construction and evaluation
- Offset rays and shadow segments
- Moving origins off a surface by a scale-aware distance
- Frame construction and coordinate conversion
- Frame flipping toward a viewer
"""

import numpy as np
import taichi as ti


class TestRay:
    """Tests for Ray construction."""

    def test_ray_at(self):
        from raycore.core.ray import make_ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 2.0, 3.0), vec3(0.0, 0.0, 1.0), 0.0, 10.0)
            result[None] = ray_at(ray, 2.5)

        test_kernel()
        np.testing.assert_allclose(result[None].to_numpy(), [1.0, 2.0, 5.5], atol=1e-6)

    def test_offset_ray_normalizes_and_skips_origin(self):
        from raycore.core.ray import RAY_EPSILON, T_MAX, make_offset_ray, vec3

        direction = ti.Vector.field(3, dtype=ti.f32, shape=())
        interval = ti.Vector.field(2, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_offset_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -2.0))
            direction[None] = ray.direction
            interval[None] = ti.Vector([ray.start, ray.end])

        test_kernel()
        np.testing.assert_allclose(direction[None].to_numpy(), [0.0, 0.0, -1.0], atol=1e-6)
        assert abs(interval[None][0] - RAY_EPSILON) < 1e-9
        assert interval[None][1] >= T_MAX * 0.99

    def test_offset_segment_is_shrunk_at_both_ends(self):
        from raycore.core.ray import RAY_EPSILON, make_offset_segment, vec3

        direction = ti.Vector.field(3, dtype=ti.f32, shape=())
        interval = ti.Vector.field(2, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_offset_segment(vec3(0.0, 0.0, 0.0), vec3(0.0, 3.0, 4.0))
            direction[None] = ray.direction
            interval[None] = ti.Vector([ray.start, ray.end])

        test_kernel()
        np.testing.assert_allclose(direction[None].to_numpy(), [0.0, 0.6, 0.8], atol=1e-6)
        assert abs(interval[None][0] - RAY_EPSILON) < 1e-9
        assert abs(interval[None][1] - (5.0 - RAY_EPSILON)) < 1e-5

    def test_offset_segment_between_coincident_points_is_empty(self):
        from raycore.core.ray import make_offset_segment, vec3

        end = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            end[None] = make_offset_segment(vec3(1.0, 1.0, 1.0), vec3(1.0, 1.0, 1.0)).end

        test_kernel()
        assert end[None] == 0.0


class TestSurfaceOffset:
    """Tests for moving ray origins off a surface."""

    def test_epsilon_floor_near_origin(self):
        from raycore.core.ray import RAY_EPSILON, offset_epsilon, vec3

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = offset_epsilon(vec3(0.01, -0.02, 0.0))

        test_kernel()
        assert abs(result[None] - RAY_EPSILON) < 1e-9

    def test_epsilon_grows_with_coordinates(self):
        from raycore.core.ray import RAY_OFFSET_SCALE, offset_epsilon, vec3

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = offset_epsilon(vec3(100.0, -555.0, 20.0))

        test_kernel()
        assert abs(result[None] - 555.0 * RAY_OFFSET_SCALE) < 1e-7
        # Well above the rounding error of a point at that scale
        assert result[None] > 50.0 * np.spacing(np.float32(555.0))

    def test_origin_moves_to_the_side_of_the_direction(self):
        from raycore.core.ray import offset_epsilon, offset_origin, vec3

        above = ti.Vector.field(3, dtype=ti.f32, shape=())
        below = ti.Vector.field(3, dtype=ti.f32, shape=())
        eps = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            p = vec3(300.0, 0.0, 200.0)
            n = vec3(0.0, 1.0, 0.0)
            above[None] = offset_origin(p, n, vec3(0.6, 0.8, 0.0))
            below[None] = offset_origin(p, n, vec3(0.0, -0.8, 0.6))
            eps[None] = offset_epsilon(p)

        test_kernel()
        np.testing.assert_allclose(above[None].to_numpy(), [300.0, eps[None], 200.0], atol=1e-6)
        np.testing.assert_allclose(below[None].to_numpy(), [300.0, -eps[None], 200.0], atol=1e-6)


class TestFrame:
    """Tests for frame construction and conversions."""

    def test_frame_from_w_is_orthonormal(self):
        from raycore.core.ray import frame_from_w, vec3

        axes = ti.Vector.field(3, dtype=ti.f32, shape=(4, 3))
        normals = [(0.0, 0.0, 1.0), (1.0, 0.0, 0.0), (0.3, -0.5, 0.8), (-1.0, -1.0, 0.0)]

        @ti.kernel
        def test_kernel(i: ti.i32, w: vec3):
            frame = frame_from_w(vec3(0.0, 0.0, 0.0), w)
            axes[i, 0] = frame.u
            axes[i, 1] = frame.v
            axes[i, 2] = frame.w

        for i, n in enumerate(normals):
            test_kernel(i, vec3(*n))

        result = axes.to_numpy()
        for i, n in enumerate(normals):
            basis = result[i]
            np.testing.assert_allclose(basis @ basis.T, np.eye(3), atol=1e-5)
            np.testing.assert_allclose(basis[2], np.asarray(n) / np.linalg.norm(n), atol=1e-5)
            # Right-handed: u x v = w
            np.testing.assert_allclose(np.cross(basis[0], basis[1]), basis[2], atol=1e-5)

    def test_frame_from_wu_keeps_hint(self):
        from raycore.core.ray import frame_from_wu, vec3

        u = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            frame = frame_from_wu(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, 1.0), vec3(2.0, 0.0, 0.5))
            u[None] = frame.u

        test_kernel()
        np.testing.assert_allclose(u[None].to_numpy(), [1.0, 0.0, 0.0], atol=1e-6)

    def test_canonical_round_trip(self):
        from raycore.core.ray import canonical_to_frame, frame_from_w, frame_to_canonical, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            frame = frame_from_w(vec3(5.0, 5.0, 5.0), vec3(0.2, 0.7, -0.4))
            world = frame_to_canonical(frame, vec3(0.1, -0.3, 0.9))
            result[None] = canonical_to_frame(frame, world)

        test_kernel()
        np.testing.assert_allclose(result[None].to_numpy(), [0.1, -0.3, 0.9], atol=1e-5)

    def test_facing_frame_flips_toward_viewer(self):
        from raycore.core.ray import facing_frame, frame_from_w, vec3

        w = ti.Vector.field(3, dtype=ti.f32, shape=2)
        handed = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            frame = frame_from_w(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, 1.0))
            # Ray travelling down sees the top side, travelling up the bottom
            down = facing_frame(frame, vec3(0.0, 0.0, -1.0))
            up = facing_frame(frame, vec3(0.0, 0.0, 1.0))
            w[0] = down.w
            w[1] = up.w
            handed[0] = ti.math.dot(ti.math.cross(down.u, down.v), down.w)
            handed[1] = ti.math.dot(ti.math.cross(up.u, up.v), up.w)

        test_kernel()
        np.testing.assert_allclose(w[0].to_numpy(), [0.0, 0.0, 1.0], atol=1e-6)
        np.testing.assert_allclose(w[1].to_numpy(), [0.0, 0.0, -1.0], atol=1e-6)
        assert abs(handed[0] - 1.0) < 1e-5
        assert abs(handed[1] - 1.0) < 1e-5
