"""Unit tests for the pinhole camera.

Tests cover:
- Basis vectors and viewport for a default camera
- Ray directions through the center and the corners
- Pixel rays with jitter
- Validation and dictionary round trips
- Public names of the camera package
"""

import math

import numpy as np
import pytest
import taichi as ti


def _rays(uv_pairs):
    from raycore.camera.pinhole import get_ray

    uv = np.asarray(uv_pairs, dtype=np.float32)
    n = len(uv)
    uv_field = ti.Vector.field(2, dtype=ti.f32, shape=n)
    origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
    directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
    uv_field.from_numpy(uv)

    @ti.kernel
    def ray_kernel():
        for i in range(n):
            ray = get_ray(uv_field[i].x, uv_field[i].y)
            origins[i] = ray.origin
            directions[i] = ray.direction

    ray_kernel()
    return origins.to_numpy(), directions.to_numpy()


class TestCameraSetup:
    """Tests for the basis computed by setup_camera."""

    def test_default_basis(self):
        from raycore.camera.pinhole import PinholeCamera, get_camera_info, is_camera_configured, setup_camera

        setup_camera(PinholeCamera())
        assert is_camera_configured()
        info = get_camera_info()
        np.testing.assert_allclose(info["origin"], [0.0, 0.0, 3.0])
        np.testing.assert_allclose(info["w"], [0.0, 0.0, 1.0], atol=1e-6)
        np.testing.assert_allclose(info["u"], [1.0, 0.0, 0.0], atol=1e-6)
        np.testing.assert_allclose(info["v"], [0.0, 1.0, 0.0], atol=1e-6)

        height = 2.0 * math.tan(math.radians(45.0) / 2.0)
        np.testing.assert_allclose(info["vertical"], [0.0, height, 0.0], atol=1e-6)
        np.testing.assert_allclose(info["horizontal"], [height, 0.0, 0.0], atol=1e-6)
        np.testing.assert_allclose(info["lower_left"], [-height / 2, -height / 2, 2.0], atol=1e-6)

    def test_aspect_ratio_widens_viewport(self):
        from raycore.camera.pinhole import PinholeCamera, get_camera_info, setup_camera

        setup_camera(PinholeCamera(aspect_ratio=2.0))
        info = get_camera_info()
        assert np.linalg.norm(info["horizontal"]) == pytest.approx(2.0 * np.linalg.norm(info["vertical"]), rel=1e-6)

    def test_reset(self):
        from raycore.camera.pinhole import PinholeCamera, is_camera_configured, reset_camera, setup_camera

        setup_camera(PinholeCamera())
        reset_camera()
        assert not is_camera_configured()


class TestCameraRays:
    """Tests for rays generated through the image plane."""

    def test_center_ray_looks_at_target(self):
        from raycore.camera.pinhole import PinholeCamera, setup_camera

        setup_camera(PinholeCamera(lookfrom=(1.0, 2.0, 3.0), lookat=(4.0, -2.0, 3.0), vup=(0.0, 0.0, 1.0)))
        origins, directions = _rays([(0.5, 0.5)])
        np.testing.assert_allclose(origins[0], [1.0, 2.0, 3.0])
        np.testing.assert_allclose(directions[0], [0.6, -0.8, 0.0], atol=1e-6)

    def test_corners_span_field_of_view(self):
        from raycore.camera.pinhole import PinholeCamera, setup_camera

        setup_camera(PinholeCamera(vfov=90.0))
        _, directions = _rays([(0.5, 0.0), (0.5, 1.0), (0.0, 0.5), (1.0, 0.5)])
        # vfov 90 puts the top and bottom edge rays at 45 degrees
        np.testing.assert_allclose(directions[0], [0.0, -math.sqrt(0.5), -math.sqrt(0.5)], atol=1e-6)
        np.testing.assert_allclose(directions[1], [0.0, math.sqrt(0.5), -math.sqrt(0.5)], atol=1e-6)
        # u = 0 is the left edge
        assert directions[2][0] < 0.0
        assert directions[3][0] > 0.0

    def test_directions_are_unit(self):
        from raycore.camera.pinhole import PinholeCamera, setup_camera

        setup_camera(PinholeCamera(lookfrom=(3.0, 1.0, -2.0), vfov=60.0, aspect_ratio=1.5))
        rng = np.random.default_rng(4)
        _, directions = _rays(rng.uniform(0.0, 1.0, size=(50, 2)))
        np.testing.assert_allclose(np.linalg.norm(directions, axis=1), 1.0, atol=1e-6)

    def test_pixel_ray_matches_normalized_coordinates(self):
        from raycore.camera.pinhole import PinholeCamera, get_pixel_ray, setup_camera
        from raycore.core.ray import vec2

        setup_camera(PinholeCamera(aspect_ratio=2.0))
        pixel_dir = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def pixel_kernel():
            pixel_dir[None] = get_pixel_ray(3, 1, 8, 4, vec2(0.5, 0.25)).direction

        pixel_kernel()
        _, directions = _rays([(3.5 / 8.0, 1.25 / 4.0)])
        np.testing.assert_allclose(pixel_dir[None].to_numpy(), directions[0], atol=1e-6)


class TestCameraValidation:
    """Tests for invalid cameras and serialization."""

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"vfov": 0.0}, "vfov"),
            ({"vfov": 180.0}, "vfov"),
            ({"aspect_ratio": 0.0}, "aspect_ratio"),
            ({"lookfrom": (1.0, 1.0, 1.0), "lookat": (1.0, 1.0, 1.0)}, "coincide"),
            ({"vup": (0.0, 0.0, 2.0)}, "parallel"),
        ],
    )
    def test_invalid(self, kwargs, message):
        from raycore.camera.pinhole import PinholeCamera, setup_camera

        with pytest.raises(ValueError, match=message):
            setup_camera(PinholeCamera(**kwargs))

    def test_invalid_camera_keeps_state(self):
        from raycore.camera.pinhole import PinholeCamera, is_camera_configured, setup_camera

        with pytest.raises(ValueError):
            setup_camera(PinholeCamera(vfov=-10.0))
        assert not is_camera_configured()

    def test_dict_round_trip(self):
        from raycore.camera.pinhole import PinholeCamera

        camera = PinholeCamera(lookfrom=(1.0, 2.0, 3.0), lookat=(0.0, 1.0, 0.0), vfov=30.0, aspect_ratio=1.5)
        assert PinholeCamera.from_dict(camera.to_dict()) == camera

    def test_from_dict_defaults(self):
        from raycore.camera.pinhole import PinholeCamera

        assert PinholeCamera.from_dict({"vfov": 60}) == PinholeCamera(vfov=60.0)


class TestCameraPackage:
    """Tests for the camera package's public names."""

    def test_exports_resolve(self):
        import raycore.camera as camera

        for name in camera.__all__:
            assert hasattr(camera, name), name
        # The origin is read through get_camera_info()
        assert "get_camera_origin" not in camera.__all__
        assert not hasattr(camera, "get_camera_origin")

    def test_surface_material_lookup_is_host_side(self, scene):
        import raycore.scene.intersection as intersection

        assert not hasattr(intersection, "get_surface_material")
        mid = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, mid)
        hit = scene.first_intersection((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit.material_id == mid
