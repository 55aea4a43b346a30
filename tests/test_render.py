"""Unit tests for the image buffer and block rendering.

Tests cover:
- Image construction, pixel access and orientation
- Block iteration
- Rendering: camera requirement, gamma correction and clamping
- Single-ray radiance estimates
"""

import numpy as np
import pytest


class TestImage:
    """Tests for the Image buffer."""

    def test_new_image_is_black(self):
        from raycore.core.render import Image

        image = Image(4, 3)
        assert image.data.shape == (3, 4, 3)
        assert image.get(3, 2) == (0.0, 0.0, 0.0)
        assert image.aspect_ratio == pytest.approx(4.0 / 3.0)

    def test_set_get_and_clear(self):
        from raycore.core.render import Image

        image = Image(4, 3)
        image.set(1, 2, (0.25, 0.5, 0.75))
        assert image.get(1, 2) == pytest.approx((0.25, 0.5, 0.75))
        image.clear()
        assert image.get(1, 2) == (0.0, 0.0, 0.0)

    def test_to_numpy_puts_top_row_first(self):
        from raycore.core.render import Image

        image = Image(2, 3)
        image.set(0, 0, (1.0, 0.0, 0.0))
        array = image.to_numpy()
        # y = 0 is the bottom row, which is the last row of the array
        np.testing.assert_array_equal(array[2, 0], [1.0, 0.0, 0.0])
        np.testing.assert_array_equal(array[0, 0], [0.0, 0.0, 0.0])
        array[2, 0] = 0.5
        assert image.get(0, 0) == (1.0, 0.0, 0.0)

    @pytest.mark.parametrize("x, y", [(-1, 0), (4, 0), (0, 3), (0, -1)])
    def test_out_of_bounds(self, x, y):
        from raycore.core.render import Image

        image = Image(4, 3)
        with pytest.raises(IndexError):
            image.get(x, y)
        with pytest.raises(IndexError):
            image.set(x, y, (1.0, 1.0, 1.0))

    @pytest.mark.parametrize("width, height", [(0, 4), (4, 0), (-2, 3)])
    def test_invalid_size(self, width, height):
        from raycore.core.render import Image

        with pytest.raises(ValueError):
            Image(width, height)

    def test_too_large(self):
        from raycore.core.render import MAX_IMAGE_SIZE, Image

        with pytest.raises(RuntimeError):
            Image(MAX_IMAGE_SIZE + 1, 1)


class TestBlocks:
    """Tests for block iteration."""

    def test_blocks_cover_image(self):
        from raycore.core.render import iter_blocks

        covered = np.zeros((70, 45), dtype=int)
        for x0, y0, w, h in iter_blocks(45, 70, 32):
            assert 0 < w <= 32 and 0 < h <= 32
            covered[y0 : y0 + h, x0 : x0 + w] += 1
        assert np.all(covered == 1)

    def test_block_order_starts_bottom_left(self):
        from raycore.core.render import iter_blocks

        blocks = list(iter_blocks(64, 40, 32))
        assert blocks == [(0, 0, 32, 32), (32, 0, 32, 32), (0, 32, 32, 8), (32, 32, 32, 8)]

    def test_invalid_block_size(self):
        from raycore.core.render import iter_blocks

        with pytest.raises(ValueError):
            list(iter_blocks(10, 10, 33))


def _background_scene(scene, background):
    from raycore.camera.pinhole import PinholeCamera

    scene.set_background(background)
    scene.set_camera(PinholeCamera())


class TestRendering:
    """Tests for render_block and render_image."""

    def test_requires_camera(self, scene):
        from raycore.core.render import Image, render_image

        with pytest.raises(RuntimeError, match="camera"):
            render_image(Image(8, 8), scene)

    def test_gamma_correction(self, scene):
        from raycore.core.render import GAMMA, Image, render_image

        _background_scene(scene, (0.25, 0.5, 1.0))
        image = Image(8, 6)
        render_image(image, scene)
        expected = np.power([0.25, 0.5, 1.0], 1.0 / GAMMA)
        np.testing.assert_allclose(image.data, np.broadcast_to(expected, (6, 8, 3)), rtol=1e-5)

    def test_bright_values_clamped(self, scene):
        from raycore.core.render import Image, render_image

        _background_scene(scene, (5.0, 0.0, 2.0))
        image = Image(4, 4)
        render_image(image, scene)
        np.testing.assert_allclose(image.data[..., 0], 1.0)
        np.testing.assert_allclose(image.data[..., 1], 0.0)
        np.testing.assert_allclose(image.data[..., 2], 1.0)

    def test_render_single_block(self, scene):
        from raycore.core.render import Image, render_block

        _background_scene(scene, (1.0, 1.0, 1.0))
        image = Image(40, 40)
        render_block(image, 8, 4, 16, 10, scene)
        assert np.all(image.data[4:14, 8:24] == 1.0)
        assert image.data.sum() == pytest.approx(16 * 10 * 3)

    @pytest.mark.parametrize(
        "x0, y0, w, h",
        [(0, 0, 33, 8), (0, 0, 0, 8), (30, 0, 16, 8), (0, -1, 8, 8)],
    )
    def test_invalid_block(self, scene, x0, y0, w, h):
        from raycore.core.render import Image, render_block

        _background_scene(scene, (1.0, 1.0, 1.0))
        with pytest.raises(ValueError):
            render_block(Image(40, 40), x0, y0, w, h, scene)

    def test_image_orientation(self, scene):
        """An emitter in the upper half of the view lights the upper rows."""
        from raycore.camera.pinhole import PinholeCamera
        from raycore.core.integrator import PathTracerIntegrator
        from raycore.core.render import Image, render_image

        light = scene.add_emitter_material((1.0, 1.0, 1.0))
        # Facing the camera at z = 3
        scene.add_quad((-5.0, 0.1, 0.0), (10.0, 0.0, 0.0), (0.0, 5.0, 0.0), light)
        scene.set_camera(PinholeCamera())
        scene.set_integrator(PathTracerIntegrator(depth_limit=0))
        image = Image(16, 16)
        render_image(image, scene)
        assert np.all(image.data[12:, :, 0] == 1.0)
        assert np.all(image.data[:4, :, 0] == 0.0)
        top_first = image.to_numpy()
        assert np.all(top_first[:4, :, 0] == 1.0)


class TestEstimateRadiance:
    """Tests for single-ray estimates."""

    def test_background(self, scene):
        from raycore.core.render import estimate_radiance

        scene.set_background((0.3, 0.2, 0.1))
        assert estimate_radiance((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), 3000, scene) == pytest.approx(
            (0.3, 0.2, 0.1), rel=1e-5
        )

    def test_unnormalized_direction(self, scene):
        from raycore.core.integrator import PathTracerIntegrator
        from raycore.core.render import estimate_radiance

        light = scene.add_emitter_material((2.0, 2.0, 2.0))
        scene.add_sphere((0.0, 0.0, -5.0), 1.0, light)
        scene.set_integrator(PathTracerIntegrator(depth_limit=0))
        assert estimate_radiance((0.0, 0.0, 0.0), (0.0, 0.0, -10.0), 4, scene) == pytest.approx((2.0, 2.0, 2.0))

    def test_invalid_sample_count(self, scene):
        from raycore.core.render import estimate_radiance

        with pytest.raises(ValueError):
            estimate_radiance((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), 0, scene)
