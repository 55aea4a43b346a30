"""Image buffer and block rendering.

Pixels are rendered in rectangular blocks of at most MAX_BLOCK_SIZE on a
side. Each pixel of a block owns one sampler slot, so the block kernel can
run every pixel in parallel without sharing sampler state. Per pixel:

1. reset the slot's stratum permutations
2. for each sample, jitter inside the pixel (dimension 0), build a camera ray
   and accumulate ray_radiance()
3. average, gamma-correct with 1/2.2, clamp to [0, 1]

Example:
    >>> scene = create_cornell_box_scene()
    >>> image = Image(64, 64)
    >>> render_image(image, scene)
    >>> pixels = image.to_numpy()
"""

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from raycore.camera.pinhole import get_pixel_ray, is_camera_configured
from raycore.core.integrator import PIXEL_DIMENSION, ray_radiance
from raycore.core.ray import T_MAX, make_ray
from raycore.sampling.sampler import (
    MAX_BLOCK_SIZE,
    MAX_SAMPLER_SLOTS,
    get_sampler_num_samples,
    reset_sampler,
    sample_2d,
)

if TYPE_CHECKING:
    from raycore.scene.manager import SceneManager

logger = logging.getLogger(__name__)

vec3 = tm.vec3

GAMMA = 2.2

# Largest supported image side
MAX_IMAGE_SIZE = 8192


# =============================================================================
# Image Buffer
# =============================================================================


class Image:
    """RGB float image with y = 0 at the bottom row.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        data: (height, width, 3) float32 array, row 0 at the bottom.
    """

    def __init__(self, width: int, height: int) -> None:
        """Create a black image.

        Raises:
            ValueError: If a dimension is not positive.
            RuntimeError: If a dimension exceeds MAX_IMAGE_SIZE.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
        if width > MAX_IMAGE_SIZE or height > MAX_IMAGE_SIZE:
            raise RuntimeError(
                f"Image dimensions ({width}x{height}) exceed maximum supported "
                f"({MAX_IMAGE_SIZE}x{MAX_IMAGE_SIZE})"
            )
        self.width = width
        self.height = height
        self.data: npt.NDArray[np.float32] = np.zeros((height, width, 3), dtype=np.float32)

    def _check(self, x: int, y: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} image")

    def get(self, x: int, y: int) -> tuple[float, float, float]:
        self._check(x, y)
        r, g, b = self.data[y, x]
        return (float(r), float(g), float(b))

    def set(self, x: int, y: int, color: tuple[float, float, float]) -> None:
        self._check(x, y)
        self.data[y, x] = color

    def clear(self) -> None:
        self.data.fill(0.0)

    def to_numpy(self) -> npt.NDArray[np.float32]:
        """Return a copy with the top row first, shape (height, width, 3)."""
        return np.flipud(self.data).copy()

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


# =============================================================================
# Kernels
# =============================================================================

_block_colors = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_BLOCK_SIZE, MAX_BLOCK_SIZE))
_estimate_sums = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SAMPLER_SLOTS)


@ti.func
def tone_map(color: vec3) -> vec3:
    """Gamma-correct a linear color and clamp it to [0, 1]."""
    c = tm.max(color, vec3(0.0, 0.0, 0.0))
    c = tm.pow(c, 1.0 / GAMMA)
    return tm.clamp(c, 0.0, 1.0)


@ti.kernel
def _render_block_kernel(x0: ti.i32, y0: ti.i32, w: ti.i32, h: ti.i32, width: ti.i32, height: ti.i32):
    for i, j in ti.ndrange(w, h):
        slot = j * MAX_BLOCK_SIZE + i
        reset_sampler(slot)
        n = ti.max(get_sampler_num_samples(), 1)
        total = vec3(0.0, 0.0, 0.0)
        for s in range(n):
            jitter = sample_2d(slot, s, PIXEL_DIMENSION)
            ray = get_pixel_ray(x0 + i, y0 + j, width, height, jitter)
            total += ray_radiance(ray, slot, s)
        _block_colors[i, j] = tone_map(total / ti.cast(n, ti.f32))


@ti.kernel
def _estimate_kernel(origin: vec3, direction: vec3, num_samples: ti.i32, num_slots: ti.i32):
    for slot in range(num_slots):
        n = ti.max(get_sampler_num_samples(), 1)
        total = vec3(0.0, 0.0, 0.0)
        count = 0
        k = slot
        while k < num_samples:
            row = count % n
            if row == 0:
                reset_sampler(slot)
            total += ray_radiance(make_ray(origin, tm.normalize(direction), 0.0, T_MAX), slot, row)
            count += 1
            k += num_slots
        _estimate_sums[slot] = total


# =============================================================================
# Public Rendering API
# =============================================================================


def _prepare(scene: "SceneManager | None") -> None:
    if scene is not None:
        scene.prepare()


def _check_camera() -> None:
    if not is_camera_configured():
        raise RuntimeError("No camera configured. Call SceneManager.set_camera() first.")


def iter_blocks(width: int, height: int, block_size: int = MAX_BLOCK_SIZE) -> Iterator[tuple[int, int, int, int]]:
    """Yield (x0, y0, w, h) blocks covering the image row by row from the bottom."""
    if not 0 < block_size <= MAX_BLOCK_SIZE:
        raise ValueError(f"block_size must be in [1, {MAX_BLOCK_SIZE}], got {block_size}")
    for y0 in range(0, height, block_size):
        for x0 in range(0, width, block_size):
            yield x0, y0, min(block_size, width - x0), min(block_size, height - y0)


def render_block(
    image: Image,
    x0: int,
    y0: int,
    width: int,
    height: int,
    scene: "SceneManager | None" = None,
) -> None:
    """Render one block of pixels into image.

    Args:
        image: Target image.
        x0: Left column of the block.
        y0: Bottom row of the block.
        width: Block width, at most MAX_BLOCK_SIZE.
        height: Block height, at most MAX_BLOCK_SIZE.
        scene: Scene to build first if it has pending changes.

    Raises:
        ValueError: If the block does not fit the image or MAX_BLOCK_SIZE.
        RuntimeError: If no camera is configured.
    """
    if not (0 < width <= MAX_BLOCK_SIZE and 0 < height <= MAX_BLOCK_SIZE):
        raise ValueError(f"Block {width}x{height} exceeds {MAX_BLOCK_SIZE}x{MAX_BLOCK_SIZE}")
    if x0 < 0 or y0 < 0 or x0 + width > image.width or y0 + height > image.height:
        raise ValueError(
            f"Block at ({x0}, {y0}) of size {width}x{height} outside "
            f"{image.width}x{image.height} image"
        )
    _prepare(scene)
    _check_camera()

    _render_block_kernel(x0, y0, width, height, image.width, image.height)
    block = _block_colors.to_numpy()[:width, :height]
    image.data[y0 : y0 + height, x0 : x0 + width] = np.transpose(block, (1, 0, 2))
    logger.debug("Rendered block (%d, %d) %dx%d", x0, y0, width, height)


def render_image(image: Image, scene: "SceneManager | None" = None) -> None:
    """Render every block of the image.

    Raises:
        RuntimeError: If no camera is configured.
    """
    _prepare(scene)
    _check_camera()
    logger.info("Rendering %dx%d image", image.width, image.height)
    for x0, y0, w, h in iter_blocks(image.width, image.height):
        render_block(image, x0, y0, w, h)
    logger.info("Finished rendering %dx%d image", image.width, image.height)


def estimate_radiance(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    num_samples: int,
    scene: "SceneManager | None" = None,
) -> tuple[float, float, float]:
    """Average num_samples radiance estimates along one ray.

    The ray starts exactly at origin. No camera is needed.

    Raises:
        ValueError: If num_samples is not positive.
    """
    if num_samples <= 0:
        raise ValueError(f"num_samples must be positive, got {num_samples}")
    _prepare(scene)
    num_slots = min(num_samples, MAX_SAMPLER_SLOTS)
    _estimate_kernel(vec3(*origin), vec3(*direction), num_samples, num_slots)
    total = _estimate_sums.to_numpy()[:num_slots].astype(np.float64).sum(axis=0) / num_samples
    return (float(total[0]), float(total[1]), float(total[2]))
