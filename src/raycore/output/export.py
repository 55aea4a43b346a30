"""Image export utilities.

Rendered images are already gamma-corrected and clamped to [0, 1] by the
block renderer, so export only quantizes to 8 bits and writes through Pillow.

Supported formats:
    - PNG (8-bit RGB via Pillow)

Example:
    >>> image = Image(64, 64)
    >>> render_image(image, scene)
    >>> save_png(image, "output.png")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from raycore.core.render import Image

logger = logging.getLogger(__name__)


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Quantize a display-ready float image to uint8.

    Args:
        image: Array of shape (H, W, 3); values are clamped to [0, 1].

    Returns:
        Array of shape (H, W, 3) with dtype uint8, rounded to nearest.

    Raises:
        ValueError: If the array is not (H, W, 3).
    """
    array = np.asarray(image)
    if array.ndim != 3 or array.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {array.shape}")
    clipped = np.clip(np.nan_to_num(array.astype(np.float64)), 0.0, 1.0)
    return (clipped * 255.0 + 0.5).astype(np.uint8)


def save_png_from_array(image: npt.NDArray[np.floating], filepath: str | Path) -> Path:
    """Save an (H, W, 3) float array, top row first, as an 8-bit PNG."""
    path = Path(filepath)
    pil_image = PILImage.fromarray(image_to_uint8(image))
    pil_image.save(path)
    logger.info("Saved %dx%d PNG to %s", pil_image.width, pil_image.height, path)
    return path


def save_png(image: Image, filepath: str | Path) -> Path:
    """Save a rendered Image as an 8-bit PNG.

    Args:
        image: The rendered image.
        filepath: Output file path (should end in .png).

    Returns:
        The path written.
    """
    return save_png_from_array(image.to_numpy(), filepath)


def load_png(filepath: str | Path) -> npt.NDArray[np.float32]:
    """Read an 8-bit PNG back as an (H, W, 3) float array in [0, 1]."""
    with PILImage.open(filepath) as pil_image:
        array = np.asarray(pil_image.convert("RGB"), dtype=np.float32)
    return array / 255.0


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Root mean squared error between two images of the same shape.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
