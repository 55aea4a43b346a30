"""Block-scheduled rendering with progress reporting.

BlockRenderer owns an Image and walks it block by block, so callers can
follow progress, stop early, or render only part of an image:

- render() renders every remaining block, calling back after each one
- render_progressive() does the same as a generator
- reset() starts over with a black image

Example:
    >>> scene = create_cornell_box_scene()
    >>> renderer = BlockRenderer(scene, 128, 128)
    >>> for done, total in renderer.render_progressive():
    ...     print(f"{done}/{total} blocks")
    >>> renderer.save_png("cornell.png")
"""

import logging
from collections.abc import Callable, Generator
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from raycore.core.render import Image, iter_blocks, render_block
from raycore.sampling.sampler import MAX_BLOCK_SIZE

if TYPE_CHECKING:
    from raycore.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# Callback receives (blocks_done, blocks_total)
ProgressCallback = Callable[[int, int], None]


class BlockRenderer:
    """Renders a scene into an image one block at a time.

    Attributes:
        scene: The scene being rendered.
        image: The image being filled in.
    """

    def __init__(
        self,
        scene: "SceneManager",
        width: int,
        height: int,
        block_size: int = MAX_BLOCK_SIZE,
    ) -> None:
        """Set up a renderer for a width x height image.

        Raises:
            ValueError: If a dimension or the block size is not valid.
        """
        if not 0 < block_size <= MAX_BLOCK_SIZE:
            raise ValueError(f"block_size must be in [1, {MAX_BLOCK_SIZE}], got {block_size}")
        self.scene = scene
        self.image = Image(width, height)
        self._block_size = block_size
        self._blocks = list(iter_blocks(width, height, block_size))
        self._next_block = 0

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def total_blocks(self) -> int:
        return len(self._blocks)

    @property
    def blocks_done(self) -> int:
        return self._next_block

    @property
    def is_complete(self) -> bool:
        return self._next_block >= len(self._blocks)

    def reset(self) -> None:
        """Clear the image and start again from the first block."""
        self.image.clear()
        self._next_block = 0

    def render(self, max_blocks: int | None = None, callback: ProgressCallback | None = None) -> None:
        """Render the remaining blocks.

        Args:
            max_blocks: Stop after this many blocks; None renders them all.
            callback: Called after each block with (blocks_done, blocks_total).

        Raises:
            RuntimeError: If the scene has no camera.
        """
        for done, total in self.render_progressive(max_blocks):
            if callback is not None:
                callback(done, total)

    def render_progressive(self, max_blocks: int | None = None) -> Generator[tuple[int, int], None, None]:
        """Render the remaining blocks, yielding (blocks_done, blocks_total) after each."""
        if self.is_complete:
            return
        self.scene.prepare()
        if self._next_block == 0:
            logger.info(
                "Rendering %dx%d image in %d blocks", self.width, self.height, self.total_blocks
            )
        rendered = 0
        while not self.is_complete and (max_blocks is None or rendered < max_blocks):
            x0, y0, w, h = self._blocks[self._next_block]
            render_block(self.image, x0, y0, w, h)
            self._next_block += 1
            rendered += 1
            yield (self._next_block, self.total_blocks)
        if self.is_complete:
            logger.info("Finished rendering %dx%d image", self.width, self.height)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Gamma-corrected image, top row first, shape (height, width, 3)."""
        return self.image.to_numpy()

    def save_png(self, path: str | Path) -> Path:
        """Write the image to a PNG file and return the path."""
        from raycore.output.export import save_png

        return save_png(self.image, path)

    def __repr__(self) -> str:
        return (
            f"BlockRenderer(width={self.width}, height={self.height}, "
            f"blocks={self.blocks_done}/{self.total_blocks})"
        )
