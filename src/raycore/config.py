"""Render settings, scene files and logging setup.

A scene file is a JSON document holding a SceneManager dictionary plus an
optional "render" section:

    {
        "materials": [{"type": "lambertian", "reflectance": [0.8, 0.8, 0.8]}],
        "surfaces": {"spheres": [{"center": [0, 0, 0], "radius": 1, "material_id": 0}]},
        "camera": {"lookfrom": [0, 0, 5]},
        "render": {"width": 256, "height": 256, "output": "sphere.png"}
    }

Relative mesh paths are resolved against the directory of the scene file.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from raycore.sampling.sampler import MAX_BLOCK_SIZE
from raycore.scene.manager import SceneManager

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging; DEBUG when verbose, INFO otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@dataclass
class RenderSettings:
    """Output image settings.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        output: Path of the PNG to write.
        block_size: Side of the square render blocks.
    """

    width: int = 512
    height: int = 512
    output: str = "render.png"
    block_size: int = MAX_BLOCK_SIZE

    def validate(self) -> None:
        """Raise ValueError for non-positive sizes or an oversized block."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {self.width}x{self.height}")
        if not 0 < self.block_size <= MAX_BLOCK_SIZE:
            raise ValueError(f"block_size must be in [1, {MAX_BLOCK_SIZE}], got {self.block_size}")

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderSettings":
        defaults = cls()
        settings = cls(
            width=int(data.get("width", defaults.width)),
            height=int(data.get("height", defaults.height)),
            output=str(data.get("output", defaults.output)),
            block_size=int(data.get("block_size", defaults.block_size)),
        )
        settings.validate()
        return settings


def load_scene_file(path: str | Path) -> tuple[SceneManager, RenderSettings]:
    """Read a JSON scene file.

    A camera without an explicit aspect_ratio gets the one of the render
    settings.

    Args:
        path: The scene file.

    Returns:
        (SceneManager, RenderSettings).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the JSON is malformed or describes an invalid scene.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Scene file {path} must contain a JSON object")

    settings = RenderSettings.from_dict(data.get("render", {}))
    camera = data.get("camera")
    if camera is not None and "aspect_ratio" not in camera:
        data = {**data, "camera": {**camera, "aspect_ratio": settings.aspect_ratio}}

    scene = SceneManager()
    scene.from_dict(data, base_dir=path.parent)
    logger.info("Loaded scene %s", path)
    return scene, settings


def save_scene_file(scene: SceneManager, path: str | Path, settings: RenderSettings | None = None) -> Path:
    """Write a scene, and optionally its render settings, as JSON."""
    path = Path(path)
    data = scene.to_dict()
    if settings is not None:
        data["render"] = settings.to_dict()
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    logger.info("Saved scene %s", path)
    return path
