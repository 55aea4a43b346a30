"""Camera models for primary ray generation.

Image-plane coordinates are normalized:
    u in [0, 1]: left to right across the image
    v in [0, 1]: bottom to top across the image
"""

from .pinhole import (
    PinholeCamera,
    get_camera_info,
    get_pixel_ray,
    get_ray,
    is_camera_configured,
    reset_camera,
    setup_camera,
    validate_camera,
)

__all__ = [
    "PinholeCamera",
    "setup_camera",
    "validate_camera",
    "reset_camera",
    "is_camera_configured",
    "get_ray",
    "get_pixel_ray",
    "get_camera_info",
]
