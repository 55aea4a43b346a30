"""Look-at pinhole camera.

The camera is placed with an eye point, a target and an up vector, and sees a
vertical field of view; the horizontal extent follows from the aspect ratio.
Image-plane coordinates are normalized:

- u = 0 is the left edge and u = 1 the right edge
- v = 0 is the bottom edge and v = 1 the top edge

The basis is built on the host with numpy and copied into 0-d fields, so
kernels only interpolate across a virtual viewport at unit distance:

- w points from the target back toward the eye
- u points right in the image plane
- v points up in the image plane

Example:
    >>> camera = PinholeCamera(
    ...     lookfrom=(0.0, 0.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=45.0,
    ...     aspect_ratio=1.0,
    ... )
    >>> setup_camera(camera)
    >>> @ti.kernel
    ... def trace_center():
    ...     ray = get_ray(0.5, 0.5)
"""

import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import taichi as ti
import taichi.math as tm

from raycore.core.ray import T_MAX, Ray, make_ray

vec2 = tm.vec2
vec3 = tm.vec3

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class PinholeCamera:
    """Configuration for a pinhole (perspective) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at.
        vup: Up direction, must not be parallel to the view direction.
        vfov: Full vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the image.
    """

    lookfrom: tuple[float, float, float] = (0.0, 0.0, 3.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, 0.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 45.0
    aspect_ratio: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "lookfrom": list(self.lookfrom),
            "lookat": list(self.lookat),
            "vup": list(self.vup),
            "vfov": self.vfov,
            "aspect_ratio": self.aspect_ratio,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PinholeCamera":
        defaults = cls()
        return cls(
            lookfrom=tuple(data.get("lookfrom", defaults.lookfrom)),
            lookat=tuple(data.get("lookat", defaults.lookat)),
            vup=tuple(data.get("vup", defaults.vup)),
            vfov=float(data.get("vfov", defaults.vfov)),
            aspect_ratio=float(data.get("aspect_ratio", defaults.aspect_ratio)),
        )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())

_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_camera_configured = False


# =============================================================================
# Camera Setup
# =============================================================================


def validate_camera(camera: PinholeCamera) -> None:
    """Check that the camera describes a usable view.

    Raises:
        ValueError: If the field of view or aspect ratio is out of range, the
            eye coincides with the target, or vup is parallel to the view.
    """
    if not 0.0 < camera.vfov < 180.0:
        raise ValueError(f"vfov must be in (0, 180) degrees, got {camera.vfov}")
    if camera.aspect_ratio <= 0.0:
        raise ValueError(f"aspect_ratio must be positive, got {camera.aspect_ratio}")
    w = np.asarray(camera.lookfrom, dtype=np.float64) - np.asarray(camera.lookat, dtype=np.float64)
    if np.linalg.norm(w) == 0.0:
        raise ValueError(f"lookfrom and lookat coincide: {camera.lookfrom}")
    if np.linalg.norm(np.cross(np.asarray(camera.vup, dtype=np.float64), w)) == 0.0:
        raise ValueError(f"vup {camera.vup} is parallel to the view direction")


def setup_camera(camera: PinholeCamera) -> None:
    """Compute the camera basis and viewport and store them in the fields.

    Raises:
        ValueError: If the camera fails validate_camera().
    """
    global _camera_configured
    validate_camera(camera)

    h = math.tan(math.radians(camera.vfov) / 2.0)
    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float32)
    lookat = np.array(camera.lookat, dtype=np.float32)
    vup = np.array(camera.vup, dtype=np.float32)

    w = lookfrom - lookat
    w = w / np.linalg.norm(w)
    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)
    v = np.cross(w, u)

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()

    horizontal = viewport_width * u
    vertical = viewport_height * v
    lower_left = lookfrom - w - horizontal / 2.0 - vertical / 2.0

    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _camera_configured = True


def reset_camera() -> None:
    """Forget the configured camera; rendering then fails until set again."""
    global _camera_configured
    _camera_configured = False


def is_camera_configured() -> bool:
    return _camera_configured


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(u: ti.f32, v: ti.f32) -> Ray:
    """Ray from the eye through normalized image coordinates (u, v).

    The ray covers [0, T_MAX); the eye is not on any surface, so no offset is
    needed.
    """
    point_on_viewport = (
        _lower_left_corner[None] + u * _viewport_horizontal[None] + v * _viewport_vertical[None]
    )
    origin = _camera_origin[None]
    direction = tm.normalize(point_on_viewport - origin)
    return make_ray(origin, direction, 0.0, T_MAX)


@ti.func
def get_pixel_ray(px: ti.i32, py: ti.i32, width: ti.i32, height: ti.i32, jitter: vec2) -> Ray:
    """Ray through pixel (px, py) offset by jitter in [0, 1)^2.

    Pixel (0, 0) is the bottom-left pixel.
    """
    u = (ti.cast(px, ti.f32) + jitter.x) / ti.cast(width, ti.f32)
    v = (ti.cast(py, ti.f32) + jitter.y) / ti.cast(height, ti.f32)
    return get_ray(u, v)


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Current camera vectors, read back from the fields for inspection."""
    fields = {
        "origin": _camera_origin,
        "u": _camera_u,
        "v": _camera_v,
        "w": _camera_w,
        "horizontal": _viewport_horizontal,
        "vertical": _viewport_vertical,
        "lower_left": _lower_left_corner,
    }
    info = {}
    for name, f in fields.items():
        value = f[None]
        info[name] = (float(value[0]), float(value[1]), float(value[2]))
    return info
