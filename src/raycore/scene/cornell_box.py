"""Cornell box scene.

The classic global illumination test scene, built entirely from triangles and
spheres:

- 5 walls forming an open box (each wall is a quad of two triangles)
- red wall on the right and green wall on the left as seen by the camera
- white back wall, floor and ceiling
- an emitting quad just below the ceiling, facing down
- a diffuse sphere and a glossy (microfacet) sphere resting on the floor

The box spans [0, box_size] on every axis, and the camera looks toward +Z
through the open front at z = 0. Every wall's geometric normal points into
the box.

Example:
    >>> scene = create_cornell_box_scene()
    >>> scene.get_triangle_count()
    12
    >>> image = Image(128, 128)
    >>> render_image(image, scene)
"""

from dataclasses import dataclass

from raycore.camera.pinhole import PinholeCamera
from raycore.scene.manager import SceneManager


@dataclass
class CornellBoxParams:
    """Tunable parts of the Cornell box.

    Attributes:
        light_radiance: Scalar radiance of the ceiling light.
        light_color: RGB tint of the light, multiplied by light_radiance.
        left_wall_color: Reflectance of the wall on the image's left.
        right_wall_color: Reflectance of the wall on the image's right.
        white_color: Reflectance of back wall, floor and ceiling.
        glossy_alpha: Beckmann roughness of the glossy sphere.
    """

    light_radiance: float = 15.0
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    left_wall_color: tuple[float, float, float] = (0.12, 0.45, 0.15)
    right_wall_color: tuple[float, float, float] = (0.65, 0.05, 0.05)
    white_color: tuple[float, float, float] = (0.73, 0.73, 0.73)
    glossy_alpha: float = 0.2


# Classic Cornell box dimensions (approximately 555 units on a side)
BOX_SIZE = 555.0

# Light quad size in the classic scene
LIGHT_WIDTH = 130.0
LIGHT_DEPTH = 105.0

SPHERE_RADIUS = 90.0
DIFFUSE_SPHERE_COLOR = (0.73, 0.73, 0.73)
GLOSSY_SPHERE_COLOR = (0.25, 0.3, 0.6)

CAMERA_DISTANCE = 800.0


def create_cornell_box_scene(
    box_size: float = BOX_SIZE,
    params: CornellBoxParams | None = None,
    aspect_ratio: float = 1.0,
) -> SceneManager:
    """Create the Cornell box with its camera set.

    Args:
        box_size: Side length of the box.
        params: Light and color settings; defaults to CornellBoxParams().
        aspect_ratio: Image width over height for the camera.

    Returns:
        A SceneManager holding 10 wall triangles, 2 light triangles, 2 spheres
        and a camera. Call build() or render to upload it.
    """
    if params is None:
        params = CornellBoxParams()
    scale = box_size / BOX_SIZE
    s = box_size

    scene = SceneManager()

    red = scene.add_lambertian_material(params.right_wall_color)
    green = scene.add_lambertian_material(params.left_wall_color)
    white = scene.add_lambertian_material(params.white_color)
    radiance = tuple(c * params.light_radiance for c in params.light_color)
    light = scene.add_emitter_material(radiance)
    diffuse = scene.add_lambertian_material(DIFFUSE_SPHERE_COLOR)
    glossy = scene.add_microfacet_material(GLOSSY_SPHERE_COLOR, alpha=params.glossy_alpha)

    # The camera's right is -X, so the x = 0 wall appears on the right
    scene.add_quad((0.0, 0.0, 0.0), (0.0, s, 0.0), (0.0, 0.0, s), red)
    scene.add_quad((s, 0.0, 0.0), (0.0, 0.0, s), (0.0, s, 0.0), green)
    scene.add_quad((0.0, 0.0, s), (0.0, s, 0.0), (s, 0.0, 0.0), white)
    scene.add_quad((0.0, 0.0, 0.0), (0.0, 0.0, s), (s, 0.0, 0.0), white)
    scene.add_quad((0.0, s, 0.0), (s, 0.0, 0.0), (0.0, 0.0, s), white)

    # Light sits just below the ceiling, normal (x cross z) facing down
    width = LIGHT_WIDTH * scale
    depth = LIGHT_DEPTH * scale
    scene.add_quad(
        ((s - width) / 2.0, s - 1.0 * scale, (s - depth) / 2.0),
        (width, 0.0, 0.0),
        (0.0, 0.0, depth),
        light,
    )

    radius = SPHERE_RADIUS * scale
    scene.add_sphere((s * 0.7, radius, s * 0.6), radius, diffuse)
    scene.add_sphere((s * 0.3, radius, s * 0.35), radius, glossy)

    scene.set_camera(
        PinholeCamera(
            lookfrom=(s / 2.0, s / 2.0, -CAMERA_DISTANCE * scale),
            lookat=(s / 2.0, s / 2.0, s / 2.0),
            vup=(0.0, 1.0, 0.0),
            vfov=40.0,
            aspect_ratio=aspect_ratio,
        )
    )
    return scene


def get_cornell_box_bounds(box_size: float = BOX_SIZE) -> dict[str, tuple[float, float, float]]:
    """Corners of the box for camera placement and tests."""
    return {"min": (0.0, 0.0, 0.0), "max": (box_size, box_size, box_size)}
