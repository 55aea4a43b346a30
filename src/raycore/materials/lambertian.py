"""Lambertian (ideal diffuse) BRDF.

The Lambertian BRDF is constant over the hemisphere:
    f(i, o) = R / pi

Directions are importance sampled with the cosine-weighted (projected solid
angle) warp, so
    pdf(i) = cos(theta_i) / pi
    weight = f * cos(theta_i) / pdf = R

All directions point away from the surface; the frame's w axis is the side
being shaded.

Example:
    >>> idx = add_lambertian_brdf((0.8, 0.2, 0.2))
    >>> # Inside a kernel:
    >>> # direction, weight = generate_lambertian(get_lambertian_reflectance(idx), frame, seed)
"""

import taichi as ti
import taichi.math as tm

from raycore.core.ray import Frame, frame_to_canonical
from raycore.core.warp import square_to_psa_hemisphere

vec2 = tm.vec2
vec3 = tm.vec3


@ti.func
def eval_lambertian(reflectance: vec3, frame: Frame, incident: vec3, reflected: vec3) -> vec3:
    """Evaluate R / pi, or zero if either direction is below the surface."""
    result = vec3(0.0, 0.0, 0.0)
    if tm.dot(incident, frame.w) > 0.0 and tm.dot(reflected, frame.w) > 0.0:
        result = reflectance / tm.pi
    return result


@ti.func
def pdf_lambertian(frame: Frame, direction: vec3) -> ti.f32:
    """Solid-angle density cos(theta) / pi of generate_lambertian()."""
    cos_theta = tm.dot(direction, frame.w)
    pdf = 0.0
    if cos_theta > 0.0:
        pdf = cos_theta / tm.pi
    return pdf


@ti.func
def generate_lambertian(reflectance: vec3, frame: Frame, seed: vec2):
    """Sample a cosine-weighted direction.

    Args:
        reflectance: The diffuse reflectance (RGB).
        frame: Shading frame.
        seed: A point in [0, 1)^2.

    Returns:
        A tuple of (direction, weight) with weight = f * cos / pdf = R.
    """
    direction = frame_to_canonical(frame, square_to_psa_hemisphere(seed))
    return direction, reflectance


# =============================================================================
# BRDF Parameter Storage
# =============================================================================

MAX_LAMBERTIAN_BRDFS = 256

lambertian_reflectances = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_BRDFS)
num_lambertian_brdfs = ti.field(dtype=ti.i32, shape=())


def validate_reflectance(reflectance: tuple[float, float, float]) -> None:
    """Check that a reflectance has three components inside [0, 1].

    Raises:
        ValueError: If a component is outside [0, 1].
    """
    if len(reflectance) != 3:
        raise ValueError(f"Reflectance needs 3 components, got {len(reflectance)}")
    for i, component in enumerate(reflectance):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Reflectance component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )


def clear_lambertian_brdfs() -> None:
    num_lambertian_brdfs[None] = 0


def add_lambertian_brdf(reflectance: tuple[float, float, float]) -> int:
    """Register a Lambertian BRDF.

    Returns:
        The index of the BRDF among Lambertian BRDFs.

    Raises:
        RuntimeError: If the maximum number of Lambertian BRDFs is exceeded.
        ValueError: If any reflectance component is outside [0, 1].
    """
    validate_reflectance(reflectance)

    idx = num_lambertian_brdfs[None]
    if idx >= MAX_LAMBERTIAN_BRDFS:
        raise RuntimeError(f"Maximum number of Lambertian BRDFs ({MAX_LAMBERTIAN_BRDFS}) exceeded")

    lambertian_reflectances[idx] = vec3(reflectance[0], reflectance[1], reflectance[2])
    num_lambertian_brdfs[None] = idx + 1
    return idx


def get_lambertian_brdf_count() -> int:
    return int(num_lambertian_brdfs[None])


@ti.func
def get_lambertian_reflectance(idx: ti.i32) -> vec3:
    return lambertian_reflectances[idx]
