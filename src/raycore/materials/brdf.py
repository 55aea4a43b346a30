"""BRDF registry and type dispatch.

Every BRDF gets a unified brdf_id. Two fields map it to its type and to the
index of its parameters in the type-specific registry, mirroring how
materials are tracked:

    brdf_types[brdf_id]         -> BRDFType
    brdf_type_indices[brdf_id]  -> index into lambertian_* or microfacet_* fields

The dispatch functions share one calling convention. All directions are unit
vectors pointing away from the surface, and frame.w is the side being shaded.

    evaluate_brdf(brdf_id, frame, incident, reflected) -> f
    generate_brdf(brdf_id, frame, fixed_dir, seed)     -> (direction, f * cos / pdf)
    pdf_brdf(brdf_id, frame, fixed_dir, direction)     -> solid-angle pdf
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from raycore.core.ray import Frame
from raycore.materials.lambertian import (
    add_lambertian_brdf,
    clear_lambertian_brdfs,
    eval_lambertian,
    generate_lambertian,
    get_lambertian_reflectance,
    pdf_lambertian,
)
from raycore.materials.microfacet import (
    add_microfacet_brdf,
    clear_microfacet_brdfs,
    eval_microfacet,
    generate_microfacet,
    get_microfacet_params,
    pdf_microfacet,
)

vec2 = tm.vec2
vec3 = tm.vec3


class BRDFType(IntEnum):
    """BRDF types for device-side dispatch."""

    LAMBERTIAN = 0
    MICROFACET = 1


MAX_BRDFS = 512

brdf_types = ti.field(dtype=ti.i32, shape=MAX_BRDFS)
brdf_type_indices = ti.field(dtype=ti.i32, shape=MAX_BRDFS)
num_brdfs = ti.field(dtype=ti.i32, shape=())


def clear_brdfs() -> None:
    """Clear the unified registry and both type-specific registries."""
    clear_lambertian_brdfs()
    clear_microfacet_brdfs()
    num_brdfs[None] = 0


def _register(brdf_type: BRDFType, type_index: int) -> int:
    brdf_id = num_brdfs[None]
    if brdf_id >= MAX_BRDFS:
        raise RuntimeError(f"Maximum number of BRDFs ({MAX_BRDFS}) exceeded")
    brdf_types[brdf_id] = int(brdf_type)
    brdf_type_indices[brdf_id] = type_index
    num_brdfs[None] = brdf_id + 1
    return brdf_id


def add_lambertian(reflectance: tuple[float, float, float]) -> int:
    """Register a Lambertian BRDF and return its brdf_id.

    Raises:
        RuntimeError: If a registry is full.
        ValueError: If any reflectance component is outside [0, 1].
    """
    if num_brdfs[None] >= MAX_BRDFS:
        raise RuntimeError(f"Maximum number of BRDFs ({MAX_BRDFS}) exceeded")
    return _register(BRDFType.LAMBERTIAN, add_lambertian_brdf(reflectance))


def add_microfacet(
    reflectance: tuple[float, float, float],
    alpha: float = 0.1,
    ior: float = 1.5,
    specular_sampling_weight: float = 0.5,
) -> int:
    """Register a microfacet BRDF and return its brdf_id.

    Raises:
        RuntimeError: If a registry is full.
        ValueError: If a parameter is out of range.
    """
    if num_brdfs[None] >= MAX_BRDFS:
        raise RuntimeError(f"Maximum number of BRDFs ({MAX_BRDFS}) exceeded")
    type_index = add_microfacet_brdf(reflectance, alpha, ior, specular_sampling_weight)
    return _register(BRDFType.MICROFACET, type_index)


def get_brdf_count() -> int:
    return int(num_brdfs[None])


@ti.func
def evaluate_brdf(brdf_id: ti.i32, frame: Frame, incident: vec3, reflected: vec3) -> vec3:
    """Evaluate f(incident, reflected); zero for unknown ids."""
    result = vec3(0.0, 0.0, 0.0)
    if 0 <= brdf_id < num_brdfs[None]:
        idx = brdf_type_indices[brdf_id]
        kind = brdf_types[brdf_id]
        if kind == int(BRDFType.LAMBERTIAN):
            result = eval_lambertian(get_lambertian_reflectance(idx), frame, incident, reflected)
        elif kind == int(BRDFType.MICROFACET):
            result = eval_microfacet(get_microfacet_params(idx), frame, incident, reflected)
    return result


@ti.func
def generate_brdf(brdf_id: ti.i32, frame: Frame, fixed_dir: vec3, seed: vec2):
    """Importance sample a direction given the fixed one.

    Returns:
        A tuple of (direction, weight). The weight is zero when no usable
        sample was produced.
    """
    direction = frame.w
    weight = vec3(0.0, 0.0, 0.0)
    if 0 <= brdf_id < num_brdfs[None]:
        idx = brdf_type_indices[brdf_id]
        kind = brdf_types[brdf_id]
        if kind == int(BRDFType.LAMBERTIAN):
            direction, weight = generate_lambertian(get_lambertian_reflectance(idx), frame, seed)
        elif kind == int(BRDFType.MICROFACET):
            direction, weight = generate_microfacet(get_microfacet_params(idx), frame, fixed_dir, seed)
    return direction, weight


@ti.func
def pdf_brdf(brdf_id: ti.i32, frame: Frame, fixed_dir: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density with which generate_brdf() picks `direction`."""
    pdf = 0.0
    if 0 <= brdf_id < num_brdfs[None]:
        idx = brdf_type_indices[brdf_id]
        kind = brdf_types[brdf_id]
        if kind == int(BRDFType.LAMBERTIAN):
            pdf = pdf_lambertian(frame, direction)
        elif kind == int(BRDFType.MICROFACET):
            pdf = pdf_microfacet(get_microfacet_params(idx), frame, fixed_dir, direction)
    return pdf
