"""Surface materials.

A material ties a BRDF to a surface and optionally makes it a light source:

- HOMOGENEOUS: reflects through its BRDF and emits nothing.
- LAMBERTIAN_EMITTER: additionally emits a constant radiance from the front
  side of the surface (the side the geometric normal points to).

Emitters still reflect light through their BRDF; by default that is a black
Lambertian BRDF.
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from raycore.materials.brdf import num_brdfs

vec3 = tm.vec3


class MaterialType(IntEnum):
    """Material types for device-side dispatch."""

    HOMOGENEOUS = 0
    LAMBERTIAN_EMITTER = 1


MAX_MATERIALS = 256

material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_brdf_ids = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_radiances = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    num_materials[None] = 0


def _add_material(material_type: MaterialType, brdf_id: int, radiance: tuple[float, float, float]) -> int:
    if brdf_id < 0 or brdf_id >= num_brdfs[None]:
        raise ValueError(f"Invalid brdf_id: {brdf_id}")
    material_id = num_materials[None]
    if material_id >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")
    material_types[material_id] = int(material_type)
    material_brdf_ids[material_id] = brdf_id
    material_radiances[material_id] = vec3(radiance[0], radiance[1], radiance[2])
    num_materials[None] = material_id + 1
    return material_id


def add_homogeneous_material(brdf_id: int) -> int:
    """Register a non-emitting material.

    Returns:
        The material ID.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If brdf_id does not name a registered BRDF.
    """
    return _add_material(MaterialType.HOMOGENEOUS, brdf_id, (0.0, 0.0, 0.0))


def add_emitter_material(radiance: tuple[float, float, float], brdf_id: int) -> int:
    """Register a Lambertian emitter.

    Args:
        radiance: Emitted radiance (RGB), each component non-negative.
        brdf_id: BRDF used for light reflected by the emitter.

    Returns:
        The material ID.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If brdf_id is invalid or a radiance component is negative.
    """
    if len(radiance) != 3:
        raise ValueError(f"Radiance needs 3 components, got {len(radiance)}")
    for i, component in enumerate(radiance):
        if component < 0.0:
            raise ValueError(f"Radiance component {i} = {component} is negative")
    return _add_material(MaterialType.LAMBERTIAN_EMITTER, brdf_id, radiance)


def get_material_count() -> int:
    return int(num_materials[None])


@ti.func
def get_material_brdf(material_id: ti.i32) -> ti.i32:
    """BRDF id of a material, or -1 for invalid material IDs."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_brdf_ids[material_id]
    return result


@ti.func
def is_emitter(material_id: ti.i32) -> ti.i32:
    result = 0
    if 0 <= material_id < num_materials[None]:
        if material_types[material_id] == int(MaterialType.LAMBERTIAN_EMITTER):
            result = 1
    return result


@ti.func
def emitted_radiance(material_id: ti.i32, normal: vec3, emit_dir: vec3) -> vec3:
    """Radiance leaving the surface along emit_dir.

    Args:
        material_id: Material of the surface.
        normal: Geometric normal of the surface, not flipped.
        emit_dir: Unit direction from the surface toward the receiver.

    Returns:
        The material's radiance if it is an emitter and emit_dir leaves the
        front side, zero otherwise.
    """
    result = vec3(0.0, 0.0, 0.0)
    if is_emitter(material_id) == 1 and tm.dot(emit_dir, normal) > 0.0:
        result = material_radiances[material_id]
    return result
