"""Light sources: emitting surfaces, the uniform background and point lights.

Luminaires are the surfaces whose material emits. Direct lighting picks one
uniformly, then a uniform point on it:

1. d = seed.x * N, k = min(int(d), N - 1), and seed.x is remapped to d - k
   so the rest of the seed stays uniform.
2. A point is sampled on luminaire k with area density 1 / area.
3. The sample is kept only if the light faces the shading point, the
   shading point faces the light, and the shadow segment between them is
   unoccluded.

The returned pdf is with respect to area on the light and includes the 1 / N
selection probability. Selection ignores area, so scenes mixing small and
large emitters converge slowly.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from raycore.accel.bvh import pad_to_capacity
from raycore.core.ray import (
    Frame,
    frame_from_w,
    make_offset_ray,
    make_offset_segment,
    offset_epsilon,
    offset_origin,
)
from raycore.core.records import LuminaireSamplingRecord, make_invalid_luminaire_record
from raycore.materials.material import emitted_radiance
from raycore.scene.intersection import (
    MAX_SURFACES,
    intersect_scene,
    intersect_scene_any,
    sample_surface_point,
    surface_areas,
    surface_material_ids,
)

vec2 = tm.vec2
vec3 = tm.vec3

# Largest float32 below 1, keeps the remapped seed inside [0, 1)
ONE_MINUS_EPSILON = 0.99999994

# =============================================================================
# Background
# =============================================================================

_background_radiance = ti.Vector.field(3, dtype=ti.f32, shape=())


def set_background_radiance(radiance: tuple[float, float, float]) -> None:
    """Set the uniform radiance seen along rays that escape the scene.

    Raises:
        ValueError: If a component is negative.
    """
    if len(radiance) != 3:
        raise ValueError(f"Background radiance needs 3 components, got {len(radiance)}")
    for i, component in enumerate(radiance):
        if component < 0.0:
            raise ValueError(f"Background component {i} = {component} is negative")
    _background_radiance[None] = vec3(radiance[0], radiance[1], radiance[2])


def get_background_radiance() -> tuple[float, float, float]:
    c = _background_radiance[None]
    return (float(c[0]), float(c[1]), float(c[2]))


@ti.func
def background_radiance(direction: vec3) -> vec3:
    """Radiance arriving from the background along -direction (uniform)."""
    return _background_radiance[None]


# =============================================================================
# Emitting surfaces
# =============================================================================

luminaire_ids = ti.field(dtype=ti.i32, shape=MAX_SURFACES)
num_luminaires = ti.field(dtype=ti.i32, shape=())


def upload_luminaires(surface_ids: npt.ArrayLike) -> None:
    """Set the list of emitting surfaces.

    Raises:
        RuntimeError: If there are more ids than surfaces can exist.
    """
    ids = np.asarray(surface_ids, dtype=np.int32).reshape(-1)
    if len(ids) > MAX_SURFACES:
        raise RuntimeError(f"Maximum number of luminaires ({MAX_SURFACES}) exceeded")
    luminaire_ids.from_numpy(pad_to_capacity(ids, MAX_SURFACES, np.int32))
    num_luminaires[None] = len(ids)


def clear_luminaires() -> None:
    num_luminaires[None] = 0


def get_luminaire_count() -> int:
    return int(num_luminaires[None])


@ti.func
def choose_visible_point_on_luminaire(seed: vec2, shading_frame: Frame) -> LuminaireSamplingRecord:
    """Pick a point on a luminaire that is visible from a shading point.

    Args:
        seed: A point in [0, 1)^2.
        shading_frame: Frame at the point being lit, w on the lit side.

    Returns:
        A LuminaireSamplingRecord with valid == 1, or an invalid record if
        there are no luminaires, either cosine is not positive, or the
        shadow segment is blocked.
    """
    lrec = make_invalid_luminaire_record()
    shading_point = shading_frame.o
    shading_normal = shading_frame.w
    n = num_luminaires[None]
    if n > 0:
        d = seed.x * ti.cast(n, ti.f32)
        k = ti.min(ti.cast(d, ti.i32), n - 1)
        remapped = vec2(ti.min(d - ti.cast(k, ti.f32), ONE_MINUS_EPSILON), seed.y)
        sid = luminaire_ids[k]
        point, normal = sample_surface_point(sid, remapped)

        delta = shading_point - point
        dist = tm.length(delta)
        if dist > 0.0:
            emit_dir = delta / dist
            i_cosine = -tm.dot(emit_dir, shading_normal)
            l_cosine = tm.dot(emit_dir, normal)
            if i_cosine > 0.0 and l_cosine > 0.0:
                # Both ends leave their surface toward the other end
                shadow_ray = make_offset_segment(
                    offset_origin(shading_point, shading_normal, -emit_dir),
                    point + offset_epsilon(point) * normal,
                )
                if intersect_scene_any(shadow_ray) == 0:
                    lrec = LuminaireSamplingRecord(
                        valid=1,
                        surface_id=sid,
                        frame=frame_from_w(point, normal),
                        emit_dir=emit_dir,
                        distance=dist,
                        pdf=1.0 / (surface_areas[sid] * ti.cast(n, ti.f32)),
                        i_cosine=i_cosine,
                        l_cosine=l_cosine,
                        shadow_ray=shadow_ray,
                    )
    return lrec


@ti.func
def pdf_visible_point_on_luminaire(lrec: LuminaireSamplingRecord) -> ti.f32:
    """Area density of choosing lrec's point: 1 / (area * N)."""
    pdf = 0.0
    n = num_luminaires[None]
    if n > 0 and lrec.surface_id >= 0:
        pdf = 1.0 / (surface_areas[lrec.surface_id] * ti.cast(n, ti.f32))
    return pdf


@ti.func
def luminaire_radiance(lrec: LuminaireSamplingRecord) -> vec3:
    """Radiance emitted from the sampled point toward the shading point."""
    return emitted_radiance(surface_material_ids[lrec.surface_id], lrec.frame.w, lrec.emit_dir)


@ti.func
def incident_radiance(origin: vec3, direction: vec3) -> vec3:
    """Emitted radiance arriving at origin from along direction.

    The background is not counted; only emitting surfaces contribute. Callers
    tracing from a surface pass an origin already moved off it with
    offset_origin().
    """
    result = vec3(0.0, 0.0, 0.0)
    ray = make_offset_ray(origin, direction)
    rec = intersect_scene(ray)
    if rec.hit == 1:
        result = emitted_radiance(surface_material_ids[rec.surface_id], rec.normal, -ray.direction)
    return result


# =============================================================================
# Point lights
# =============================================================================

MAX_POINT_LIGHTS = 64

point_light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_POINT_LIGHTS)
point_light_intensities = ti.Vector.field(3, dtype=ti.f32, shape=MAX_POINT_LIGHTS)
num_point_lights = ti.field(dtype=ti.i32, shape=())


@dataclass
class PointLight:
    """An isotropic point light.

    Attributes:
        position: Location of the light.
        intensity: Radiant intensity (RGB); irradiance falls off as 1 / r^2.
    """

    position: tuple[float, float, float]
    intensity: tuple[float, float, float] = (1.0, 1.0, 1.0)

    def to_dict(self) -> dict[str, Any]:
        return {"position": list(self.position), "intensity": list(self.intensity)}


def upload_point_lights(lights: list[PointLight]) -> None:
    """Replace the device point light list.

    Raises:
        RuntimeError: If more than MAX_POINT_LIGHTS are given.
    """
    if len(lights) > MAX_POINT_LIGHTS:
        raise RuntimeError(f"Maximum number of point lights ({MAX_POINT_LIGHTS}) exceeded")
    for i, light in enumerate(lights):
        point_light_positions[i] = vec3(*light.position)
        point_light_intensities[i] = vec3(*light.intensity)
    num_point_lights[None] = len(lights)


def clear_point_lights() -> None:
    num_point_lights[None] = 0


def get_point_light_count() -> int:
    return int(num_point_lights[None])
