"""Radiance estimators.

Every integrator answers the same question: how much radiance arrives at a
ray's origin from along the ray. ray_radiance() dispatches on the integrator
selected with setup_integrator():

- DIRECT_ONLY: emission plus one sample of direct lighting, drawn either from
  the luminaires or from the BRDF.
- PATH_TRACER: iterative path tracing up to a depth limit.
- AMBIENT_OCCLUSION: a visibility test in one hemisphere direction.
- POINT_LIGHTS: emission plus shadowed point light contributions.

Sampler dimensions are shared by convention:

    0       pixel jitter (drawn by the renderer)
    1       direct lighting sample, AO direction or BRDF direction
    2 + d   path tracer bounce at depth d

Example:
    >>> setup_integrator(PathTracerIntegrator(depth_limit=3))
    >>> @ti.kernel
    ... def trace(slot: ti.i32):
    ...     reset_sampler(slot)
    ...     color = ray_radiance(get_ray(0.5, 0.5), slot, 0)
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

from raycore.core.ray import (
    Ray,
    facing_frame,
    frame_to_canonical,
    make_offset_ray,
    make_offset_segment,
    offset_origin,
    with_end,
)
from raycore.core.records import IntersectionRecord
from raycore.core.warp import square_to_hemisphere
from raycore.materials.brdf import evaluate_brdf, generate_brdf
from raycore.materials.material import emitted_radiance, get_material_brdf
from raycore.sampling.sampler import sample_2d
from raycore.scene.intersection import intersect_scene, intersect_scene_any, scene_extent, surface_material_ids
from raycore.scene.luminaires import (
    background_radiance,
    choose_visible_point_on_luminaire,
    incident_radiance,
    luminaire_radiance,
    num_point_lights,
    point_light_intensities,
    point_light_positions,
)

vec3 = tm.vec3

# =============================================================================
# Constants
# =============================================================================

# Upper bound on the path tracer depth limit
MAX_DEPTH_LIMIT = 64

# Russian roulette survival probability cap
MAX_RR_PROBABILITY = 0.95

# Sampler dimensions
PIXEL_DIMENSION = 0
DIRECT_DIMENSION = 1
BOUNCE_DIMENSION = 2


class IntegratorType(IntEnum):
    """Integrator types for device-side dispatch."""

    DIRECT_ONLY = 0
    PATH_TRACER = 1
    AMBIENT_OCCLUSION = 2
    POINT_LIGHTS = 3


class DirectStrategy(IntEnum):
    """How the direct-only integrator draws its lighting sample."""

    LUMINAIRE = 0
    BRDF = 1


# =============================================================================
# Configurations
# =============================================================================


@dataclass
class DirectOnlyIntegrator:
    """Emission plus one direct lighting sample per camera ray.

    Attributes:
        strategy: "luminaire" samples a visible point on a light; "brdf"
            samples the BRDF and keeps the sample only if it hits a light.
    """

    strategy: str = "luminaire"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "direct", "strategy": self.strategy}


@dataclass
class PathTracerIntegrator:
    """Path tracing with BRDF-sampled bounces.

    Attributes:
        depth_limit: Number of bounces; 0 gives emission (or background) only.
        background_illumination: Whether paths that escape after a bounce
            pick up the background. Camera rays that miss always do.
        russian_roulette: Randomly end low-throughput paths.
        rr_start_depth: First depth at which Russian roulette applies.
    """

    depth_limit: int = 5
    background_illumination: bool = True
    russian_roulette: bool = False
    rr_start_depth: int = 3

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "path_tracer",
            "depth_limit": self.depth_limit,
            "background_illumination": self.background_illumination,
            "russian_roulette": self.russian_roulette,
            "rr_start_depth": self.rr_start_depth,
        }


@dataclass
class AmbientOcclusionIntegrator:
    """Ambient occlusion.

    Attributes:
        length: Occlusion ray length as a fraction of the scene bounding box diagonal.
        unoccluded_value: Value returned when the occlusion ray escapes.
    """

    length: float = 0.1
    unoccluded_value: float = 0.8

    def to_dict(self) -> dict[str, Any]:
        return {"type": "ambient_occlusion", "length": self.length, "unoccluded_value": self.unoccluded_value}


@dataclass
class PointLightIntegrator:
    """Emission plus shadowed contributions from the scene's point lights."""

    def to_dict(self) -> dict[str, Any]:
        return {"type": "point_lights"}


IntegratorConfig = DirectOnlyIntegrator | PathTracerIntegrator | AmbientOcclusionIntegrator | PointLightIntegrator

_STRATEGIES = {"luminaire": DirectStrategy.LUMINAIRE, "brdf": DirectStrategy.BRDF}


def integrator_from_dict(data: dict[str, Any]) -> IntegratorConfig:
    """Build an integrator configuration from its dictionary form.

    Raises:
        ValueError: If the type is unknown.
    """
    kind = str(data.get("type", "path_tracer")).lower()
    if kind == "direct":
        return DirectOnlyIntegrator(strategy=str(data.get("strategy", "luminaire")))
    if kind == "path_tracer":
        defaults = PathTracerIntegrator()
        return PathTracerIntegrator(
            depth_limit=int(data.get("depth_limit", defaults.depth_limit)),
            background_illumination=bool(
                data.get("background_illumination", defaults.background_illumination)
            ),
            russian_roulette=bool(data.get("russian_roulette", defaults.russian_roulette)),
            rr_start_depth=int(data.get("rr_start_depth", defaults.rr_start_depth)),
        )
    if kind == "ambient_occlusion":
        return AmbientOcclusionIntegrator(
            length=float(data.get("length", 0.1)),
            unoccluded_value=float(data.get("unoccluded_value", 0.8)),
        )
    if kind == "point_lights":
        return PointLightIntegrator()
    raise ValueError(f"Unknown integrator type: {kind}")


# =============================================================================
# Integrator State
# =============================================================================

_integrator_type = ti.field(dtype=ti.i32, shape=())
_direct_strategy = ti.field(dtype=ti.i32, shape=())
_depth_limit = ti.field(dtype=ti.i32, shape=())
_background_illumination = ti.field(dtype=ti.i32, shape=())
_russian_roulette = ti.field(dtype=ti.i32, shape=())
_rr_start_depth = ti.field(dtype=ti.i32, shape=())
_ao_length = ti.field(dtype=ti.f32, shape=())
_ao_unoccluded_value = ti.field(dtype=ti.f32, shape=())


def setup_integrator(config: IntegratorConfig) -> None:
    """Make an integrator current for ray_radiance().

    Raises:
        ValueError: If a parameter is out of range.
    """
    if isinstance(config, DirectOnlyIntegrator):
        if config.strategy not in _STRATEGIES:
            raise ValueError(f"Unknown direct lighting strategy: {config.strategy}")
        _integrator_type[None] = int(IntegratorType.DIRECT_ONLY)
        _direct_strategy[None] = int(_STRATEGIES[config.strategy])
    elif isinstance(config, PathTracerIntegrator):
        if not 0 <= config.depth_limit <= MAX_DEPTH_LIMIT:
            raise ValueError(f"depth_limit must be in [0, {MAX_DEPTH_LIMIT}], got {config.depth_limit}")
        if config.rr_start_depth < 0:
            raise ValueError(f"rr_start_depth must be non-negative, got {config.rr_start_depth}")
        _integrator_type[None] = int(IntegratorType.PATH_TRACER)
        _depth_limit[None] = config.depth_limit
        _background_illumination[None] = int(config.background_illumination)
        _russian_roulette[None] = int(config.russian_roulette)
        _rr_start_depth[None] = config.rr_start_depth
    elif isinstance(config, AmbientOcclusionIntegrator):
        if config.length <= 0.0:
            raise ValueError(f"Ambient occlusion length must be positive, got {config.length}")
        if config.unoccluded_value < 0.0:
            raise ValueError(f"unoccluded_value must be non-negative, got {config.unoccluded_value}")
        _integrator_type[None] = int(IntegratorType.AMBIENT_OCCLUSION)
        _ao_length[None] = config.length
        _ao_unoccluded_value[None] = config.unoccluded_value
    elif isinstance(config, PointLightIntegrator):
        _integrator_type[None] = int(IntegratorType.POINT_LIGHTS)
    else:
        raise ValueError(f"Unknown integrator configuration: {config!r}")


# =============================================================================
# Estimators
# =============================================================================


@ti.func
def _surface_emission(rec: IntersectionRecord, ray: Ray) -> vec3:
    return emitted_radiance(surface_material_ids[rec.surface_id], rec.normal, -ray.direction)


@ti.func
def direct_luminaire_sample(rec: IntersectionRecord, ray: Ray, slot: ti.i32, sample_index: ti.i32) -> vec3:
    """f * Le * i_cos * l_cos / (dist^2 * pdf) for one visible light point."""
    result = vec3(0.0, 0.0, 0.0)
    shading = facing_frame(rec.frame, ray.direction)
    brdf_id = get_material_brdf(surface_material_ids[rec.surface_id])
    lrec = choose_visible_point_on_luminaire(sample_2d(slot, sample_index, DIRECT_DIMENSION), shading)
    if lrec.valid == 1:
        f = evaluate_brdf(brdf_id, shading, -lrec.emit_dir, -ray.direction)
        geometry = lrec.i_cosine * lrec.l_cosine / (lrec.distance * lrec.distance * lrec.pdf)
        result = f * luminaire_radiance(lrec) * geometry
    return result


@ti.func
def direct_brdf_sample(rec: IntersectionRecord, ray: Ray, slot: ti.i32, sample_index: ti.i32) -> vec3:
    """BRDF-sampled ray weighted by the emission it finds."""
    result = vec3(0.0, 0.0, 0.0)
    shading = facing_frame(rec.frame, ray.direction)
    brdf_id = get_material_brdf(surface_material_ids[rec.surface_id])
    seed = sample_2d(slot, sample_index, DIRECT_DIMENSION)
    direction, weight = generate_brdf(brdf_id, shading, -ray.direction, seed)
    if weight.max() > 0.0:
        result = weight * incident_radiance(offset_origin(rec.frame.o, rec.normal, direction), direction)
    return result


@ti.func
def direct_only_radiance(ray: Ray, slot: ti.i32, sample_index: ti.i32) -> vec3:
    result = vec3(0.0, 0.0, 0.0)
    rec = intersect_scene(ray)
    if rec.hit == 0:
        result = background_radiance(ray.direction)
    else:
        result = _surface_emission(rec, ray)
        if _direct_strategy[None] == int(DirectStrategy.BRDF):
            result += direct_brdf_sample(rec, ray, slot, sample_index)
        else:
            result += direct_luminaire_sample(rec, ray, slot, sample_index)
    return result


@ti.func
def path_tracer_radiance(ray: Ray, slot: ti.i32, sample_index: ti.i32) -> vec3:
    """Iterative path tracing.

    Each vertex adds its emission weighted by the path throughput, then
    continues along a BRDF sample. Escaping paths add the background, at
    depth 0 always and deeper only with background illumination on. At the
    depth limit only emission is added.
    """
    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    current = ray
    active = 1
    depth_limit = _depth_limit[None]

    for depth in range(depth_limit + 1):
        if active == 1:
            rec = intersect_scene(current)
            if rec.hit == 0:
                if depth == 0 or _background_illumination[None] == 1:
                    radiance += throughput * background_radiance(current.direction)
                active = 0
            else:
                radiance += throughput * _surface_emission(rec, current)
                if depth == depth_limit:
                    active = 0
                else:
                    shading = facing_frame(rec.frame, current.direction)
                    brdf_id = get_material_brdf(surface_material_ids[rec.surface_id])
                    seed = sample_2d(slot, sample_index, BOUNCE_DIMENSION + depth)
                    direction, weight = generate_brdf(brdf_id, shading, -current.direction, seed)
                    if weight.max() <= 0.0:
                        active = 0
                    else:
                        throughput *= weight
                        if _russian_roulette[None] == 1 and depth >= _rr_start_depth[None]:
                            survival = ti.min(throughput.max(), MAX_RR_PROBABILITY)
                            if ti.random(ti.f32) >= survival:
                                active = 0
                            else:
                                throughput /= survival
                        if active == 1:
                            current = make_offset_ray(offset_origin(rec.frame.o, rec.normal, direction), direction)
    return radiance


@ti.func
def ambient_occlusion_radiance(ray: Ray, slot: ti.i32, sample_index: ti.i32) -> vec3:
    result = vec3(0.0, 0.0, 0.0)
    rec = intersect_scene(ray)
    if rec.hit == 0:
        result = background_radiance(ray.direction)
    else:
        shading = facing_frame(rec.frame, ray.direction)
        local = square_to_hemisphere(sample_2d(slot, sample_index, DIRECT_DIMENSION))
        direction = frame_to_canonical(shading, local)
        occluder_ray = make_offset_ray(offset_origin(rec.frame.o, rec.normal, direction), direction)
        occluder_ray = with_end(occluder_ray, _ao_length[None] * scene_extent[None])
        if intersect_scene_any(occluder_ray) == 0:
            value = _ao_unoccluded_value[None]
            result = vec3(value, value, value)
    return result


@ti.func
def point_light_radiance(ray: Ray) -> vec3:
    result = vec3(0.0, 0.0, 0.0)
    rec = intersect_scene(ray)
    if rec.hit == 0:
        result = background_radiance(ray.direction)
    else:
        result = _surface_emission(rec, ray)
        shading = facing_frame(rec.frame, ray.direction)
        brdf_id = get_material_brdf(surface_material_ids[rec.surface_id])
        for i in range(num_point_lights[None]):
            to_light = point_light_positions[i] - shading.o
            dist_sq = tm.dot(to_light, to_light)
            if dist_sq > 0.0:
                direction = to_light / ti.sqrt(dist_sq)
                cosine = tm.dot(direction, shading.w)
                if cosine > 0.0:
                    origin = offset_origin(shading.o, shading.w, direction)
                    shadow_ray = make_offset_segment(origin, point_light_positions[i])
                    if intersect_scene_any(shadow_ray) == 0:
                        f = evaluate_brdf(brdf_id, shading, direction, -ray.direction)
                        result += f * point_light_intensities[i] * cosine / dist_sq
    return result


@ti.func
def ray_radiance(ray: Ray, slot: ti.i32, sample_index: ti.i32) -> vec3:
    """Estimate the radiance arriving along -ray.direction at ray.origin.

    Args:
        ray: The query ray.
        slot: Sampler slot owned by the calling thread.
        sample_index: Row of the sampler pattern to draw from.

    Returns:
        A non-negative, finite RGB estimate. NaN, infinite and negative
        components are replaced by zero.
    """
    color = vec3(0.0, 0.0, 0.0)
    kind = _integrator_type[None]
    if kind == int(IntegratorType.DIRECT_ONLY):
        color = direct_only_radiance(ray, slot, sample_index)
    elif kind == int(IntegratorType.PATH_TRACER):
        color = path_tracer_radiance(ray, slot, sample_index)
    elif kind == int(IntegratorType.AMBIENT_OCCLUSION):
        color = ambient_occlusion_radiance(ray, slot, sample_index)
    elif kind == int(IntegratorType.POINT_LIGHTS):
        color = point_light_radiance(ray)

    for c in ti.static(range(3)):
        if tm.isnan(color[c]) or tm.isinf(color[c]) or color[c] < 0.0:
            color[c] = 0.0
    return color
