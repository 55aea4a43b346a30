"""Core rendering module.

Components:
    ray: Ray and Frame structures, offset rays and frame conversions
    warp: Unit-square warps used for importance sampling
    records: Intersection and luminaire sampling records
    integrator: Radiance estimators (direct, path tracing, AO, point lights)
    render: Image buffer and block rendering kernels
    block_renderer: Block scheduling with progress reporting

All compute-intensive operations run as Taichi kernels.
"""

from .ray import (
    RAY_EPSILON,
    RAY_OFFSET_SCALE,
    T_MAX,
    Frame,
    Ray,
    canonical_to_frame,
    facing_frame,
    flip_frame,
    frame_from_w,
    frame_from_wu,
    frame_to_canonical,
    make_offset_ray,
    make_offset_segment,
    make_ray,
    offset_epsilon,
    offset_origin,
    ray_at,
    vec2,
    vec3,
    with_end,
)
from .records import (
    IntersectionRecord,
    LuminaireSamplingRecord,
    make_invalid_luminaire_record,
    make_miss_record,
)
from .warp import (
    square_to_hemisphere,
    square_to_psa_hemisphere,
    square_to_sphere,
    square_to_triangle,
)

# Note: integrator, render and block_renderer are NOT imported here to avoid
# circular imports with the scene package. Import them directly when needed.

__all__ = [
    "RAY_EPSILON",
    "RAY_OFFSET_SCALE",
    "T_MAX",
    "Ray",
    "Frame",
    "vec2",
    "vec3",
    "ray_at",
    "make_ray",
    "make_offset_ray",
    "make_offset_segment",
    "offset_epsilon",
    "offset_origin",
    "with_end",
    "frame_from_w",
    "frame_from_wu",
    "frame_to_canonical",
    "canonical_to_frame",
    "flip_frame",
    "facing_frame",
    "IntersectionRecord",
    "LuminaireSamplingRecord",
    "make_miss_record",
    "make_invalid_luminaire_record",
    "square_to_psa_hemisphere",
    "square_to_hemisphere",
    "square_to_sphere",
    "square_to_triangle",
]
