"""Scene storage, ray queries and light sources.

Components:
    intersection: Surface fields, BVH traversal and brute-force queries
    luminaires: Emitter sampling, background and point lights
    manager: Host-side scene assembly and serialization
    cornell_box: Cornell box scene factory

Scene data is organized for kernel access:
    - Structure-of-Arrays layout for geometric data
    - One surface id per sphere, triangle or mesh triangle
    - A flattened BVH over surface ids
"""

from .intersection import (
    MAX_SURFACES,
    GeometryBuffers,
    HitInfo,
    SurfaceType,
    clear_geometry,
    get_surface_count,
    intersect_scene,
    intersect_scene_any,
    intersect_scene_any_brute_force,
    intersect_scene_brute_force,
    query_any_intersection,
    query_first_intersection,
    upload_geometry,
)
from .luminaires import (
    PointLight,
    background_radiance,
    choose_visible_point_on_luminaire,
    get_luminaire_count,
    incident_radiance,
    luminaire_radiance,
    pdf_visible_point_on_luminaire,
    set_background_radiance,
)

# Note: manager and cornell_box are NOT imported here; the manager depends on
# the integrator, which itself reads the scene fields. Import them directly.

__all__ = [
    "MAX_SURFACES",
    "SurfaceType",
    "GeometryBuffers",
    "HitInfo",
    "upload_geometry",
    "clear_geometry",
    "get_surface_count",
    "intersect_scene",
    "intersect_scene_any",
    "intersect_scene_brute_force",
    "intersect_scene_any_brute_force",
    "query_first_intersection",
    "query_any_intersection",
    "PointLight",
    "set_background_radiance",
    "background_radiance",
    "choose_visible_point_on_luminaire",
    "pdf_visible_point_on_luminaire",
    "luminaire_radiance",
    "incident_radiance",
    "get_luminaire_count",
]
