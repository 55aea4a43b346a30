"""Scene-level ray intersection.

Surfaces are stored in Taichi fields (Structure of Arrays). Each surface is a
sphere, a standalone triangle or one triangle of a mesh, and has a material
and an area:

    surface_types[sid]        SurfaceType
    surface_prim_indices[sid] index into the sphere, triangle or mesh triangle arrays
    surface_material_ids[sid] material of the surface
    surface_areas[sid]        area used for light sampling

The scene manager packs everything on the host and uploads it in one go with
upload_geometry(), together with a BVH over the surface ids. Kernels then
only read these fields.

Queries:
    intersect_scene          nearest hit, BVH traversal with an explicit stack
    intersect_scene_any      any hit (shadow rays), stops at the first one
    *_brute_force            linear scans over every surface, for reference

Example:
    >>> # Inside a kernel:
    >>> rec = intersect_scene(make_offset_ray(origin, direction))
    >>> if rec.hit == 1:
    ...     material = surface_material_ids[rec.surface_id]
"""

from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from raycore.accel.aabb import hit_box
from raycore.accel.bvh import (
    BVH_STACK_SIZE,
    MAX_BVH_PRIMITIVES,
    bvh_left,
    bvh_node_max,
    bvh_node_min,
    bvh_prim_count,
    bvh_prim_indices,
    bvh_prim_start,
    bvh_right,
    num_bvh_nodes,
    pad_to_capacity,
)
from raycore.core.ray import T_MAX, Ray, make_ray, with_end
from raycore.core.records import IntersectionRecord, make_miss_record
from raycore.geometry.mesh import intersect_mesh_triangle
from raycore.geometry.sphere import intersect_sphere, sample_sphere_point
from raycore.geometry.triangle import intersect_triangle, sample_triangle_point

vec2 = tm.vec2
vec3 = tm.vec3


class SurfaceType(IntEnum):
    """Surface types for device-side dispatch."""

    SPHERE = 0
    TRIANGLE = 1
    MESH_TRIANGLE = 2


# Maximum number of primitives supported in the scene
MAX_SURFACES = MAX_BVH_PRIMITIVES
MAX_SPHERES = 4096
MAX_TRIANGLES = 65536
MAX_MESH_TRIANGLES = 65536
MAX_MESH_VERTICES = 131072

# Surface table
surface_types = ti.field(dtype=ti.i32, shape=MAX_SURFACES)
surface_prim_indices = ti.field(dtype=ti.i32, shape=MAX_SURFACES)
surface_material_ids = ti.field(dtype=ti.i32, shape=MAX_SURFACES)
surface_areas = ti.field(dtype=ti.f32, shape=MAX_SURFACES)
num_surfaces = ti.field(dtype=ti.i32, shape=())

# Sphere storage
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)

# Standalone triangle storage
triangle_v0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)

# Mesh storage: shared vertex arrays, per-triangle indices and attribute flags
mesh_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESH_VERTICES)
mesh_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESH_VERTICES)
mesh_texcoords = ti.Vector.field(2, dtype=ti.f32, shape=MAX_MESH_VERTICES)
mesh_triangle_indices = ti.Vector.field(3, dtype=ti.i32, shape=MAX_MESH_TRIANGLES)
mesh_triangle_flags = ti.Vector.field(2, dtype=ti.i32, shape=MAX_MESH_TRIANGLES)

# Length of the scene bounding box diagonal
scene_extent = ti.field(dtype=ti.f32, shape=())


@dataclass
class GeometryBuffers:
    """Host-side packed geometry, ready for upload.

    Attributes:
        surface_types: (S,) SurfaceType values.
        surface_prim_indices: (S,) index into the per-type arrays.
        surface_material_ids: (S,) material ids.
        surface_areas: (S,) surface areas.
        sphere_centers: (N, 3) sphere centers.
        sphere_radii: (N,) sphere radii.
        triangle_vertices: (T, 3, 3) standalone triangle corners.
        mesh_positions: (V, 3) vertices of all meshes.
        mesh_normals: (V, 3) vertex normals (zero where a mesh has none).
        mesh_texcoords: (V, 2) texture coordinates (zero where a mesh has none).
        mesh_triangle_indices: (M, 3) global vertex indices per mesh triangle.
        mesh_triangle_flags: (M, 2) has_normals, has_texcoords per mesh triangle.
        extent: Length of the scene bounding box diagonal.
    """

    surface_types: npt.NDArray[np.int32] = field(default_factory=lambda: np.zeros(0, np.int32))
    surface_prim_indices: npt.NDArray[np.int32] = field(default_factory=lambda: np.zeros(0, np.int32))
    surface_material_ids: npt.NDArray[np.int32] = field(default_factory=lambda: np.zeros(0, np.int32))
    surface_areas: npt.NDArray[np.float32] = field(default_factory=lambda: np.zeros(0, np.float32))
    sphere_centers: npt.NDArray[np.float32] = field(default_factory=lambda: np.zeros((0, 3), np.float32))
    sphere_radii: npt.NDArray[np.float32] = field(default_factory=lambda: np.zeros(0, np.float32))
    triangle_vertices: npt.NDArray[np.float32] = field(
        default_factory=lambda: np.zeros((0, 3, 3), np.float32)
    )
    mesh_positions: npt.NDArray[np.float32] = field(default_factory=lambda: np.zeros((0, 3), np.float32))
    mesh_normals: npt.NDArray[np.float32] = field(default_factory=lambda: np.zeros((0, 3), np.float32))
    mesh_texcoords: npt.NDArray[np.float32] = field(default_factory=lambda: np.zeros((0, 2), np.float32))
    mesh_triangle_indices: npt.NDArray[np.int32] = field(
        default_factory=lambda: np.zeros((0, 3), np.int32)
    )
    mesh_triangle_flags: npt.NDArray[np.int32] = field(
        default_factory=lambda: np.zeros((0, 2), np.int32)
    )
    extent: float = 0.0

    @property
    def num_surfaces(self) -> int:
        return len(self.surface_types)


def upload_geometry(buffers: GeometryBuffers) -> None:
    """Copy packed geometry into the device fields.

    Raises:
        RuntimeError: If any capacity is exceeded.
    """
    limits = [
        ("surfaces", buffers.num_surfaces, MAX_SURFACES),
        ("spheres", len(buffers.sphere_radii), MAX_SPHERES),
        ("triangles", len(buffers.triangle_vertices), MAX_TRIANGLES),
        ("mesh triangles", len(buffers.mesh_triangle_indices), MAX_MESH_TRIANGLES),
        ("mesh vertices", len(buffers.mesh_positions), MAX_MESH_VERTICES),
    ]
    for name, count, limit in limits:
        if count > limit:
            raise RuntimeError(f"Maximum number of {name} ({limit}) exceeded: {count}")

    surface_types.from_numpy(pad_to_capacity(buffers.surface_types, MAX_SURFACES, np.int32))
    surface_prim_indices.from_numpy(
        pad_to_capacity(buffers.surface_prim_indices, MAX_SURFACES, np.int32)
    )
    surface_material_ids.from_numpy(
        pad_to_capacity(buffers.surface_material_ids, MAX_SURFACES, np.int32)
    )
    surface_areas.from_numpy(pad_to_capacity(buffers.surface_areas, MAX_SURFACES, np.float32))

    sphere_centers.from_numpy(pad_to_capacity(buffers.sphere_centers, MAX_SPHERES, np.float32))
    sphere_radii.from_numpy(pad_to_capacity(buffers.sphere_radii, MAX_SPHERES, np.float32))

    tris = np.asarray(buffers.triangle_vertices, dtype=np.float32).reshape(-1, 3, 3)
    triangle_v0.from_numpy(pad_to_capacity(tris[:, 0], MAX_TRIANGLES, np.float32))
    triangle_v1.from_numpy(pad_to_capacity(tris[:, 1], MAX_TRIANGLES, np.float32))
    triangle_v2.from_numpy(pad_to_capacity(tris[:, 2], MAX_TRIANGLES, np.float32))

    mesh_positions.from_numpy(pad_to_capacity(buffers.mesh_positions, MAX_MESH_VERTICES, np.float32))
    mesh_normals.from_numpy(pad_to_capacity(buffers.mesh_normals, MAX_MESH_VERTICES, np.float32))
    mesh_texcoords.from_numpy(pad_to_capacity(buffers.mesh_texcoords, MAX_MESH_VERTICES, np.float32))
    mesh_triangle_indices.from_numpy(
        pad_to_capacity(buffers.mesh_triangle_indices, MAX_MESH_TRIANGLES, np.int32)
    )
    mesh_triangle_flags.from_numpy(
        pad_to_capacity(buffers.mesh_triangle_flags, MAX_MESH_TRIANGLES, np.int32)
    )

    scene_extent[None] = buffers.extent
    num_surfaces[None] = buffers.num_surfaces


def clear_geometry() -> None:
    """Remove all surfaces. The field data is overwritten on the next upload."""
    num_surfaces[None] = 0
    scene_extent[None] = 0.0


def get_surface_count() -> int:
    return int(num_surfaces[None])


# =============================================================================
# Device Functions
# =============================================================================


@ti.func
def intersect_surface(sid: ti.i32, ray: Ray) -> IntersectionRecord:
    """Intersect one surface and tag the record with its surface id."""
    kind = surface_types[sid]
    idx = surface_prim_indices[sid]
    rec = make_miss_record()
    if kind == int(SurfaceType.SPHERE):
        rec = intersect_sphere(ray, sphere_centers[idx], sphere_radii[idx])
    elif kind == int(SurfaceType.TRIANGLE):
        rec = intersect_triangle(ray, triangle_v0[idx], triangle_v1[idx], triangle_v2[idx])
    elif kind == int(SurfaceType.MESH_TRIANGLE):
        tri = mesh_triangle_indices[idx]
        flags = mesh_triangle_flags[idx]
        rec = intersect_mesh_triangle(
            ray,
            mesh_positions[tri[0]],
            mesh_positions[tri[1]],
            mesh_positions[tri[2]],
            mesh_normals[tri[0]],
            mesh_normals[tri[1]],
            mesh_normals[tri[2]],
            mesh_texcoords[tri[0]],
            mesh_texcoords[tri[1]],
            mesh_texcoords[tri[2]],
            flags[0],
            flags[1],
        )
    if rec.hit == 1:
        rec.surface_id = sid
    return rec


@ti.func
def intersect_scene(ray: Ray) -> IntersectionRecord:
    """Find the nearest hit in [ray.start, ray.end) using the BVH.

    Nodes are popped from a fixed-size stack. Internal nodes push the right
    child first so the left subtree is searched first; every hit narrows the
    ray end, which prunes boxes lying beyond it. Ties keep the surface found
    first.
    """
    result = make_miss_record()
    if num_bvh_nodes[None] > 0:
        stack = ti.Vector([0 for _ in range(BVH_STACK_SIZE)], dt=ti.i32)
        sp = 1
        closest = ray.end
        while sp > 0:
            sp -= 1
            node = stack[sp]
            clipped = with_end(ray, closest)
            if hit_box(bvh_node_min[node], bvh_node_max[node], clipped) == 1:
                if bvh_left[node] < 0:
                    first = bvh_prim_start[node]
                    for k in range(bvh_prim_count[node]):
                        sid = bvh_prim_indices[first + k]
                        rec = intersect_surface(sid, with_end(ray, closest))
                        if rec.hit == 1:
                            closest = rec.t
                            result = rec
                else:
                    stack[sp] = bvh_right[node]
                    stack[sp + 1] = bvh_left[node]
                    sp += 2
    return result


@ti.func
def intersect_scene_any(ray: Ray) -> ti.i32:
    """Return 1 if any surface is hit inside [ray.start, ray.end)."""
    found = 0
    if num_bvh_nodes[None] > 0:
        stack = ti.Vector([0 for _ in range(BVH_STACK_SIZE)], dt=ti.i32)
        sp = 1
        while sp > 0 and found == 0:
            sp -= 1
            node = stack[sp]
            if hit_box(bvh_node_min[node], bvh_node_max[node], ray) == 1:
                if bvh_left[node] < 0:
                    first = bvh_prim_start[node]
                    for k in range(bvh_prim_count[node]):
                        if found == 0:
                            rec = intersect_surface(bvh_prim_indices[first + k], ray)
                            if rec.hit == 1:
                                found = 1
                else:
                    stack[sp] = bvh_right[node]
                    stack[sp + 1] = bvh_left[node]
                    sp += 2
    return found


@ti.func
def intersect_scene_brute_force(ray: Ray) -> IntersectionRecord:
    """Nearest hit by testing every surface in order."""
    result = make_miss_record()
    closest = ray.end
    for sid in range(num_surfaces[None]):
        rec = intersect_surface(sid, with_end(ray, closest))
        if rec.hit == 1:
            closest = rec.t
            result = rec
    return result


@ti.func
def intersect_scene_any_brute_force(ray: Ray) -> ti.i32:
    found = 0
    for sid in range(num_surfaces[None]):
        if found == 0:
            rec = intersect_surface(sid, ray)
            if rec.hit == 1:
                found = 1
    return found


@ti.func
def sample_surface_point(sid: ti.i32, seed: vec2):
    """Uniformly choose a point on a surface.

    Returns:
        Tuple of (point, geometric_normal); the area density is
        1 / surface_areas[sid].
    """
    kind = surface_types[sid]
    idx = surface_prim_indices[sid]
    point = vec3(0.0, 0.0, 0.0)
    normal = vec3(0.0, 0.0, 1.0)
    if kind == int(SurfaceType.SPHERE):
        point, normal = sample_sphere_point(sphere_centers[idx], sphere_radii[idx], seed)
    elif kind == int(SurfaceType.TRIANGLE):
        point, normal = sample_triangle_point(triangle_v0[idx], triangle_v1[idx], triangle_v2[idx], seed)
    elif kind == int(SurfaceType.MESH_TRIANGLE):
        tri = mesh_triangle_indices[idx]
        point, normal = sample_triangle_point(
            mesh_positions[tri[0]], mesh_positions[tri[1]], mesh_positions[tri[2]], seed
        )
    return point, normal


# =============================================================================
# Host Queries
# =============================================================================


@dataclass
class HitInfo:
    """Result of a host-side intersection query.

    Attributes:
        t: Ray parameter of the hit.
        point: Hit point.
        normal: Geometric normal (not flipped toward the ray).
        front_face: True if the ray arrived against the normal.
        surface_id: Index of the hit surface.
        material_id: Material of the hit surface.
    """

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    front_face: bool
    surface_id: int
    material_id: int


_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_front = ti.field(dtype=ti.i32, shape=())
_query_surface = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _first_intersection_kernel(origin: vec3, direction: vec3, start: ti.f32, end: ti.f32):
    rec = intersect_scene(make_ray(origin, tm.normalize(direction), start, end))
    _query_hit[None] = rec.hit
    _query_t[None] = rec.t
    _query_point[None] = rec.frame.o
    _query_normal[None] = rec.normal
    _query_front[None] = rec.front_face
    _query_surface[None] = rec.surface_id


@ti.kernel
def _any_intersection_kernel(origin: vec3, direction: vec3, start: ti.f32, end: ti.f32) -> ti.i32:
    return intersect_scene_any(make_ray(origin, tm.normalize(direction), start, end))


def query_first_intersection(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    start: float = 0.0,
    end: float = T_MAX,
) -> HitInfo | None:
    """Nearest hit of a ray with the uploaded scene, or None on a miss."""
    _first_intersection_kernel(vec3(*origin), vec3(*direction), start, end)
    if _query_hit[None] == 0:
        return None
    sid = int(_query_surface[None])
    p = _query_point[None]
    n = _query_normal[None]
    return HitInfo(
        t=float(_query_t[None]),
        point=(float(p[0]), float(p[1]), float(p[2])),
        normal=(float(n[0]), float(n[1]), float(n[2])),
        front_face=bool(_query_front[None]),
        surface_id=sid,
        material_id=int(surface_material_ids[sid]),
    )


def query_any_intersection(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    start: float = 0.0,
    end: float = T_MAX,
) -> bool:
    """True if the ray hits anything in [start, end)."""
    return bool(_any_intersection_kernel(vec3(*origin), vec3(*direction), start, end))
