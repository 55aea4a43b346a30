"""Triangle primitive.

Intersection solves the 3x3 system

    o + t d = p0 + beta (p1 - p0) + gamma (p2 - p0)

with Cramer's rule. A hit requires beta >= 0, gamma >= 0, beta + gamma <= 1
and t inside [ray.start, ray.end). Rays parallel to the plane and degenerate
(zero-area) triangles make the determinant vanish and are reported as misses.

The geometric normal is normalize((p1 - p0) x (p2 - p0)), so counter-clockwise
vertices face the viewer.
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from raycore.core.ray import Ray, frame_from_wu
from raycore.core.records import IntersectionRecord, make_miss_record
from raycore.core.warp import square_to_triangle

vec2 = tm.vec2
vec3 = tm.vec3

# Determinants smaller than this are treated as "no intersection"
TRIANGLE_EPSILON = 1e-12


@ti.func
def intersect_triangle(ray: Ray, p0: vec3, p1: vec3, p2: vec3) -> IntersectionRecord:
    """Intersect a ray with the triangle (p0, p1, p2).

    On a hit the record carries the barycentric weights
    (1 - beta - gamma, beta, gamma), which are also stored as texture
    coordinates (beta, gamma).

    Returns:
        An IntersectionRecord with surface_id left at -1.
    """
    result = make_miss_record()

    a = p0 - p1
    b = p0 - p2
    d = ray.direction
    j = p0 - ray.origin

    ei_hf = b.y * d.z - d.y * b.z
    gf_di = d.x * b.z - b.x * d.z
    dh_eg = b.x * d.y - b.y * d.x
    denom = a.x * ei_hf + a.y * gf_di + a.z * dh_eg

    if ti.abs(denom) > TRIANGLE_EPSILON:
        inv = 1.0 / denom
        beta = (j.x * ei_hf + j.y * gf_di + j.z * dh_eg) * inv

        ak_jb = a.x * j.y - j.x * a.y
        jc_al = j.x * a.z - a.x * j.z
        bl_kc = a.y * j.z - j.y * a.z
        gamma = (d.z * ak_jb + d.y * jc_al + d.x * bl_kc) * inv
        t = -(b.z * ak_jb + b.y * jc_al + b.x * bl_kc) * inv

        inside = beta >= 0.0 and gamma >= 0.0 and beta + gamma <= 1.0
        in_range = t >= ray.start and t < ray.end
        if inside and in_range:
            w0 = 1.0 - beta - gamma
            point = w0 * p0 + beta * p1 + gamma * p2
            e1 = p1 - p0
            normal = tm.normalize(tm.cross(e1, p2 - p0))
            result.hit = 1
            result.t = t
            result.frame = frame_from_wu(point, normal, e1)
            result.normal = normal
            result.tex_coords = vec2(beta, gamma)
            result.barycentric = vec3(w0, beta, gamma)
            result.front_face = ti.select(tm.dot(d, normal) < 0.0, 1, 0)

    return result


@ti.func
def sample_triangle_point(p0: vec3, p1: vec3, p2: vec3, seed: vec2):
    """Uniformly choose a point on the triangle.

    Returns:
        Tuple of (point, normal). The area density is 1 / area.
    """
    b = square_to_triangle(seed)
    e1 = p1 - p0
    e2 = p2 - p0
    point = p0 + b.x * e1 + b.y * e2
    return point, tm.normalize(tm.cross(e1, e2))


def triangle_areas(vertices: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Areas 0.5 |(p1 - p0) x (p2 - p0)| for an (N, 3, 3) vertex array."""
    v = np.asarray(vertices, dtype=np.float64).reshape(-1, 3, 3)
    cross = np.cross(v[:, 1] - v[:, 0], v[:, 2] - v[:, 0])
    return 0.5 * np.linalg.norm(cross, axis=1)


def triangle_bounds(
    vertices: npt.ArrayLike,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Per-triangle (mins, maxs) for an (N, 3, 3) vertex array."""
    v = np.asarray(vertices, dtype=np.float64).reshape(-1, 3, 3)
    return v.min(axis=1), v.max(axis=1)


def triangle_centroids(vertices: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Per-triangle vertex averages for an (N, 3, 3) vertex array."""
    v = np.asarray(vertices, dtype=np.float64).reshape(-1, 3, 3)
    return v.mean(axis=1)
