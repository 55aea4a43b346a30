"""Sphere primitive with robust ray-sphere intersection.

The quadratic is solved with the numerically stable formulation from
Ray Tracing Gems (chapter 7), which avoids catastrophic cancellation when the
ray passes far from the center or nearly tangent to the sphere.

The reported frame has w equal to the outward normal, whichever side the ray
came from; front_face tells the two cases apart.

Example:
    >>> @ti.kernel
    ... def first_hit() -> ti.f32:
    ...     ray = make_ray(vec3(0.0, 0.0, 5.0), vec3(0.0, 0.0, -1.0), 0.0, 100.0)
    ...     return intersect_sphere(ray, vec3(0.0, 0.0, 0.0), 1.0).t   # 4.0
"""

import math

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from raycore.core.ray import Ray, frame_from_w
from raycore.core.records import IntersectionRecord, make_miss_record
from raycore.core.warp import square_to_sphere

vec2 = tm.vec2
vec3 = tm.vec3


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 given sqrt(h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def sphere_tex_coords(normal: vec3) -> vec2:
    """Spherical (longitude, colatitude) coordinates in [0, 1]^2."""
    u = 0.5 + ti.atan2(normal.y, normal.x) / (2.0 * tm.pi)
    v = ti.acos(tm.clamp(normal.z, -1.0, 1.0)) / tm.pi
    return vec2(u, v)


@ti.func
def intersect_sphere(ray: Ray, center: vec3, radius: ti.f32) -> IntersectionRecord:
    """Nearest intersection of a ray with a sphere inside [ray.start, ray.end).

    Solves |o + t d - c|^2 = r^2 written as a t^2 + 2 h t + c = 0 with
    a = d.d, h = d.(o - c), c = |o - c|^2 - r^2. The discriminant is taken
    as a (r^2 - |p|^2), where p = (o - c) - (h / a) d is the offset of the
    closest approach from the center, and the hit point is projected back
    onto the sphere.

    Args:
        ray: The ray to test.
        center: Sphere center.
        radius: Sphere radius; non-positive radii never hit.

    Returns:
        An IntersectionRecord with surface_id left at -1.
    """
    result = make_miss_record()

    oc = ray.origin - center
    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - radius * radius
    discriminant = -1.0
    if a > 0.0:
        closest = oc - (h / a) * ray.direction
        discriminant = a * (radius * radius - tm.dot(closest, closest))

    if radius > 0.0 and a > 0.0 and discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = t >= ray.start and t < ray.end
        if not valid:
            t = t1
            valid = t >= ray.start and t < ray.end

        if valid:
            outward = tm.normalize(ray.origin + t * ray.direction - center)
            point = center + radius * outward
            result.hit = 1
            result.t = t
            result.frame = frame_from_w(point, outward)
            result.normal = outward
            result.tex_coords = sphere_tex_coords(outward)
            result.front_face = ti.select(tm.dot(ray.direction, outward) < 0.0, 1, 0)

    return result


@ti.func
def sample_sphere_point(center: vec3, radius: ti.f32, seed: vec2):
    """Uniformly choose a point on the sphere surface.

    Returns:
        Tuple of (point, outward_normal). The area density is 1 / area.
    """
    normal = square_to_sphere(seed)
    return center + radius * normal, normal


def sphere_area(radius: float) -> float:
    """Surface area 4 pi r^2."""
    return 4.0 * math.pi * radius * radius


def sphere_bounds(
    centers: npt.ArrayLike, radii: npt.ArrayLike
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Boxes center +/- radius for (N, 3) centers and (N,) radii."""
    c = np.asarray(centers, dtype=np.float64).reshape(-1, 3)
    r = np.asarray(radii, dtype=np.float64).reshape(-1, 1)
    return c - r, c + r
