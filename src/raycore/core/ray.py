"""Ray and local frame structures for Taichi kernels.

A Ray carries a parametric interval [start, end) in addition to its origin
and direction. Intersection routines only report hits inside that interval,
which is how shadow rays are clipped to the segment between two points
(finite end). Rays leaving a surface start from offset_origin(), a point
pushed off the surface by an amount that scales with its coordinates.

A Frame is an orthonormal basis (u, v, w) anchored at a point o. Surface
frames use w for the surface normal; BRDFs work in frame coordinates where
w is the local "up" axis.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raycore.core.ray import make_offset_ray, ray_at, vec3
    >>> @ti.kernel
    ... def trace() -> vec3:
    ...     ray = make_offset_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -2.0))
    ...     return ray_at(ray, 5.0)
"""

import taichi as ti
import taichi.math as tm

# Type aliases using Taichi's math module
vec2 = tm.vec2
vec3 = tm.vec3

# Offset used for ray starts and shadow segment ends
RAY_EPSILON = 1e-4

# Surface offsets grow with the largest coordinate of the point, since f32 hit
# points are only accurate to a few ulps of it
RAY_OFFSET_SCALE = 1e-5

# Stand-in for an unbounded ray end (finite to keep f32 slab arithmetic stable)
T_MAX = 1e30


@ti.dataclass
class Ray:
    """A ray with origin, direction and valid parametric interval.

    Attributes:
        origin: The starting point of the ray.
        direction: The unit direction of the ray.
        start: Smallest parameter accepted as a hit.
        end: Hits must satisfy t < end. Narrowed to the closest hit so far
            during traversal.
    """

    origin: vec3
    direction: vec3
    start: ti.f32
    end: ti.f32


@ti.dataclass
class Frame:
    """An orthonormal frame (u, v, w) anchored at point o."""

    o: vec3
    u: vec3
    v: vec3
    w: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point origin + t * direction."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3, start: ti.f32, end: ti.f32) -> Ray:
    """Create a ray with an explicit interval.

    Args:
        origin: The starting point of the ray.
        direction: The ray direction (expected to be unit length).
        start: Minimum valid parameter.
        end: Exclusive maximum valid parameter.

    Returns:
        A new Ray instance.
    """
    return Ray(origin=origin, direction=direction, start=start, end=end)


@ti.func
def make_offset_ray(origin: vec3, direction: vec3) -> Ray:
    """Create an unbounded ray that ignores hits closer than RAY_EPSILON.

    The direction is normalized.
    """
    return Ray(origin=origin, direction=tm.normalize(direction), start=RAY_EPSILON, end=T_MAX)


@ti.func
def make_offset_segment(origin: vec3, target: vec3) -> Ray:
    """Create a shadow ray covering the open segment from origin to target.

    The returned ray has a unit direction and its interval is shrunk by
    RAY_EPSILON at both ends so that neither endpoint surface is reported
    as an occluder.

    Args:
        origin: Start of the segment (usually a shading point).
        target: End of the segment (usually a point on a light).

    Returns:
        The clipped segment ray. Coincident points give an empty interval.
    """
    delta = target - origin
    dist = tm.length(delta)
    direction = vec3(0.0, 0.0, 1.0)
    if dist > 0.0:
        direction = delta / dist
    return Ray(
        origin=origin,
        direction=direction,
        start=RAY_EPSILON,
        end=ti.max(dist - RAY_EPSILON, 0.0),
    )


@ti.func
def offset_epsilon(point: vec3) -> ti.f32:
    """Distance that clears the rounding error of a point on a surface."""
    return ti.max(RAY_EPSILON, RAY_OFFSET_SCALE * ti.abs(point).max())


@ti.func
def offset_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Push a surface point off the surface before tracing from it.

    The point moves along the geometric normal to the side that direction
    leaves toward, so the new ray cannot hit the surface it starts on.

    Args:
        point: A point on a surface.
        normal: The geometric normal there, either orientation.
        direction: Direction of the ray about to leave the point.

    Returns:
        The offset origin.
    """
    offset_dir = normal
    if tm.dot(direction, normal) < 0.0:
        offset_dir = -normal
    return point + offset_epsilon(point) * offset_dir


@ti.func
def with_end(ray: Ray, end: ti.f32) -> Ray:
    """Return a copy of the ray with a different interval end."""
    return Ray(origin=ray.origin, direction=ray.direction, start=ray.start, end=end)


# =============================================================================
# Frames
# =============================================================================


@ti.func
def frame_from_w(o: vec3, w: vec3) -> Frame:
    """Build a frame whose w axis is the normalized input.

    The u axis is an arbitrary unit vector perpendicular to w, chosen
    against whichever canonical axis is least aligned with w.
    """
    w_n = tm.normalize(w)
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(w_n.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    u = tm.normalize(tm.cross(a, w_n))
    v = tm.cross(w_n, u)
    return Frame(o=o, u=u, v=v, w=w_n)


@ti.func
def frame_from_wu(o: vec3, w: vec3, u_hint: vec3) -> Frame:
    """Build a frame with the given w axis and u as close as possible to u_hint.

    Falls back to frame_from_w when u_hint is parallel to w.
    """
    w_n = tm.normalize(w)
    v_raw = tm.cross(w_n, u_hint)
    result = frame_from_w(o, w_n)
    if tm.dot(v_raw, v_raw) > 1e-12:
        v = tm.normalize(v_raw)
        u = tm.cross(v, w_n)
        result = Frame(o=o, u=u, v=v, w=w_n)
    return result


@ti.func
def frame_to_canonical(frame: Frame, local: vec3) -> vec3:
    """Convert a direction from frame coordinates to world coordinates."""
    return local.x * frame.u + local.y * frame.v + local.z * frame.w


@ti.func
def canonical_to_frame(frame: Frame, world: vec3) -> vec3:
    """Convert a direction from world coordinates to frame coordinates."""
    return vec3(tm.dot(world, frame.u), tm.dot(world, frame.v), tm.dot(world, frame.w))


@ti.func
def flip_frame(frame: Frame) -> Frame:
    """Turn the frame upside down, keeping it right-handed."""
    return Frame(o=frame.o, u=frame.u, v=-frame.v, w=-frame.w)


@ti.func
def facing_frame(frame: Frame, direction: vec3) -> Frame:
    """Return the frame oriented so that w faces against the given direction.

    Used to shade back-facing hits: a ray travelling along `direction`
    sees the side of the surface whose normal points back at it.
    """
    result = frame
    if tm.dot(direction, frame.w) > 0.0:
        result = flip_frame(frame)
    return result
