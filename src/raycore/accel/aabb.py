"""Axis-aligned bounding boxes.

The host-side AxisAlignedBoundingBox is used while building the BVH; the
device-side hit_box() performs the same slab test inside Taichi kernels
against the flattened node boxes.

An empty box has min = +inf and max = -inf on every axis, so adding any point
or box to it yields exactly that point or box.

Example:
    >>> box = AxisAlignedBoundingBox()
    >>> box.add((0.0, 0.0, 0.0))
    >>> box.add((2.0, 1.0, 1.0))
    >>> box.longest_axis()
    <Axis.X: 0>
"""

from collections.abc import Sequence
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from raycore.core.ray import T_MAX, Ray

vec3 = tm.vec3


class Axis(IntEnum):
    """Coordinate axes."""

    X = 0
    Y = 1
    Z = 2


class AxisAlignedBoundingBox:
    """Axis-aligned box stored as per-axis min/max (float64).

    Attributes:
        minimum: Lower corner, shape (3,).
        maximum: Upper corner, shape (3,).
    """

    def __init__(
        self,
        minimum: Sequence[float] | npt.NDArray[np.floating] | None = None,
        maximum: Sequence[float] | npt.NDArray[np.floating] | None = None,
    ) -> None:
        self.minimum = np.full(3, np.inf)
        self.maximum = np.full(3, -np.inf)
        if minimum is not None and maximum is not None:
            self.minimum = np.asarray(minimum, dtype=np.float64).reshape(3).copy()
            self.maximum = np.asarray(maximum, dtype=np.float64).reshape(3).copy()

    @classmethod
    def from_points(cls, points: npt.ArrayLike) -> "AxisAlignedBoundingBox":
        """Create the tightest box around an (N, 3) array of points."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        box = cls()
        if len(pts) > 0:
            box.minimum = pts.min(axis=0)
            box.maximum = pts.max(axis=0)
        return box

    @classmethod
    def from_bounds(cls, mins: npt.ArrayLike, maxs: npt.ArrayLike) -> "AxisAlignedBoundingBox":
        """Create the box covering a set of (N, 3) boxes given by their corners."""
        lo = np.asarray(mins, dtype=np.float64).reshape(-1, 3)
        hi = np.asarray(maxs, dtype=np.float64).reshape(-1, 3)
        box = cls()
        if len(lo) > 0:
            box.minimum = lo.min(axis=0)
            box.maximum = hi.max(axis=0)
        return box

    def clear(self) -> None:
        """Reset to the empty box."""
        self.minimum = np.full(3, np.inf)
        self.maximum = np.full(3, -np.inf)

    def is_empty(self) -> bool:
        """True if the box contains no points (min > max on some axis)."""
        return bool(np.any(self.minimum > self.maximum))

    def copy(self) -> "AxisAlignedBoundingBox":
        return AxisAlignedBoundingBox(self.minimum, self.maximum)

    def add(self, item: "AxisAlignedBoundingBox | Sequence[float] | npt.NDArray[np.floating]") -> None:
        """Grow the box to cover a point or another box.

        Args:
            item: Either an AxisAlignedBoundingBox or a 3-component point.
        """
        if isinstance(item, AxisAlignedBoundingBox):
            self.minimum = np.minimum(self.minimum, item.minimum)
            self.maximum = np.maximum(self.maximum, item.maximum)
        else:
            point = np.asarray(item, dtype=np.float64).reshape(3)
            self.minimum = np.minimum(self.minimum, point)
            self.maximum = np.maximum(self.maximum, point)

    def extents(self) -> npt.NDArray[np.float64]:
        """Size of the box along each axis."""
        return self.maximum - self.minimum

    def center(self) -> npt.NDArray[np.float64]:
        return 0.5 * (self.minimum + self.maximum)

    def volume(self) -> float:
        if self.is_empty():
            return 0.0
        return float(np.prod(self.extents()))

    def longest_axis(self) -> Axis:
        """Axis of maximal extent; ties prefer X, then Y, else Z."""
        sx, sy, sz = self.extents()
        if sx >= sy and sx >= sz:
            return Axis.X
        if sy >= sz:
            return Axis.Y
        return Axis.Z

    def overlaps(self, other: "AxisAlignedBoundingBox") -> bool:
        """True if the interiors of the two boxes overlap."""
        return bool(np.all(self.minimum < other.maximum) and np.all(other.minimum < self.maximum))

    def contains(self, other: "AxisAlignedBoundingBox") -> bool:
        """True if other lies inside this box (boundaries included)."""
        return bool(np.all(self.minimum <= other.minimum) and np.all(other.maximum <= self.maximum))

    def intersect(
        self,
        origin: Sequence[float],
        direction: Sequence[float],
        start: float = 0.0,
        end: float = np.inf,
    ) -> bool:
        """Three-slab ray test against the interval [start, end).

        For each axis the entry/exit parameters are computed (swapped when
        the direction component is negative), the three intervals are
        intersected and the result must overlap [start, end). Inverted or
        empty boxes never intersect.
        """
        o = np.asarray(origin, dtype=np.float64)
        d = np.asarray(direction, dtype=np.float64)
        with np.errstate(divide="ignore", invalid="ignore"):
            inv = 1.0 / d
            t0 = (self.minimum - o) * inv
            t1 = (self.maximum - o) * inv
        negative = inv < 0.0
        entry = np.where(negative, t1, t0)
        exit_ = np.where(negative, t0, t1)
        t_min = float(np.max(entry))
        t_max = float(np.min(exit_))
        return t_min <= t_max and t_min < end and t_max > start

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AxisAlignedBoundingBox):
            return NotImplemented
        return bool(
            np.array_equal(self.minimum, other.minimum)
            and np.array_equal(self.maximum, other.maximum)
        )

    def __repr__(self) -> str:
        return f"AxisAlignedBoundingBox(min={self.minimum.tolist()}, max={self.maximum.tolist()})"


@ti.func
def hit_box(box_min: vec3, box_max: vec3, ray: Ray) -> ti.i32:
    """Device slab test; same semantics as AxisAlignedBoundingBox.intersect.

    Returns:
        1 if the box overlaps the ray interval [ray.start, ray.end).
    """
    t_near = -T_MAX
    t_far = T_MAX
    for k in ti.static(range(3)):
        inv = 1.0 / ray.direction[k]
        t0 = (box_min[k] - ray.origin[k]) * inv
        t1 = (box_max[k] - ray.origin[k]) * inv
        if inv < 0.0:
            temp = t0
            t0 = t1
            t1 = temp
        t_near = ti.max(t_near, t0)
        t_far = ti.min(t_far, t1)

    result = 0
    if t_near <= t_far and t_near < ray.end and t_far > ray.start:
        result = 1
    return result
