"""Bounding volume hierarchy: host-side build and device-side storage.

The hierarchy is built on the host with a balanced median split:

1. Compute the box covering every primitive of the node.
2. If fewer than leaf_size primitives remain, make a leaf.
3. Otherwise sort the primitives by centroid along the box's longest axis,
   split the sorted list at its midpoint and recurse on both halves, each
   recomputing its own tight box.

The tree is then flattened in pre-order into plain arrays and uploaded to
Taichi fields. Leaves reference a contiguous range of `bvh_prim_indices`, so
every primitive belongs to exactly one leaf. Traversal lives with the scene
intersection code, which knows how to intersect each primitive type.

Once uploaded, the fields are only read by kernels until the next build.

Example:
    >>> root = build_bvh(mins, maxs, centroids)
    >>> flat = flatten_bvh(root)
    >>> upload_bvh(flat)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti

from raycore.accel.aabb import AxisAlignedBoundingBox

logger = logging.getLogger(__name__)

# Leaves hold fewer primitives than this
MAX_SURFACES_PER_LEAF = 10

# Capacity of the flattened hierarchy
MAX_BVH_PRIMITIVES = 65536
MAX_BVH_NODES = MAX_BVH_PRIMITIVES

# Size of the per-thread traversal stack; the tree depth must stay below it
BVH_STACK_SIZE = 32

# Flattened node storage (Structure of Arrays)
bvh_node_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_node_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_left = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)  # -1 for leaves
bvh_right = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_prim_start = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_prim_count = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_prim_indices = ti.field(dtype=ti.i32, shape=MAX_BVH_PRIMITIVES)
num_bvh_nodes = ti.field(dtype=ti.i32, shape=())


@dataclass
class BVHNode:
    """Host-side tree node.

    Attributes:
        box: Tight bounds of every primitive below this node.
        primitives: Primitive indices for leaves, None for internal nodes.
        left: Left child for internal nodes.
        right: Right child for internal nodes.
    """

    box: AxisAlignedBoundingBox
    primitives: npt.NDArray[np.int64] | None = None
    left: BVHNode | None = None
    right: BVHNode | None = None

    @property
    def is_leaf(self) -> bool:
        return self.primitives is not None


@dataclass
class FlatBVH:
    """Pre-order flattened hierarchy ready for upload."""

    node_min: npt.NDArray[np.float32]
    node_max: npt.NDArray[np.float32]
    left: npt.NDArray[np.int32]
    right: npt.NDArray[np.int32]
    prim_start: npt.NDArray[np.int32]
    prim_count: npt.NDArray[np.int32]
    prim_indices: npt.NDArray[np.int32]
    depth: int

    @property
    def num_nodes(self) -> int:
        return len(self.left)

    @property
    def num_leaves(self) -> int:
        return int(np.count_nonzero(self.left < 0))


def build_bvh(
    bounds_min: npt.ArrayLike,
    bounds_max: npt.ArrayLike,
    centroids: npt.ArrayLike,
    leaf_size: int = MAX_SURFACES_PER_LEAF,
) -> BVHNode | None:
    """Build a median-split hierarchy over N primitives.

    Args:
        bounds_min: (N, 3) lower corners of the primitive boxes.
        bounds_max: (N, 3) upper corners of the primitive boxes.
        centroids: (N, 3) primitive centers used for sorting.
        leaf_size: Nodes with fewer primitives than this become leaves.

    Returns:
        The root node, or None when there are no primitives.

    Raises:
        ValueError: If the arrays disagree in shape or leaf_size < 2.
    """
    lo = np.asarray(bounds_min, dtype=np.float64).reshape(-1, 3)
    hi = np.asarray(bounds_max, dtype=np.float64).reshape(-1, 3)
    centers = np.asarray(centroids, dtype=np.float64).reshape(-1, 3)
    if not (len(lo) == len(hi) == len(centers)):
        raise ValueError(
            f"Primitive arrays disagree in length: {len(lo)}, {len(hi)}, {len(centers)}"
        )
    if leaf_size < 2:
        raise ValueError(f"leaf_size must be at least 2, got {leaf_size}")
    if len(lo) == 0:
        return None

    return _build_node(np.arange(len(lo)), lo, hi, centers, leaf_size)


def _build_node(
    indices: npt.NDArray[np.int64],
    lo: npt.NDArray[np.float64],
    hi: npt.NDArray[np.float64],
    centers: npt.NDArray[np.float64],
    leaf_size: int,
) -> BVHNode:
    box = AxisAlignedBoundingBox.from_bounds(lo[indices], hi[indices])
    if len(indices) < leaf_size:
        return BVHNode(box=box, primitives=indices)

    axis = int(box.longest_axis())
    order = np.argsort(centers[indices, axis], kind="stable")
    ordered = indices[order]
    half = len(ordered) // 2
    return BVHNode(
        box=box,
        left=_build_node(ordered[:half], lo, hi, centers, leaf_size),
        right=_build_node(ordered[half:], lo, hi, centers, leaf_size),
    )


def flatten_bvh(root: BVHNode | None) -> FlatBVH:
    """Flatten a tree into pre-order arrays.

    The left child of an internal node always directly follows it.
    """
    node_min: list[npt.NDArray[np.float64]] = []
    node_max: list[npt.NDArray[np.float64]] = []
    left: list[int] = []
    right: list[int] = []
    prim_start: list[int] = []
    prim_count: list[int] = []
    prims: list[int] = []
    max_depth = 0

    def visit(node: BVHNode, depth: int) -> int:
        nonlocal max_depth
        max_depth = max(max_depth, depth)
        idx = len(left)
        node_min.append(node.box.minimum)
        node_max.append(node.box.maximum)
        left.append(-1)
        right.append(-1)
        prim_start.append(0)
        prim_count.append(0)
        if node.is_leaf:
            assert node.primitives is not None
            prim_start[idx] = len(prims)
            prim_count[idx] = len(node.primitives)
            prims.extend(int(i) for i in node.primitives)
        else:
            assert node.left is not None and node.right is not None
            left[idx] = visit(node.left, depth + 1)
            right[idx] = visit(node.right, depth + 1)
        return idx

    if root is not None:
        visit(root, 0)

    return FlatBVH(
        node_min=np.asarray(node_min, dtype=np.float32).reshape(-1, 3),
        node_max=np.asarray(node_max, dtype=np.float32).reshape(-1, 3),
        left=np.asarray(left, dtype=np.int32),
        right=np.asarray(right, dtype=np.int32),
        prim_start=np.asarray(prim_start, dtype=np.int32),
        prim_count=np.asarray(prim_count, dtype=np.int32),
        prim_indices=np.asarray(prims, dtype=np.int32),
        depth=max_depth,
    )


def pad_to_capacity(values: npt.NDArray, size: int, dtype: type) -> npt.NDArray:
    """Copy rows into a zeroed array of `size` rows, the full shape of a field."""
    out = np.zeros((size,) + values.shape[1:], dtype=dtype)
    out[: len(values)] = values
    return out


def upload_bvh(flat: FlatBVH) -> None:
    """Copy a flattened hierarchy into the device fields.

    Raises:
        RuntimeError: If the node or primitive capacity, or the traversal
            stack depth, would be exceeded.
    """
    if flat.num_nodes > MAX_BVH_NODES:
        raise RuntimeError(f"Maximum number of BVH nodes ({MAX_BVH_NODES}) exceeded")
    if len(flat.prim_indices) > MAX_BVH_PRIMITIVES:
        raise RuntimeError(f"Maximum number of BVH primitives ({MAX_BVH_PRIMITIVES}) exceeded")
    if flat.num_nodes > 0 and flat.depth + 1 >= BVH_STACK_SIZE:
        raise RuntimeError(
            f"BVH depth {flat.depth} exceeds the traversal stack size ({BVH_STACK_SIZE})"
        )

    bvh_node_min.from_numpy(pad_to_capacity(flat.node_min, MAX_BVH_NODES, np.float32))
    bvh_node_max.from_numpy(pad_to_capacity(flat.node_max, MAX_BVH_NODES, np.float32))
    bvh_left.from_numpy(pad_to_capacity(flat.left, MAX_BVH_NODES, np.int32))
    bvh_right.from_numpy(pad_to_capacity(flat.right, MAX_BVH_NODES, np.int32))
    bvh_prim_start.from_numpy(pad_to_capacity(flat.prim_start, MAX_BVH_NODES, np.int32))
    bvh_prim_count.from_numpy(pad_to_capacity(flat.prim_count, MAX_BVH_NODES, np.int32))
    bvh_prim_indices.from_numpy(pad_to_capacity(flat.prim_indices, MAX_BVH_PRIMITIVES, np.int32))
    num_bvh_nodes[None] = flat.num_nodes

    logger.info(
        "BVH uploaded: %d primitives, %d nodes, %d leaves, depth %d",
        len(flat.prim_indices),
        flat.num_nodes,
        flat.num_leaves,
        flat.depth,
    )


def clear_bvh() -> None:
    """Drop the uploaded hierarchy; traversal then reports no hits."""
    num_bvh_nodes[None] = 0


def get_bvh_node_count() -> int:
    """Get the number of uploaded nodes."""
    return int(num_bvh_nodes[None])
