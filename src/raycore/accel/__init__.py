"""Acceleration structures.

Components:
    aabb: Axis-aligned bounding boxes (host class and device slab test)
    bvh: Median-split bounding volume hierarchy build, flatten and upload
"""

from .aabb import Axis, AxisAlignedBoundingBox, hit_box
from .bvh import (
    BVH_STACK_SIZE,
    MAX_BVH_NODES,
    MAX_BVH_PRIMITIVES,
    MAX_SURFACES_PER_LEAF,
    BVHNode,
    FlatBVH,
    build_bvh,
    clear_bvh,
    flatten_bvh,
    get_bvh_node_count,
    pad_to_capacity,
    upload_bvh,
)

__all__ = [
    "Axis",
    "AxisAlignedBoundingBox",
    "hit_box",
    "BVHNode",
    "FlatBVH",
    "build_bvh",
    "flatten_bvh",
    "upload_bvh",
    "clear_bvh",
    "get_bvh_node_count",
    "pad_to_capacity",
    "BVH_STACK_SIZE",
    "MAX_BVH_NODES",
    "MAX_BVH_PRIMITIVES",
    "MAX_SURFACES_PER_LEAF",
]
