"""Geometric primitives.

Components:
    sphere: Robust ray-sphere intersection and uniform point sampling
    triangle: Cramer's rule ray-triangle intersection and point sampling
    mesh: Indexed triangle meshes and the .msh reader
"""

from .mesh import Mesh, intersect_mesh_triangle, read_mesh
from .sphere import intersect_sphere, sample_sphere_point, sphere_area, sphere_bounds
from .triangle import (
    intersect_triangle,
    sample_triangle_point,
    triangle_areas,
    triangle_bounds,
    triangle_centroids,
)

__all__ = [
    "intersect_sphere",
    "sample_sphere_point",
    "sphere_area",
    "sphere_bounds",
    "intersect_triangle",
    "sample_triangle_point",
    "triangle_areas",
    "triangle_bounds",
    "triangle_centroids",
    "Mesh",
    "read_mesh",
    "intersect_mesh_triangle",
]
