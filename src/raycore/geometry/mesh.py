"""Indexed triangle meshes.

A Mesh is host-side storage: a vertex array, a triangle index array and
optional per-vertex normals and texture coordinates. The scene manager packs
every mesh into shared vertex fields and turns each triangle into its own
surface, so meshes are intersected and sampled triangle by triangle.

Meshes can be read from the plain-text .msh format:

    <number of vertices>
    <number of triangles>
    vertices
    <3 * nVertices floats, one per line>
    triangles
    <3 * nTriangles ints, one per line>
    texcoords                (optional)
    <2 * nVertices floats>
    normals                  (optional, may follow or replace texcoords)
    <3 * nVertices floats>

Example:
    >>> mesh = read_mesh("bunny.msh")
    >>> mesh.num_triangles
    1000
"""

import logging
from collections.abc import Iterator
from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from raycore.core.ray import Ray, frame_from_w
from raycore.core.records import IntersectionRecord
from raycore.geometry.triangle import (
    intersect_triangle,
    triangle_areas,
    triangle_bounds,
    triangle_centroids,
)

logger = logging.getLogger(__name__)

vec2 = tm.vec2
vec3 = tm.vec3


class Mesh:
    """Indexed triangle mesh.

    Args:
        vertices: (V, 3) vertex positions (a flat array of 3V values is accepted).
        triangles: (T, 3) vertex indices.
        normals: Optional (V, 3) per-vertex normals.
        texcoords: Optional (V, 2) per-vertex texture coordinates.
        frame: Optional 4x4 rigid transform from mesh to world coordinates.
            Positions get the full transform, normals only its rotation.

    Raises:
        ValueError: If an array has the wrong shape or an index is out of range.
    """

    def __init__(
        self,
        vertices: npt.ArrayLike,
        triangles: npt.ArrayLike,
        normals: npt.ArrayLike | None = None,
        texcoords: npt.ArrayLike | None = None,
        frame: npt.ArrayLike | None = None,
    ) -> None:
        verts = np.asarray(vertices, dtype=np.float64)
        if verts.size % 3 != 0:
            raise ValueError(f"Vertex array size {verts.size} is not a multiple of 3")
        verts = verts.reshape(-1, 3)

        tris = np.asarray(triangles)
        if tris.size % 3 != 0:
            raise ValueError(f"Triangle array size {tris.size} is not a multiple of 3")
        if tris.size > 0 and not np.issubdtype(tris.dtype, np.integer):
            raise ValueError(f"Triangle indices must be integers, got {tris.dtype}")
        tris = tris.astype(np.int64).reshape(-1, 3)

        if tris.size > 0 and (tris.min() < 0 or tris.max() >= len(verts)):
            raise ValueError(
                f"Triangle index out of range [0, {len(verts)}): "
                f"min {tris.min()}, max {tris.max()}"
            )

        norms = None
        if normals is not None:
            norms = np.asarray(normals, dtype=np.float64)
            if norms.size != verts.size:
                raise ValueError(
                    f"Expected {len(verts)} normals, got array of size {norms.size}"
                )
            norms = norms.reshape(-1, 3)

        uvs = None
        if texcoords is not None:
            uvs = np.asarray(texcoords, dtype=np.float64)
            if uvs.size != 2 * len(verts):
                raise ValueError(
                    f"Expected {len(verts)} texture coordinates, got array of size {uvs.size}"
                )
            uvs = uvs.reshape(-1, 2)

        if frame is not None:
            m = np.asarray(frame, dtype=np.float64)
            if m.size != 16:
                raise ValueError(f"Mesh frame must be a 4x4 matrix, got {m.size} values")
            m = m.reshape(4, 4)
            rotation = m[:3, :3]
            verts = verts @ rotation.T + m[:3, 3]
            if norms is not None:
                norms = norms @ rotation.T

        self.vertices = verts
        self.triangles = tris
        self.normals = norms
        self.texcoords = uvs

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_triangles(self) -> int:
        return len(self.triangles)

    def corners(self) -> npt.NDArray[np.float64]:
        """(T, 3, 3) array of triangle corner positions."""
        return self.vertices[self.triangles]

    def areas(self) -> npt.NDArray[np.float64]:
        return triangle_areas(self.corners())

    def bounds(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        return triangle_bounds(self.corners())

    def centroids(self) -> npt.NDArray[np.float64]:
        return triangle_centroids(self.corners())

    def __repr__(self) -> str:
        return (
            f"Mesh(vertices={self.num_vertices}, triangles={self.num_triangles}, "
            f"normals={self.normals is not None}, texcoords={self.texcoords is not None})"
        )


def _tokens(path: Path) -> Iterator[str]:
    with open(path, encoding="utf-8") as f:
        for line in f:
            stripped = line.strip()
            if stripped:
                yield stripped


def _read_values(tokens: Iterator[str], count: int, kind: type, section: str) -> list:
    values = []
    for _ in range(count):
        token = next(tokens, None)
        if token is None:
            raise ValueError(f"Broken file - unexpected end of file in {section}")
        try:
            values.append(kind(token))
        except ValueError as e:
            raise ValueError(f"Broken file - bad value {token!r} in {section}") from e
    return values


def read_mesh(path: str | Path, frame: npt.ArrayLike | None = None) -> Mesh:
    """Read a .msh file.

    Args:
        path: Path to the mesh file.
        frame: Optional 4x4 transform passed on to Mesh.

    Returns:
        The loaded Mesh.

    Raises:
        ValueError: If the header or a section keyword is missing or malformed.
        OSError: If the file cannot be read.
    """
    path = Path(path)
    tokens = _tokens(path)

    n_points, n_polys = _read_values(tokens, 2, int, "header")
    if n_points < 0 or n_polys < 0:
        raise ValueError(f"Broken file - negative counts {n_points}, {n_polys}")

    if next(tokens, None) != "vertices":
        raise ValueError("Broken file - vertices expected")
    vertices = _read_values(tokens, 3 * n_points, float, "vertices")

    if next(tokens, None) != "triangles":
        raise ValueError("Broken file - triangles expected")
    triangles = _read_values(tokens, 3 * n_polys, int, "triangles")

    texcoords = None
    normals = None
    keyword = next(tokens, None)
    if keyword == "texcoords":
        texcoords = _read_values(tokens, 2 * n_points, float, "texcoords")
        keyword = next(tokens, None)
    if keyword == "normals":
        normals = _read_values(tokens, 3 * n_points, float, "normals")
        keyword = None
    if keyword is not None:
        raise ValueError(f"Broken file - unexpected section {keyword!r}")

    mesh = Mesh(vertices, triangles, normals=normals, texcoords=texcoords, frame=frame)
    logger.info("Loaded mesh %s: %d vertices, %d triangles", path.name, n_points, n_polys)
    return mesh


@ti.func
def intersect_mesh_triangle(
    ray: Ray,
    p0: vec3,
    p1: vec3,
    p2: vec3,
    n0: vec3,
    n1: vec3,
    n2: vec3,
    uv0: vec2,
    uv1: vec2,
    uv2: vec2,
    has_normals: ti.i32,
    has_texcoords: ti.i32,
) -> IntersectionRecord:
    """Intersect one mesh triangle, interpolating vertex attributes.

    With vertex normals the frame is built from the interpolated normal,
    otherwise from the geometric one. The record's normal and front_face
    always follow the geometric normal. Texture coordinates are interpolated
    when present and default to (beta, gamma).
    """
    result = intersect_triangle(ray, p0, p1, p2)
    if result.hit == 1:
        b = result.barycentric
        if has_normals != 0:
            n = b.x * n0 + b.y * n1 + b.z * n2
            if tm.dot(n, n) > 1e-12:
                result.frame = frame_from_w(result.frame.o, n)
        if has_texcoords != 0:
            result.tex_coords = b.x * uv0 + b.y * uv1 + b.z * uv2
    return result
