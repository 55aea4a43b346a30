"""Scene manager: host-side scene assembly and the build-then-freeze lifecycle.

The SceneManager is the only place the host writes scene state. Materials go
straight into the BRDF and material registries; surfaces, meshes and lights
are recorded on the host and uploaded together by build():

1. pack spheres, triangles and mesh triangles into GeometryBuffers
2. compute per-surface areas, boxes and the scene extent
3. build, flatten and upload the BVH
4. collect emitting surfaces (zero-area ones are skipped with a warning)
5. upload geometry, luminaires, point lights and the background
6. log a summary

Adding a surface marks the scene dirty; prepare() rebuilds a dirty scene and
pushes the camera, sampler and integrator settings. Rendering calls prepare()
so a scene is never traced half-built.

Surface ids are assigned in build order: spheres, then triangles, then the
triangles of each mesh in turn.

Example:
    >>> scene = SceneManager()
    >>> white = scene.add_lambertian_material((0.8, 0.8, 0.8))
    >>> light = scene.add_emitter_material((10.0, 10.0, 10.0))
    >>> scene.add_sphere((0.0, 0.0, 0.0), 1.0, white)
    >>> scene.add_triangle((-1, 3, -1), (1, 3, -1), (0, 3, 1), light)
    >>> scene.set_camera(PinholeCamera(lookfrom=(0, 0, 5)))
    >>> scene.build()
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt

from raycore.accel.aabb import AxisAlignedBoundingBox
from raycore.accel.bvh import build_bvh, clear_bvh, flatten_bvh, upload_bvh
from raycore.camera.pinhole import PinholeCamera, reset_camera, setup_camera, validate_camera
from raycore.core.integrator import (
    IntegratorConfig,
    PathTracerIntegrator,
    integrator_from_dict,
    setup_integrator,
)
from raycore.geometry.mesh import Mesh, read_mesh
from raycore.geometry.sphere import sphere_area, sphere_bounds
from raycore.geometry.triangle import triangle_areas, triangle_bounds, triangle_centroids
from raycore.materials.brdf import add_lambertian, add_microfacet, clear_brdfs
from raycore.materials.material import (
    MAX_MATERIALS,
    add_emitter_material,
    add_homogeneous_material,
    clear_materials,
)
from raycore.sampling.sampler import (
    IndependentSampler,
    SamplerConfig,
    sampler_from_dict,
    setup_sampler,
    validate_sampler,
)
from raycore.scene.intersection import (
    MAX_SPHERES,
    MAX_SURFACES,
    MAX_TRIANGLES,
    GeometryBuffers,
    HitInfo,
    SurfaceType,
    clear_geometry,
    query_any_intersection,
    query_first_intersection,
    upload_geometry,
)
from raycore.scene.luminaires import (
    MAX_POINT_LIGHTS,
    PointLight,
    clear_luminaires,
    clear_point_lights,
    set_background_radiance,
    upload_luminaires,
    upload_point_lights,
)

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]


def _vec3(values: Any, name: str) -> Vec3:
    items = list(values)
    if len(items) != 3:
        raise ValueError(f"{name} needs 3 components, got {len(items)}")
    return (float(items[0]), float(items[1]), float(items[2]))


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The material ID.
        kind: "lambertian", "microfacet" or "emitter".
        brdf_id: The BRDF the material reflects with.
        params: The parameters given at creation.
    """

    material_id: int
    kind: str
    brdf_id: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    center: Vec3
    radius: float
    material_id: int


@dataclass
class TriangleInfo:
    v0: Vec3
    v1: Vec3
    v2: Vec3
    material_id: int


@dataclass
class MeshInfo:
    """A mesh added to the scene.

    Attributes:
        mesh: The mesh, already in world coordinates.
        material_id: Material shared by all triangles.
        source: File the mesh was read from, if any.
        frame: The 4x4 transform applied when reading it, if any.
    """

    mesh: Mesh
    material_id: int
    source: str | None = None
    frame: list[list[float]] | None = None


@dataclass
class SceneConfig:
    """Serializable description of a whole scene."""

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    triangles: list[dict[str, Any]] = field(default_factory=list)
    meshes: list[dict[str, Any]] = field(default_factory=list)
    background: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    point_lights: list[dict[str, Any]] = field(default_factory=list)
    camera: dict[str, Any] | None = None
    sampler: dict[str, Any] = field(default_factory=lambda: IndependentSampler().to_dict())
    integrator: dict[str, Any] = field(default_factory=lambda: PathTracerIntegrator().to_dict())


@dataclass
class BuildStats:
    """Summary of the last build()."""

    num_surfaces: int = 0
    num_spheres: int = 0
    num_triangles: int = 0
    num_mesh_triangles: int = 0
    num_luminaires: int = 0
    extent: float = 0.0


class SceneManager:
    """Host-side scene assembly.

    Attributes:
        materials: MaterialInfo for every material, indexed by material ID.
        spheres: Spheres in insertion order.
        triangles: Standalone triangles in insertion order.
        meshes: Meshes in insertion order.
        point_lights: Point lights in insertion order.
        camera: The camera, or None until set_camera() is called.
        sampler: The sample generator configuration.
        integrator: The integrator configuration.
        stats: Summary of the last build.
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.triangles: list[TriangleInfo] = []
        self.meshes: list[MeshInfo] = []
        self.point_lights: list[PointLight] = []
        self.background: Vec3 = (0.0, 0.0, 0.0)
        self.camera: PinholeCamera | None = None
        self.sampler: SamplerConfig = IndependentSampler()
        self.integrator: IntegratorConfig = PathTracerIntegrator()
        self.stats = BuildStats()
        self._dirty = True
        self._clear_all()

    def _clear_all(self) -> None:
        clear_brdfs()
        clear_materials()
        clear_geometry()
        clear_bvh()
        clear_luminaires()
        clear_point_lights()
        set_background_radiance((0.0, 0.0, 0.0))
        reset_camera()
        self.materials.clear()
        self.spheres.clear()
        self.triangles.clear()
        self.meshes.clear()
        self.point_lights.clear()
        self.background = (0.0, 0.0, 0.0)
        self.camera = None
        self.sampler = IndependentSampler()
        self.integrator = PathTracerIntegrator()
        self.stats = BuildStats()
        self._dirty = True

    def clear(self) -> None:
        """Remove everything: materials, surfaces, lights and settings."""
        self._clear_all()

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    # =========================================================================
    # Material Management
    # =========================================================================

    def _record_material(self, material_id: int, kind: str, brdf_id: int, params: dict[str, Any]) -> int:
        self.materials.append(MaterialInfo(material_id, kind, brdf_id, params))
        return material_id

    def _check_material_capacity(self) -> None:
        if len(self.materials) >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    def add_lambertian_material(self, reflectance: Vec3) -> int:
        """Add a diffuse material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If a reflectance component is outside [0, 1].
        """
        self._check_material_capacity()
        reflectance = _vec3(reflectance, "reflectance")
        brdf_id = add_lambertian(reflectance)
        material_id = add_homogeneous_material(brdf_id)
        return self._record_material(material_id, "lambertian", brdf_id, {"reflectance": reflectance})

    def add_microfacet_material(
        self,
        reflectance: Vec3,
        alpha: float = 0.1,
        ior: float = 1.5,
        specular_sampling_weight: float = 0.5,
    ) -> int:
        """Add a glossy material: diffuse base plus a Beckmann specular lobe.

        Args:
            reflectance: Diffuse reflectance (RGB) in [0, 1].
            alpha: Beckmann roughness, positive.
            ior: Index of refraction of the coating, above 1.
            specular_sampling_weight: Probability of sampling the specular lobe.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If a parameter is out of range.
        """
        self._check_material_capacity()
        reflectance = _vec3(reflectance, "reflectance")
        brdf_id = add_microfacet(reflectance, alpha, ior, specular_sampling_weight)
        material_id = add_homogeneous_material(brdf_id)
        params = {
            "reflectance": reflectance,
            "alpha": alpha,
            "ior": ior,
            "specular_sampling_weight": specular_sampling_weight,
        }
        return self._record_material(material_id, "microfacet", brdf_id, params)

    def add_emitter_material(self, radiance: Vec3, reflectance: Vec3 = (0.0, 0.0, 0.0)) -> int:
        """Add a Lambertian emitter that also reflects diffusely.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If radiance is negative or reflectance is outside [0, 1].
        """
        self._check_material_capacity()
        radiance = _vec3(radiance, "radiance")
        reflectance = _vec3(reflectance, "reflectance")
        if min(radiance) < 0.0:
            raise ValueError(f"Radiance components must be non-negative, got {radiance}")
        brdf_id = add_lambertian(reflectance)
        material_id = add_emitter_material(radiance, brdf_id)
        params = {"radiance": radiance, "reflectance": reflectance}
        return self._record_material(material_id, "emitter", brdf_id, params)

    def get_material_count(self) -> int:
        return len(self.materials)

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def is_emitter(self, material_id: int) -> bool:
        info = self.get_material_info(material_id)
        return info is not None and info.kind == "emitter"

    def _check_material_id(self, material_id: int) -> None:
        if not 0 <= material_id < len(self.materials):
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Surface Management
    # =========================================================================

    def add_sphere(self, center: Vec3, radius: float, material_id: int) -> int:
        """Add a sphere and return its index among spheres.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If radius is not positive or material_id is invalid.
        """
        self._check_material_id(material_id)
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        if len(self.spheres) >= MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
        self.spheres.append(SphereInfo(_vec3(center, "center"), float(radius), material_id))
        self._dirty = True
        return len(self.spheres) - 1

    def add_triangle(self, v0: Vec3, v1: Vec3, v2: Vec3, material_id: int) -> int:
        """Add a triangle and return its index among triangles.

        The geometric normal is (v1 - v0) x (v2 - v0); emitters emit on that side.

        Raises:
            RuntimeError: If the maximum number of triangles is exceeded.
            ValueError: If material_id is invalid.
        """
        self._check_material_id(material_id)
        if len(self.triangles) >= MAX_TRIANGLES:
            raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
        self.triangles.append(
            TriangleInfo(_vec3(v0, "v0"), _vec3(v1, "v1"), _vec3(v2, "v2"), material_id)
        )
        self._dirty = True
        return len(self.triangles) - 1

    def add_quad(self, corner: Vec3, edge_u: Vec3, edge_v: Vec3, material_id: int) -> tuple[int, int]:
        """Add the parallelogram corner + s*edge_u + t*edge_v as two triangles.

        The normal is edge_u x edge_v.

        Returns:
            The two triangle indices.
        """
        q = np.asarray(_vec3(corner, "corner"), dtype=np.float64)
        u = np.asarray(_vec3(edge_u, "edge_u"), dtype=np.float64)
        v = np.asarray(_vec3(edge_v, "edge_v"), dtype=np.float64)
        p1 = tuple((q + u).tolist())
        p2 = tuple((q + u + v).tolist())
        p3 = tuple((q + v).tolist())
        first = self.add_triangle(tuple(q.tolist()), p1, p2, material_id)
        second = self.add_triangle(tuple(q.tolist()), p2, p3, material_id)
        return first, second

    def add_mesh(
        self,
        mesh: Mesh | str | Path,
        material_id: int,
        frame: npt.ArrayLike | None = None,
    ) -> int:
        """Add a mesh, or read one from a .msh file, and return its index.

        Args:
            mesh: A Mesh, or the path of a .msh file.
            material_id: Material of every triangle.
            frame: Optional 4x4 transform, only used when reading a file.

        Raises:
            ValueError: If material_id is invalid or the file is malformed.
        """
        self._check_material_id(material_id)
        source = None
        frame_list = None
        if isinstance(mesh, (str, Path)):
            source = str(mesh)
            if frame is not None:
                frame_list = np.asarray(frame, dtype=np.float64).reshape(4, 4).tolist()
            mesh = read_mesh(mesh, frame)
        self.meshes.append(MeshInfo(mesh, material_id, source, frame_list))
        self._dirty = True
        return len(self.meshes) - 1

    # =========================================================================
    # Lights and Settings
    # =========================================================================

    def set_background(self, radiance: Vec3) -> None:
        """Set the uniform background radiance.

        Raises:
            ValueError: If a component is negative.
        """
        radiance = _vec3(radiance, "background")
        set_background_radiance(radiance)
        self.background = radiance

    def add_point_light(self, position: Vec3, intensity: Vec3 = (1.0, 1.0, 1.0)) -> int:
        """Add a point light used by the point-light integrator.

        Raises:
            RuntimeError: If the maximum number of point lights is exceeded.
            ValueError: If an intensity component is negative.
        """
        intensity = _vec3(intensity, "intensity")
        if min(intensity) < 0.0:
            raise ValueError(f"Point light intensity must be non-negative, got {intensity}")
        if len(self.point_lights) >= MAX_POINT_LIGHTS:
            raise RuntimeError(f"Maximum number of point lights ({MAX_POINT_LIGHTS}) exceeded")
        self.point_lights.append(PointLight(_vec3(position, "position"), intensity))
        self._dirty = True
        return len(self.point_lights) - 1

    def set_camera(self, camera: PinholeCamera) -> None:
        """Set the camera.

        Raises:
            ValueError: If the camera is invalid.
        """
        validate_camera(camera)
        self.camera = camera
        setup_camera(camera)

    def set_sampler(self, sampler: SamplerConfig) -> None:
        """Set the sample generator.

        Raises:
            ValueError: If the configuration is invalid.
        """
        validate_sampler(sampler)
        self.sampler = sampler
        setup_sampler(sampler)

    def set_integrator(self, integrator: IntegratorConfig) -> None:
        """Set the integrator.

        Raises:
            ValueError: If a parameter is out of range.
        """
        setup_integrator(integrator)
        self.integrator = integrator

    # =========================================================================
    # Build
    # =========================================================================

    def _pack(self) -> tuple[GeometryBuffers, npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Pack every surface and return (buffers, box mins, box maxs, centroids)."""
        types: list[npt.NDArray[np.int32]] = []
        prims: list[npt.NDArray[np.int32]] = []
        mats: list[npt.NDArray[np.int32]] = []
        areas: list[npt.NDArray[np.float64]] = []
        lows: list[npt.NDArray[np.float64]] = [np.zeros((0, 3))]
        highs: list[npt.NDArray[np.float64]] = [np.zeros((0, 3))]
        centers: list[npt.NDArray[np.float64]] = [np.zeros((0, 3))]
        buffers = GeometryBuffers()

        def add_surfaces(kind: SurfaceType, count: int, material: npt.ArrayLike) -> None:
            types.append(np.full(count, int(kind), dtype=np.int32))
            prims.append(np.arange(count, dtype=np.int32))
            mats.append(np.broadcast_to(np.asarray(material, dtype=np.int32), (count,)).copy())

        if self.spheres:
            sphere_centers = np.array([s.center for s in self.spheres], dtype=np.float64)
            radii = np.array([s.radius for s in self.spheres], dtype=np.float64)
            add_surfaces(SurfaceType.SPHERE, len(radii), [s.material_id for s in self.spheres])
            areas.append(np.array([sphere_area(r) for r in radii]))
            lo, hi = sphere_bounds(sphere_centers, radii)
            lows.append(lo)
            highs.append(hi)
            centers.append(sphere_centers)
            buffers.sphere_centers = sphere_centers.astype(np.float32)
            buffers.sphere_radii = radii.astype(np.float32)

        if self.triangles:
            corners = np.array([(t.v0, t.v1, t.v2) for t in self.triangles], dtype=np.float64)
            add_surfaces(SurfaceType.TRIANGLE, len(corners), [t.material_id for t in self.triangles])
            areas.append(triangle_areas(corners))
            lo, hi = triangle_bounds(corners)
            lows.append(lo)
            highs.append(hi)
            centers.append(triangle_centroids(corners))
            buffers.triangle_vertices = corners.astype(np.float32)

        if self.meshes:
            positions, normals, texcoords, indices, flags = [], [], [], [], []
            offset = 0
            first_triangle = 0
            for info in self.meshes:
                mesh = info.mesh
                positions.append(mesh.vertices)
                normals.append(mesh.normals if mesh.normals is not None else np.zeros((mesh.num_vertices, 3)))
                texcoords.append(
                    mesh.texcoords if mesh.texcoords is not None else np.zeros((mesh.num_vertices, 2))
                )
                indices.append(mesh.triangles + offset)
                flag = (int(mesh.normals is not None), int(mesh.texcoords is not None))
                flags.append(np.tile(np.array(flag, dtype=np.int32), (mesh.num_triangles, 1)))
                types.append(np.full(mesh.num_triangles, int(SurfaceType.MESH_TRIANGLE), dtype=np.int32))
                prims.append(np.arange(first_triangle, first_triangle + mesh.num_triangles, dtype=np.int32))
                mats.append(np.full(mesh.num_triangles, info.material_id, dtype=np.int32))
                areas.append(mesh.areas())
                lo, hi = mesh.bounds()
                lows.append(lo)
                highs.append(hi)
                centers.append(mesh.centroids())
                offset += mesh.num_vertices
                first_triangle += mesh.num_triangles
            buffers.mesh_positions = np.concatenate(positions).astype(np.float32)
            buffers.mesh_normals = np.concatenate(normals).astype(np.float32)
            buffers.mesh_texcoords = np.concatenate(texcoords).astype(np.float32)
            buffers.mesh_triangle_indices = np.concatenate(indices).astype(np.int32).reshape(-1, 3)
            buffers.mesh_triangle_flags = np.concatenate(flags).astype(np.int32).reshape(-1, 2)

        if types:
            buffers.surface_types = np.concatenate(types)
            buffers.surface_prim_indices = np.concatenate(prims)
            buffers.surface_material_ids = np.concatenate(mats)
            buffers.surface_areas = np.concatenate(areas).astype(np.float32)

        all_lo = np.concatenate(lows)
        all_hi = np.concatenate(highs)
        if len(all_lo) > 0:
            buffers.extent = float(np.linalg.norm(all_hi.max(axis=0) - all_lo.min(axis=0)))
        return buffers, all_lo, all_hi, np.concatenate(centers)

    def build(self) -> BuildStats:
        """Upload the scene and build the BVH.

        Returns:
            Statistics of the build.

        Raises:
            RuntimeError: If a capacity (surfaces, mesh vertices, BVH nodes or
                traversal depth) is exceeded.
        """
        buffers, lo, hi, centroids = self._pack()
        if buffers.num_surfaces > MAX_SURFACES:
            raise RuntimeError(f"Maximum number of surfaces ({MAX_SURFACES}) exceeded: {buffers.num_surfaces}")
        upload_geometry(buffers)

        if buffers.num_surfaces > 0:
            upload_bvh(flatten_bvh(build_bvh(lo, hi, centroids)))
        else:
            clear_bvh()

        luminaires = []
        for sid in range(buffers.num_surfaces):
            if self.is_emitter(int(buffers.surface_material_ids[sid])):
                if buffers.surface_areas[sid] > 0.0:
                    luminaires.append(sid)
                else:
                    logger.warning("Skipping zero-area emitting surface %d", sid)
        upload_luminaires(np.asarray(luminaires, dtype=np.int32))
        upload_point_lights(self.point_lights)
        set_background_radiance(self.background)

        self.stats = BuildStats(
            num_surfaces=buffers.num_surfaces,
            num_spheres=len(self.spheres),
            num_triangles=len(self.triangles),
            num_mesh_triangles=len(buffers.mesh_triangle_indices),
            num_luminaires=len(luminaires),
            extent=buffers.extent,
        )
        self._dirty = False
        logger.info(
            "Scene built: %d surfaces (%d spheres, %d triangles, %d mesh triangles), "
            "%d materials, %d luminaires, %d point lights",
            self.stats.num_surfaces,
            self.stats.num_spheres,
            self.stats.num_triangles,
            self.stats.num_mesh_triangles,
            len(self.materials),
            self.stats.num_luminaires,
            len(self.point_lights),
        )
        return self.stats

    def prepare(self) -> None:
        """Build if dirty and push the camera, sampler and integrator settings."""
        if self._dirty:
            self.build()
        if self.camera is not None:
            setup_camera(self.camera)
        else:
            reset_camera()
        setup_sampler(self.sampler)
        setup_integrator(self.integrator)

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        return len(self.spheres)

    def get_triangle_count(self) -> int:
        return len(self.triangles)

    def get_mesh_count(self) -> int:
        return len(self.meshes)

    def get_surface_count(self) -> int:
        """Number of surfaces, counting each mesh triangle separately."""
        return len(self.spheres) + len(self.triangles) + sum(m.mesh.num_triangles for m in self.meshes)

    def bounding_box(self) -> AxisAlignedBoundingBox:
        """Box around every surface; empty for an empty scene."""
        _, lo, hi, _ = self._pack()
        if len(lo) == 0:
            return AxisAlignedBoundingBox()
        return AxisAlignedBoundingBox.from_bounds(lo, hi)

    def first_intersection(
        self,
        origin: Vec3,
        direction: Vec3,
        start: float = 0.0,
        end: float = 1e30,
    ) -> HitInfo | None:
        """Nearest surface hit along a ray, or None."""
        if self._dirty:
            self.build()
        return query_first_intersection(origin, direction, start, end)

    def any_intersection(
        self,
        origin: Vec3,
        direction: Vec3,
        start: float = 0.0,
        end: float = 1e30,
    ) -> bool:
        if self._dirty:
            self.build()
        return query_any_intersection(origin, direction, start, end)

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()
        for mat in self.materials:
            params = {k: list(v) if isinstance(v, tuple) else v for k, v in mat.params.items()}
            config.materials.append({"type": mat.kind, **params})
        for sphere in self.spheres:
            config.spheres.append(
                {"center": list(sphere.center), "radius": sphere.radius, "material_id": sphere.material_id}
            )
        for tri in self.triangles:
            config.triangles.append(
                {"vertices": [list(tri.v0), list(tri.v1), list(tri.v2)], "material_id": tri.material_id}
            )
        for info in self.meshes:
            entry: dict[str, Any] = {"material_id": info.material_id}
            if info.source is not None:
                entry["file"] = info.source
                if info.frame is not None:
                    entry["frame"] = info.frame
            else:
                entry["vertices"] = info.mesh.vertices.tolist()
                entry["triangles"] = info.mesh.triangles.tolist()
                if info.mesh.normals is not None:
                    entry["normals"] = info.mesh.normals.tolist()
                if info.mesh.texcoords is not None:
                    entry["texcoords"] = info.mesh.texcoords.tolist()
            config.meshes.append(entry)
        config.background = list(self.background)
        config.point_lights = [light.to_dict() for light in self.point_lights]
        config.camera = self.camera.to_dict() if self.camera is not None else None
        config.sampler = self.sampler.to_dict()
        config.integrator = self.integrator.to_dict()
        return config

    def from_config(self, config: SceneConfig, base_dir: str | Path | None = None) -> None:
        """Replace the scene with the one described by config.

        Args:
            config: The scene description.
            base_dir: Directory that relative mesh file paths are resolved against.

        Raises:
            ValueError: If the configuration contains an unknown type or invalid data.
        """
        self.clear()

        for mat_config in config.materials:
            mat_type = str(mat_config.get("type", "")).lower()
            if mat_type == "lambertian":
                self.add_lambertian_material(mat_config.get("reflectance", [0.5, 0.5, 0.5]))
            elif mat_type == "microfacet":
                self.add_microfacet_material(
                    mat_config.get("reflectance", [0.5, 0.5, 0.5]),
                    alpha=float(mat_config.get("alpha", 0.1)),
                    ior=float(mat_config.get("ior", 1.5)),
                    specular_sampling_weight=float(mat_config.get("specular_sampling_weight", 0.5)),
                )
            elif mat_type == "emitter":
                self.add_emitter_material(
                    mat_config.get("radiance", [1.0, 1.0, 1.0]),
                    mat_config.get("reflectance", [0.0, 0.0, 0.0]),
                )
            else:
                raise ValueError(f"Unknown material type: {mat_type}")

        for sphere_config in config.spheres:
            self.add_sphere(
                sphere_config.get("center", [0.0, 0.0, 0.0]),
                float(sphere_config.get("radius", 1.0)),
                int(sphere_config.get("material_id", 0)),
            )

        for tri_config in config.triangles:
            vertices = tri_config.get("vertices")
            if vertices is None or len(vertices) != 3:
                raise ValueError(f"Triangle needs 3 vertices, got {vertices}")
            self.add_triangle(vertices[0], vertices[1], vertices[2], int(tri_config.get("material_id", 0)))

        for mesh_config in config.meshes:
            material_id = int(mesh_config.get("material_id", 0))
            if "file" in mesh_config:
                path = Path(mesh_config["file"])
                if base_dir is not None and not path.is_absolute():
                    path = Path(base_dir) / path
                self.add_mesh(path, material_id, mesh_config.get("frame"))
                self.meshes[-1].source = str(mesh_config["file"])
            elif "vertices" in mesh_config and "triangles" in mesh_config:
                mesh = Mesh(
                    mesh_config["vertices"],
                    np.asarray(mesh_config["triangles"], dtype=np.int64),
                    normals=mesh_config.get("normals"),
                    texcoords=mesh_config.get("texcoords"),
                    frame=mesh_config.get("frame"),
                )
                self.add_mesh(mesh, material_id)
            else:
                raise ValueError("Mesh entry needs either 'file' or 'vertices' and 'triangles'")

        self.set_background(config.background)
        for light_config in config.point_lights:
            self.add_point_light(
                light_config.get("position", [0.0, 0.0, 0.0]),
                light_config.get("intensity", [1.0, 1.0, 1.0]),
            )
        if config.camera is not None:
            self.set_camera(PinholeCamera.from_dict(config.camera))
        self.set_sampler(sampler_from_dict(config.sampler))
        self.set_integrator(integrator_from_dict(config.integrator))

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        data: dict[str, Any] = {
            "materials": config.materials,
            "surfaces": {
                "spheres": config.spheres,
                "triangles": config.triangles,
                "meshes": config.meshes,
            },
            "background": config.background,
            "point_lights": config.point_lights,
            "sampler": config.sampler,
            "integrator": config.integrator,
        }
        if config.camera is not None:
            data["camera"] = config.camera
        return data

    def from_dict(self, data: dict[str, Any], base_dir: str | Path | None = None) -> None:
        """Load a scene from a dictionary.

        Keys are "materials", "surfaces" (with "spheres", "triangles" and
        "meshes"), "background", "point_lights", "camera", "sampler" and
        "integrator". Other top-level keys, such as "render", are ignored.

        Raises:
            ValueError: If a surface kind or other type is unknown.
        """
        surfaces = data.get("surfaces", {})
        unknown = set(surfaces) - {"spheres", "triangles", "meshes"}
        if unknown:
            raise ValueError(f"Unknown surface type: {sorted(unknown)[0]}")
        defaults = SceneConfig()
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=surfaces.get("spheres", []),
            triangles=surfaces.get("triangles", []),
            meshes=surfaces.get("meshes", []),
            background=data.get("background", defaults.background),
            point_lights=data.get("point_lights", []),
            camera=data.get("camera"),
            sampler=data.get("sampler", defaults.sampler),
            integrator=data.get("integrator", defaults.integrator),
        )
        self.from_config(config, base_dir)
