"""Unit tests for the SceneManager.

Tests cover:
- Materials, surfaces and lights with their validation
- Build statistics, surface id order and the dirty flag
- Host-side intersection queries
- Dictionary round trips, mesh files and unknown entries
"""

import numpy as np
import pytest

from test_mesh import QUAD_TRIANGLES, QUAD_VERTICES, _write_msh


class TestMaterials:
    """Tests for adding materials."""

    def test_material_ids_are_sequential(self, scene):
        assert scene.add_lambertian_material((0.5, 0.5, 0.5)) == 0
        assert scene.add_microfacet_material((0.2, 0.2, 0.2), alpha=0.3) == 1
        assert scene.add_emitter_material((5.0, 5.0, 5.0)) == 2
        assert scene.get_material_count() == 3

    def test_material_info(self, scene):
        mid = scene.add_microfacet_material((0.2, 0.3, 0.4), alpha=0.3, ior=1.7, specular_sampling_weight=0.25)
        info = scene.get_material_info(mid)
        assert info.kind == "microfacet"
        assert info.params == {
            "reflectance": (0.2, 0.3, 0.4),
            "alpha": 0.3,
            "ior": 1.7,
            "specular_sampling_weight": 0.25,
        }
        assert scene.get_material_info(5) is None

    def test_is_emitter(self, scene):
        diffuse = scene.add_lambertian_material((0.5, 0.5, 0.5))
        light = scene.add_emitter_material((1.0, 1.0, 1.0))
        assert not scene.is_emitter(diffuse)
        assert scene.is_emitter(light)
        assert not scene.is_emitter(9)

    @pytest.mark.parametrize(
        "method, args",
        [
            ("add_lambertian_material", ((1.5, 0.5, 0.5),)),
            ("add_lambertian_material", ((0.5, 0.5),)),
            ("add_microfacet_material", ((0.5, 0.5, 0.5), -0.1)),
            ("add_emitter_material", ((1.0, -1.0, 1.0),)),
            ("add_emitter_material", ((1.0, 1.0, 1.0), (2.0, 0.0, 0.0))),
        ],
    )
    def test_invalid_materials(self, scene, method, args):
        with pytest.raises(ValueError):
            getattr(scene, method)(*args)
        assert scene.get_material_count() == 0


class TestSurfaces:
    """Tests for adding surfaces."""

    def test_invalid_sphere(self, scene):
        mid = scene.add_lambertian_material((0.5, 0.5, 0.5))
        with pytest.raises(ValueError, match="radius"):
            scene.add_sphere((0.0, 0.0, 0.0), 0.0, mid)
        with pytest.raises(ValueError, match="material_id"):
            scene.add_sphere((0.0, 0.0, 0.0), 1.0, mid + 1)

    def test_invalid_triangle_material(self, scene):
        with pytest.raises(ValueError, match="material_id"):
            scene.add_triangle((0, 0, 0), (1, 0, 0), (0, 1, 0), 0)

    def test_quad_normal(self, scene):
        mid = scene.add_lambertian_material((0.5, 0.5, 0.5))
        assert scene.add_quad((0.0, 0.0, 0.0), (2.0, 0.0, 0.0), (0.0, 3.0, 0.0), mid) == (0, 1)
        hit = scene.first_intersection((0.5, 0.5, 5.0), (0.0, 0.0, -1.0))
        np.testing.assert_allclose(hit.normal, [0.0, 0.0, 1.0], atol=1e-6)
        assert hit.front_face
        # The far corner is covered by the second triangle
        assert scene.first_intersection((1.9, 2.9, 5.0), (0.0, 0.0, -1.0)).surface_id == 1

    def test_surface_id_order(self, scene):
        mid = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_mesh(_quad_mesh(z=-10.0), mid)
        scene.add_triangle((-1.0, -1.0, -5.0), (1.0, -1.0, -5.0), (0.0, 1.0, -5.0), mid)
        scene.add_sphere((0.0, 0.0, -2.0), 0.5, mid)
        stats = scene.build()
        assert stats.num_surfaces == 4
        assert (stats.num_spheres, stats.num_triangles, stats.num_mesh_triangles) == (1, 1, 2)
        assert scene.get_surface_count() == 4

        # Spheres first, then triangles, then mesh triangles
        assert scene.first_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)).surface_id == 0
        assert scene.first_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), start=3.0).surface_id == 1
        assert scene.first_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), start=6.0).surface_id in (2, 3)

    def test_mesh_from_file(self, scene, tmp_path):
        mid = scene.add_lambertian_material((0.5, 0.5, 0.5))
        path = _write_msh(tmp_path / "quad.msh", QUAD_VERTICES, QUAD_TRIANGLES)
        frame = np.eye(4)
        frame[2, 3] = -3.0
        assert scene.add_mesh(path, mid, frame) == 0
        assert scene.get_mesh_count() == 1
        hit = scene.first_intersection((0.25, 0.5, 0.0), (0.0, 0.0, -1.0))
        assert hit.t == pytest.approx(3.0)

    def test_broken_mesh_file(self, scene, tmp_path):
        mid = scene.add_lambertian_material((0.5, 0.5, 0.5))
        path = tmp_path / "bad.msh"
        path.write_text("3\n")
        with pytest.raises(ValueError):
            scene.add_mesh(path, mid)


def _quad_mesh(z):
    from raycore.geometry.mesh import Mesh

    vertices = [(x - 0.5, y - 0.5, z) for x, y, _ in QUAD_VERTICES]
    return Mesh(vertices, QUAD_TRIANGLES)


class TestBuild:
    """Tests for build() and the dirty flag."""

    def test_dirty_flag(self, scene):
        assert scene.is_dirty
        mid = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.build()
        assert not scene.is_dirty
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, mid)
        assert scene.is_dirty
        scene.prepare()
        assert not scene.is_dirty

    def test_queries_rebuild_dirty_scene(self, scene):
        mid = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.build()
        scene.add_sphere((0.0, 0.0, -3.0), 1.0, mid)
        hit = scene.first_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit is not None
        assert hit.t == pytest.approx(2.0)
        assert hit.material_id == mid

    def test_any_intersection(self, scene):
        mid = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_sphere((0.0, 0.0, -3.0), 1.0, mid)
        assert scene.any_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert not scene.any_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), end=1.5)
        assert not scene.any_intersection((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))

    def test_luminaire_count_and_extent(self, scene):
        light = scene.add_emitter_material((1.0, 1.0, 1.0))
        diffuse = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_quad((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), light)
        scene.add_sphere((2.0, 2.0, 0.0), 1.0, light)
        scene.add_sphere((0.0, 0.0, 5.0), 1.0, diffuse)
        stats = scene.build()
        assert stats.num_luminaires == 3
        box = scene.bounding_box()
        np.testing.assert_allclose(box.minimum, [-1.0, -1.0, -1.0])
        np.testing.assert_allclose(box.maximum, [3.0, 3.0, 6.0])
        assert stats.extent == pytest.approx(np.linalg.norm([4.0, 4.0, 7.0]))

    def test_empty_scene(self, scene):
        stats = scene.build()
        assert stats.num_surfaces == 0
        assert scene.bounding_box().is_empty()
        assert scene.first_intersection((0.0, 0.0, 0.0), (0.0, 0.0, 1.0)) is None

    def test_clear(self, scene):
        from raycore.camera.pinhole import PinholeCamera
        from raycore.materials.brdf import get_brdf_count

        mid = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, mid)
        scene.add_point_light((0.0, 5.0, 0.0))
        scene.set_camera(PinholeCamera())
        scene.build()
        scene.clear()
        assert scene.get_material_count() == 0
        assert scene.get_sphere_count() == 0
        assert scene.point_lights == []
        assert scene.camera is None
        assert get_brdf_count() == 0
        assert scene.is_dirty

    def test_invalid_settings(self, scene):
        from raycore.camera.pinhole import PinholeCamera
        from raycore.sampling.sampler import JitteredSampler

        with pytest.raises(ValueError):
            scene.set_camera(PinholeCamera(vfov=200.0))
        with pytest.raises(ValueError):
            scene.set_sampler(JitteredSampler(num_samples_u=16, num_samples_v=16))
        with pytest.raises(ValueError):
            scene.set_background((-1.0, 0.0, 0.0))
        with pytest.raises(ValueError):
            scene.add_point_light((0.0, 0.0, 0.0), (-1.0, 1.0, 1.0))
        assert scene.camera is None


def _populate(scene, tmp_path):
    from raycore.camera.pinhole import PinholeCamera
    from raycore.core.integrator import DirectOnlyIntegrator
    from raycore.sampling.sampler import JitteredSampler

    white = scene.add_lambertian_material((0.7, 0.7, 0.7))
    glossy = scene.add_microfacet_material((0.1, 0.2, 0.3), alpha=0.25)
    light = scene.add_emitter_material((8.0, 8.0, 8.0), (0.1, 0.1, 0.1))
    scene.add_sphere((1.0, 2.0, 3.0), 0.5, glossy)
    scene.add_triangle((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), light)
    scene.add_mesh(_write_msh(tmp_path / "quad.msh", QUAD_VERTICES, QUAD_TRIANGLES), white, np.eye(4))
    scene.add_mesh(_quad_mesh(z=2.0), white)
    scene.set_background((0.1, 0.2, 0.3))
    scene.add_point_light((0.0, 4.0, 0.0), (2.0, 2.0, 2.0))
    scene.set_camera(PinholeCamera(lookfrom=(0.0, 1.0, 6.0), vfov=50.0))
    scene.set_sampler(JitteredSampler(num_samples_u=2, num_samples_v=3))
    scene.set_integrator(DirectOnlyIntegrator(strategy="brdf"))


class TestSerialization:
    """Tests for to_dict() and from_dict()."""

    def test_dict_layout(self, scene, tmp_path):
        _populate(scene, tmp_path)
        data = scene.to_dict()
        assert set(data) == {
            "materials",
            "surfaces",
            "background",
            "point_lights",
            "camera",
            "sampler",
            "integrator",
        }
        assert data["surfaces"]["spheres"] == [{"center": [1.0, 2.0, 3.0], "radius": 0.5, "material_id": 1}]
        assert data["surfaces"]["triangles"][0]["material_id"] == 2
        assert data["materials"][2] == {"type": "emitter", "radiance": [8.0, 8.0, 8.0], "reflectance": [0.1, 0.1, 0.1]}
        assert data["surfaces"]["meshes"][0]["file"].endswith("quad.msh")
        assert "vertices" in data["surfaces"]["meshes"][1]
        assert data["integrator"] == {"type": "direct", "strategy": "brdf"}

    def test_round_trip(self, scene, tmp_path):
        from raycore.scene.manager import SceneManager

        _populate(scene, tmp_path)
        data = scene.to_dict()
        original_stats = scene.build()

        restored = SceneManager()
        restored.from_dict(data, base_dir=tmp_path)
        assert restored.to_dict() == data
        stats = restored.build()
        assert stats == original_stats

    def test_no_camera_key_without_camera(self, scene):
        assert "camera" not in scene.to_dict()

    def test_render_section_ignored(self, scene):
        scene.from_dict({"materials": [{"type": "lambertian"}], "render": {"width": 10}})
        assert scene.get_material_count() == 1

    def test_unknown_surface_kind(self, scene):
        with pytest.raises(ValueError, match="Unknown surface type"):
            scene.from_dict({"surfaces": {"cylinders": []}})

    def test_unknown_material_type(self, scene):
        with pytest.raises(ValueError, match="Unknown material type"):
            scene.from_dict({"materials": [{"type": "dielectric"}]})

    def test_bad_triangle(self, scene):
        with pytest.raises(ValueError, match="3 vertices"):
            scene.from_dict(
                {
                    "materials": [{"type": "lambertian"}],
                    "surfaces": {"triangles": [{"vertices": [[0, 0, 0], [1, 0, 0]], "material_id": 0}]},
                }
            )

    def test_bad_mesh_entry(self, scene):
        with pytest.raises(ValueError, match="Mesh entry"):
            scene.from_dict({"materials": [{"type": "lambertian"}], "surfaces": {"meshes": [{"material_id": 0}]}})
