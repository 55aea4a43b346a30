"""Pytest configuration for raycore tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Reset every registry and setting before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here so that Taichi is initialized before fields are declared
    from raycore.accel.bvh import clear_bvh
    from raycore.camera.pinhole import reset_camera
    from raycore.core.integrator import PathTracerIntegrator, setup_integrator
    from raycore.materials.brdf import clear_brdfs
    from raycore.materials.material import clear_materials
    from raycore.sampling.sampler import IndependentSampler, setup_sampler
    from raycore.scene.intersection import clear_geometry
    from raycore.scene.luminaires import clear_luminaires, clear_point_lights, set_background_radiance

    def _clear_all():
        clear_brdfs()
        clear_materials()
        clear_geometry()
        clear_bvh()
        clear_luminaires()
        clear_point_lights()
        set_background_radiance((0.0, 0.0, 0.0))
        reset_camera()
        setup_sampler(IndependentSampler())
        setup_integrator(PathTracerIntegrator())

    _clear_all()

    yield

    _clear_all()


@pytest.fixture
def scene():
    """A fresh, empty SceneManager."""
    from raycore.scene.manager import SceneManager

    return SceneManager()
