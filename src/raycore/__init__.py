"""Taichi-based physically-based renderer core.

This package estimates radiance along rays by combining a bounding volume
hierarchy for ray/surface queries with Monte Carlo light transport:
- Spheres, triangles and indexed triangle meshes
- Median-split BVH with nearest and any-hit traversal
- Independent and jittered (stratified) sample generators
- Lambertian and microfacet (Beckmann) BRDFs
- Luminaire (area light) sampling
- Direct-only, path tracing, ambient occlusion and point-light integrators
- Block-based rendering into an RGB float image

Subpackages:
    core: Rays, frames, warps, records, integrators and block rendering
    geometry: Sphere, triangle and mesh primitives
    accel: Axis-aligned bounding boxes and the BVH builder
    sampling: Per-pixel sample generators
    materials: BRDFs and materials
    scene: Scene storage, lights and the scene manager
    camera: Pinhole camera
    output: Image export

Modules that declare Taichi fields must be imported after ti.init().
"""

__version__ = "0.1.0"
