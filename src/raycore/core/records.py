"""Per-query record structures.

Records are small structs returned by value from intersection and light
sampling functions. Each call produces its own record, so concurrent rays
never share scratch state.
"""

import taichi as ti
import taichi.math as tm

from raycore.core.ray import T_MAX, Frame, Ray

vec2 = tm.vec2
vec3 = tm.vec3


@ti.dataclass
class IntersectionRecord:
    """Result of a ray/surface query.

    Attributes:
        hit: 1 if a surface was hit, 0 otherwise. Other fields are only
            meaningful when hit == 1.
        t: Ray parameter of the hit.
        frame: Surface frame; frame.o is the hit point and frame.w the
            shading normal (not flipped toward the ray). It equals the
            geometric normal except on meshes with vertex normals.
        normal: Geometric normal, not flipped toward the ray. Emission,
            front_face and ray origin offsets use it.
        tex_coords: Surface texture coordinates.
        barycentric: Barycentric weights for triangle hits (sum to 1);
            zero for spheres.
        front_face: 1 if the ray arrived against the geometric normal.
        surface_id: Index of the hit surface in the scene surface table.
    """

    hit: ti.i32
    t: ti.f32
    frame: Frame
    normal: vec3
    tex_coords: vec2
    barycentric: vec3
    front_face: ti.i32
    surface_id: ti.i32


@ti.dataclass
class LuminaireSamplingRecord:
    """A point chosen on an emitting surface for direct lighting.

    Attributes:
        valid: 1 if the sample is usable (light visible, both cosines
            positive), 0 otherwise.
        surface_id: The emitting surface.
        frame: Frame at the light sample; w is the light's geometric normal.
        emit_dir: Unit direction from the light sample to the shading point.
        distance: Distance between the two points.
        pdf: Area density of the sample, including the 1 / N luminaire
            selection probability.
        i_cosine: Cosine between the shading normal and the direction to the
            light.
        l_cosine: Cosine between the light normal and emit_dir.
        shadow_ray: The segment used for the visibility test.
    """

    valid: ti.i32
    surface_id: ti.i32
    frame: Frame
    emit_dir: vec3
    distance: ti.f32
    pdf: ti.f32
    i_cosine: ti.f32
    l_cosine: ti.f32
    shadow_ray: Ray


@ti.func
def _zero_frame() -> Frame:
    zero = vec3(0.0, 0.0, 0.0)
    return Frame(o=zero, u=zero, v=zero, w=zero)


@ti.func
def make_miss_record() -> IntersectionRecord:
    """Create an IntersectionRecord indicating no intersection."""
    return IntersectionRecord(
        hit=0,
        t=T_MAX,
        frame=_zero_frame(),
        normal=vec3(0.0, 0.0, 0.0),
        tex_coords=vec2(0.0, 0.0),
        barycentric=vec3(0.0, 0.0, 0.0),
        front_face=0,
        surface_id=-1,
    )


@ti.func
def make_invalid_luminaire_record() -> LuminaireSamplingRecord:
    """Create a LuminaireSamplingRecord meaning "no sample available"."""
    zero = vec3(0.0, 0.0, 0.0)
    return LuminaireSamplingRecord(
        valid=0,
        surface_id=-1,
        frame=_zero_frame(),
        emit_dir=zero,
        distance=0.0,
        pdf=0.0,
        i_cosine=0.0,
        l_cosine=0.0,
        shadow_ray=Ray(origin=zero, direction=zero, start=0.0, end=0.0),
    )
