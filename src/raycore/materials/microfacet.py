"""Microfacet BRDF: Lambertian diffuse base plus a Beckmann specular lobe.

    f(i, o) = R / pi + F(i.m) G(i, o) D(m) / (4 (i.n) (o.n)),   m = normalize(i + o)

with

    D(m)   Beckmann distribution, roughness alpha:
           exp(-tan^2(theta_m) / alpha^2) / (pi alpha^2 cos^4(theta_m))
    G1(v)  Smith shadowing for Beckmann, a = 1 / (alpha tan(theta_v)):
           2 / (1 + erf(a) + exp(-a^2) / (a sqrt(pi)))
    G      G1(i) G1(o)
    F      exact unpolarized Fresnel reflectance of a dielectric with index n

Sampling mixes two strategies. With probability specular_weight a
microfacet normal m is drawn from D(m) cos(theta_m) and the fixed direction
is reflected about it; otherwise a cosine-weighted direction is drawn. The
returned pdf is the mixture density

    pdf(i) = w D(m) (m.n) / (4 (i.m)) + (1 - w) (i.n) / pi

Reference: Walter et al., "Microfacet Models for Refraction through Rough
Surfaces", EGSR 2007.
"""

import taichi as ti
import taichi.math as tm

from raycore.core.ray import Frame, frame_to_canonical
from raycore.core.warp import square_to_psa_hemisphere
from raycore.materials.lambertian import validate_reflectance

vec2 = tm.vec2
vec3 = tm.vec3

# Cosines and densities below this are treated as zero
MICROFACET_EPSILON = 1e-12

INV_SQRT_PI = 0.56418958354775628695


@ti.dataclass
class MicrofacetParams:
    """Parameters of one microfacet BRDF.

    Attributes:
        reflectance: Diffuse reflectance R of the base layer.
        alpha: Beckmann roughness.
        ior: Index of refraction of the coating.
        specular_weight: Probability of sampling the specular lobe.
    """

    reflectance: vec3
    alpha: ti.f32
    ior: ti.f32
    specular_weight: ti.f32


@ti.func
def erf(x: ti.f32) -> ti.f32:
    """Error function via the Chebyshev fit of erfc (relative error < 1.2e-7).

    From Numerical Recipes, section 6.2.
    """
    z = ti.abs(x)
    t = 1.0 / (1.0 + 0.5 * z)
    # Horner evaluation of the fitted polynomial in t
    poly = 0.17087277
    poly = -0.82215223 + t * poly
    poly = 1.48851587 + t * poly
    poly = -1.13520398 + t * poly
    poly = 0.27886807 + t * poly
    poly = -0.18628806 + t * poly
    poly = 0.09678418 + t * poly
    poly = 0.37409196 + t * poly
    poly = 1.00002368 + t * poly
    poly = -1.26551223 + t * poly
    erfc = t * ti.exp(-z * z + poly)
    result = 1.0 - erfc
    if x < 0.0:
        result = -result
    return result


@ti.func
def beckmann_d(cos_m: ti.f32, alpha: ti.f32) -> ti.f32:
    """Beckmann microfacet distribution for a normal at cos(theta_m)."""
    result = 0.0
    if cos_m >= MICROFACET_EPSILON:
        c2 = cos_m * cos_m
        t2 = (1.0 - c2) / c2
        a2 = alpha * alpha
        result = ti.exp(-t2 / a2) / (tm.pi * a2 * c2 * c2)
    return result


@ti.func
def smith_g1(cos_v: ti.f32, alpha: ti.f32) -> ti.f32:
    """Smith monodirectional shadowing for the Beckmann distribution."""
    result = 0.0
    if cos_v >= MICROFACET_EPSILON:
        tan_v = ti.sqrt(ti.max(0.0, 1.0 - cos_v * cos_v)) / cos_v
        result = 1.0
        if tan_v >= MICROFACET_EPSILON:
            a = 1.0 / (alpha * tan_v)
            result = 2.0 / (1.0 + erf(a) + ti.exp(-a * a) * INV_SQRT_PI / a)
    return result


@ti.func
def fresnel_dielectric(cos_i: ti.f32, ior: ti.f32) -> ti.f32:
    """Exact Fresnel reflectance for unpolarized light.

    With g = sqrt(n^2 - 1 + c^2):
        F = (g - c)^2 / (2 (g + c)^2) * (1 + ((c (g + c) - 1) / (c (g - c) + 1))^2)
    """
    c = ti.abs(cos_i)
    g = ti.sqrt(ti.max(0.0, ior * ior - 1.0 + c * c))
    gpc = g + c
    gmc = g - c
    vu = c * gpc - 1.0
    vd = c * gmc + 1.0
    return 0.5 * gmc * gmc * (1.0 + (vu * vu) / (vd * vd)) / (gpc * gpc)


@ti.func
def eval_microfacet(params: MicrofacetParams, frame: Frame, incident: vec3, reflected: vec3) -> vec3:
    """Evaluate the BRDF; zero if either direction is below the surface."""
    result = vec3(0.0, 0.0, 0.0)
    din = tm.dot(incident, frame.w)
    don = tm.dot(reflected, frame.w)
    if din > 0.0 and don > 0.0:
        m = tm.normalize(incident + reflected)
        dim = tm.dot(incident, m)
        dmn = tm.dot(m, frame.w)
        g = smith_g1(din, params.alpha) * smith_g1(don, params.alpha)
        specular = (
            fresnel_dielectric(dim, params.ior) * g * beckmann_d(dmn, params.alpha) / (4.0 * din * don)
        )
        result = params.reflectance / tm.pi + specular
    return result


@ti.func
def pdf_microfacet(params: MicrofacetParams, frame: Frame, fixed_dir: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density with which generate_microfacet() picks `direction`."""
    pdf = 0.0
    dn = tm.dot(direction, frame.w)
    if dn > 0.0:
        w = params.specular_weight
        pdf = (1.0 - w) * dn / tm.pi
        h = fixed_dir + direction
        if tm.dot(h, h) > MICROFACET_EPSILON:
            m = tm.normalize(h)
            dim = tm.dot(fixed_dir, m)
            dmn = tm.dot(m, frame.w)
            if dim > MICROFACET_EPSILON:
                pdf += w * beckmann_d(dmn, params.alpha) * dmn / (4.0 * dim)
    return pdf


@ti.func
def sample_beckmann_normal(alpha: ti.f32, seed: vec2) -> vec3:
    """Draw a microfacet normal (frame coordinates) with density D(m) cos(theta_m)."""
    theta = ti.atan2(ti.sqrt(-alpha * alpha * ti.log(ti.max(1.0 - seed.x, 1e-30))), 1.0)
    phi = 2.0 * tm.pi * seed.y
    sin_t = ti.sin(theta)
    return vec3(sin_t * ti.cos(phi), sin_t * ti.sin(phi), ti.cos(theta))


@ti.func
def generate_microfacet(params: MicrofacetParams, frame: Frame, fixed_dir: vec3, seed: vec2):
    """Sample a direction from the lobe mixture.

    The lobe is chosen with ti.random so that the seed stays stratified
    within each lobe.

    Returns:
        A tuple of (direction, weight) with weight = f * cos / pdf, or a
        zero weight when the sample falls below the surface.
    """
    direction = vec3(0.0, 0.0, 0.0)
    if ti.random(ti.f32) < params.specular_weight:
        m = frame_to_canonical(frame, sample_beckmann_normal(params.alpha, seed))
        direction = 2.0 * tm.dot(fixed_dir, m) * m - fixed_dir
    else:
        direction = frame_to_canonical(frame, square_to_psa_hemisphere(seed))

    weight = vec3(0.0, 0.0, 0.0)
    din = tm.dot(direction, frame.w)
    if din > 0.0 and tm.dot(fixed_dir, frame.w) > 0.0:
        pdf = pdf_microfacet(params, frame, fixed_dir, direction)
        if pdf > MICROFACET_EPSILON:
            weight = eval_microfacet(params, frame, direction, fixed_dir) * din / pdf
    return direction, weight


# =============================================================================
# BRDF Parameter Storage
# =============================================================================

MAX_MICROFACET_BRDFS = 256

microfacet_reflectances = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MICROFACET_BRDFS)
microfacet_alphas = ti.field(dtype=ti.f32, shape=MAX_MICROFACET_BRDFS)
microfacet_iors = ti.field(dtype=ti.f32, shape=MAX_MICROFACET_BRDFS)
microfacet_specular_weights = ti.field(dtype=ti.f32, shape=MAX_MICROFACET_BRDFS)
num_microfacet_brdfs = ti.field(dtype=ti.i32, shape=())


def clear_microfacet_brdfs() -> None:
    num_microfacet_brdfs[None] = 0


def add_microfacet_brdf(
    reflectance: tuple[float, float, float],
    alpha: float = 0.1,
    ior: float = 1.5,
    specular_sampling_weight: float = 0.5,
) -> int:
    """Register a microfacet BRDF.

    Args:
        reflectance: Diffuse reflectance of the base layer, each in [0, 1].
        alpha: Beckmann roughness, must be positive.
        ior: Index of refraction, must be greater than 1.
        specular_sampling_weight: Probability of sampling the specular lobe,
            in [0, 1].

    Returns:
        The index of the BRDF among microfacet BRDFs.

    Raises:
        RuntimeError: If the maximum number of microfacet BRDFs is exceeded.
        ValueError: If a parameter is out of range.
    """
    validate_reflectance(reflectance)
    if alpha <= 0.0:
        raise ValueError(f"Roughness alpha must be positive, got {alpha}")
    if ior <= 1.0:
        raise ValueError(f"Index of refraction must be greater than 1, got {ior}")
    if specular_sampling_weight < 0.0 or specular_sampling_weight > 1.0:
        raise ValueError(
            f"Specular sampling weight must be in [0, 1], got {specular_sampling_weight}"
        )

    idx = num_microfacet_brdfs[None]
    if idx >= MAX_MICROFACET_BRDFS:
        raise RuntimeError(f"Maximum number of microfacet BRDFs ({MAX_MICROFACET_BRDFS}) exceeded")

    microfacet_reflectances[idx] = vec3(reflectance[0], reflectance[1], reflectance[2])
    microfacet_alphas[idx] = alpha
    microfacet_iors[idx] = ior
    microfacet_specular_weights[idx] = specular_sampling_weight
    num_microfacet_brdfs[None] = idx + 1
    return idx


def get_microfacet_brdf_count() -> int:
    return int(num_microfacet_brdfs[None])


@ti.func
def get_microfacet_params(idx: ti.i32) -> MicrofacetParams:
    return MicrofacetParams(
        reflectance=microfacet_reflectances[idx],
        alpha=microfacet_alphas[idx],
        ior=microfacet_iors[idx],
        specular_weight=microfacet_specular_weights[idx],
    )
