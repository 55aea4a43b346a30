"""BRDFs and materials.

Components:
    lambertian: Ideal diffuse BRDF
    microfacet: Beckmann microfacet BRDF with Smith shadowing and Fresnel
    brdf: Unified BRDF registry and dispatch
    material: Homogeneous and emitting materials
"""

from .brdf import (
    BRDFType,
    add_lambertian,
    add_microfacet,
    clear_brdfs,
    evaluate_brdf,
    generate_brdf,
    get_brdf_count,
    pdf_brdf,
)
from .lambertian import eval_lambertian, generate_lambertian, pdf_lambertian
from .material import (
    MaterialType,
    add_emitter_material,
    add_homogeneous_material,
    clear_materials,
    emitted_radiance,
    get_material_brdf,
    get_material_count,
    is_emitter,
)
from .microfacet import (
    MicrofacetParams,
    beckmann_d,
    erf,
    eval_microfacet,
    fresnel_dielectric,
    generate_microfacet,
    pdf_microfacet,
    smith_g1,
)

__all__ = [
    "BRDFType",
    "add_lambertian",
    "add_microfacet",
    "clear_brdfs",
    "evaluate_brdf",
    "generate_brdf",
    "pdf_brdf",
    "get_brdf_count",
    "eval_lambertian",
    "generate_lambertian",
    "pdf_lambertian",
    "MicrofacetParams",
    "erf",
    "beckmann_d",
    "smith_g1",
    "fresnel_dielectric",
    "eval_microfacet",
    "generate_microfacet",
    "pdf_microfacet",
    "MaterialType",
    "add_homogeneous_material",
    "add_emitter_material",
    "clear_materials",
    "get_material_count",
    "get_material_brdf",
    "is_emitter",
    "emitted_radiance",
]
