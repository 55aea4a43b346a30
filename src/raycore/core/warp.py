"""Warps from the unit square to sampling domains.

Each function maps a point uniform on [0, 1)^2 to a point on another domain.
Hemisphere and sphere warps return directions in frame coordinates (z up);
use frame_to_canonical() to bring them into world space.

    square_to_psa_hemisphere   density cos(theta) / pi   (projected solid angle)
    square_to_hemisphere       density 1 / (2 pi)
    square_to_sphere           density 1 / (4 pi)
    square_to_triangle         uniform barycentric (b1, b2) with b1 + b2 <= 1
"""

import taichi as ti
import taichi.math as tm

vec2 = tm.vec2
vec3 = tm.vec3


@ti.func
def square_to_psa_hemisphere(seed: vec2) -> vec3:
    """Cosine-weighted hemisphere: r = sqrt(x), phi = 2 pi y, z = sqrt(1 - r^2)."""
    r = ti.sqrt(seed.x)
    phi = 2.0 * tm.pi * seed.y
    z = ti.sqrt(ti.max(0.0, 1.0 - seed.x))
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z)


@ti.func
def square_to_hemisphere(seed: vec2) -> vec3:
    """Uniform hemisphere: z = x, phi = 2 pi y."""
    z = seed.x
    r = ti.sqrt(ti.max(0.0, 1.0 - z * z))
    phi = 2.0 * tm.pi * seed.y
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z)


@ti.func
def square_to_sphere(seed: vec2) -> vec3:
    """Uniform sphere: z = 2x - 1, phi = 2 pi y."""
    z = 2.0 * seed.x - 1.0
    r = ti.sqrt(ti.max(0.0, 1.0 - z * z))
    phi = 2.0 * tm.pi * seed.y
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z)


@ti.func
def square_to_triangle(seed: vec2) -> vec2:
    """Uniform barycentric coordinates by folding the upper half of the square."""
    result = seed
    if seed.x + seed.y > 1.0:
        result = vec2(1.0 - seed.x, 1.0 - seed.y)
    return result

