"""Sample generators for stratified Monte Carlo integration.

A sample pattern is a table: each row is one sample of a pixel, each column
(dimension) one 2D decision made while estimating radiance. Related draws
share a dimension so that they are stratified against each other:

    dimension 0       sub-pixel position
    dimension 1       direct lighting / ambient occlusion / BRDF direction
    dimension 2 + d   path tracer bounce at depth d

Two generators are available:

- IndependentSampler: every value is an independent ti.random pair.
- JitteredSampler: U x V strata per dimension. Every pixel draws a fresh
  random permutation of the strata for each of STRATIFICATION_DEPTH
  dimensions, so sample i of the pixel lands in stratum perm[dim][i].
  Dimensions past the stratification depth fall back to independent
  samples.

Permutation tables live in a field indexed by sampler slot. Rendering gives
every pixel of a block its own slot, so concurrent threads never share
sampler state.

Example:
    >>> setup_sampler(JitteredSampler(num_samples_u=4, num_samples_v=4))
    >>> @ti.kernel
    ... def draw() -> vec2:
    ...     reset_sampler(0)
    ...     return sample_2d(0, 3, 0)
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

vec2 = tm.vec2

# Number of dimensions that receive stratified samples
STRATIFICATION_DEPTH = 30

# Largest jittered pattern (num_samples_u * num_samples_v)
MAX_PATTERN_SAMPLES = 64

# Blocks are at most this many pixels on a side, one sampler slot per pixel
MAX_BLOCK_SIZE = 32
MAX_SAMPLER_SLOTS = MAX_BLOCK_SIZE * MAX_BLOCK_SIZE


class SamplerType(IntEnum):
    """Sample generator types for device-side dispatch."""

    INDEPENDENT = 0
    JITTERED = 1


@dataclass
class IndependentSampler:
    """Uncorrelated uniform samples.

    Attributes:
        num_samples: Samples per pixel.
    """

    num_samples: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"type": "independent", "num_samples": self.num_samples}


@dataclass
class JitteredSampler:
    """Jittered (stratified) samples on a U x V grid.

    Attributes:
        num_samples_u: Strata along the first coordinate.
        num_samples_v: Strata along the second coordinate.
    """

    num_samples_u: int = 4
    num_samples_v: int = 4

    @property
    def num_samples(self) -> int:
        return self.num_samples_u * self.num_samples_v

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "jittered",
            "num_samples_u": self.num_samples_u,
            "num_samples_v": self.num_samples_v,
        }


SamplerConfig = IndependentSampler | JitteredSampler


def sampler_from_dict(data: dict[str, Any]) -> SamplerConfig:
    """Create a sampler configuration from its dictionary form.

    Raises:
        ValueError: If the type is unknown.
    """
    kind = data.get("type", "independent")
    if kind == "independent":
        return IndependentSampler(num_samples=int(data.get("num_samples", 1)))
    if kind == "jittered":
        return JitteredSampler(
            num_samples_u=int(data.get("num_samples_u", 4)),
            num_samples_v=int(data.get("num_samples_v", 4)),
        )
    raise ValueError(f"Unknown sampler type: {kind!r}")


def validate_sampler(config: SamplerConfig) -> None:
    """Check a sampler configuration.

    Raises:
        ValueError: On non-positive counts or more than MAX_PATTERN_SAMPLES
            jittered strata.
    """
    if isinstance(config, JitteredSampler):
        if config.num_samples_u <= 0 or config.num_samples_v <= 0:
            raise ValueError(
                f"Jittered sampler needs positive strata counts, got "
                f"{config.num_samples_u}x{config.num_samples_v}"
            )
        if config.num_samples > MAX_PATTERN_SAMPLES:
            raise ValueError(
                f"Jittered sampler has {config.num_samples} strata, "
                f"maximum is {MAX_PATTERN_SAMPLES}"
            )
    elif isinstance(config, IndependentSampler):
        if config.num_samples <= 0:
            raise ValueError(f"num_samples must be positive, got {config.num_samples}")
    else:
        raise ValueError(f"Unknown sampler configuration: {config!r}")


# =============================================================================
# Taichi Fields for Sampler State
# =============================================================================

_sampler_type = ti.field(dtype=ti.i32, shape=())
_samples_u = ti.field(dtype=ti.i32, shape=())
_samples_v = ti.field(dtype=ti.i32, shape=())
_num_samples = ti.field(dtype=ti.i32, shape=())

# Per-slot stratum permutations: [slot, dimension, sample]
_permutations = ti.field(
    dtype=ti.i32, shape=(MAX_SAMPLER_SLOTS, STRATIFICATION_DEPTH, MAX_PATTERN_SAMPLES)
)


def setup_sampler(config: SamplerConfig) -> None:
    """Make a sampler configuration current for rendering.

    Raises:
        ValueError: If the configuration is invalid.
    """
    validate_sampler(config)
    if isinstance(config, JitteredSampler):
        _sampler_type[None] = int(SamplerType.JITTERED)
        _samples_u[None] = config.num_samples_u
        _samples_v[None] = config.num_samples_v
    else:
        _sampler_type[None] = int(SamplerType.INDEPENDENT)
        _samples_u[None] = 1
        _samples_v[None] = 1
    _num_samples[None] = config.num_samples


def get_num_samples() -> int:
    """Get the samples per pixel of the current configuration."""
    return int(_num_samples[None])


# =============================================================================
# Device Functions
# =============================================================================


@ti.func
def get_sampler_num_samples() -> ti.i32:
    return _num_samples[None]


@ti.func
def reset_sampler(slot: ti.i32):
    """Draw fresh stratum permutations for one slot (Fisher-Yates)."""
    if _sampler_type[None] == int(SamplerType.JITTERED):
        n = _num_samples[None]
        for dim in range(STRATIFICATION_DEPTH):
            for j in range(n):
                _permutations[slot, dim, j] = j
            for jj in range(n - 1):
                last = n - 1 - jj
                k = ti.min(ti.cast(ti.random(ti.f32) * (last + 1), ti.i32), last)
                temp = _permutations[slot, dim, last]
                _permutations[slot, dim, last] = _permutations[slot, dim, k]
                _permutations[slot, dim, k] = temp


@ti.func
def sample_2d(slot: ti.i32, row: ti.i32, dim: ti.i32) -> vec2:
    """Draw the 2D value of sample `row` in dimension `dim`.

    Returns:
        A point in [0, 1)^2. Jittered samples fall inside stratum
        perm[slot, dim, row]; exhausted dimensions are independent.
    """
    result = vec2(ti.random(ti.f32), ti.random(ti.f32))
    if (
        _sampler_type[None] == int(SamplerType.JITTERED)
        and dim < STRATIFICATION_DEPTH
        and row < _num_samples[None]
    ):
        nu = _samples_u[None]
        nv = _samples_v[None]
        i = _permutations[slot, dim, row]
        iu = i % nu
        iv = i // nu
        result = vec2(
            (ti.cast(iu, ti.f32) + result.x) / ti.cast(nu, ti.f32),
            (ti.cast(iv, ti.f32) + result.y) / ti.cast(nv, ti.f32),
        )
    return result
