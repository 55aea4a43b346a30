"""Sample generators."""

from .sampler import (
    MAX_BLOCK_SIZE,
    MAX_PATTERN_SAMPLES,
    MAX_SAMPLER_SLOTS,
    STRATIFICATION_DEPTH,
    IndependentSampler,
    JitteredSampler,
    SamplerConfig,
    SamplerType,
    get_num_samples,
    get_sampler_num_samples,
    reset_sampler,
    sample_2d,
    sampler_from_dict,
    setup_sampler,
    validate_sampler,
)

__all__ = [
    "IndependentSampler",
    "JitteredSampler",
    "SamplerConfig",
    "SamplerType",
    "sampler_from_dict",
    "setup_sampler",
    "validate_sampler",
    "get_num_samples",
    "get_sampler_num_samples",
    "reset_sampler",
    "sample_2d",
    "MAX_BLOCK_SIZE",
    "MAX_PATTERN_SAMPLES",
    "MAX_SAMPLER_SLOTS",
    "STRATIFICATION_DEPTH",
]
