"""Unit tests for the sample generators.

Tests cover:
- Independent samples in [0, 1)
- Jittered samples hitting every stratum exactly once per dimension
- Fallback to independent samples past the stratification depth
- Configuration validation and dictionary round trips
"""

import numpy as np
import pytest
import taichi as ti


def _draw(num_rows, dims, slot=0):
    """Reset one slot and draw `num_rows` samples in each listed dimension."""
    from raycore.sampling.sampler import reset_sampler, sample_2d

    num_dims = len(dims)
    dim_field = ti.field(dtype=ti.i32, shape=num_dims)
    values = ti.Vector.field(2, dtype=ti.f32, shape=(num_dims, num_rows))
    dim_field.from_numpy(np.asarray(dims, dtype=np.int32))

    @ti.kernel
    def draw_kernel():
        reset_sampler(slot)
        for d in range(num_dims):
            for row in range(num_rows):
                values[d, row] = sample_2d(slot, row, dim_field[d])

    draw_kernel()
    return values.to_numpy()


class TestIndependentSampler:
    """Tests for uncorrelated sampling."""

    def test_values_in_unit_square(self):
        from raycore.sampling.sampler import IndependentSampler, get_num_samples, setup_sampler

        setup_sampler(IndependentSampler(num_samples=8))
        assert get_num_samples() == 8
        values = _draw(256, [0, 1, 5])
        assert np.all(values >= 0.0)
        assert np.all(values < 1.0)
        # Not all the same value
        assert values[..., 0].std() > 0.1


class TestJitteredSampler:
    """Tests for stratified sampling."""

    @pytest.mark.parametrize("nu, nv", [(4, 4), (2, 3), (8, 8), (1, 1)])
    def test_each_stratum_hit_once(self, nu, nv):
        from raycore.sampling.sampler import JitteredSampler, get_num_samples, setup_sampler

        setup_sampler(JitteredSampler(num_samples_u=nu, num_samples_v=nv))
        n = nu * nv
        assert get_num_samples() == n

        values = _draw(n, [0, 1, 2, 29])
        for dim_values in values:
            iu = np.minimum((dim_values[:, 0] * nu).astype(int), nu - 1)
            iv = np.minimum((dim_values[:, 1] * nv).astype(int), nv - 1)
            strata = iv * nu + iu
            assert sorted(strata.tolist()) == list(range(n))

    def test_dimensions_are_permuted_independently(self):
        from raycore.sampling.sampler import JitteredSampler, setup_sampler

        setup_sampler(JitteredSampler(num_samples_u=8, num_samples_v=8))
        values = _draw(64, list(range(10)))
        strata = [
            tuple((np.floor(v[:, 1] * 8) * 8 + np.floor(v[:, 0] * 8)).astype(int).tolist())
            for v in values
        ]
        # 64! orderings; ten identical permutations would mean no shuffle
        assert len(set(strata)) > 1

    def test_fallback_past_stratification_depth(self):
        from raycore.sampling.sampler import STRATIFICATION_DEPTH, JitteredSampler, setup_sampler

        setup_sampler(JitteredSampler(num_samples_u=2, num_samples_v=2))
        values = _draw(4, [STRATIFICATION_DEPTH, STRATIFICATION_DEPTH + 7])
        assert np.all(values >= 0.0)
        assert np.all(values < 1.0)

    def test_slots_are_independent(self):
        from raycore.sampling.sampler import JitteredSampler, setup_sampler

        setup_sampler(JitteredSampler(num_samples_u=4, num_samples_v=4))
        a = _draw(16, [0], slot=3)
        b = _draw(16, [0], slot=700)
        for values in (a[0], b[0]):
            strata = np.floor(values[:, 1] * 4) * 4 + np.floor(values[:, 0] * 4)
            assert sorted(strata.astype(int).tolist()) == list(range(16))


class TestSamplerConfig:
    """Tests for validation and serialization."""

    def test_num_samples_property(self):
        from raycore.sampling.sampler import JitteredSampler

        assert JitteredSampler(num_samples_u=3, num_samples_v=5).num_samples == 15

    @pytest.mark.parametrize(
        "config_kwargs",
        [
            {"num_samples_u": 0, "num_samples_v": 4},
            {"num_samples_u": 4, "num_samples_v": -1},
            {"num_samples_u": 9, "num_samples_v": 8},
        ],
    )
    def test_invalid_jittered(self, config_kwargs):
        from raycore.sampling.sampler import JitteredSampler, validate_sampler

        with pytest.raises(ValueError):
            validate_sampler(JitteredSampler(**config_kwargs))

    def test_invalid_independent(self):
        from raycore.sampling.sampler import IndependentSampler, setup_sampler

        with pytest.raises(ValueError, match="positive"):
            setup_sampler(IndependentSampler(num_samples=0))

    def test_unknown_config_object(self):
        from raycore.sampling.sampler import validate_sampler

        with pytest.raises(ValueError):
            validate_sampler("jittered")

    def test_dict_round_trip(self):
        from raycore.sampling.sampler import IndependentSampler, JitteredSampler, sampler_from_dict

        for config in (IndependentSampler(num_samples=7), JitteredSampler(num_samples_u=2, num_samples_v=5)):
            assert sampler_from_dict(config.to_dict()) == config

    def test_from_dict_defaults(self):
        from raycore.sampling.sampler import IndependentSampler, sampler_from_dict

        assert sampler_from_dict({}) == IndependentSampler(num_samples=1)

    def test_unknown_type(self):
        from raycore.sampling.sampler import sampler_from_dict

        with pytest.raises(ValueError, match="Unknown sampler type"):
            sampler_from_dict({"type": "sobol"})
