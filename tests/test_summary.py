"""
Tests for credible intervals and posterior summary tables.
"""

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose

from ridership_bayes.inference.draws import PosteriorDraws
from ridership_bayes.inference.intervals import column_intervals, credible_interval
from ridership_bayes.inference.summary import PosteriorSummary
from ridership_bayes.model.spec import HierarchicalSpec, PooledSpec


@pytest.fixture
def normal_draws():
    return np.random.default_rng(0).normal(size=40000)


class TestCredibleInterval:
    """Tests for credible_interval."""

    def test_normal_90(self, normal_draws) -> None:
        lower, upper = credible_interval(normal_draws, 0.9)
        assert_allclose([lower, upper], [-1.645, 1.645], atol=0.05)

    def test_wider_mass_contains_narrower(self, normal_draws) -> None:
        inner = credible_interval(normal_draws, 0.5)
        outer = credible_interval(normal_draws, 0.93)
        assert outer[0] <= inner[0] <= inner[1] <= outer[1]

    def test_skewed_draws_contain_mean(self) -> None:
        rng = np.random.default_rng(1)
        values = np.concatenate([np.zeros(800), rng.exponential(50.0, size=200)])
        mean = values.mean()
        lower, upper = credible_interval(values, 0.5, point=mean)
        assert lower <= mean <= upper

    def test_point_already_covered(self, normal_draws) -> None:
        plain = credible_interval(normal_draws, 0.89)
        with_point = credible_interval(normal_draws, 0.89, point=0.0)
        assert plain == with_point

    def test_constant_draws(self) -> None:
        assert credible_interval(np.full(50, 2.5), 0.89, point=2.5) == (2.5, 2.5)

    @pytest.mark.parametrize("mass", [0.0, 1.0, -0.2, 1.5])
    def test_invalid_mass(self, mass) -> None:
        with pytest.raises(ValueError, match="mass"):
            credible_interval(np.zeros(10), mass)

    def test_empty(self) -> None:
        with pytest.raises(ValueError, match="zero draws"):
            credible_interval(np.array([]), 0.89)

    def test_column_intervals_shape(self) -> None:
        rng = np.random.default_rng(2)
        matrix = rng.normal(size=(500, 3)) + [0.0, 5.0, -5.0]
        out = column_intervals(matrix, 0.89, matrix.mean(axis=0))
        assert out.shape == (3, 2)
        assert np.all(out[:, 0] <= matrix.mean(axis=0))
        assert np.all(matrix.mean(axis=0) <= out[:, 1])


class TestPosteriorSummary:
    """Tests for PosteriorSummary."""

    @pytest.fixture
    def pooled_draws(self):
        rng = np.random.default_rng(3)
        chains = [
            np.column_stack([rng.normal(0.5, 0.1, 1000), rng.lognormal(np.log(0.2), 0.1, 1000)])
            for _ in range(2)
        ]
        return PosteriorDraws(PooledSpec().layout, chains)

    def test_rows(self, pooled_draws) -> None:
        summary = PosteriorSummary.from_draws(pooled_draws, interval_mass=0.9)
        assert summary.names == ["mu", "sigma"]
        assert len(summary) == 2
        mu = summary["mu"]
        assert_allclose(mu.mean, 0.5, atol=0.01)
        assert_allclose(mu.sd, 0.1, atol=0.01)
        assert mu.lower <= mu.mean <= mu.upper
        assert mu.rhat < 1.01
        assert mu.ess > 1000
        assert summary["sigma"].lower > 0

    def test_vector_parameters_expand(self) -> None:
        rng = np.random.default_rng(4)
        draws = PosteriorDraws(HierarchicalSpec().layout, [rng.normal(size=(100, 13))])
        summary = PosteriorSummary.from_draws(draws)
        assert "a_C[4]" in summary
        assert "a_C" not in summary
        assert len(summary) == 13

    def test_median_point(self, pooled_draws) -> None:
        summary = PosteriorSummary.from_draws(pooled_draws, point="median")
        for row in summary:
            assert row.lower <= row.median <= row.upper

    def test_to_frame(self, pooled_draws) -> None:
        frame = PosteriorSummary.from_draws(pooled_draws, interval_mass=0.93).to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.index) == ["mu", "sigma"]
        assert {"mean", "sd", "hdi_93_lower", "hdi_93_upper", "ess", "rhat"} <= set(frame.columns)

    def test_does_not_modify_draws(self, pooled_draws) -> None:
        before = pooled_draws.values.copy()
        PosteriorSummary.from_draws(pooled_draws)
        assert_allclose(pooled_draws.values, before)

    def test_invalid_arguments(self, pooled_draws) -> None:
        with pytest.raises(ValueError, match="point"):
            PosteriorSummary.from_draws(pooled_draws, point="mode")
        with pytest.raises(ValueError, match="interval_mass"):
            PosteriorSummary.from_draws(pooled_draws, interval_mass=1.0)
        with pytest.raises(ValueError, match="empty"):
            PosteriorSummary.from_draws(PosteriorDraws(PooledSpec().layout, []))
