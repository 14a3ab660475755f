"""Tests for SamplerConfig."""

import os

import pytest

from ridership_bayes.config import SamplerConfig


class TestSamplerConfig:
    def test_defaults(self) -> None:
        config = SamplerConfig()
        assert config.chains == 1
        assert config.cores == 1
        assert config.seed is None
        assert config.warmup_iterations == 1000
        assert config.sampling_iterations == 1000
        assert config.target_accept == 0.8
        assert config.max_depth == 15
        assert config.interval_mass == 0.89
        assert not config.fail_fast

    def test_workers_capped(self) -> None:
        config = SamplerConfig(chains=2, cores=64)
        assert config.n_workers <= min(2, os.cpu_count() or 1)
        assert SamplerConfig(chains=8, cores=1).n_workers == 1

    @pytest.mark.parametrize(
        "option, value",
        [
            ("chains", 0),
            ("cores", 0),
            ("warmup_iterations", -1),
            ("sampling_iterations", 0),
            ("target_accept", 0.0),
            ("target_accept", 1.0),
            ("max_depth", 0),
            ("interval_mass", 1.0),
            ("max_init_attempts", 0),
            ("max_energy_error", 0.0),
        ],
    )
    def test_invalid(self, option, value) -> None:
        with pytest.raises(ValueError, match=option):
            SamplerConfig(**{option: value})

    def test_zero_warmup_allowed(self) -> None:
        assert SamplerConfig(warmup_iterations=0).warmup_iterations == 0

    def test_from_mapping_round_trip(self) -> None:
        config = SamplerConfig(chains=4, cores=2, seed=9, target_accept=0.95, fail_fast=True)
        again = SamplerConfig.from_mapping(config.to_dict())
        assert again.to_dict() == config.to_dict()

    def test_from_mapping_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="max_treedepth"):
            SamplerConfig.from_mapping({"chains": 2, "max_treedepth": 10})
