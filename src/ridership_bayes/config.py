"""
Sampler configuration.

All knobs that influence a fit are passed explicitly through a
``SamplerConfig``; nothing is read from process-wide state.
"""

import os
from typing import Any, Dict, Mapping, Optional


class SamplerConfig:
    """
    Configuration for NUTS sampling and interval summaries.

    Attributes
    ----------
    chains : int
        Number of independent chains.
    cores : int
        Worker ceiling for running chains concurrently.
    seed : int or None
        Root seed. None means nondeterministic.
    warmup_iterations : int
        Adaptation iterations per chain (discarded).
    sampling_iterations : int
        Retained iterations per chain.
    target_accept : float
        Dual-averaging acceptance target for PyMC's NUTS.
    max_depth : int
        Maximum number of trajectory doublings (``max_treedepth``).
    interval_mass : float
        Default credible-interval probability mass.
    max_init_attempts : int
        Jittered starting points tried before a chain fails.
    max_energy_error : float
        Energy error above which a trajectory is flagged divergent (``Emax``).
    fail_fast : bool
        Re-raise the first chain failure instead of keeping the other chains.
    """

    FIELDS = (
        "chains",
        "cores",
        "seed",
        "warmup_iterations",
        "sampling_iterations",
        "target_accept",
        "max_depth",
        "interval_mass",
        "max_init_attempts",
        "max_energy_error",
        "fail_fast",
    )

    def __init__(
        self,
        chains: int = 1,
        cores: Optional[int] = None,
        seed: Optional[int] = None,
        warmup_iterations: int = 1000,
        sampling_iterations: int = 1000,
        target_accept: float = 0.8,
        max_depth: int = 15,
        interval_mass: float = 0.89,
        max_init_attempts: int = 20,
        max_energy_error: float = 1000.0,
        fail_fast: bool = False,
    ) -> None:
        if cores is None:
            cores = min(chains, os.cpu_count() or 1)

        if chains < 1:
            raise ValueError(f"chains must be >= 1. Got {chains}")
        if cores < 1:
            raise ValueError(f"cores must be >= 1. Got {cores}")
        if warmup_iterations < 0:
            raise ValueError(f"warmup_iterations must be >= 0. Got {warmup_iterations}")
        if sampling_iterations < 1:
            raise ValueError(
                f"sampling_iterations must be >= 1. Got {sampling_iterations}"
            )
        if not (0.0 < target_accept < 1.0):
            raise ValueError(f"target_accept must be in (0, 1). Got {target_accept}")
        if max_depth < 1:
            raise ValueError(f"max_depth must be >= 1. Got {max_depth}")
        if not (0.0 < interval_mass < 1.0):
            raise ValueError(f"interval_mass must be in (0, 1). Got {interval_mass}")
        if max_init_attempts < 1:
            raise ValueError(f"max_init_attempts must be >= 1. Got {max_init_attempts}")
        if max_energy_error <= 0:
            raise ValueError(f"max_energy_error must be positive. Got {max_energy_error}")

        self.chains = int(chains)
        self.cores = int(cores)
        self.seed = seed
        self.warmup_iterations = int(warmup_iterations)
        self.sampling_iterations = int(sampling_iterations)
        self.target_accept = float(target_accept)
        self.max_depth = int(max_depth)
        self.interval_mass = float(interval_mass)
        self.max_init_attempts = int(max_init_attempts)
        self.max_energy_error = float(max_energy_error)
        self.fail_fast = bool(fail_fast)

    @property
    def n_workers(self) -> int:
        """Worker threads actually used: capped by chains and host cores."""
        return max(1, min(self.chains, self.cores, os.cpu_count() or 1))

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "SamplerConfig":
        """Build a config from a plain dict, rejecting unknown keys."""
        unknown = set(options) - set(cls.FIELDS)
        if unknown:
            raise ValueError(f"Unknown sampler options: {sorted(unknown)}")
        return cls(**dict(options))

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.FIELDS}

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"SamplerConfig(chains={self.chains}, cores={self.cores}, seed={self.seed}, "
            f"warmup={self.warmup_iterations}, draws={self.sampling_iterations}, "
            f"target_accept={self.target_accept}, max_depth={self.max_depth})"
        )
