"""Shared synthetic data and fits for the test suite."""

import numpy as np
import pytest

from ridership_bayes.data.dataset import DataSet
from ridership_bayes.inference.sampler import NUTSSampler
from ridership_bayes.model.spec import HierarchicalSpec, PooledSpec

TRUE_SLOPE = -0.3
NOISE_SD = 0.1


def make_hierarchical_dataset(n_per_class: int = 50, seed: int = 2019) -> DataSet:
    """4 classes x n routes: response = 0.1 * (class - 1) - 0.3 * hours + noise."""
    rng = np.random.default_rng(seed)
    classes = np.repeat(np.arange(1, 5), n_per_class)
    hours = rng.uniform(-0.5, 0.5, size=len(classes))
    response = 0.1 * (classes - 1) + TRUE_SLOPE * hours + rng.normal(0, NOISE_SD, len(classes))
    routes = [f"R{i:03d}" for i in range(len(classes))]
    return DataSet(routes, classes, hours, response)


def make_pooled_dataset(n: int = 1000, mu: float = 0.0, sigma: float = 0.2, seed: int = 7) -> DataSet:
    rng = np.random.default_rng(seed)
    response = rng.normal(mu, sigma, size=n)
    classes = np.tile(np.arange(1, 5), n // 4 + 1)[:n]
    return DataSet([f"R{i}" for i in range(n)], classes, np.zeros(n), response)


@pytest.fixture(scope="session")
def hierarchical_dataset() -> DataSet:
    return make_hierarchical_dataset()


@pytest.fixture(scope="session")
def pooled_dataset() -> DataSet:
    return make_pooled_dataset()


@pytest.fixture(scope="session")
def hierarchical_fit(hierarchical_dataset):
    sampler = NUTSSampler(
        chains=2,
        cores=2,
        seed=20150,
        warmup_iterations=500,
        sampling_iterations=500,
        target_accept=0.95,
    )
    return sampler.sample(HierarchicalSpec(), hierarchical_dataset)


@pytest.fixture(scope="session")
def pooled_fit(pooled_dataset):
    sampler = NUTSSampler(seed=11, warmup_iterations=300, sampling_iterations=600)
    return sampler.sample(PooledSpec(), pooled_dataset)
