"""
Model specifications for ridership change vs. service change.

- ModelSpec: tagged variant (PooledSpec / HierarchicalSpec) with explicit
  parameter layout, data binding and linear predictor
- PriorSpec: prior hyper-parameters
- BoundModel: spec bound to a validated DataSet
- ModelBuilder: the PyMC model sampled by ``inference.NUTSSampler``
"""

from ridership_bayes.model.priors import PriorSpec
from ridership_bayes.model.spec import (
    BoundModel,
    HierarchicalSpec,
    ModelSpec,
    ParameterLayout,
    PooledSpec,
    make_spec,
)
from ridership_bayes.model.builder import ModelBuilder

__all__ = [
    "PriorSpec",
    "BoundModel",
    "HierarchicalSpec",
    "ModelSpec",
    "ParameterLayout",
    "PooledSpec",
    "make_spec",
    "ModelBuilder",
]
