"""
Hierarchical Bayesian analysis of transit ridership vs. service-hours change.

Routes are grouped into classes; the log ridership ratio between two years
is regressed on the fractional change in service hours, either pooled or
with per-class intercepts and slopes drawn from shared parent normals.

**Usage:**
```python
from ridership_bayes import (
    HierarchicalSpec, NUTSSampler, PredictiveEngine, load_ridership_csv, make_grid,
)

dataset = load_ridership_csv("routes.csv")
spec = HierarchicalSpec()
fit = NUTSSampler(chains=2, seed=42, target_accept=0.95).sample(spec, dataset)

engine = PredictiveEngine(spec, fit.draws)
curves = engine.summarize(make_grid([1, 2, 3, 4], [-0.5, 0.0, 0.5]), interval_mass=0.93)
```
"""

import logging

from ridership_bayes.config import SamplerConfig
from ridership_bayes.data import DEFAULT_CLASS_TABLE, ClassTable, DataSet, load_ridership_csv
from ridership_bayes.errors import (
    DataBindingError,
    PredictionGridError,
    RidershipModelError,
    SamplingDiagnosticWarning,
    SamplingError,
)
from ridership_bayes.inference import (
    CancellationToken,
    InferenceSummary,
    NUTSSampler,
    PosteriorDraws,
    PosteriorSummary,
)
from ridership_bayes.model import HierarchicalSpec, ModelSpec, PooledSpec, PriorSpec, make_spec
from ridership_bayes.prediction import (
    PredictionSummary,
    PredictiveEngine,
    PredictorGridPoint,
    make_grid,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "SamplerConfig",
    "DEFAULT_CLASS_TABLE",
    "ClassTable",
    "DataSet",
    "load_ridership_csv",
    "DataBindingError",
    "PredictionGridError",
    "RidershipModelError",
    "SamplingDiagnosticWarning",
    "SamplingError",
    "CancellationToken",
    "InferenceSummary",
    "NUTSSampler",
    "PosteriorDraws",
    "PosteriorSummary",
    "HierarchicalSpec",
    "ModelSpec",
    "PooledSpec",
    "PriorSpec",
    "make_spec",
    "PredictionSummary",
    "PredictiveEngine",
    "PredictorGridPoint",
    "make_grid",
]
