"""
Bayesian inference for the ridership models.

Pipeline:
1. NUTSSampler: multi-chain NUTS with warm-up adaptation and cancellation
2. PosteriorDraws: read-only per-chain draws in the model's layout
3. PosteriorSummary: mean / median / sd / HDI / R-hat / ESS per parameter
4. DiagnosticsComputer, SamplingDiagnostics: convergence and sampler health

**Usage:**
```python
from ridership_bayes.model import HierarchicalSpec
from ridership_bayes.inference import NUTSSampler, PosteriorSummary

spec = HierarchicalSpec()
fit = NUTSSampler(chains=2, seed=1, target_accept=0.95).sample(spec, dataset)
print(fit.diagnostics)
print(PosteriorSummary.from_draws(fit.draws, interval_mass=0.93).to_frame())
```

Each chain is a separate ``pm.sample`` run on the model from
``model.ModelBuilder``, so chains fail and are cancelled independently.
"""

from ridership_bayes.inference.diagnostics import DiagnosticsComputer, SamplingDiagnostics
from ridership_bayes.inference.draws import PosteriorDraws
from ridership_bayes.inference.intervals import credible_interval
from ridership_bayes.inference.sampler import (
    CancellationToken,
    InferenceSummary,
    NUTSSampler,
)
from ridership_bayes.inference.summary import ParameterSummary, PosteriorSummary

__all__ = [
    "DiagnosticsComputer",
    "SamplingDiagnostics",
    "PosteriorDraws",
    "credible_interval",
    "CancellationToken",
    "InferenceSummary",
    "NUTSSampler",
    "ParameterSummary",
    "PosteriorSummary",
]
