"""
Posterior-predictive summaries for visualization.

- PredictiveEngine: linear-predictor draws over a grid, reduced to
  mean + credible interval per grid point
- PredictorGridPoint / make_grid: grid construction
- PredictionSummary: one immutable record per grid point
"""

from ridership_bayes.prediction.predictive import (
    PredictionSummary,
    PredictiveEngine,
    PredictorGridPoint,
    make_grid,
)

__all__ = [
    "PredictionSummary",
    "PredictiveEngine",
    "PredictorGridPoint",
    "make_grid",
]
