"""
Exception taxonomy for ridership model fitting and prediction.

- DataBindingError: input table cannot be bound to a model (raised before sampling)
- SamplingError: a chain could not be initialized, or every chain failed
- SamplingDiagnosticWarning: non-fatal sampling problems (divergences, poor acceptance)
- PredictionGridError: a prediction grid point is outside the fitted model
"""

from typing import Optional


class RidershipModelError(Exception):
    """Base class for all errors raised by ridership_bayes."""


class DataBindingError(RidershipModelError, ValueError):
    """Observation table is missing columns, has non-finite values or bad classes."""


class SamplingError(RidershipModelError, RuntimeError):
    """A chain failed to start, or no chain produced draws."""

    def __init__(self, message: str, chain: Optional[int] = None) -> None:
        super().__init__(message)
        self.chain = chain


class PredictionGridError(RidershipModelError, ValueError):
    """Grid point references a class (or value) the fitted model cannot evaluate."""


class SamplingDiagnosticWarning(UserWarning):
    """Divergences or acceptance rate far from target; results still returned."""
