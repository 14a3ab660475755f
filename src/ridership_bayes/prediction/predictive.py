"""
Posterior-predictive curves over predictor grids.

For every posterior draw s and grid point g = (class c, hours h) the
engine evaluates the model's linear predictor

    muhat[s, g] = a_C[s, c] + b_H[s, c] · h      (hierarchical)
    muhat[s, g] = mu[s]                          (pooled)

and reduces each column to a mean and a credible interval. Residual noise
is not added: the curves describe the expected response, carrying only
parameter uncertainty.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Tuple, Union
import numpy as np
from numpy.typing import NDArray

from ridership_bayes.errors import PredictionGridError
from ridership_bayes.inference.draws import PosteriorDraws
from ridership_bayes.inference.intervals import column_intervals
from ridership_bayes.model.spec import ModelSpec

logger = logging.getLogger(__name__)


class PredictorGridPoint(NamedTuple):
    """Covariates of one prediction; need not match any observed route."""

    class_index: int
    hours_change_fraction: float


@dataclass(frozen=True)
class PredictionSummary:
    """Mean and credible interval of the expected response at one grid point."""

    class_index: int
    hours_change_fraction: float
    mean: float
    lower: float
    upper: float
    interval_mass: float


GridLike = Iterable[Union[PredictorGridPoint, Tuple[int, float]]]


def make_grid(class_indices: Iterable[int], hours: Iterable[float]) -> List[PredictorGridPoint]:
    """Cartesian grid ordered by class, then hours."""
    hours = list(hours)
    return [
        PredictorGridPoint(int(c), float(h))
        for c, h in itertools.product(class_indices, hours)
    ]


class PredictiveEngine:
    """
    Evaluate a fitted model's linear predictor on new covariates.

    Attributes
    ----------
    spec : ModelSpec
        Model the draws were sampled from
    draws : PosteriorDraws
        Posterior draws (read only)
    """

    def __init__(self, spec: ModelSpec, draws: PosteriorDraws) -> None:
        if draws.layout.names != spec.layout.names or draws.layout.size != spec.layout.size:
            raise ValueError(
                f"Draws with parameters {draws.layout.names} do not belong to "
                f"a {spec.kind} model with parameters {spec.layout.names}"
            )
        if draws.n_draws == 0:
            raise ValueError("PredictiveEngine needs at least one posterior draw")
        self.spec = spec
        self.draws = draws

    def _validate(self, grid: GridLike) -> Tuple[NDArray[np.int64], NDArray[np.float64]]:
        classes: List[int] = []
        hours: List[float] = []
        k = self.spec.n_classes
        for i, point in enumerate(grid):
            try:
                c, h = point
            except (TypeError, ValueError):
                raise PredictionGridError(
                    f"Grid point {i} must be a (class_index, hours) pair. Got {point!r}"
                ) from None
            if isinstance(c, (bool, np.bool_)) or not isinstance(c, (int, np.integer)):
                raise PredictionGridError(
                    f"Grid point {i}: class index must be an integer. Got {c!r}"
                )
            if not (1 <= c <= k):
                raise PredictionGridError(
                    f"Grid point {i}: class index must be in [1, {k}]. Got {c}"
                )
            try:
                h = float(h)
            except (TypeError, ValueError):
                raise PredictionGridError(
                    f"Grid point {i}: hours change must be numeric. Got {h!r}"
                ) from None
            if not np.isfinite(h):
                raise PredictionGridError(f"Grid point {i}: hours change must be finite. Got {h}")
            classes.append(int(c))
            hours.append(h)
        return np.array(classes, dtype=np.int64), np.array(hours, dtype=np.float64)

    def predict(self, grid: GridLike) -> NDArray[np.float64]:
        """
        Linear-predictor draws at every grid point.

        Returns
        -------
        muhat : NDArray[np.float64]
            Shape (n_draws, n_grid), columns in grid order.

        Raises
        ------
        PredictionGridError
            If a grid point lies outside the model's class set.
        """
        class_index, hours = self._validate(grid)
        if len(hours) == 0:
            return np.empty((self.draws.n_draws, 0))
        return self.spec.linear_predictor(self.draws.as_dict(), class_index, hours)

    def summarize(
        self,
        grid: GridLike,
        interval_mass: float = 0.89,
    ) -> List[PredictionSummary]:
        """
        Mean and credible interval of the expected response per grid point.

        Duplicated grid points are evaluated independently.

        Parameters
        ----------
        grid : iterable of PredictorGridPoint or (class_index, hours) pairs
        interval_mass : float
            Credible-interval mass in (0, 1). Default 0.89.

        Returns
        -------
        summaries : List[PredictionSummary]
            One per grid point, same order as ``grid``.
        """
        if not (0.0 < interval_mass < 1.0):
            raise ValueError(f"interval_mass must be in (0, 1). Got {interval_mass}")

        grid = list(grid)
        class_index, hours = self._validate(grid)
        if len(hours) == 0:
            return []

        muhat = self.spec.linear_predictor(self.draws.as_dict(), class_index, hours)
        means = muhat.mean(axis=0)
        bounds = column_intervals(muhat, interval_mass, means)

        logger.debug(
            "Summarized %d grid point(s) over %d draw(s)", len(hours), self.draws.n_draws
        )
        return [
            PredictionSummary(
                class_index=int(class_index[j]),
                hours_change_fraction=float(hours[j]),
                mean=float(means[j]),
                lower=float(bounds[j, 0]),
                upper=float(bounds[j, 1]),
                interval_mass=interval_mass,
            )
            for j in range(len(hours))
        ]

    def __repr__(self) -> str:
        return f"PredictiveEngine(kind={self.spec.kind!r}, draws={self.draws.n_draws})"
