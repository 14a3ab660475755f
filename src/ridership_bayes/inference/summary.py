"""
Per-parameter posterior summaries.

One row per scalar parameter entry (vector parameters such as ``a_C``
expand to ``a_C[1]`` .. ``a_C[K]``): mean, median, standard deviation,
credible interval at the requested mass, split R-hat and ESS.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List
import numpy as np
import pandas as pd

from ridership_bayes.inference.diagnostics import DiagnosticsComputer
from ridership_bayes.inference.draws import PosteriorDraws
from ridership_bayes.inference.intervals import credible_interval


@dataclass(frozen=True)
class ParameterSummary:
    """Summary row of one scalar parameter."""

    name: str
    mean: float
    median: float
    sd: float
    lower: float
    upper: float
    ess: float
    rhat: float

    def __str__(self) -> str:
        return f"{self.name}: {self.mean:.3f} [{self.lower:.3f}, {self.upper:.3f}]"


class PosteriorSummary:
    """Posterior summary table for quick inspection of a fit."""

    POINT_ESTIMATES = ("mean", "median")

    def __init__(self, rows: List[ParameterSummary], interval_mass: float, point: str) -> None:
        self.rows = list(rows)
        self.interval_mass = interval_mass
        self.point = point
        self._by_name: Dict[str, ParameterSummary] = {row.name: row for row in self.rows}

    @classmethod
    def from_draws(
        cls,
        draws: PosteriorDraws,
        interval_mass: float = 0.89,
        point: str = "mean",
    ) -> "PosteriorSummary":
        """
        Summarize every parameter in ``draws``.

        Parameters
        ----------
        draws : PosteriorDraws
            Posterior draws (not modified)
        interval_mass : float
            Credible-interval mass in (0, 1). Default 0.89.
        point : str
            Central estimate the interval must contain: "mean" or "median".
        """
        if point not in cls.POINT_ESTIMATES:
            raise ValueError(f"point must be one of {cls.POINT_ESTIMATES}. Got {point!r}")
        if not (0.0 < interval_mass < 1.0):
            raise ValueError(f"interval_mass must be in (0, 1). Got {interval_mass}")
        if draws.n_draws == 0:
            raise ValueError("Cannot summarize an empty set of draws")

        convergence = DiagnosticsComputer.summarize(draws)
        rows = []
        for name, values in draws.scalar_draws().items():
            mean = float(np.mean(values))
            median = float(np.median(values))
            lower, upper = credible_interval(
                values, interval_mass, mean if point == "mean" else median
            )
            rows.append(
                ParameterSummary(
                    name=name,
                    mean=mean,
                    median=median,
                    sd=float(np.std(values, ddof=1)) if len(values) > 1 else 0.0,
                    lower=lower,
                    upper=upper,
                    ess=convergence[name]["ess"],
                    rhat=convergence[name]["rhat"],
                )
            )
        return cls(rows, interval_mass, point)

    @property
    def names(self) -> List[str]:
        return [row.name for row in self.rows]

    def __getitem__(self, name: str) -> ParameterSummary:
        return self._by_name[name]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[ParameterSummary]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def to_frame(self) -> pd.DataFrame:
        """Summary as a DataFrame indexed by parameter name."""
        frame = pd.DataFrame([vars(row) for row in self.rows]).set_index("name")
        pct = round(100 * self.interval_mass)
        return frame.rename(columns={"lower": f"hdi_{pct}_lower", "upper": f"hdi_{pct}_upper"})

    def __repr__(self) -> str:
        return (
            f"PosteriorSummary(params={len(self.rows)}, "
            f"interval_mass={self.interval_mass}, point={self.point!r})"
        )
