"""
Credible intervals over empirical draws.

Intervals are highest-density style: the narrowest window of the sorted
draws holding the requested probability mass (``arviz.hdi``). When that
window does not cover the reported point estimate (strongly skewed draw
sets), the narrowest window that does cover it is used instead, so
``lower <= estimate <= upper`` always holds.
"""

from typing import Optional, Tuple
import numpy as np
from numpy.typing import NDArray
import arviz as az


def credible_interval(
    values: NDArray[np.float64],
    mass: float = 0.89,
    point: Optional[float] = None,
) -> Tuple[float, float]:
    """
    Narrowest interval of ``values`` containing ``mass`` of the draws.

    Parameters
    ----------
    values : NDArray[np.float64]
        1-D draws of one quantity
    mass : float
        Probability mass in (0, 1). Default 0.89.
    point : float, optional
        Point estimate the interval must contain.

    Returns
    -------
    lower, upper : float
    """
    if not (0.0 < mass < 1.0):
        raise ValueError(f"mass must be in (0, 1). Got {mass}")
    values = np.asarray(values, dtype=np.float64).ravel()
    if values.size == 0:
        raise ValueError("Cannot compute an interval from zero draws")

    lower, upper = (float(v) for v in az.hdi(values, hdi_prob=mass))
    if point is None or lower <= point <= upper:
        return lower, upper

    ordered = np.sort(values)
    n = len(ordered)
    k = min(n - 1, max(1, int(np.floor(mass * n))))
    lows = ordered[: n - k]
    highs = ordered[k:]
    covers = (lows <= point) & (highs >= point)
    if not np.any(covers):
        return min(lower, point), max(upper, point)
    widths = np.where(covers, highs - lows, np.inf)
    i = int(np.argmin(widths))
    return float(lows[i]), float(highs[i])


def column_intervals(
    matrix: NDArray[np.float64],
    mass: float = 0.89,
    points: Optional[NDArray[np.float64]] = None,
) -> NDArray[np.float64]:
    """Apply ``credible_interval`` to every column; returns shape (n_columns, 2)."""
    matrix = np.asarray(matrix, dtype=np.float64)
    out = np.empty((matrix.shape[1], 2))
    for j in range(matrix.shape[1]):
        point = None if points is None else float(points[j])
        out[j] = credible_interval(matrix[:, j], mass, point)
    return out
