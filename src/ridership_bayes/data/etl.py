"""
Derived columns for the route ridership table.

Raw input has one row per route with 2015 and 2019 ridership and
service hours. From these we derive

    ridesDiff           = rides2019 - rides2015
    HrsDiff             = hrs2019 - hrs2015
    ridesPct            = ridesDiff / rides2015
    hoursChangeFraction = HrsDiff / hrs2015
    ridesRate           = log(rides2019 / rides2015)   (the model response)
    serviceChange       = "increase" | "decrease" | "none"

The service-change label uses a caller-supplied threshold on
``hoursChangeFraction``; it is only used for presentation.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd

from ridership_bayes.data.dataset import DEFAULT_CLASS_TABLE, ClassTable, DataSet
from ridership_bayes.errors import DataBindingError

logger = logging.getLogger(__name__)

RAW_COLUMNS = ("route", "class", "rides2015", "rides2019", "hrs2015", "hrs2019")


def label_service_change(hours_change: pd.Series, threshold: float = 0.3) -> pd.Series:
    """Label each route's service change against a symmetric threshold."""
    if threshold <= 0:
        raise ValueError(f"threshold must be positive. Got {threshold}")
    labels = np.where(
        hours_change >= threshold,
        "increase",
        np.where(hours_change <= -threshold, "decrease", "none"),
    )
    return pd.Series(labels, index=hours_change.index, name="serviceChange")


def derive_columns(raw: pd.DataFrame, change_threshold: float = 0.3) -> pd.DataFrame:
    """
    Add difference, percent, log-rate and service-change columns.

    Parameters
    ----------
    raw : pd.DataFrame
        Must contain ``RAW_COLUMNS``.
    change_threshold : float
        Fractional hours change at which a route counts as an
        increase/decrease. Default 0.3.

    Returns
    -------
    frame : pd.DataFrame
        Copy of ``raw`` with the derived columns appended. Routes with
        non-positive ridership or hours in either year are dropped since
        their ratios are undefined.
    """
    missing = [c for c in RAW_COLUMNS if c not in raw.columns]
    if missing:
        raise DataBindingError(f"Raw ridership table is missing column(s) {missing}")

    frame = raw.copy()
    positive = (
        (frame["rides2015"] > 0)
        & (frame["rides2019"] > 0)
        & (frame["hrs2015"] > 0)
        & (frame["hrs2019"] > 0)
    )
    n_dropped = int((~positive).sum())
    if n_dropped:
        logger.warning(
            "Dropping %d route(s) with non-positive ridership or hours", n_dropped
        )
    frame = frame.loc[positive].copy()

    frame["ridesDiff"] = frame["rides2019"] - frame["rides2015"]
    frame["HrsDiff"] = frame["hrs2019"] - frame["hrs2015"]
    frame["ridesPct"] = frame["ridesDiff"] / frame["rides2015"]
    frame["hoursChangeFraction"] = frame["HrsDiff"] / frame["hrs2015"]
    frame["ridesRate"] = np.log(frame["rides2019"] / frame["rides2015"])
    frame["responseLogRate"] = frame["ridesRate"]
    frame["serviceChange"] = label_service_change(
        frame["hoursChangeFraction"], threshold=change_threshold
    )
    return frame


def load_ridership_csv(
    path: Union[str, Path],
    class_table: ClassTable = DEFAULT_CLASS_TABLE,
    change_threshold: float = 0.3,
) -> DataSet:
    """Read the raw route CSV, derive columns and encode it as a DataSet."""
    raw = pd.read_csv(path)
    frame = derive_columns(raw, change_threshold=change_threshold)
    logger.info("Loaded %d routes from %s", len(frame), path)
    return DataSet.from_frame(frame, class_table=class_table)
