"""
Observation table consumed by the models.

One row per route: route id, dense class index (1..K), fractional change
in service hours and the log ridership ratio

    responseLogRate = log(rides_2019 / rides_2015)

Class labels are encoded through an explicit, versioned ``ClassTable``
rather than inferred from label order at runtime.
"""

from typing import Iterable, Mapping, Sequence, Tuple
import numpy as np
from numpy.typing import NDArray

from ridership_bayes.errors import DataBindingError


REQUIRED_COLUMNS = ("route", "class", "hoursChangeFraction", "responseLogRate")


class ClassTable:
    """
    Versioned lookup table between route-class labels and dense indices.

    Index ``i`` (1-based) corresponds to ``labels[i - 1]``.
    """

    def __init__(self, labels: Sequence[str], version: str) -> None:
        labels = tuple(labels)
        if not labels:
            raise ValueError("ClassTable needs at least one label")
        if len(set(labels)) != len(labels):
            raise ValueError(f"ClassTable labels must be unique. Got {labels}")

        self.labels: Tuple[str, ...] = labels
        self.version = version
        self._index = {label: i + 1 for i, label in enumerate(labels)}

    @property
    def n_classes(self) -> int:
        return len(self.labels)

    def index_of(self, label: str) -> int:
        try:
            return self._index[label]
        except KeyError:
            raise DataBindingError(
                f"Unknown route class {label!r} for class table "
                f"version {self.version!r} (known: {list(self.labels)})"
            ) from None

    def label_of(self, index: int) -> str:
        if not (1 <= index <= self.n_classes):
            raise IndexError(f"Class index must be in [1, {self.n_classes}]. Got {index}")
        return self.labels[index - 1]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClassTable):
            return NotImplemented
        return self.labels == other.labels and self.version == other.version

    def __hash__(self) -> int:
        return hash((self.labels, self.version))

    def __repr__(self) -> str:
        return f"ClassTable(version={self.version!r}, labels={list(self.labels)})"


DEFAULT_CLASS_TABLE = ClassTable(
    labels=("CoreLoc", "CommExp", "SuburbL", "Support"),
    version="2015-2019",
)


def _readonly(values: NDArray) -> NDArray:
    values = np.array(values, copy=True)
    values.setflags(write=False)
    return values


class DataSet:
    """
    Immutable observation table.

    Attributes
    ----------
    routes : NDArray
        Route identifiers, unique, shape (n,)
    class_index : NDArray[np.int64]
        Dense 1-based class indices, shape (n,)
    hours_change : NDArray[np.float64]
        Fractional service-hours change, shape (n,)
    response : NDArray[np.float64]
        Log ridership ratio, shape (n,)
    class_table : ClassTable
        Encoding the class indices were produced with
    """

    def __init__(
        self,
        routes: Iterable,
        class_index: Iterable[int],
        hours_change: Iterable[float],
        response: Iterable[float],
        class_table: ClassTable = DEFAULT_CLASS_TABLE,
    ) -> None:
        routes_arr = np.asarray(list(routes), dtype=object)
        try:
            class_arr = np.asarray(list(class_index), dtype=np.float64)
            hours_arr = np.asarray(list(hours_change), dtype=np.float64)
            response_arr = np.asarray(list(response), dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise DataBindingError(f"Columns must be numeric: {exc}") from exc

        n = len(routes_arr)
        lengths = {len(class_arr), len(hours_arr), len(response_arr)}
        if lengths != {n}:
            raise DataBindingError(
                f"All columns must have the same length. Got route={n}, "
                f"class={len(class_arr)}, hoursChangeFraction={len(hours_arr)}, "
                f"responseLogRate={len(response_arr)}"
            )
        if n == 0:
            raise DataBindingError("DataSet must contain at least one observation")

        if len(set(routes_arr.tolist())) != n:
            raise DataBindingError("Route identifiers must be unique")

        for name, column in (
            ("class", class_arr),
            ("hoursChangeFraction", hours_arr),
            ("responseLogRate", response_arr),
        ):
            bad = ~np.isfinite(column)
            if np.any(bad):
                raise DataBindingError(
                    f"Column {name!r} has {int(bad.sum())} non-finite value(s), "
                    f"e.g. route {routes_arr[bad][0]!r}"
                )

        if not np.all(class_arr == np.round(class_arr)):
            raise DataBindingError("Class indices must be integers")

        self.routes = _readonly(routes_arr)
        self.class_index = _readonly(class_arr.astype(np.int64))
        self.hours_change = _readonly(hours_arr)
        self.response = _readonly(response_arr)
        self.class_table = class_table

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping],
        class_table: ClassTable = DEFAULT_CLASS_TABLE,
    ) -> "DataSet":
        """
        Build from row mappings with the ``REQUIRED_COLUMNS`` keys.

        ``class`` may be a label from ``class_table`` or an integer index.
        """
        routes, classes, hours, response = [], [], [], []
        for i, row in enumerate(records):
            missing = [c for c in REQUIRED_COLUMNS if c not in row]
            if missing:
                raise DataBindingError(f"Row {i} is missing column(s) {missing}")
            routes.append(row["route"])
            classes.append(_encode_class(row["class"], class_table))
            hours.append(row["hoursChangeFraction"])
            response.append(row["responseLogRate"])
        return cls(routes, classes, hours, response, class_table=class_table)

    @classmethod
    def from_frame(cls, frame, class_table: ClassTable = DEFAULT_CLASS_TABLE) -> "DataSet":
        """Build from a pandas DataFrame with the ``REQUIRED_COLUMNS``."""
        missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
        if missing:
            raise DataBindingError(f"DataFrame is missing column(s) {missing}")
        classes = [_encode_class(value, class_table) for value in frame["class"]]
        return cls(
            frame["route"].tolist(),
            classes,
            frame["hoursChangeFraction"].to_numpy(dtype=np.float64),
            frame["responseLogRate"].to_numpy(dtype=np.float64),
            class_table=class_table,
        )

    @property
    def n_obs(self) -> int:
        return len(self.routes)

    def __len__(self) -> int:
        return self.n_obs

    def class_counts(self) -> NDArray[np.int64]:
        """Observations per class, shape (K,), index 0 is class 1."""
        counts = np.zeros(self.class_table.n_classes, dtype=np.int64)
        valid = (self.class_index >= 1) & (self.class_index <= self.class_table.n_classes)
        np.add.at(counts, self.class_index[valid] - 1, 1)
        return counts

    def __repr__(self) -> str:
        return f"DataSet(n_obs={self.n_obs}, class_table={self.class_table.version!r})"


def _encode_class(value, class_table: ClassTable) -> int:
    if isinstance(value, str):
        return class_table.index_of(value)
    if isinstance(value, (bool, np.bool_)):
        raise DataBindingError(f"Class must be a label or integer index. Got {value!r}")
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)) and np.isfinite(value) and float(value).is_integer():
        return int(value)
    raise DataBindingError(f"Class must be a label or integer index. Got {value!r}")
