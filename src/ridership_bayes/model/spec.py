"""
Model specifications for ridership change vs. service-hours change.

Two variants share one likelihood

    y_i ~ Normal(muhat_i, σ)

Pooled:
    muhat_i = μ
    μ ~ Normal(0, 1)
    σ ~ HalfCauchy(1)

Hierarchical (route class c = class[i], hours change h = hours[i]):
    muhat_i = a_C[c] + b_H[c] · h
    a_C[c]  ~ Normal(A, σ_class)
    b_H[c]  ~ Normal(B_H, σ_hours)
    A, B_H  ~ Normal(0, 2)
    σ, σ_class, σ_hours ~ HalfCauchy(1)

A ModelSpec fixes the parameter layout and validates data; the joint
density itself is assembled by ``model.builder.ModelBuilder``. Scale
parameters are flagged positive in the layout and sampled on the log
scale.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import numpy as np
from numpy.typing import NDArray

from ridership_bayes.data.dataset import DEFAULT_CLASS_TABLE, ClassTable, DataSet
from ridership_bayes.errors import DataBindingError
from ridership_bayes.model.priors import PriorSpec


class ParameterLayout:
    """
    Ordered mapping between named parameters and a flat vector.

    Attributes
    ----------
    names : List[str]
        Parameter names in layout order
    shapes : Dict[str, Tuple[int, ...]]
        Shape of each parameter, ``()`` for scalars
    slices : Dict[str, slice]
        Position of each parameter in the flat vector
    positive_names : List[str]
        Scale parameters constrained to be positive
    size : int
        Flat vector length
    """

    def __init__(self, entries: Sequence[Tuple[str, Tuple[int, ...], bool]]) -> None:
        self.names: List[str] = []
        self.shapes: Dict[str, Tuple[int, ...]] = {}
        self.slices: Dict[str, slice] = {}
        self.positive_names: List[str] = []

        offset = 0
        for name, shape, positive in entries:
            n = int(np.prod(shape)) if shape else 1
            self.names.append(name)
            self.shapes[name] = tuple(shape)
            self.slices[name] = slice(offset, offset + n)
            if positive:
                self.positive_names.append(name)
            offset += n

        self.size = offset

    def unpack(self, flat: NDArray[np.float64]) -> Dict[str, NDArray[np.float64]]:
        """Split ``(..., size)`` into ``{name: (..., *shape)}``."""
        flat = np.asarray(flat)
        lead = flat.shape[:-1]
        return {
            name: flat[..., self.slices[name]].reshape(lead + self.shapes[name])
            for name in self.names
        }

    def pack(self, values: Mapping[str, NDArray]) -> NDArray[np.float64]:
        """Inverse of ``unpack`` for a single parameter point."""
        flat = np.empty(self.size, dtype=np.float64)
        for name in self.names:
            flat[self.slices[name]] = np.ravel(np.asarray(values[name], dtype=np.float64))
        return flat

    def scalar_names(self) -> List[str]:
        """One label per flat entry; vector entries use 1-based ``name[i]``."""
        labels: List[str] = []
        for name in self.names:
            if self.shapes[name]:
                n = self.slices[name].stop - self.slices[name].start
                labels.extend(f"{name}[{i + 1}]" for i in range(n))
            else:
                labels.append(name)
        return labels

    def __repr__(self) -> str:
        return f"ParameterLayout(names={self.names}, size={self.size})"


class BoundModel:
    """
    A ModelSpec bound to a validated DataSet.

    Arrays are copied and marked read-only so chains can share one
    instance. Class indices are stored zero-based.
    """

    def __init__(self, spec: "ModelSpec", dataset: DataSet) -> None:
        self.spec = spec
        self.dataset = dataset
        self.layout = spec.layout

        class_zero = np.array(dataset.class_index, dtype=np.int64) - 1
        hours = np.array(dataset.hours_change, dtype=np.float64)
        response = np.array(dataset.response, dtype=np.float64)
        for arr in (class_zero, hours, response):
            arr.setflags(write=False)

        self.class_zero = class_zero
        self.hours = hours
        self.response = response
        self.n_obs = len(response)

    def __repr__(self) -> str:
        return f"BoundModel(kind={self.spec.kind!r}, n_obs={self.n_obs})"


class ModelSpec:
    """
    Base class of the model variants.

    Subclasses define ``kind``, ``_build_layout`` and ``linear_predictor``.
    """

    kind = "abstract"

    def __init__(
        self,
        class_table: ClassTable = DEFAULT_CLASS_TABLE,
        priors: Optional[PriorSpec] = None,
    ) -> None:
        self.class_table = class_table
        self.priors = priors or PriorSpec()
        self.layout = self._build_layout()

    @property
    def n_classes(self) -> int:
        return self.class_table.n_classes

    def _build_layout(self) -> ParameterLayout:
        raise NotImplementedError

    def bind(self, dataset: DataSet) -> BoundModel:
        """
        Validate ``dataset`` against this spec and bind them.

        Raises
        ------
        DataBindingError
            If the dataset was encoded with a different class table or any
            class index lies outside ``1..K``.
        """
        if dataset.class_table != self.class_table:
            raise DataBindingError(
                f"DataSet class table {dataset.class_table!r} does not match "
                f"model class table {self.class_table!r}"
            )
        idx = dataset.class_index
        bad = (idx < 1) | (idx > self.n_classes)
        if np.any(bad):
            raise DataBindingError(
                f"Class index must be in [1, {self.n_classes}]. "
                f"Got {sorted(set(idx[bad].tolist()))} for route(s) "
                f"{dataset.routes[bad][:5].tolist()}"
            )
        return BoundModel(self, dataset)

    def linear_predictor(
        self,
        params: Mapping[str, NDArray[np.float64]],
        class_index: NDArray[np.int64],
        hours: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """
        Evaluate muhat for every draw and every covariate row.

        Parameters
        ----------
        params : Mapping[str, NDArray]
            Constrained parameters with a leading draw axis, e.g. ``mu`` of
            shape (n_draws,) or ``a_C`` of shape (n_draws, K)
        class_index : NDArray[np.int64]
            1-based class indices, shape (n_points,)
        hours : NDArray[np.float64]
            Hours-change fractions, shape (n_points,)

        Returns
        -------
        muhat : NDArray[np.float64]
            Shape (n_draws, n_points)
        """
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModelSpec):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.class_table == other.class_table
            and self.priors == other.priors
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.class_table))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(n_classes={self.n_classes}, "
            f"params={self.layout.names}, priors={self.priors})"
        )


class PooledSpec(ModelSpec):
    """Single global mean and residual scale; no covariates."""

    kind = "pooled"

    def _build_layout(self) -> ParameterLayout:
        return ParameterLayout([("mu", (), False), ("sigma", (), True)])

    def linear_predictor(
        self,
        params: Mapping[str, NDArray[np.float64]],
        class_index: NDArray[np.int64],
        hours: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        mu = np.asarray(params["mu"], dtype=np.float64).reshape(-1)
        n_points = len(np.asarray(hours))
        return np.repeat(mu[:, None], n_points, axis=1)


class HierarchicalSpec(ModelSpec):
    """Per-class intercept and slope with shared parent normals."""

    kind = "hierarchical"

    def _build_layout(self) -> ParameterLayout:
        k = self.n_classes
        return ParameterLayout(
            [
                ("A", (), False),
                ("B_H", (), False),
                ("sigma", (), True),
                ("sigma_class", (), True),
                ("sigma_hours", (), True),
                ("a_C", (k,), False),
                ("b_H", (k,), False),
            ]
        )

    def linear_predictor(
        self,
        params: Mapping[str, NDArray[np.float64]],
        class_index: NDArray[np.int64],
        hours: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        a = np.asarray(params["a_C"], dtype=np.float64).reshape(-1, self.n_classes)
        b = np.asarray(params["b_H"], dtype=np.float64).reshape(-1, self.n_classes)
        idx = np.asarray(class_index, dtype=np.int64) - 1
        hours = np.asarray(hours, dtype=np.float64)
        return a[:, idx] + b[:, idx] * hours[None, :]


MODEL_KINDS = {
    PooledSpec.kind: PooledSpec,
    HierarchicalSpec.kind: HierarchicalSpec,
}


def make_spec(
    kind: str,
    class_table: ClassTable = DEFAULT_CLASS_TABLE,
    priors: Optional[PriorSpec] = None,
) -> ModelSpec:
    """Create a ModelSpec from its tag (``"pooled"`` or ``"hierarchical"``)."""
    try:
        cls = MODEL_KINDS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown model kind {kind!r}. Expected one of {sorted(MODEL_KINDS)}"
        ) from None
    return cls(class_table=class_table, priors=priors)
