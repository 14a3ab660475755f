"""
Posterior draws container.

Holds, per chain, the ordered sequence of constrained parameter vectors
produced by a sampler. Arrays are read-only; summaries and predictions
consume them without copying or mutating.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence
import numpy as np
from numpy.typing import NDArray
import arviz as az

from ridership_bayes.model.spec import ParameterLayout

logger = logging.getLogger(__name__)


class PosteriorDraws:
    """
    Posterior samples laid out according to a ModelSpec's ParameterLayout.

    Attributes
    ----------
    layout : ParameterLayout
        Names, shapes and positions of the parameters
    chain_ids : List[int]
        Identifier of each stored chain, in merge order
    """

    def __init__(
        self,
        layout: ParameterLayout,
        chains: Sequence[NDArray[np.float64]],
        chain_ids: Optional[Sequence[int]] = None,
    ) -> None:
        arrays = []
        for i, chain in enumerate(chains):
            arr = np.array(chain, dtype=np.float64, copy=True).reshape(-1, layout.size)
            arr.setflags(write=False)
            arrays.append(arr)

        if chain_ids is None:
            chain_ids = list(range(len(arrays)))
        if len(chain_ids) != len(arrays):
            raise ValueError(
                f"Got {len(chain_ids)} chain ids for {len(arrays)} chains"
            )

        self.layout = layout
        self.chain_ids = list(chain_ids)
        self._chains: List[NDArray[np.float64]] = arrays
        if arrays:
            values = np.concatenate(arrays, axis=0)
        else:
            values = np.empty((0, layout.size))
        values.setflags(write=False)
        self._values = values

    @property
    def n_chains(self) -> int:
        return len(self._chains)

    @property
    def n_draws(self) -> int:
        """Total draws over all chains."""
        return self._values.shape[0]

    @property
    def draws_per_chain(self) -> List[int]:
        return [len(chain) for chain in self._chains]

    @property
    def values(self) -> NDArray[np.float64]:
        """All draws concatenated chain after chain, shape (n_draws, layout.size)."""
        return self._values

    def chain(self, i: int) -> NDArray[np.float64]:
        """Draws of the i-th stored chain, shape (n, layout.size)."""
        return self._chains[i]

    def __getitem__(self, name: str) -> NDArray[np.float64]:
        """Draws of one parameter, shape (n_draws, *shape)."""
        if name not in self.layout.slices:
            raise KeyError(f"Unknown parameter {name!r}. Known: {self.layout.names}")
        return self._values[:, self.layout.slices[name]].reshape(
            (self.n_draws,) + self.layout.shapes[name]
        )

    def __contains__(self, name: object) -> bool:
        return name in self.layout.slices

    def as_dict(self) -> Dict[str, NDArray[np.float64]]:
        return self.layout.unpack(self._values)

    def scalar_draws(self) -> Dict[str, NDArray[np.float64]]:
        """One 1-D draw array per scalar entry, keyed like ``a_C[2]``."""
        return {
            label: self._values[:, j]
            for j, label in enumerate(self.layout.scalar_names())
        }

    def stacked(self) -> NDArray[np.float64]:
        """
        Draws as (n_chains, n, layout.size), truncated to the shortest chain.

        Chains differ in length only after a cancelled fit.
        """
        if not self._chains:
            return np.empty((0, 0, self.layout.size))
        n = min(len(chain) for chain in self._chains)
        if any(len(chain) != n for chain in self._chains):
            logger.warning(
                "Chains have unequal lengths %s; truncating to %d draws",
                self.draws_per_chain,
                n,
            )
        return np.stack([chain[:n] for chain in self._chains])

    def to_inference_data(
        self,
        coords: Optional[Mapping[str, Sequence]] = None,
        dims: Optional[Mapping[str, Sequence[str]]] = None,
    ):
        """
        Convert to ``arviz.InferenceData`` (posterior group only).

        Parameters
        ----------
        coords : Mapping, optional
            Coordinate values, e.g. ``{"route_class": labels}``
        dims : Mapping, optional
            Dimension names per vector parameter, e.g. ``{"a_C": ["route_class"]}``
        """
        stacked = self.stacked()
        n_chains, n = stacked.shape[:2]
        posterior = {
            name: stacked[:, :, self.layout.slices[name]].reshape(
                (n_chains, n) + self.layout.shapes[name]
            )
            for name in self.layout.names
        }
        return az.from_dict(
            posterior=posterior,
            coords=dict(coords) if coords else None,
            dims=dict(dims) if dims else None,
        )

    @classmethod
    def from_inference_data(cls, idata, layout: ParameterLayout) -> "PosteriorDraws":
        """Build from an InferenceData whose posterior has the layout's variables."""
        posterior = idata.posterior
        missing = [name for name in layout.names if name not in posterior]
        if missing:
            raise ValueError(f"InferenceData posterior is missing {missing}")

        n_chains = posterior.sizes["chain"]
        n = posterior.sizes["draw"]
        columns = [
            np.asarray(posterior[name].values, dtype=np.float64).reshape(n_chains, n, -1)
            for name in layout.names
        ]
        flat = np.concatenate(columns, axis=2)
        chain_ids = [int(c) for c in posterior.coords["chain"].values]
        return cls(layout, [flat[c] for c in range(n_chains)], chain_ids=chain_ids)

    def __repr__(self) -> str:
        return (
            f"PosteriorDraws(params={self.layout.names}, chains={self.n_chains}, "
            f"draws={self.n_draws})"
        )
