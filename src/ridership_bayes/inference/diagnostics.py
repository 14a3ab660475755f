"""
Convergence and sampling diagnostics.

Key diagnostics:
- Split R-hat (potential scale reduction): <1.01 indicates convergence
- ESS (effective sample size): >400 in total recommended
- Divergences: any divergence is worth a look; >2% of draws signals bias
- Tree depth: frequent max-depth hits mean ``max_depth`` should be raised

``SamplingDiagnostics`` is the per-chain (and merged) record returned with
every fit; ``DiagnosticsComputer`` computes R-hat and ESS from draws.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple
import numpy as np
from numpy.typing import NDArray

from ridership_bayes.inference.draws import PosteriorDraws


@dataclass
class SamplingDiagnostics:
    """Sampler behaviour over the retained iterations of one or more chains."""

    n_draws: int
    divergences: int
    mean_tree_depth: float
    max_depth_hits: int
    acceptance_rate: float
    step_size: float
    chains: Tuple[int, ...] = ()
    warnings: List[str] = field(default_factory=list)

    @property
    def divergence_rate(self) -> float:
        return self.divergences / self.n_draws if self.n_draws else 0.0

    @property
    def max_depth_rate(self) -> float:
        return self.max_depth_hits / self.n_draws if self.n_draws else 0.0

    @classmethod
    def merge(cls, parts: Sequence["SamplingDiagnostics"]) -> "SamplingDiagnostics":
        """Combine per-chain records, weighting averages by draw count."""
        n = sum(p.n_draws for p in parts)

        def weighted(attr: str) -> float:
            if n == 0:
                return float("nan")
            return float(sum(getattr(p, attr) * p.n_draws for p in parts if p.n_draws) / n)

        return cls(
            n_draws=n,
            divergences=sum(p.divergences for p in parts),
            mean_tree_depth=weighted("mean_tree_depth"),
            max_depth_hits=sum(p.max_depth_hits for p in parts),
            acceptance_rate=weighted("acceptance_rate"),
            step_size=float(np.mean([p.step_size for p in parts])) if parts else float("nan"),
            chains=tuple(c for p in parts for c in p.chains),
        )


class DiagnosticsComputer:
    """
    Compute convergence diagnostics from posterior samples.

    Includes: split R-hat, ESS, per-parameter tables.
    """

    @staticmethod
    def rhat(posterior_samples: NDArray[np.float64]) -> float:
        """
        Compute split R-hat.

        Each chain is cut in half and the halves treated as separate chains,
        so a single chain is enough to detect drift.

        Parameters
        ----------
        posterior_samples : NDArray[np.float64]
            Samples of one scalar, shape (chains, draws) or (draws,).

        Returns
        -------
        rhat : float
            Potential scale reduction factor; NaN with fewer than 4 draws.
        """
        samples = np.atleast_2d(np.asarray(posterior_samples, dtype=np.float64))
        n_draws = samples.shape[1]
        if n_draws < 4:
            return float("nan")

        half = n_draws // 2
        splits = np.concatenate([samples[:, :half], samples[:, -half:]], axis=0)

        chain_means = splits.mean(axis=1)
        B = half * np.var(chain_means, ddof=1)
        W = np.mean(np.var(splits, axis=1, ddof=1))

        if W <= 0:
            return 1.0

        var_hat = ((half - 1) / half) * W + B / half
        return float(np.sqrt(var_hat / W))

    @staticmethod
    def _autocovariance(x: NDArray[np.float64]) -> NDArray[np.float64]:
        n = len(x)
        centered = x - x.mean()
        size = 1 << int(np.ceil(np.log2(2 * n)))
        spectrum = np.fft.rfft(centered, n=size)
        return np.fft.irfft(spectrum * np.conjugate(spectrum), n=size)[:n] / n

    @staticmethod
    def ess(posterior_samples: NDArray[np.float64]) -> float:
        """
        Compute effective sample size.

        Autocorrelations are combined across chains and summed with Geyer's
        initial monotone sequence.

        Parameters
        ----------
        posterior_samples : NDArray[np.float64]
            Samples of one scalar, shape (chains, draws) or (draws,).

        Returns
        -------
        ess : float
            Effective sample size over all chains; NaN with fewer than 4 draws.
        """
        samples = np.atleast_2d(np.asarray(posterior_samples, dtype=np.float64))
        m, n = samples.shape
        if n < 4:
            return float("nan")

        acov = np.array([DiagnosticsComputer._autocovariance(chain) for chain in samples])
        chain_var = acov[:, 0] * n / (n - 1.0)
        mean_var = chain_var.mean()
        var_plus = mean_var * (n - 1.0) / n
        if m > 1:
            var_plus += np.var(samples.mean(axis=1), ddof=1)

        if var_plus < 1e-12:
            return float(m * n)  # No variation -> ESS = total draws

        rho = 1.0 - (mean_var - acov.mean(axis=0)) / var_plus
        rho[0] = 1.0

        pair_sums: List[float] = []
        for k in range(0, n - 1, 2):
            pair = rho[k] + rho[k + 1]
            if pair < 0:
                break
            if pair_sums:
                pair = min(pair, pair_sums[-1])
            pair_sums.append(pair)

        tau = -1.0 + 2.0 * sum(pair_sums)
        tau = max(tau, 1.0 / np.log10(m * n))
        return float(m * n / tau)

    @staticmethod
    def summarize(draws: PosteriorDraws) -> Dict[str, Dict[str, float]]:
        """Split R-hat and ESS for every scalar parameter entry."""
        stacked = draws.stacked()
        table = {}
        for j, label in enumerate(draws.layout.scalar_names()):
            samples = stacked[:, :, j]
            table[label] = {
                "rhat": DiagnosticsComputer.rhat(samples),
                "ess": DiagnosticsComputer.ess(samples),
            }
        return table

    @staticmethod
    def divergence_rate(diagnostics: SamplingDiagnostics) -> float:
        """Fraction of retained draws that ended in a divergence."""
        return diagnostics.divergence_rate
