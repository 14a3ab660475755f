"""
NUTS sampling orchestration for the ridership models.

Builds the PyMC model for a ModelSpec and runs each chain as its own
``pm.sample`` call on a thread pool, so chains can fail or be cancelled
independently. Draws are merged and sampling diagnostics reported.

Per chain:
1. jitter+adapt_diag initialization, up to ``max_init_attempts`` starting
   points tried while the log density is non-finite
2. Warm-up with dual-averaging step size and diagonal mass-matrix
   adaptation; warm-up draws are discarded
3. Sampling; divergences, tree depth and acceptance statistics recorded

Cancellation is cooperative: the per-draw callback raises
``KeyboardInterrupt``, which PyMC treats as an interrupt and returns the
draws taken so far.
"""

import logging
import threading
import time
import warnings
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional
import numpy as np
from numpy.typing import NDArray
import arviz as az
import pymc as pm
from pymc.exceptions import SamplingError as PyMCSamplingError

from ridership_bayes.config import SamplerConfig
from ridership_bayes.data.dataset import DataSet
from ridership_bayes.errors import SamplingDiagnosticWarning, SamplingError
from ridership_bayes.inference.diagnostics import SamplingDiagnostics
from ridership_bayes.inference.draws import PosteriorDraws
from ridership_bayes.model.builder import ModelBuilder
from ridership_bayes.model.spec import ModelSpec

logger = logging.getLogger(__name__)

# callback(chain, iteration, phase) with phase "warmup" or "sampling"
IterationCallback = Callable[[int, int, str], None]

ACCEPTANCE_TOLERANCE = 0.15
MAX_DEPTH_RATE_WARNING = 0.1


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and running chains."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


class ChainResult:
    """Output of one chain before merging."""

    def __init__(
        self,
        chain: int,
        draws: NDArray[np.float64],
        diagnostics: SamplingDiagnostics,
        partial: bool,
        idata=None,
    ) -> None:
        self.chain = chain
        self.draws = draws
        self.diagnostics = diagnostics
        self.partial = partial
        self.idata = idata


class InferenceSummary:
    """Draws, diagnostics and bookkeeping from one fit."""

    def __init__(
        self,
        draws: PosteriorDraws,
        diagnostics: SamplingDiagnostics,
        n_draws: int,
        n_tune: int,
        n_chains: int,
        sampling_time: float,
        partial: bool = False,
        failed_chains: Optional[Dict[int, str]] = None,
        idata=None,
    ) -> None:
        """
        Initialize inference summary.

        Parameters
        ----------
        draws : PosteriorDraws
            Merged posterior draws of all successful chains
        diagnostics : SamplingDiagnostics
            Merged sampling diagnostics (warnings included)
        n_draws : int
            Requested post-warm-up draws per chain
        n_tune : int
            Warm-up iterations per chain
        n_chains : int
            Requested number of chains
        sampling_time : float
            Wall-clock sampling time (seconds)
        partial : bool
            True when cancellation stopped any chain early
        failed_chains : Dict[int, str], optional
            Chain id -> failure message for chains that raised
        idata : arviz.InferenceData, optional
            PyMC output of the successful chains concatenated along
            ``chain``; None when their lengths differ
        """
        self.draws = draws
        self.diagnostics = diagnostics
        self.n_draws = n_draws
        self.n_tune = n_tune
        self.n_chains = n_chains
        self.sampling_time = sampling_time
        self.partial = partial
        self.failed_chains = dict(failed_chains or {})
        self.idata = idata
        self.total_samples = draws.n_draws

    @property
    def warnings(self) -> List[str]:
        return self.diagnostics.warnings

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"InferenceSummary(draws={self.n_draws}, tune={self.n_tune}, "
            f"chains={self.n_chains}, total={self.total_samples}, "
            f"partial={self.partial}, time={self.sampling_time:.1f}s)"
        )


def _stat_mean(sample_stats, name: str) -> float:
    if name not in sample_stats or sample_stats[name].size == 0:
        return float("nan")
    return float(sample_stats[name].mean().item())


def _stat_sum(sample_stats, name: str) -> int:
    if name not in sample_stats:
        return 0
    return int(sample_stats[name].sum().item())


def _empty_result(chain: int, size: int) -> ChainResult:
    diagnostics = SamplingDiagnostics(
        0, 0, float("nan"), 0, float("nan"), float("nan"), (chain,)
    )
    return ChainResult(chain, np.empty((0, size)), diagnostics, partial=True)


def run_chain(
    spec: ModelSpec,
    dataset: DataSet,
    config: SamplerConfig,
    chain: int,
    seed: int,
    should_stop: Callable[[], bool],
    callback: Optional[IterationCallback] = None,
) -> ChainResult:
    """
    Run warm-up and sampling for one chain with PyMC's NUTS.

    Parameters
    ----------
    spec : ModelSpec
        Model variant to build
    dataset : DataSet
        Observations (already validated by the caller)
    config : SamplerConfig
        Iterations, adaptation target and tree depth
    chain : int
        Chain id used in logs, callbacks and errors
    seed : int
        Seed for this chain's initialization and transitions
    should_stop : callable
        Polled after every iteration
    callback : callable, optional
        ``callback(chain, iteration, phase)`` after every iteration

    Raises
    ------
    SamplingError
        If no finite starting point is found or the initial energy is bad.
    """
    layout = spec.layout
    if should_stop():
        logger.info("Chain %d cancelled before it started", chain)
        return _empty_result(chain, layout.size)

    # One model per chain; PyMC models are not shared across threads
    model = ModelBuilder(spec).build(dataset)
    warmup = config.warmup_iterations
    stopped_in: List[str] = []

    def on_draw(trace, draw) -> None:
        if draw.tuning:
            phase, iteration = "warmup", draw.draw_idx
        else:
            phase, iteration = "sampling", draw.draw_idx - warmup
        if callback is not None:
            callback(chain, iteration, phase)
        if should_stop():
            stopped_in.append(phase)
            raise KeyboardInterrupt

    try:
        idata = pm.sample(
            draws=config.sampling_iterations,
            tune=warmup,
            chains=1,
            cores=1,
            random_seed=seed,
            model=model,
            target_accept=config.target_accept,
            max_treedepth=config.max_depth,
            Emax=config.max_energy_error,
            jitter_max_retries=config.max_init_attempts - 1,
            callback=on_draw,
            progressbar=False,
            discard_tuned_samples=True,
            compute_convergence_checks=False,
            return_inferencedata=True,
        )
    except PyMCSamplingError as exc:
        raise SamplingError(f"Chain {chain}: {exc}", chain=chain) from exc
    except ValueError:
        # PyMC cannot build a trace when interrupted before the first kept draw
        if stopped_in and stopped_in[0] == "warmup":
            logger.info("Chain %d cancelled during warm-up", chain)
            return _empty_result(chain, layout.size)
        raise

    draws = PosteriorDraws.from_inference_data(idata, layout).chain(0)
    stats = idata.sample_stats
    completed = len(draws)
    diagnostics = SamplingDiagnostics(
        n_draws=completed,
        divergences=_stat_sum(stats, "diverging"),
        mean_tree_depth=_stat_mean(stats, "tree_depth"),
        max_depth_hits=_stat_sum(stats, "reached_max_treedepth"),
        acceptance_rate=_stat_mean(stats, "acceptance_rate"),
        step_size=_stat_mean(stats, "step_size"),
        chains=(chain,),
    )
    partial = bool(stopped_in) and completed < config.sampling_iterations
    if partial:
        logger.info(
            "Chain %d cancelled after %d of %d draws",
            chain,
            completed,
            config.sampling_iterations,
        )
    logger.info(
        "Chain %d finished: %d draws, %d divergences, accept %.3f, step size %.3g",
        chain,
        completed,
        diagnostics.divergences,
        diagnostics.acceptance_rate,
        diagnostics.step_size,
    )
    return ChainResult(chain, draws, diagnostics, partial, idata=idata)


def _merge_idata(results: List[ChainResult]):
    """Concatenate per-chain InferenceData when every chain has the same length."""
    parts = [r.idata for r in results if r.idata is not None]
    if not parts or len(parts) != len(results):
        return None
    if len({len(r.draws) for r in results}) != 1:
        return None
    if len(parts) == 1:
        return parts[0]
    return az.concat(*parts, dim="chain", reset_dim=True)


def check_diagnostics(
    diagnostics: SamplingDiagnostics,
    target_accept: float,
    max_depth: int,
) -> List[str]:
    """Record and emit SamplingDiagnosticWarnings for a merged diagnostics record."""
    messages = []
    if diagnostics.divergences:
        messages.append(
            f"{diagnostics.divergences} divergent transition(s) "
            f"({diagnostics.divergence_rate:.1%} of draws). Consider raising "
            f"target_accept or reparameterizing."
        )
    if (
        np.isfinite(diagnostics.acceptance_rate)
        and abs(diagnostics.acceptance_rate - target_accept) > ACCEPTANCE_TOLERANCE
    ):
        messages.append(
            f"Mean acceptance statistic {diagnostics.acceptance_rate:.3f} is far "
            f"from target_accept={target_accept}"
        )
    if diagnostics.max_depth_rate > MAX_DEPTH_RATE_WARNING:
        messages.append(
            f"{diagnostics.max_depth_hits} transition(s) hit max_depth={max_depth}. "
            f"Consider raising max_depth."
        )

    for message in messages:
        logger.warning(message)
        warnings.warn(message, SamplingDiagnosticWarning, stacklevel=3)
    diagnostics.warnings.extend(messages)
    return messages


class NUTSSampler:
    """
    NUTS sampler for the ridership models.

    Runs ``config.chains`` independent PyMC chains on up to
    ``config.n_workers`` threads and merges them into one InferenceSummary.
    """

    def __init__(self, config: Optional[SamplerConfig] = None, **options) -> None:
        """
        Initialize sampler.

        Parameters
        ----------
        config : SamplerConfig, optional
            Full configuration. If None, built from ``options``.
        **options
            SamplerConfig keyword arguments (ignored when ``config`` given).
        """
        if config is not None and options:
            raise ValueError("Pass either a SamplerConfig or keyword options, not both")
        self.config = config if config is not None else SamplerConfig(**options)

    def sample(
        self,
        spec: ModelSpec,
        dataset: DataSet,
        cancel_token: Optional[CancellationToken] = None,
        callback: Optional[IterationCallback] = None,
    ) -> InferenceSummary:
        """
        Fit ``spec`` to ``dataset``.

        Parameters
        ----------
        spec : ModelSpec
            PooledSpec or HierarchicalSpec
        dataset : DataSet
            Observations; validated before any sampling starts
        cancel_token : CancellationToken, optional
            Cancelling stops every chain after its in-flight iteration;
            the accumulated draws are returned with ``partial=True``
        callback : callable, optional
            ``callback(chain, iteration, phase)`` after every iteration. Called
            from worker threads. An exception raised here fails that chain.

        Returns
        -------
        summary : InferenceSummary

        Raises
        ------
        DataBindingError
            If the dataset cannot be bound to the ModelSpec.
        SamplingError
            If every chain failed, or a chain failed initialization with
            ``fail_fast``.
        Exception
            With ``fail_fast``, the first exception raised by any chain.
        """
        config = self.config
        bound = spec.bind(dataset)

        abort = threading.Event()
        external = cancel_token if cancel_token is not None else CancellationToken()

        def should_stop() -> bool:
            return external.cancelled or abort.is_set()

        seeds = [
            int(s.generate_state(1)[0])
            for s in np.random.SeedSequence(config.seed).spawn(config.chains)
        ]

        logger.info(
            "Sampling %s model: %d obs, %d chain(s) on %d worker(s), warmup=%d, draws=%d",
            spec.kind,
            bound.n_obs,
            config.chains,
            config.n_workers,
            config.warmup_iterations,
            config.sampling_iterations,
        )
        start_time = time.time()

        results: Dict[int, ChainResult] = {}
        failures: Dict[int, str] = {}
        first_error: Optional[Exception] = None

        with ThreadPoolExecutor(max_workers=config.n_workers) as pool:
            futures = {
                pool.submit(
                    run_chain,
                    spec,
                    dataset,
                    config,
                    chain,
                    seeds[chain],
                    should_stop,
                    callback,
                ): chain
                for chain in range(config.chains)
            }
            for future in as_completed(futures):
                chain = futures[future]
                try:
                    results[chain] = future.result()
                except Exception as exc:
                    logger.error("Chain %d failed: %s: %s", chain, type(exc).__name__, exc)
                    failures[chain] = f"{type(exc).__name__}: {exc}"
                    if first_error is None:
                        first_error = exc
                    if config.fail_fast:
                        abort.set()

        sampling_time = time.time() - start_time

        if first_error is not None:
            if config.fail_fast:
                raise first_error
            if not results:
                raise SamplingError(
                    f"All {config.chains} chain(s) failed: {failures}",
                    chain=getattr(first_error, "chain", None),
                ) from first_error

        ordered = [results[c] for c in sorted(results)]
        draws = PosteriorDraws(
            bound.layout,
            [r.draws for r in ordered],
            chain_ids=[r.chain for r in ordered],
        )
        diagnostics = SamplingDiagnostics.merge([r.diagnostics for r in ordered])
        check_diagnostics(diagnostics, config.target_accept, config.max_depth)
        partial = any(r.partial for r in ordered)

        logger.info(
            "Sampling finished in %.1fs: %d draws, %d divergences%s",
            sampling_time,
            draws.n_draws,
            diagnostics.divergences,
            " (partial)" if partial else "",
        )

        return InferenceSummary(
            draws=draws,
            diagnostics=diagnostics,
            n_draws=config.sampling_iterations,
            n_tune=config.warmup_iterations,
            n_chains=config.chains,
            sampling_time=sampling_time,
            partial=partial,
            failed_chains=failures,
            idata=_merge_idata(ordered),
        )

    def __repr__(self) -> str:
        """String representation."""
        return f"NUTSSampler(config={self.config!r})"
