"""
PyMC model builder for the ridership regressions.

Assembles the pooled / hierarchical models described in
``ridership_bayes.model.spec`` as a ``pm.Model``; ``inference.NUTSSampler``
samples it with PyMC's NUTS. Scale parameters are HalfCauchy, which PyMC
samples on the log scale (``<name>_log__`` value variables).

Variable names follow the ModelSpec layout (``mu``, ``sigma``, ``A``,
``B_H``, ``sigma_class``, ``sigma_hours``, ``a_C``, ``b_H``); the class
dimension is named ``route_class`` with the ClassTable labels as coords.
"""

from typing import Optional
import numpy as np
import pymc as pm

from ridership_bayes.data.dataset import DataSet
from ridership_bayes.model.spec import BoundModel, HierarchicalSpec, ModelSpec, PooledSpec


class ModelBuilder:
    """
    Bayesian ridership model builder.

    Attributes
    ----------
    spec : ModelSpec
        Model variant and priors
    model : pm.Model or None
        PyMC model (None until built)
    """

    def __init__(self, spec: ModelSpec) -> None:
        """
        Initialize model builder.

        Parameters
        ----------
        spec : ModelSpec
            PooledSpec or HierarchicalSpec
        """
        if not isinstance(spec, (PooledSpec, HierarchicalSpec)):
            raise ValueError(f"Unsupported model spec {spec!r}")
        self.spec = spec
        self.model: Optional[pm.Model] = None

    def _build_pooled(self, bound: BoundModel) -> pm.Model:
        p = self.spec.priors
        with pm.Model() as model:
            mu = pm.Normal("mu", mu=p.mean_loc, sigma=p.mean_scale)
            sigma = pm.HalfCauchy("sigma", beta=p.scale_beta)
            pm.Normal("response", mu=mu, sigma=sigma, observed=np.asarray(bound.response))
        return model

    def _build_hierarchical(self, bound: BoundModel) -> pm.Model:
        p = self.spec.priors
        coords = {"route_class": list(self.spec.class_table.labels)}
        class_idx = np.asarray(bound.class_zero)
        hours = np.asarray(bound.hours)

        with pm.Model(coords=coords) as model:
            # Population intercept and slope
            A = pm.Normal("A", mu=p.coef_loc, sigma=p.coef_scale)
            B_H = pm.Normal("B_H", mu=p.coef_loc, sigma=p.coef_scale)

            # sigma, sigma_class, sigma_hours
            scales = {
                name: pm.HalfCauchy(name, beta=p.scale_beta)
                for name in self.spec.layout.positive_names
            }

            # Per-class intercepts and slopes
            a_C = pm.Normal("a_C", mu=A, sigma=scales["sigma_class"], dims="route_class")
            b_H = pm.Normal("b_H", mu=B_H, sigma=scales["sigma_hours"], dims="route_class")

            muhat = a_C[class_idx] + b_H[class_idx] * hours
            pm.Normal(
                "response", mu=muhat, sigma=scales["sigma"], observed=np.asarray(bound.response)
            )
        return model

    def build(self, dataset: DataSet) -> pm.Model:
        """
        Build the full PyMC model.

        Parameters
        ----------
        dataset : DataSet
            Observations; validated through ``spec.bind``.

        Returns
        -------
        model : pm.Model
            PyMC model ready for inference.

        Raises
        ------
        DataBindingError
            If the dataset cannot be bound to the ModelSpec.
        """
        bound = self.spec.bind(dataset)
        if isinstance(self.spec, PooledSpec):
            model = self._build_pooled(bound)
        else:
            model = self._build_hierarchical(bound)
        self.model = model
        return model

    def get_model(self) -> pm.Model:
        """
        Get the built model.

        Raises
        ------
        RuntimeError
            If model has not been built yet.
        """
        if self.model is None:
            raise RuntimeError("Model has not been built. Call .build() first.")
        return self.model

    def __repr__(self) -> str:
        """String representation."""
        return f"ModelBuilder(spec={self.spec!r}, built={self.model is not None})"
