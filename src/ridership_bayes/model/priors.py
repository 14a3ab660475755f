"""Prior hyper-parameters for the ridership regressions."""


class PriorSpec:
    """Specification of priors for model parameters."""

    def __init__(
        self,
        # Pooled model
        mean_loc: float = 0.0,
        mean_scale: float = 1.0,
        # Hierarchical population intercept / slope
        coef_loc: float = 0.0,
        coef_scale: float = 2.0,
        # All scale parameters
        scale_beta: float = 1.0,
    ) -> None:
        """
        Initialize prior specification.

        Parameters
        ----------
        mean_loc : float
            Prior mean of the pooled ``mu``. Default 0.0.
        mean_scale : float
            Prior std of the pooled ``mu``. Default 1.0.
        coef_loc : float
            Prior mean of ``A`` and ``B_H``. Default 0.0.
        coef_scale : float
            Prior std of ``A`` and ``B_H``. Default 2.0.
        scale_beta : float
            HalfCauchy scale for ``sigma``, ``sigma_class`` and
            ``sigma_hours``. Default 1.0.
        """
        for name, value in (
            ("mean_scale", mean_scale),
            ("coef_scale", coef_scale),
            ("scale_beta", scale_beta),
        ):
            if value <= 0:
                raise ValueError(f"{name} must be positive. Got {value}")

        self.mean_loc = float(mean_loc)
        self.mean_scale = float(mean_scale)
        self.coef_loc = float(coef_loc)
        self.coef_scale = float(coef_scale)
        self.scale_beta = float(scale_beta)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PriorSpec):
            return NotImplemented
        return vars(self) == vars(other)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"PriorSpec(mean_loc={self.mean_loc}, mean_scale={self.mean_scale}, "
            f"coef_loc={self.coef_loc}, coef_scale={self.coef_scale}, "
            f"scale_beta={self.scale_beta})"
        )
