"""Estimator object for fitting linkage mixture models.

Wraps ``gibbs.fit`` with a fixed prior, run length and random source so the
same configuration can be applied to several pattern tables, keeping the
most recent fit for inspection.
"""
from __future__ import annotations

from typing import Any

from ..config import CONFIG
from .configs import MixtureModelPrior
from .gibbs import fit
from .models import MixtureModel
from .patterns import PatternTable
from .sampling import RandomSource, make_sampler


class GibbsLinkageEstimator:
    """Unsupervised estimator of m/u level distributions.

    Example:
        >>> estimator = GibbsLinkageEstimator(prior, random_source=7)
        >>> model = estimator.fit(table)
        >>> estimator.class_weights()
    """

    def __init__(
        self,
        prior: MixtureModelPrior | Any,
        burn_in: int | None = None,
        n_iter: int | None = None,
        random_source: RandomSource = None,
    ) -> None:
        """Initialize the estimator.

        Args:
            prior: Dirichlet prior over mixing and level weights
            burn_in: Discarded iterations (default from config, 500)
            n_iter: Averaged iterations (default from config, 1000)
            random_source: Generator, seed, Sampler, or None for config seed
        """
        self.prior = prior
        self.burn_in = CONFIG.burn_in if burn_in is None else burn_in
        self.n_iter = CONFIG.n_iter if n_iter is None else n_iter

        # One sampler for the estimator's lifetime: consecutive fits continue the stream
        self._sampler = make_sampler(random_source, default_seed=CONFIG.seed)
        self._model: MixtureModel | None = None

    def fit(self, pattern_table: PatternTable | Any) -> MixtureModel:
        """Fit the prior to ``pattern_table`` and keep the resulting model."""
        self._model = fit(
            self._sampler,
            self.prior,
            pattern_table,
            burn_in=self.burn_in,
            n_iter=self.n_iter,
        )
        return self._model

    def model(self) -> MixtureModel | None:
        """The most recently fitted model, if any."""
        return self._model

    def class_weights(self) -> list[float] | None:
        """Posterior-mean mixing weights of the most recent fit."""
        if self._model is None:
            return None
        return self._model.mixing_weights()
