"""Gibbs sampler for the linkage mixture model.

Estimates posterior-mean parameters of a latent-class mixture over
comparison patterns. Each iteration alternates two conjugate draws:

1. Weights: mixing weights and per-class/per-field level weights from their
   Dirichlet posteriors (prior concentration plus assigned counts)
2. Classes: for every pattern, the replicate-level class assignments from a
   multinomial over the normalised class responsibilities

Burn-in iterations are discarded; afterwards every draw is folded into a
running mean with the exact ``(n-1)/n`` and ``1/n`` coefficients, which
reproduces the arithmetic mean of all post-burn-in draws without storing
them.

Example:
    >>> table = PatternTable.from_patterns(schema, comparison_vectors)
    >>> prior = MixtureModelPrior.symmetric(schema, n_classes=2)
    >>> model = fit(42, prior, table, burn_in=200, n_iter=500)
    >>> model.m_probabilities("surname")
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from ..config import CONFIG
from ..exceptions import ConfigurationError, DataError
from ..logging import fit_context, get_logger
from .configs import validate_prior
from .models import FitProvenance, MixtureModel
from .sampling import RandomSource, Sampler, make_sampler
from .schema import as_field_schema

logger = get_logger(__name__)


class LevelWeights:
    """Level vectors keyed by ``(class, field)``.

    Stored as one ``(n_classes, n_levels)`` block per field. Blocks are
    sized from the schema once and only ever written in place.
    """

    def __init__(self, n_classes: int, level_counts: list[int]) -> None:
        self._blocks = [np.zeros((n_classes, n)) for n in level_counts]

    def __getitem__(self, key: tuple[int, int]) -> np.ndarray:
        j, k = key
        return self._blocks[k][j]

    def __setitem__(self, key: tuple[int, int], values: np.ndarray) -> None:
        j, k = key
        self._blocks[k][j, :] = values

    def __len__(self) -> int:
        return len(self._blocks)

    def block(self, field: int) -> np.ndarray:
        return self._blocks[field]

    def blend(self, a: float, other: "LevelWeights", b: float) -> None:
        """In place: ``self = a * self + b * other``."""
        for mine, theirs in zip(self._blocks, other._blocks):
            mine *= a
            mine += b * theirs

    def to_nested(self) -> tuple[tuple[tuple[float, ...], ...], ...]:
        n_classes = self._blocks[0].shape[0]
        return tuple(
            tuple(tuple(float(v) for v in block[j] / block[j].sum()) for block in self._blocks)
            for j in range(n_classes)
        )


@dataclass
class ChainState:
    """Mutable state of one chain; allocated per fit, never shared."""

    mixing_step: np.ndarray
    mixing_mean: np.ndarray
    field_step: LevelWeights
    field_mean: LevelWeights
    class_assign: np.ndarray
    class_weights_cond: np.ndarray

    @classmethod
    def allocate(cls, n_classes: int, level_counts: list[int], n_patterns: int) -> "ChainState":
        return cls(
            mixing_step=np.zeros(n_classes),
            mixing_mean=np.zeros(n_classes),
            field_step=LevelWeights(n_classes, level_counts),
            field_mean=LevelWeights(n_classes, level_counts),
            class_assign=np.zeros((n_patterns, n_classes), dtype=np.int64),
            class_weights_cond=np.zeros((n_patterns, n_classes)),
        )


def _check_run_length(burn_in: int, n_iter: int) -> None:
    if burn_in < 0:
        raise ConfigurationError(f"burn_in = {burn_in}; must be >= 0", component="sampler")
    if n_iter < 1:
        raise ConfigurationError(f"n_iter = {n_iter}; must be >= 1", component="sampler")


def _pattern_arrays(pattern_table: Any, schema: Any) -> tuple[np.ndarray, np.ndarray]:
    """Read the pattern table into ``(patterns, counts)`` arrays."""
    n_patterns = pattern_table.pattern_count()
    n_fields = schema.field_count()
    if n_patterns < 1:
        raise ConfigurationError("pattern table is empty", component="pattern_table")

    try:
        counts = np.asarray(pattern_table.counts_of(), dtype=np.int64)
        patterns = np.asarray(pattern_table.patterns_of())
    except ValueError as e:
        raise ConfigurationError(str(e), component="pattern_table") from e

    if counts.shape != (n_patterns,) or np.any(counts < 1):
        raise ConfigurationError(
            f"expected {n_patterns} counts >= 1, got {counts.tolist()}",
            component="pattern_table",
        )
    if patterns.shape != (n_patterns, n_fields):
        raise ConfigurationError(
            f"patterns have shape {patterns.shape}, expected {(n_patterns, n_fields)}",
            component="pattern_table",
        )
    if not np.issubdtype(patterns.dtype, np.integer):
        raise ConfigurationError(
            f"pattern levels must be integers, got dtype {patterns.dtype}",
            component="pattern_table",
        )
    patterns = patterns.astype(np.intp)
    for k in range(n_fields):
        column = patterns[:, k]
        if column.min() < 0 or column.max() >= schema.level_count(k):
            raise ConfigurationError(
                f"field {k} has levels outside [0, {schema.level_count(k)})",
                component="pattern_table",
            )
    return patterns, counts


class GibbsSampler:
    """One Markov chain over class assignments and component weights.

    Inputs are validated on construction, before any random draw. The
    sampler's step methods are public so a chain can be advanced and
    inspected one iteration at a time; ``run`` drives a full fit.
    """

    def __init__(
        self,
        prior: Any,
        pattern_table: Any,
        sampler: Sampler,
        log_every: int | None = None,
    ) -> None:
        schema = getattr(pattern_table, "field_schema", None)
        if schema is None:
            raise ConfigurationError(
                "pattern table does not expose a field_schema", component="pattern_table"
            )
        validate_prior(prior, schema)

        self.schema = schema
        self.patterns, self.counts = _pattern_arrays(pattern_table, schema)
        self.n_classes = prior.n_classes()
        self.n_match_classes = prior.n_match_classes()
        self.level_counts = [schema.level_count(k) for k in range(schema.field_count())]

        self._mixing_prior = np.asarray(prior.mixing_weight_parameter(), dtype=float)
        field_param = prior.field_weight_parameter()
        self._field_prior = [
            np.array([list(field_param[j][k]) for j in range(self.n_classes)], dtype=float)
            for k in range(len(self.level_counts))
        ]

        self._sampler = sampler
        self._log_every = CONFIG.log_every if log_every is None else log_every
        self.state = ChainState.allocate(self.n_classes, self.level_counts, len(self.counts))

    def draw_weights(self, mixing_param: np.ndarray, field_param: list[np.ndarray]) -> None:
        """Overwrite the step weights with Dirichlet draws.

        ``field_param`` holds one ``(n_classes, n_levels)`` block per field.
        """
        state = self.state
        state.mixing_step[:] = self._sampler.dirichlet(mixing_param)
        for j in range(self.n_classes):
            for k, block in enumerate(field_param):
                state.field_step[j, k] = self._sampler.dirichlet(block[j])

    def draw_prior_weights(self) -> None:
        """Initial weights, drawn from the prior alone."""
        self.draw_weights(self._mixing_prior, self._field_prior)

    def posterior_parameters(self) -> tuple[np.ndarray, list[np.ndarray]]:
        """Dirichlet posterior parameters given the current class assignments."""
        assign = self.state.class_assign
        mixing = self._mixing_prior + assign.sum(axis=0)

        field = []
        for k, prior_block in enumerate(self._field_prior):
            block = prior_block.copy()
            # block.T is a (n_levels, n_classes) view; row x collects every pattern at level x
            np.add.at(block.T, self.patterns[:, k], assign)
            field.append(block)
        return mixing, field

    def draw_classes(self) -> None:
        """Recompute class responsibilities and redraw replicate assignments.

        Raises:
            DataError: If some pattern has zero probability under every class.
        """
        state = self.state
        n_patterns = len(self.counts)

        # Log domain with a per-pattern max shift so long products of small
        # level probabilities do not underflow
        with np.errstate(divide="ignore"):
            log_cond = np.tile(np.log(state.mixing_step), (n_patterns, 1))
            for k in range(len(self.level_counts)):
                log_cond += np.log(state.field_step.block(k)[:, self.patterns[:, k]]).T

        top = log_cond.max(axis=1, keepdims=True)
        degenerate = np.flatnonzero(~np.isfinite(top[:, 0]))
        if degenerate.size:
            i = int(degenerate[0])
            pattern = tuple(int(x) for x in self.patterns[i])
            logger.error("gibbs.degenerate_pattern", pattern_index=i, pattern=list(pattern))
            raise DataError(
                "pattern has zero probability under every class",
                pattern_index=i,
                pattern=pattern,
            )

        cond = np.exp(log_cond - top)
        cond /= cond.sum(axis=1, keepdims=True)
        state.class_weights_cond[:] = cond
        state.class_assign[:] = self._sampler.multinomial(self.counts, cond)

    def step(self) -> None:
        """One full iteration: weights given classes, then classes given weights."""
        self.draw_weights(*self.posterior_parameters())
        self.draw_classes()

    def update_means(self, n: int) -> None:
        """Fold the current draw into the running means (``n`` counts from 1)."""
        a = (n - 1.0) / n
        b = 1.0 / n
        state = self.state
        state.mixing_mean *= a
        state.mixing_mean += b * state.mixing_step
        state.field_mean.blend(a, state.field_step, b)

    def run(self, burn_in: int, n_iter: int) -> None:
        """Initialise from the prior, burn in, then average ``n_iter`` draws."""
        _check_run_length(burn_in, n_iter)

        self.draw_prior_weights()
        self.draw_classes()

        logger.debug("gibbs.burn_in", iterations=burn_in)
        for n in range(1, burn_in + 1):
            self.step()
            self._progress("burn_in", n, burn_in)

        logger.debug("gibbs.sampling", iterations=n_iter)
        for n in range(1, n_iter + 1):
            self.step()
            self.update_means(n)
            self._progress("sampling", n, n_iter)

    def _progress(self, phase: str, n: int, total: int) -> None:
        if self._log_every and n % self._log_every == 0:
            logger.debug(
                "gibbs.progress",
                phase=phase,
                iteration=n,
                total=total,
                mixing=self.state.mixing_step.round(4).tolist(),
            )

    def to_model(self, provenance: FitProvenance | None = None) -> MixtureModel:
        """Snapshot the running means into an immutable model.

        Each vector is renormalised once to drop accumulated rounding.
        """
        mixing = self.state.mixing_mean / self.state.mixing_mean.sum()
        return MixtureModel(
            field_schema=as_field_schema(self.schema),
            mixing=tuple(float(w) for w in mixing),
            levels=self.state.field_mean.to_nested(),
            match_classes=self.n_match_classes,
            provenance=provenance,
        )


def fit(
    random_source: RandomSource,
    prior: Any,
    pattern_table: Any,
    burn_in: int | None = None,
    n_iter: int | None = None,
    log_every: int | None = None,
) -> MixtureModel:
    """Fit the mixture model to a pattern table.

    Args:
        random_source: numpy Generator, integer seed, Sampler, or None
        prior: Dirichlet prior (see ``MixtureModelPrior``)
        pattern_table: Observed patterns and counts (see ``PatternTable``)
        burn_in: Discarded iterations (default ``CONFIG.burn_in``, 500)
        n_iter: Averaged iterations (default ``CONFIG.n_iter``, 1000)
        log_every: Iterations between progress events (default ``CONFIG.log_every``)

    Returns:
        MixtureModel holding the posterior-mean estimates

    Raises:
        ConfigurationError: Inconsistent prior, schema, table or run length;
            raised before any draw.
        DataError: A pattern became impossible under every class mid-chain.
    """
    burn_in = CONFIG.burn_in if burn_in is None else burn_in
    n_iter = CONFIG.n_iter if n_iter is None else n_iter
    _check_run_length(burn_in, n_iter)

    sampler = make_sampler(random_source, default_seed=CONFIG.seed)
    chain = GibbsSampler(prior, pattern_table, sampler, log_every=log_every)

    provenance = FitProvenance(
        burn_in=burn_in,
        n_iter=n_iter,
        seed=getattr(sampler, "seed", None),
        pattern_count=len(chain.counts),
        replicate_count=int(chain.counts.sum()),
        n_classes=chain.n_classes,
    )
    with fit_context(fit_id=str(provenance.provenance_id)):
        logger.info(
            "gibbs.fit_started",
            patterns=provenance.pattern_count,
            replicates=provenance.replicate_count,
            classes=chain.n_classes,
            fields=len(chain.level_counts),
            burn_in=burn_in,
            n_iter=n_iter,
            seed=provenance.seed,
        )

        chain.run(burn_in, n_iter)

        provenance.mark_completed()
        model = chain.to_model(provenance)
        logger.info(
            "gibbs.fit_completed",
            duration_ms=provenance.duration_ms,
            mixing=[round(w, 4) for w in model.mixing_weights()],
        )
    return model
