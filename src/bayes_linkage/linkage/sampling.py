"""Random draws used by the Gibbs sampler.

The sampler only needs two distributions, kept behind the ``Sampler``
protocol so alternative implementations (or recording test doubles) can be
swapped in:

- ``dirichlet(parameters)``: one probability vector
- ``multinomial(trials, probabilities)``: category counts; vectorised over
  rows when given an array of trials and a 2-D probability matrix

All draws from one ``NumpySampler`` come from a single generator in call
order, so a fixed seed reproduces the whole chain.
"""
from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

import numpy as np

from ..exceptions import ConfigurationError


@runtime_checkable
class Sampler(Protocol):
    """Protocol for the distribution draws the chain consumes."""

    def dirichlet(self, parameters: Sequence[float] | np.ndarray) -> np.ndarray:
        ...

    def multinomial(
        self,
        trials: int | Sequence[int] | np.ndarray,
        probabilities: Sequence[float] | np.ndarray,
    ) -> np.ndarray:
        ...


class NumpySampler:
    """Sampler backed by a ``numpy.random.Generator``."""

    def __init__(self, rng: np.random.Generator, seed: int | None = None) -> None:
        self.rng = rng
        self.seed = seed

    @classmethod
    def from_seed(cls, seed: int | None = None) -> "NumpySampler":
        return cls(np.random.default_rng(seed), seed=seed)

    def dirichlet(self, parameters: Sequence[float] | np.ndarray) -> np.ndarray:
        """Draw a probability vector from Dirichlet(``parameters``).

        Raises:
            ConfigurationError: If the parameter vector is empty or has a
                non-positive (or non-finite) entry.
        """
        alpha = np.asarray(parameters, dtype=float)
        if alpha.ndim != 1 or alpha.size == 0:
            raise ConfigurationError(
                f"Dirichlet parameter must be a non-empty vector, got shape {alpha.shape}",
                component="sampler",
            )
        if not np.all(np.isfinite(alpha) & (alpha > 0.0)):
            raise ConfigurationError(
                f"Dirichlet parameters must be positive, got {alpha.tolist()}",
                component="sampler",
            )
        draw = self.rng.dirichlet(alpha)
        # Renormalise so the vector sums to 1 to within float rounding
        return draw / draw.sum()

    def multinomial(
        self,
        trials: int | Sequence[int] | np.ndarray,
        probabilities: Sequence[float] | np.ndarray,
    ) -> np.ndarray:
        """Draw category counts for ``trials`` independent categorical samples."""
        return self.rng.multinomial(trials, probabilities)


RandomSource = np.random.Generator | int | Sampler | None


def make_sampler(random_source: RandomSource = None, default_seed: int | None = None) -> Sampler:
    """Resolve a random source into a Sampler.

    Accepts a ``numpy.random.Generator``, an integer seed, an existing
    Sampler, or ``None`` (``default_seed`` if given, else fresh OS entropy).
    """
    # Generator first: it also satisfies the Sampler protocol structurally
    if isinstance(random_source, np.random.Generator):
        return NumpySampler(random_source)
    if random_source is None:
        return NumpySampler.from_seed(default_seed)
    if isinstance(random_source, (int, np.integer)) and not isinstance(random_source, bool):
        return NumpySampler.from_seed(int(random_source))
    if isinstance(random_source, Sampler):
        return random_source
    raise ConfigurationError(
        f"unsupported random source {type(random_source).__name__}",
        component="sampler",
    )
