"""Dirichlet priors for the linkage mixture model.

A prior supplies one concentration vector over latent classes (mixing
weights) and, for every class and field, one concentration vector over that
field's agreement levels. The first ``n_match_classes`` classes are the
"match" classes; the sampler itself treats every class alike.

Two builders cover the common cases:
- ``MixtureModelPrior.symmetric``: flat prior, no a-priori preference
- ``MixtureModelPrior.match_leaning``: match classes lean towards high
  agreement levels and non-match classes towards low ones, the usual
  Fellegi-Sunter starting belief about m/u probabilities
"""
from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import ConfigurationError


class MixtureModelPrior(BaseModel):
    """Dirichlet hyperparameters for mixing weights and field-level weights."""

    model_config = ConfigDict(frozen=True)

    mixing_parameter: tuple[float, ...] = Field(
        description="Dirichlet concentration over latent classes",
    )
    field_parameter: tuple[tuple[tuple[float, ...], ...], ...] = Field(
        description="Dirichlet concentration indexed [class][field][level]",
    )
    match_classes: int = Field(
        default=1,
        description="How many leading classes count as match classes",
    )

    def n_classes(self) -> int:
        return len(self.mixing_parameter)

    def n_match_classes(self) -> int:
        return self.match_classes

    def mixing_weight_parameter(self) -> list[float]:
        return list(self.mixing_parameter)

    def field_weight_parameter(self) -> list[list[list[float]]]:
        return [[list(levels) for levels in per_class] for per_class in self.field_parameter]

    def check_compatible(self, schema: Any) -> None:
        """Raise ConfigurationError unless this prior fits ``schema``."""
        validate_prior(self, schema)

    @classmethod
    def symmetric(
        cls,
        schema: Any,
        n_classes: int = 2,
        concentration: float = 1.0,
        n_match_classes: int = 1,
    ) -> "MixtureModelPrior":
        """Flat prior: every concentration parameter equals ``concentration``."""
        prior = cls(
            mixing_parameter=tuple(concentration for _ in range(n_classes)),
            field_parameter=tuple(
                tuple(
                    tuple(concentration for _ in range(schema.level_count(k)))
                    for k in range(schema.field_count())
                )
                for _ in range(n_classes)
            ),
            match_classes=n_match_classes,
        )
        prior.check_compatible(schema)
        return prior

    @classmethod
    def match_leaning(
        cls,
        schema: Any,
        n_classes: int = 2,
        n_match_classes: int = 1,
        concentration: float = 1.0,
        strength: float = 4.0,
    ) -> "MixtureModelPrior":
        """Prior tilting match classes towards the highest agreement level.

        Level concentrations ramp linearly from ``concentration`` to
        ``concentration * (1 + strength)``; rising for match classes,
        falling for non-match classes. Mixing weights stay flat.
        """
        field_parameter = []
        for j in range(n_classes):
            rising = j < n_match_classes
            field_parameter.append(
                tuple(
                    _ramp(schema.level_count(k), concentration, strength, rising)
                    for k in range(schema.field_count())
                )
            )
        prior = cls(
            mixing_parameter=tuple(concentration for _ in range(n_classes)),
            field_parameter=tuple(field_parameter),
            match_classes=n_match_classes,
        )
        prior.check_compatible(schema)
        return prior


def _ramp(n_levels: int, concentration: float, strength: float, rising: bool) -> tuple[float, ...]:
    if n_levels == 1:
        return (concentration,)
    ramp = [concentration * (1.0 + strength * x / (n_levels - 1)) for x in range(n_levels)]
    return tuple(ramp if rising else reversed(ramp))


def _check_positive(values: list[float], where: str) -> None:
    for x, value in enumerate(values):
        if not (math.isfinite(value) and value > 0.0):
            raise ConfigurationError(
                f"{where}[{x}] = {value!r}; Dirichlet parameters must be positive and finite"
            )


def validate_prior(prior: Any, schema: Any) -> None:
    """Check a prior against a field schema.

    Works on anything exposing the prior interface (``n_classes``,
    ``n_match_classes``, ``mixing_weight_parameter``,
    ``field_weight_parameter``) and the schema interface (``field_count``,
    ``level_count``).

    Raises:
        ConfigurationError: On the first inconsistency found.
    """
    n_fields = schema.field_count()
    if n_fields < 1:
        raise ConfigurationError("schema has no fields", component="schema")
    for k in range(n_fields):
        if schema.level_count(k) < 1:
            raise ConfigurationError(
                f"field {k} has {schema.level_count(k)} levels; need at least 1",
                component="schema",
            )

    n_classes = prior.n_classes()
    if n_classes < 1:
        raise ConfigurationError(f"n_classes = {n_classes}; need at least 1")

    n_match = prior.n_match_classes()
    if not 0 <= n_match <= n_classes:
        raise ConfigurationError(f"n_match_classes = {n_match} outside [0, {n_classes}]")

    mixing = list(prior.mixing_weight_parameter())
    if len(mixing) != n_classes:
        raise ConfigurationError(
            f"mixing weight parameter has length {len(mixing)}, expected {n_classes}"
        )
    _check_positive(mixing, "mixing_weight_parameter")

    field_param = prior.field_weight_parameter()
    if len(field_param) != n_classes:
        raise ConfigurationError(
            f"field weight parameter covers {len(field_param)} classes, expected {n_classes}"
        )
    for j, per_class in enumerate(field_param):
        if len(per_class) != n_fields:
            raise ConfigurationError(
                f"field weight parameter for class {j} covers {len(per_class)} fields, "
                f"expected {n_fields}"
            )
        for k, levels in enumerate(per_class):
            levels = list(levels)
            if len(levels) != schema.level_count(k):
                raise ConfigurationError(
                    f"field weight parameter [{j}][{k}] has length {len(levels)}, "
                    f"expected {schema.level_count(k)}"
                )
            _check_positive(levels, f"field_weight_parameter[{j}][{k}]")
