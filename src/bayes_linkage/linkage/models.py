"""Fitted mixture model and fit provenance.

The fitted model is an immutable snapshot of the posterior-mean estimates
at the end of a chain:
- mixing weights over latent classes
- per-class, per-field categorical distributions over agreement levels

The first ``n_match_classes`` classes are match classes, the rest non-match
classes. ``m_probabilities``/``u_probabilities`` collapse them into the
familiar Fellegi-Sunter m/u level distributions of one field.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .schema import FieldSchema


# =============================================================================
# Fit Provenance
# =============================================================================


class FitProvenance(BaseModel):
    """How a fitted model was produced."""

    provenance_id: UUID = Field(default_factory=uuid4)

    algorithm: str = Field(default="gibbs")
    burn_in: int = Field(ge=0, description="Discarded burn-in iterations")
    n_iter: int = Field(ge=1, description="Iterations averaged into the estimate")
    seed: int | None = Field(
        default=None,
        description="Seed of the random generator, when known",
    )

    # Data
    pattern_count: int = Field(default=0, description="Distinct patterns")
    replicate_count: int = Field(default=0, description="Record pairs summarised")
    n_classes: int = Field(default=0)

    # Timing
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    duration_ms: int | None = None

    def mark_completed(self) -> None:
        self.completed_at = datetime.now(UTC)
        delta = self.completed_at - self.started_at
        self.duration_ms = int(delta.total_seconds() * 1000)


# =============================================================================
# Mixture Model
# =============================================================================


class MixtureModel(BaseModel):
    """Posterior-mean parameters of a fitted linkage mixture model."""

    model_config = ConfigDict(frozen=True)

    field_schema: FieldSchema
    mixing: tuple[float, ...] = Field(description="Mixing weight per class")
    levels: tuple[tuple[tuple[float, ...], ...], ...] = Field(
        description="Level distribution indexed [class][field][level]",
    )
    match_classes: int = Field(default=1, ge=0)
    provenance: FitProvenance | None = None

    def mixing_weights(self) -> list[float]:
        return list(self.mixing)

    def field_weights(self) -> list[list[list[float]]]:
        return [[list(dist) for dist in per_class] for per_class in self.levels]

    def n_classes(self) -> int:
        return len(self.mixing)

    def n_match_classes(self) -> int:
        return self.match_classes

    @computed_field
    @property
    def match_proportion(self) -> float:
        """Total mixing weight of the match classes."""
        return sum(self.mixing[: self.match_classes])

    def m_probabilities(self, field: int | str) -> list[float]:
        """P(level | match) for one field, pooling the match classes."""
        return self._pooled(field, range(self.match_classes))

    def u_probabilities(self, field: int | str) -> list[float]:
        """P(level | non-match) for one field, pooling the non-match classes."""
        return self._pooled(field, range(self.match_classes, self.n_classes()))

    def _pooled(self, field: int | str, classes: range) -> list[float]:
        k = self.field_schema.field_index(field) if isinstance(field, str) else field
        if len(classes) == 0:
            raise ValueError("model has no classes of the requested kind")

        total = sum(self.mixing[j] for j in classes)
        n_levels = self.field_schema.level_count(k)
        return [
            sum(self.mixing[j] * self.levels[j][k][x] for j in classes) / total
            for x in range(n_levels)
        ]

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
