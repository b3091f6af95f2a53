"""Field schema for comparison patterns.

Describes which fields are compared between two records and which discrete
agreement levels each comparison can produce. Level ``0`` is the first entry
in a field's ``levels`` list; by convention levels run from strongest
disagreement to strongest agreement.
"""
from __future__ import annotations

from enum import Enum
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field

from ..exceptions import ConfigurationError


class ComparisonType(str, Enum):
    """Comparator that produced a field's agreement levels (descriptive only)."""

    EXACT = "exact"
    JARO_WINKLER = "jaro_winkler"  # string similarity bands
    NUMERIC_DISTANCE = "numeric_distance"  # year or age tolerance bands


class ComparisonLevel(BaseModel):
    """A single agreement level of a field comparison."""

    model_config = ConfigDict(frozen=True)

    level_name: str = Field(description="Human-readable level name")
    description: str | None = Field(default=None)


class FieldComparison(BaseModel):
    """Configuration for comparing a single field.

    The position of a level in ``levels`` is the integer code used in
    comparison patterns.
    """

    model_config = ConfigDict(frozen=True)

    field_name: str = Field(description="Name of the compared field")
    comparison_type: ComparisonType = ComparisonType.EXACT
    levels: tuple[ComparisonLevel, ...] = Field(min_length=1)

    @computed_field
    @property
    def n_levels(self) -> int:
        """Number of agreement levels this comparison produces."""
        return len(self.levels)


class FieldSchema(BaseModel):
    """The ordered set of field comparisons making up a pattern."""

    model_config = ConfigDict(frozen=True)

    fields: tuple[FieldComparison, ...] = Field(min_length=1)

    def field_count(self) -> int:
        return len(self.fields)

    def level_count(self, field: int) -> int:
        return self.fields[field].n_levels

    def level_counts(self) -> list[int]:
        return [f.n_levels for f in self.fields]

    def field_names(self) -> list[str]:
        return [f.field_name for f in self.fields]

    def field_index(self, name: str) -> int:
        """Position of the named field in patterns."""
        for k, f in enumerate(self.fields):
            if f.field_name == name:
                return k
        raise KeyError(name)

    @classmethod
    def from_level_counts(
        cls,
        level_counts: Sequence[int],
        names: Sequence[str] | None = None,
    ) -> "FieldSchema":
        """Build an anonymous schema from per-field level counts.

        Raises:
            ConfigurationError: If a field has fewer than one level or the
                names do not line up with the counts.
        """
        if names is not None and len(names) != len(level_counts):
            raise ConfigurationError(
                f"{len(names)} field names for {len(level_counts)} fields",
                component="schema",
            )
        names = list(names) if names is not None else [f"field_{k}" for k in range(len(level_counts))]
        try:
            return cls(
                fields=tuple(
                    FieldComparison(
                        field_name=name,
                        levels=tuple(ComparisonLevel(level_name=f"level_{x}") for x in range(n)),
                    )
                    for name, n in zip(names, level_counts)
                )
            )
        except ValidationError as e:
            raise ConfigurationError(str(e), component="schema") from e


def as_field_schema(schema) -> FieldSchema:
    """Coerce any object exposing ``field_count``/``level_count`` into a FieldSchema."""
    if isinstance(schema, FieldSchema):
        return schema
    return FieldSchema.from_level_counts(
        [schema.level_count(k) for k in range(schema.field_count())]
    )
