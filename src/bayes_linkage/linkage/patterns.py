"""Pattern table: the sufficient statistics of observed comparison vectors.

Record pairs with the same agreement pattern are interchangeable for the
mixture model, so the table keeps each distinct pattern once with the number
of pairs that produced it. Pattern order is fixed at construction and used
for every per-pattern array during a fit.
"""
from __future__ import annotations

from collections import Counter
from typing import Iterable, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..exceptions import ConfigurationError
from .schema import FieldSchema


class PatternTable(BaseModel):
    """Distinct comparison patterns with positive occurrence counts."""

    model_config = ConfigDict(frozen=True)

    field_schema: FieldSchema
    patterns: tuple[tuple[int, ...], ...] = Field(default_factory=tuple)
    counts: tuple[int, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _check_patterns(self) -> "PatternTable":
        if len(self.patterns) != len(self.counts):
            raise ValueError(
                f"{len(self.patterns)} patterns but {len(self.counts)} counts"
            )
        if len(set(self.patterns)) != len(self.patterns):
            raise ValueError("patterns must be pairwise distinct")

        n_fields = self.field_schema.field_count()
        for i, (pattern, count) in enumerate(zip(self.patterns, self.counts)):
            if count < 1:
                raise ValueError(f"pattern #{i} has count {count}; counts must be >= 1")
            if len(pattern) != n_fields:
                raise ValueError(
                    f"pattern #{i} has {len(pattern)} entries, schema has {n_fields} fields"
                )
            for k, level in enumerate(pattern):
                if not 0 <= level < self.field_schema.level_count(k):
                    raise ValueError(
                        f"pattern #{i} level {level} out of range for field {k} "
                        f"({self.field_schema.level_count(k)} levels)"
                    )
        return self

    def pattern_count(self) -> int:
        return len(self.patterns)

    def counts_of(self) -> list[int]:
        return list(self.counts)

    def patterns_of(self) -> list[list[int]]:
        return [list(p) for p in self.patterns]

    def total_count(self) -> int:
        """Number of record pairs summarised by the table."""
        return sum(self.counts)

    def count_of(self, pattern: Sequence[int]) -> int:
        """Occurrences of ``pattern`` (0 if never observed)."""
        try:
            return self.counts[self.patterns.index(tuple(pattern))]
        except ValueError:
            return 0

    @classmethod
    def from_counts(
        cls,
        field_schema: FieldSchema,
        counts: Mapping[Sequence[int], int],
    ) -> "PatternTable":
        """Build a table from a pre-aggregated pattern -> count mapping.

        Zero counts are dropped; patterns are kept in mapping order.

        Raises:
            ConfigurationError: If a pattern does not fit the schema or a
                count is negative.
        """
        patterns: list[tuple[int, ...]] = []
        kept: list[int] = []
        for pattern, count in counts.items():
            if count == 0:
                continue
            patterns.append(tuple(int(x) for x in pattern))
            kept.append(int(count))
        try:
            return cls(field_schema=field_schema, patterns=tuple(patterns), counts=tuple(kept))
        except ValidationError as e:
            raise ConfigurationError(str(e), component="pattern_table") from e

    @classmethod
    def from_patterns(
        cls,
        field_schema: FieldSchema,
        patterns: Iterable[Sequence[int]],
    ) -> "PatternTable":
        """Aggregate raw comparison vectors (one per record pair).

        Patterns are ordered by first appearance.
        """
        tally: Counter[tuple[int, ...]] = Counter(tuple(int(x) for x in p) for p in patterns)
        return cls.from_counts(field_schema, tally)
