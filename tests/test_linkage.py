"""Tests for the linkage schema, pattern table, prior and fitted model."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from bayes_linkage.exceptions import ConfigurationError
from bayes_linkage.linkage import (
    ComparisonLevel,
    ComparisonType,
    FieldComparison,
    FieldSchema,
    FitProvenance,
    MixtureModel,
    MixtureModelPrior,
    PatternTable,
    validate_prior,
)


@pytest.fixture
def census_schema():
    """Surname compared on three levels, birth year on two."""
    return FieldSchema(
        fields=(
            FieldComparison(
                field_name="surname",
                comparison_type=ComparisonType.JARO_WINKLER,
                levels=(
                    ComparisonLevel(level_name="different"),
                    ComparisonLevel(level_name="similar", description="jaro-winkler >= 0.88"),
                    ComparisonLevel(level_name="exact"),
                ),
            ),
            FieldComparison(
                field_name="birth_year",
                comparison_type=ComparisonType.NUMERIC_DISTANCE,
                levels=(
                    ComparisonLevel(level_name="different"),
                    ComparisonLevel(level_name="within_two_years"),
                ),
            ),
        )
    )


class TestFieldSchema:
    """Tests for FieldSchema."""

    def test_counts(self, census_schema):
        """Test field and level counts."""
        assert census_schema.field_count() == 2
        assert census_schema.level_count(0) == 3
        assert census_schema.level_count(1) == 2
        assert census_schema.level_counts() == [3, 2]

    def test_field_index(self, census_schema):
        """Test lookup of a field position by name."""
        assert census_schema.field_index("birth_year") == 1
        with pytest.raises(KeyError):
            census_schema.field_index("given_name")

    def test_from_level_counts(self):
        """Test anonymous schema construction."""
        schema = FieldSchema.from_level_counts([2, 4])
        assert schema.field_names() == ["field_0", "field_1"]
        assert schema.level_counts() == [2, 4]

    def test_comparison_type_metadata(self, census_schema):
        """Test that comparison types default to exact and dump as plain strings."""
        schema = FieldSchema.from_level_counts([2])
        assert schema.fields[0].comparison_type is ComparisonType.EXACT
        dumped = census_schema.model_dump(mode="json")
        assert [f["comparison_type"] for f in dumped["fields"]] == [
            "jaro_winkler",
            "numeric_distance",
        ]

    def test_zero_levels_rejected(self):
        """Test that a field without levels is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            FieldSchema.from_level_counts([2, 0])
        assert exc_info.value.component == "schema"

    def test_name_count_mismatch(self):
        """Test that names must line up with level counts."""
        with pytest.raises(ConfigurationError):
            FieldSchema.from_level_counts([2, 2], names=["surname"])


class TestPatternTable:
    """Tests for PatternTable construction."""

    def test_from_patterns_aggregates(self, census_schema):
        """Test that repeated vectors collapse into counts."""
        table = PatternTable.from_patterns(
            census_schema,
            [(2, 1), (0, 0), (2, 1), [2, 1], (0, 0), (1, 1)],
        )

        assert table.pattern_count() == 3
        assert table.patterns_of() == [[2, 1], [0, 0], [1, 1]]
        assert table.counts_of() == [3, 2, 1]
        assert table.total_count() == 6
        assert table.count_of([0, 0]) == 2
        assert table.count_of([0, 1]) == 0

    def test_from_counts_drops_zeros(self, census_schema):
        """Test that zero-count patterns are not kept."""
        table = PatternTable.from_counts(census_schema, {(0, 0): 5, (1, 0): 0, (2, 1): 1})
        assert table.patterns_of() == [[0, 0], [2, 1]]
        assert table.counts_of() == [5, 1]

    def test_level_out_of_range(self, census_schema):
        """Test that levels beyond the schema are rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            PatternTable.from_patterns(census_schema, [(3, 0)])
        assert exc_info.value.component == "pattern_table"

    def test_wrong_pattern_length(self, census_schema):
        """Test that patterns must cover every field."""
        with pytest.raises(ConfigurationError):
            PatternTable.from_counts(census_schema, {(0,): 1})

    def test_negative_count(self, census_schema):
        """Test that negative counts are rejected."""
        with pytest.raises(ConfigurationError):
            PatternTable.from_counts(census_schema, {(0, 0): -1})

    def test_duplicate_patterns_rejected(self, census_schema):
        """Test direct construction with duplicate patterns."""
        with pytest.raises(ValidationError):
            PatternTable(field_schema=census_schema, patterns=((0, 0), (0, 0)), counts=(1, 1))


class TestMixtureModelPrior:
    """Tests for prior builders and validation."""

    def test_symmetric(self, census_schema):
        """Test flat prior shape and values."""
        prior = MixtureModelPrior.symmetric(census_schema, n_classes=3, concentration=0.5)

        assert prior.n_classes() == 3
        assert prior.n_match_classes() == 1
        assert prior.mixing_weight_parameter() == [0.5, 0.5, 0.5]
        field_param = prior.field_weight_parameter()
        assert len(field_param) == 3
        assert field_param[2][0] == [0.5, 0.5, 0.5]
        assert field_param[2][1] == [0.5, 0.5]

    def test_match_leaning(self, census_schema):
        """Test that match classes lean towards agreement."""
        prior = MixtureModelPrior.match_leaning(census_schema, strength=4.0)
        field_param = prior.field_weight_parameter()

        # Match class: rising ramp; non-match class: falling ramp
        assert field_param[0][0] == pytest.approx([1.0, 3.0, 5.0])
        assert field_param[1][0] == pytest.approx([5.0, 3.0, 1.0])
        assert field_param[0][1] == pytest.approx([1.0, 5.0])
        assert prior.mixing_weight_parameter() == [1.0, 1.0]

    def test_zero_classes(self, census_schema):
        """Test that a prior needs at least one class."""
        with pytest.raises(ConfigurationError):
            MixtureModelPrior.symmetric(census_schema, n_classes=0)

    def test_too_many_match_classes(self, census_schema):
        """Test match-class count bounds."""
        with pytest.raises(ConfigurationError):
            MixtureModelPrior.symmetric(census_schema, n_classes=2, n_match_classes=3)

    def test_non_positive_parameter(self, census_schema):
        """Test that Dirichlet parameters must be positive."""
        prior = MixtureModelPrior(
            mixing_parameter=(1.0, 0.0),
            field_parameter=(((1.0, 1.0, 1.0), (1.0, 1.0)), ((1.0, 1.0, 1.0), (1.0, 1.0))),
        )
        with pytest.raises(ConfigurationError, match="mixing_weight_parameter"):
            validate_prior(prior, census_schema)

    def test_wrong_level_length(self, census_schema):
        """Test that level vectors must match the schema."""
        prior = MixtureModelPrior(
            mixing_parameter=(1.0, 1.0),
            field_parameter=(((1.0, 1.0, 1.0), (1.0, 1.0)), ((1.0, 1.0), (1.0, 1.0))),
        )
        with pytest.raises(ConfigurationError, match=r"\[1\]\[0\]"):
            prior.check_compatible(census_schema)

    def test_wrong_field_count(self, census_schema):
        """Test that every class covers every field."""
        prior = MixtureModelPrior(
            mixing_parameter=(1.0,),
            field_parameter=(((1.0, 1.0, 1.0),),),
        )
        with pytest.raises(ConfigurationError, match="fields"):
            prior.check_compatible(census_schema)


class TestMixtureModel:
    """Tests for the fitted model views."""

    @pytest.fixture
    def model(self, census_schema):
        return MixtureModel(
            field_schema=census_schema,
            mixing=(0.1, 0.3, 0.6),
            levels=(
                ((0.1, 0.1, 0.8), (0.2, 0.8)),
                ((0.5, 0.3, 0.2), (0.6, 0.4)),
                ((0.9, 0.05, 0.05), (0.7, 0.3)),
            ),
            match_classes=1,
            provenance=FitProvenance(burn_in=10, n_iter=20),
        )

    def test_accessors(self, model):
        """Test plain accessors."""
        assert model.n_classes() == 3
        assert model.n_match_classes() == 1
        assert model.mixing_weights() == [0.1, 0.3, 0.6]
        assert model.field_weights()[0][1] == [0.2, 0.8]
        assert model.match_proportion == pytest.approx(0.1)

    def test_m_probabilities(self, model):
        """Test that m probabilities come from the match class."""
        assert model.m_probabilities("surname") == pytest.approx([0.1, 0.1, 0.8])

    def test_u_probabilities_pooled(self, model):
        """Test mixing-weighted pooling of non-match classes."""
        # (0.3 * [0.6, 0.4] + 0.6 * [0.7, 0.3]) / 0.9
        assert model.u_probabilities(1) == pytest.approx([0.2 / 0.3, 0.1 / 0.3])

    def test_no_match_classes(self, model):
        """Test m probabilities without match classes."""
        unmatched = model.model_copy(update={"match_classes": 0})
        with pytest.raises(ValueError):
            unmatched.m_probabilities(0)

    def test_immutable(self, model):
        """Test that a fitted model cannot be modified."""
        with pytest.raises(ValidationError):
            model.mixing = (1.0, 0.0, 0.0)

    def test_as_dict(self, model):
        """Test JSON-compatible serialisation."""
        data = model.as_dict()
        assert data["mixing"] == [0.1, 0.3, 0.6]
        assert data["match_classes"] == 1
        assert data["provenance"]["algorithm"] == "gibbs"
        assert data["field_schema"]["fields"][0]["field_name"] == "surname"
