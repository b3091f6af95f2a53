"""Unsupervised probabilistic linkage via Gibbs-sampled mixture models.

Fits a latent-class mixture over aggregated comparison patterns and returns
posterior-mean mixing weights and per-field agreement-level distributions.

Key Components:
- FieldSchema: Compared fields and their agreement levels
- PatternTable: Distinct comparison patterns with counts
- MixtureModelPrior: Dirichlet hyperparameters
- GibbsSampler / fit: The Markov chain and its entry point
- MixtureModel: Immutable posterior-mean estimates

Example:
    >>> from bayes_linkage.linkage import (
    ...     FieldSchema,
    ...     MixtureModelPrior,
    ...     PatternTable,
    ...     fit,
    ... )
    >>>
    >>> schema = FieldSchema.from_level_counts([3, 2], names=["surname", "birth_year"])
    >>> table = PatternTable.from_patterns(schema, comparison_vectors)
    >>> prior = MixtureModelPrior.match_leaning(schema)
    >>> model = fit(42, prior, table)
    >>> model.m_probabilities("surname")
"""
from .schema import (
    ComparisonLevel,
    ComparisonType,
    FieldComparison,
    FieldSchema,
)
from .patterns import PatternTable
from .configs import MixtureModelPrior, validate_prior
from .models import FitProvenance, MixtureModel
from .sampling import NumpySampler, Sampler, make_sampler
from .gibbs import ChainState, GibbsSampler, LevelWeights, fit
from .estimator import GibbsLinkageEstimator

__all__ = [
    # Schema
    "ComparisonType",
    "ComparisonLevel",
    "FieldComparison",
    "FieldSchema",
    # Data
    "PatternTable",
    # Priors
    "MixtureModelPrior",
    "validate_prior",
    # Models
    "FitProvenance",
    "MixtureModel",
    # Sampling
    "Sampler",
    "NumpySampler",
    "make_sampler",
    # Engine
    "LevelWeights",
    "ChainState",
    "GibbsSampler",
    "fit",
    "GibbsLinkageEstimator",
]
