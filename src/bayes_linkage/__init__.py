"""Bayes Linkage - unsupervised mixture models for record-linkage comparison patterns.

Fits latent-class mixture models over aggregated agreement patterns with a
Gibbs sampler, yielding posterior-mean mixing weights and per-field level
distributions for downstream match scoring.
"""

__version__ = "0.1.0"

# Lazy imports to keep numpy off the import path of the logging/config helpers
def __getattr__(name: str):
    if name == "linkage":
        from bayes_linkage import linkage
        return linkage
    if name == "config":
        from bayes_linkage import config
        return config
    if name == "exceptions":
        from bayes_linkage import exceptions
        return exceptions
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
