"""Error types raised while fitting a linkage mixture model."""
from __future__ import annotations

from dataclasses import dataclass


class LinkageModelError(Exception):
    """Base class for every error raised by the mixture-model fit."""


@dataclass
class ConfigurationError(LinkageModelError):
    """Raised when the prior, field schema or pattern table are inconsistent.

    Scenarios:
    - Prior vector lengths do not match the class count or a field's level count
    - Non-positive Dirichlet parameters
    - Zero classes, empty schema, or invalid iteration counts

    Always raised before the chain starts drawing; fatal to the fit call.
    """

    reason: str
    component: str = "prior"

    def __str__(self) -> str:
        return f"{self.component}: {self.reason}"


@dataclass
class DataError(LinkageModelError):
    """Raised when a pattern has zero probability under every latent class.

    Usually means the current draw (or the prior) puts no mass on an
    agreement level that was observed. The chain is aborted; callers may
    restart the whole fit with a different seed or prior.
    """

    reason: str
    pattern_index: int | None = None
    pattern: tuple[int, ...] | None = None

    def __str__(self) -> str:
        base = self.reason
        if self.pattern_index is not None:
            base += f" (pattern #{self.pattern_index}={list(self.pattern or ())})"
        return base
