"""Sampler configuration with environment-based overrides.

Environment Variables:
    BAYES_LINKAGE_BURN_IN: Burn-in iterations discarded from the estimate (default 500)
    BAYES_LINKAGE_N_ITER: Sampling iterations averaged into the estimate (default 1000)
    BAYES_LINKAGE_SEED: Seed for the random generator (default unset, fresh entropy)
    BAYES_LINKAGE_LOG_EVERY: Iterations between progress log events (default 100)
    BAYES_LINKAGE_LOG_LEVEL: Log level for configure_logging (default INFO)

Example:
    >>> from bayes_linkage.config import CONFIG
    >>> CONFIG.burn_in
    500
    >>> # Pick up a .env file or changed environment
    >>> from bayes_linkage.config import load_config
    >>> config = load_config()
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

DEFAULT_BURN_IN = 500
DEFAULT_N_ITER = 1000


def _i(name: str, default: int) -> int:
    """Parse int from environment variable with fallback."""
    try:
        return int(os.getenv(name, default))
    except Exception:
        return default


def _optional_i(name: str) -> int | None:
    """Parse an optional int from environment variable."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _level(name: str, default: str) -> str:
    value = os.getenv(name, default).upper()
    if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        return default
    return value


@dataclass(frozen=True)
class SamplerConfig:
    """Defaults for the Gibbs sampler run length, seeding and logging."""

    burn_in: int = field(default_factory=lambda: _i("BAYES_LINKAGE_BURN_IN", DEFAULT_BURN_IN))
    n_iter: int = field(default_factory=lambda: _i("BAYES_LINKAGE_N_ITER", DEFAULT_N_ITER))
    seed: int | None = field(default_factory=lambda: _optional_i("BAYES_LINKAGE_SEED"))

    # Iterations between progress events; 0 disables them
    log_every: int = field(default_factory=lambda: _i("BAYES_LINKAGE_LOG_EVERY", 100))
    log_level: str = field(default_factory=lambda: _level("BAYES_LINKAGE_LOG_LEVEL", "INFO"))


def load_config(dotenv_path: str | None = None) -> SamplerConfig:
    """Load a .env file (if any) and build a fresh config from the environment."""
    load_dotenv(dotenv_path)
    return SamplerConfig()


# Global config instance
CONFIG = SamplerConfig()
