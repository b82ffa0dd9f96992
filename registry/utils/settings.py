"""Deployment policy and runtime settings sourced from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

from registry.derivation.income import DEFAULT_INCOME_BRACKETS, IncomeBracketTable

logger = logging.getLogger(__name__)

_ALLOWED_OSY_MIN_AGES = (15, 16)


def _normalize_bool(value: str | None, default: bool = False) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"", "0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring negative %s=%r; using %s", name, raw, default)
        return default
    return value


@dataclass(frozen=True)
class ClassificationPolicy:
    """Deployment-configurable parts of the sectoral rules."""

    count_underemployed_as_employed: bool = False
    osy_min_age: int = 15

    def __post_init__(self):
        if self.osy_min_age not in _ALLOWED_OSY_MIN_AGES:
            raise ValueError(f"osy_min_age must be one of {_ALLOWED_OSY_MIN_AGES}, got {self.osy_min_age}")


@dataclass(frozen=True)
class RecomputationSettings:
    policy: ClassificationPolicy = field(default_factory=ClassificationPolicy)
    income_brackets: IncomeBracketTable = DEFAULT_INCOME_BRACKETS
    lock_timeout_seconds: float = 5.0
    max_attempts: int = 3
    backoff_seconds: float = 0.05
    reconcile_interval_seconds: float = 86400.0

    @classmethod
    def from_env(cls) -> "RecomputationSettings":
        osy_min_age = _env_int("REGISTRY_OSY_MIN_AGE", 15)
        if osy_min_age not in _ALLOWED_OSY_MIN_AGES:
            logger.warning("REGISTRY_OSY_MIN_AGE=%s not supported; using 15", osy_min_age)
            osy_min_age = 15

        raw_brackets = os.getenv("REGISTRY_INCOME_BRACKETS")
        brackets = IncomeBracketTable.from_json(raw_brackets) if raw_brackets else DEFAULT_INCOME_BRACKETS

        max_attempts = _env_int("REGISTRY_RECOMPUTE_MAX_ATTEMPTS", 3)
        if max_attempts < 1:
            logger.warning("REGISTRY_RECOMPUTE_MAX_ATTEMPTS=%s must be >= 1; using 1", max_attempts)
            max_attempts = 1

        return cls(
            policy=ClassificationPolicy(
                count_underemployed_as_employed=_normalize_bool(
                    os.getenv("REGISTRY_COUNT_UNDEREMPLOYED_AS_EMPLOYED"), default=False
                ),
                osy_min_age=osy_min_age,
            ),
            income_brackets=brackets,
            lock_timeout_seconds=_env_float("REGISTRY_HOUSEHOLD_LOCK_TIMEOUT_SECONDS", 5.0),
            max_attempts=max_attempts,
            backoff_seconds=_env_float("REGISTRY_RECOMPUTE_BACKOFF_SECONDS", 0.05),
            reconcile_interval_seconds=_env_float("REGISTRY_RECONCILE_INTERVAL_SECONDS", 86400.0),
        )


@lru_cache(maxsize=None)
def get_settings() -> RecomputationSettings:
    """Return the cached settings sourced from the environment."""
    return RecomputationSettings.from_env()


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()
