"""Bounded retry for recomputations that failed for a retryable reason."""
from __future__ import annotations

import logging
import random
import time
from typing import Callable, TypeVar

from registry.derivation.errors import RecomputationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_BACKOFF_SECONDS = 5.0


def backoff_delay(attempt: int, backoff_seconds: float) -> float:
    """Exponential delay for the given 1-based attempt, capped, with a small jitter."""
    base = min(_MAX_BACKOFF_SECONDS, max(0.0, backoff_seconds) * (2 ** (attempt - 1)))
    return base + random.random() * max(0.0, backoff_seconds) * 0.1


def with_retry(
    fn: Callable[[], T],
    *,
    max_attempts: int,
    backoff_seconds: float,
    description: str = "recompute",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn`` until it succeeds, a non-retryable error occurs, or attempts run out.

    ``fn`` must run a complete unit of work per call so a retry starts from
    current facts.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except RecomputationError as exc:
            if not exc.retryable or attempt >= max(1, max_attempts):
                raise
            delay = backoff_delay(attempt, backoff_seconds)
            logger.warning(
                "%s failed (attempt %s/%s, %s): %s; retrying in %.2fs",
                description, attempt, max_attempts, exc.kind, exc, delay,
            )
            sleep(delay)
