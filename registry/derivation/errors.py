"""
Error kinds raised by the recomputation engine.

``NotFound`` and ``ValidationError`` describe bad input and are never retried.
``ConcurrencyTimeout`` and transient ``PersistenceFailure`` are safe to retry
because every recompute replaces the derived record wholesale.
"""
from __future__ import annotations

from typing import Any, Optional


class RecomputationError(Exception):
    """Base class for engine errors."""

    kind = "recomputation_error"
    retryable = False

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": str(self), "retryable": self.retryable}


class NotFound(RecomputationError):
    kind = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(RecomputationError):
    kind = "validation_error"

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ConcurrencyTimeout(RecomputationError):
    kind = "concurrency_timeout"
    retryable = True

    def __init__(self, key: Any, timeout: float):
        super().__init__(f"could not acquire lock for {key} within {timeout:.2f}s")
        self.key = key
        self.timeout = timeout


class PersistenceFailure(RecomputationError):
    kind = "persistence_failure"

    def __init__(self, message: str, *, transient: bool = False, original: Optional[BaseException] = None):
        super().__init__(message)
        self.transient = transient
        self.original = original

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.transient


__all__ = [
    "RecomputationError",
    "NotFound",
    "ValidationError",
    "ConcurrencyTimeout",
    "PersistenceFailure",
]
