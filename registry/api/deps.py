"""
API dependency helpers.

Provides the process-wide recomputation coordinator and reconciliation job to
routes; tests swap them through ``app.dependency_overrides``.
"""
from functools import lru_cache

from registry.derivation.coordinator import RecomputationCoordinator
from registry.workers.reconciliation_worker import ReconciliationJob


@lru_cache(maxsize=None)
def get_coordinator() -> RecomputationCoordinator:
    # One lock registry per process; every request must share it.
    return RecomputationCoordinator()


def get_reconciliation_job() -> ReconciliationJob:
    return ReconciliationJob(coordinator=get_coordinator())
