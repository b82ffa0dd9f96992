import os

# Force the in-memory SQLite engine in registry.db.database during collection.
os.environ.setdefault("PYTEST_RUNNING", "1")

import pytest

from registry.utils.settings import refresh_settings_cache

_REGISTRY_ENV_VARS = [
    "REGISTRY_COUNT_UNDEREMPLOYED_AS_EMPLOYED",
    "REGISTRY_OSY_MIN_AGE",
    "REGISTRY_INCOME_BRACKETS",
    "REGISTRY_HOUSEHOLD_LOCK_TIMEOUT_SECONDS",
    "REGISTRY_RECOMPUTE_MAX_ATTEMPTS",
    "REGISTRY_RECOMPUTE_BACKOFF_SECONDS",
    "REGISTRY_RECONCILE_INTERVAL_SECONDS",
]


@pytest.fixture(autouse=True)
def _clean_registry_env(monkeypatch):
    """Clear env + cached settings for each test to avoid cross-contamination."""
    for name in _REGISTRY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    refresh_settings_cache()
    yield
    refresh_settings_cache()
