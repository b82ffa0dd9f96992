"""
Domain-split SQLAlchemy models with a compatibility aggregator.

Exposes `Base`, `now_utc`, and all ORM classes from one import path.
"""

from .base import Base, now_utc  # re-export

# Domain models
from .residents import Resident, MigrationInfo
from .households import Household, HouseholdMember
from .derived import ResidentSectoralProfile, HouseholdAggregate
from .reconciliation import ReconciliationRun

__all__ = [
    # base
    "Base",
    "now_utc",
    # facts
    "Resident",
    "MigrationInfo",
    "Household",
    "HouseholdMember",
    # derived
    "ResidentSectoralProfile",
    "HouseholdAggregate",
    # jobs
    "ReconciliationRun",
]
