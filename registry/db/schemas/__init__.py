"""
Domain-split Pydantic schemas with a compatibility aggregator.
"""

from .residents import (
    ResidentBase,
    ResidentCreate,
    ResidentUpdate,
    Resident,
    MigrationInfoCreate,
    MigrationInfo,
)
from .households import (
    HouseholdBase,
    HouseholdCreate,
    Household,
    HouseholdMemberCreate,
    HouseholdMember,
    HouseholdTransfer,
)
from .derived import (
    SectoralProfile,
    HouseholdAggregate,
    RecomputeRequest,
    MembershipChangeRequest,
    RecomputeResult,
    ReconciliationRun,
)

__all__ = [
    "ResidentBase",
    "ResidentCreate",
    "ResidentUpdate",
    "Resident",
    "MigrationInfoCreate",
    "MigrationInfo",
    "HouseholdBase",
    "HouseholdCreate",
    "Household",
    "HouseholdMemberCreate",
    "HouseholdMember",
    "HouseholdTransfer",
    "SectoralProfile",
    "HouseholdAggregate",
    "RecomputeRequest",
    "MembershipChangeRequest",
    "RecomputeResult",
    "ReconciliationRun",
]
