import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class SectoralProfile(BaseModel):
    resident_id: uuid.UUID
    is_labor_force_employed: bool
    is_unemployed: bool
    is_out_of_school_children: bool
    is_out_of_school_youth: bool
    is_senior_citizen: bool
    is_registered_senior_citizen: bool
    is_solo_parent: bool
    is_indigenous_people: bool
    is_person_with_disability: bool
    is_overseas_filipino_worker: bool
    is_migrant: bool
    as_of: date
    computed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class HouseholdAggregate(BaseModel):
    household_id: uuid.UUID
    member_count: int
    migrant_count: int
    total_monthly_income: Decimal
    income_class: str
    household_name: Optional[str] = None
    as_of: date
    computed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class RecomputeRequest(BaseModel):
    as_of: Optional[date] = None


class MembershipChangeRequest(BaseModel):
    household_ids: List[uuid.UUID]
    as_of: Optional[date] = None


class RecomputeResult(BaseModel):
    profile: Optional[SectoralProfile] = None
    aggregates: List[HouseholdAggregate] = []


class ReconciliationRun(BaseModel):
    id: uuid.UUID
    status: str
    as_of: date
    residents_checked: int
    households_checked: int
    profile_corrections: int
    aggregate_corrections: int
    error_count: int
    error_log: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
