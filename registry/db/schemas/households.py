import uuid
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class HouseholdBase(BaseModel):
    code: str
    household_head_id: Optional[uuid.UUID] = None


class HouseholdCreate(HouseholdBase):
    pass


class Household(HouseholdBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class HouseholdMemberCreate(BaseModel):
    resident_id: uuid.UUID
    relationship_to_head: Optional[str] = None
    move_in_date: Optional[date] = None


class HouseholdMember(HouseholdMemberCreate):
    id: uuid.UUID
    household_id: uuid.UUID
    is_active: bool
    move_out_date: Optional[date] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class HouseholdTransfer(BaseModel):
    resident_id: uuid.UUID
    from_household_id: uuid.UUID
    to_household_id: uuid.UUID
    relationship_to_head: Optional[str] = None
    transfer_date: Optional[date] = None
