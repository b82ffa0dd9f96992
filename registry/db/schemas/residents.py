import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from registry.derivation.types import EducationLevel, EducationStatus, EmploymentStatus


REQUIRED_RESIDENT_FIELDS = frozenset({
    "first_name",
    "last_name",
    "birthdate",
    "employment_status",
    "is_registered_senior_citizen",
    "is_solo_parent",
    "is_indigenous_people",
    "is_person_with_disability",
    "is_overseas_filipino_worker",
})


class ResidentBase(BaseModel):
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    birthdate: date
    employment_status: EmploymentStatus = EmploymentStatus.NOT_IN_LABOR_FORCE
    education_status: Optional[EducationStatus] = None
    education_attainment: Optional[EducationLevel] = None
    salary: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    is_registered_senior_citizen: bool = False
    is_solo_parent: bool = False
    is_indigenous_people: bool = False
    is_person_with_disability: bool = False
    is_overseas_filipino_worker: bool = False
    model_config = ConfigDict(use_enum_values=True)


class ResidentCreate(ResidentBase):
    pass


class ResidentUpdate(BaseModel):
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    birthdate: Optional[date] = None
    employment_status: Optional[EmploymentStatus] = None
    education_status: Optional[EducationStatus] = None
    education_attainment: Optional[EducationLevel] = None
    salary: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    is_registered_senior_citizen: Optional[bool] = None
    is_solo_parent: Optional[bool] = None
    is_indigenous_people: Optional[bool] = None
    is_person_with_disability: Optional[bool] = None
    is_overseas_filipino_worker: Optional[bool] = None
    model_config = ConfigDict(use_enum_values=True)

    def cleared_required_fields(self) -> List[str]:
        """Fields explicitly set to ``None`` although the resident row requires a value."""
        return [
            name for name, value in self.model_dump(exclude_unset=True).items()
            if value is None and name in REQUIRED_RESIDENT_FIELDS
        ]


class Resident(ResidentBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class MigrationInfoCreate(BaseModel):
    previous_barangay_code: Optional[str] = None
    previous_city_municipality_code: Optional[str] = None
    previous_province_code: Optional[str] = None
    previous_region_code: Optional[str] = None
    previous_country: Optional[str] = None
    date_of_transfer: Optional[date] = None
    reason_for_leaving: Optional[str] = None
    reason_for_transferring: Optional[str] = None
    length_of_stay_previous_months: Optional[int] = Field(default=None, ge=0)
    duration_of_stay_current_months: Optional[int] = Field(default=None, ge=0)
    is_intending_to_return: Optional[bool] = None


class MigrationInfo(MigrationInfoCreate):
    id: uuid.UUID
    resident_id: uuid.UUID
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
