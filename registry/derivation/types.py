"""Value types shared by the classifier, the aggregator and the coordinator."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class EmploymentStatus(str, Enum):
    EMPLOYED = "employed"
    SELF_EMPLOYED = "self_employed"
    UNDEREMPLOYED = "underemployed"
    UNEMPLOYED = "unemployed"
    LOOKING_FOR_WORK = "looking_for_work"
    STUDENT = "student"
    RETIRED = "retired"
    HOMEMAKER = "homemaker"
    UNABLE_TO_WORK = "unable_to_work"
    NOT_IN_LABOR_FORCE = "not_in_labor_force"


class EducationStatus(str, Enum):
    CURRENTLY_STUDYING = "currently_studying"
    NOT_STUDYING = "not_studying"
    GRADUATED = "graduated"
    DROPPED_OUT = "dropped_out"


class EducationLevel(str, Enum):
    NO_FORMAL_EDUCATION = "no_formal_education"
    ELEMENTARY = "elementary"
    HIGH_SCHOOL = "high_school"
    VOCATIONAL = "vocational"
    COLLEGE = "college"
    POST_GRADUATE = "post_graduate"


@dataclass(frozen=True)
class ResidentRef:
    id: uuid.UUID
    last_name: str


@dataclass(frozen=True)
class ResidentFacts:
    id: uuid.UUID
    last_name: str
    birthdate: date
    employment_status: EmploymentStatus = EmploymentStatus.NOT_IN_LABOR_FORCE
    education_status: Optional[EducationStatus] = None
    education_attainment: Optional[EducationLevel] = None
    salary: Optional[Decimal] = None
    is_registered_senior_citizen: bool = False
    is_solo_parent: bool = False
    is_indigenous_people: bool = False
    is_person_with_disability: bool = False
    is_overseas_filipino_worker: bool = False


@dataclass(frozen=True)
class SectoralProfile:
    resident_id: uuid.UUID
    as_of: date
    is_labor_force_employed: bool = False
    is_unemployed: bool = False
    is_out_of_school_children: bool = False
    is_out_of_school_youth: bool = False
    is_senior_citizen: bool = False
    is_registered_senior_citizen: bool = False
    is_solo_parent: bool = False
    is_indigenous_people: bool = False
    is_person_with_disability: bool = False
    is_overseas_filipino_worker: bool = False
    is_migrant: bool = False

    def flags(self) -> Tuple[bool, ...]:
        return tuple(getattr(self, name) for name in PROFILE_FLAGS)

    def same_flags(self, other: Optional["SectoralProfile"]) -> bool:
        """Compare classification content only; ``as_of`` is bookkeeping."""
        return other is not None and self.resident_id == other.resident_id and self.flags() == other.flags()


PROFILE_FLAGS: Tuple[str, ...] = tuple(
    f.name for f in fields(SectoralProfile) if f.name.startswith("is_")
)


@dataclass(frozen=True)
class ActiveMember:
    resident_id: uuid.UUID
    last_name: str
    salary: Optional[Decimal]
    profile: SectoralProfile


@dataclass(frozen=True)
class HouseholdAggregate:
    household_id: uuid.UUID
    as_of: date
    member_count: int
    migrant_count: int
    total_monthly_income: Decimal
    income_class: str
    household_name: Optional[str] = None

    def same_values(self, other: Optional["HouseholdAggregate"]) -> bool:
        """Compare aggregate content only; ``as_of`` is bookkeeping."""
        if other is None:
            return False
        return (
            self.household_id == other.household_id
            and self.member_count == other.member_count
            and self.migrant_count == other.migrant_count
            and self.total_monthly_income == other.total_monthly_income
            and self.income_class == other.income_class
            and self.household_name == other.household_name
        )
