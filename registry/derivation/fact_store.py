"""
Fact store contract consumed by the recomputation engine, and its
SQLAlchemy-backed implementation.

The engine never touches ORM rows directly; everything it reads or writes
goes through a ``FactStore`` bound to one session.
"""
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import List, Optional, Protocol

from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from registry.db import models
from registry.db.repositories import derived as derived_repo
from registry.db.repositories import households as households_repo
from registry.db.repositories import residents as residents_repo
from registry.derivation.errors import NotFound, PersistenceFailure, ValidationError
from registry.derivation.types import (
    PROFILE_FLAGS,
    EducationLevel,
    EducationStatus,
    EmploymentStatus,
    HouseholdAggregate,
    ResidentFacts,
    ResidentRef,
    SectoralProfile,
)


class FactStore(Protocol):
    def get_resident_facts(self, resident_id: uuid.UUID) -> ResidentFacts: ...
    def has_migration_record(self, resident_id: uuid.UUID) -> bool: ...
    def get_active_membership(self, resident_id: uuid.UUID) -> Optional[uuid.UUID]: ...
    def get_active_members(self, household_id: uuid.UUID) -> List["MemberFacts"]: ...
    def get_head(self, household_id: uuid.UUID) -> Optional[ResidentRef]: ...
    def lock_resident(self, resident_id: uuid.UUID) -> None: ...
    def lock_household(self, household_id: uuid.UUID) -> None: ...
    def get_sectoral_profile(self, resident_id: uuid.UUID) -> Optional[SectoralProfile]: ...
    def get_household_aggregate(self, household_id: uuid.UUID) -> Optional[HouseholdAggregate]: ...
    def save_sectoral_profile(self, profile: SectoralProfile) -> None: ...
    def save_household_aggregate(self, aggregate: HouseholdAggregate) -> None: ...
    def list_resident_ids(self) -> List[uuid.UUID]: ...
    def list_household_ids(self) -> List[uuid.UUID]: ...


class MemberFacts:
    """An active member's facts plus its stored profile (``None`` if never computed)."""

    __slots__ = ("facts", "profile")

    def __init__(self, facts: ResidentFacts, profile: Optional[SectoralProfile]):
        self.facts = facts
        self.profile = profile


def _enum_or_none(enum_cls, value):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError(f"unknown {enum_cls.__name__} value {value!r}") from exc


def resident_to_facts(row: models.Resident) -> ResidentFacts:
    if row.birthdate is None:
        raise ValidationError(f"resident {row.id} has no birthdate", field="birthdate")
    salary = Decimal(row.salary) if row.salary is not None else None
    if salary is not None and salary < 0:
        raise ValidationError(f"resident {row.id} has a negative salary ({salary})", field="salary")
    return ResidentFacts(
        id=row.id,
        last_name=row.last_name,
        birthdate=row.birthdate,
        employment_status=_enum_or_none(EmploymentStatus, row.employment_status) or EmploymentStatus.NOT_IN_LABOR_FORCE,
        education_status=_enum_or_none(EducationStatus, row.education_status),
        education_attainment=_enum_or_none(EducationLevel, row.education_attainment),
        salary=salary,
        is_registered_senior_citizen=bool(row.is_registered_senior_citizen),
        is_solo_parent=bool(row.is_solo_parent),
        is_indigenous_people=bool(row.is_indigenous_people),
        is_person_with_disability=bool(row.is_person_with_disability),
        is_overseas_filipino_worker=bool(row.is_overseas_filipino_worker),
    )


def profile_from_row(row: models.ResidentSectoralProfile) -> SectoralProfile:
    return SectoralProfile(
        resident_id=row.resident_id,
        as_of=row.as_of,
        **{name: bool(getattr(row, name)) for name in PROFILE_FLAGS},
    )


def aggregate_from_row(row: models.HouseholdAggregate) -> HouseholdAggregate:
    return HouseholdAggregate(
        household_id=row.household_id,
        as_of=row.as_of,
        member_count=row.member_count,
        migrant_count=row.migrant_count,
        total_monthly_income=Decimal(row.total_monthly_income),
        income_class=row.income_class,
        household_name=row.household_name,
    )


def persistence_failure(exc: SQLAlchemyError, action: str) -> PersistenceFailure:
    transient = isinstance(exc, OperationalError) or (
        isinstance(exc, DBAPIError) and bool(getattr(exc, "connection_invalidated", False))
    )
    return PersistenceFailure(f"failed to {action}: {exc}", transient=transient, original=exc)


class SessionFactStore:
    """``FactStore`` over one SQLAlchemy session; never commits."""

    def __init__(self, db: Session):
        self.db = db

    def get_resident_facts(self, resident_id: uuid.UUID) -> ResidentFacts:
        row = residents_repo.get_resident(self.db, resident_id)
        if row is None:
            raise NotFound("resident", resident_id)
        return resident_to_facts(row)

    def has_migration_record(self, resident_id: uuid.UUID) -> bool:
        return residents_repo.has_migration_info(self.db, resident_id)

    def get_active_membership(self, resident_id: uuid.UUID) -> Optional[uuid.UUID]:
        membership = households_repo.get_active_membership(self.db, resident_id)
        return membership.household_id if membership else None

    def get_active_members(self, household_id: uuid.UUID) -> List[MemberFacts]:
        members = []
        for resident, profile in households_repo.get_active_member_rows(self.db, household_id):
            members.append(MemberFacts(resident_to_facts(resident), profile_from_row(profile) if profile else None))
        return members

    def get_head(self, household_id: uuid.UUID) -> Optional[ResidentRef]:
        household = households_repo.get_household(self.db, household_id)
        if household is None:
            raise NotFound("household", household_id)
        if household.household_head_id is None:
            return None
        head = residents_repo.get_resident(self.db, household.household_head_id)
        if head is None:
            return None
        return ResidentRef(id=head.id, last_name=head.last_name)

    def lock_resident(self, resident_id: uuid.UUID) -> None:
        if residents_repo.lock_resident(self.db, resident_id) is None:
            raise NotFound("resident", resident_id)

    def lock_household(self, household_id: uuid.UUID) -> None:
        if households_repo.lock_household(self.db, household_id) is None:
            raise NotFound("household", household_id)

    def get_sectoral_profile(self, resident_id: uuid.UUID) -> Optional[SectoralProfile]:
        row = derived_repo.get_sectoral_profile(self.db, resident_id)
        return profile_from_row(row) if row else None

    def get_household_aggregate(self, household_id: uuid.UUID) -> Optional[HouseholdAggregate]:
        row = derived_repo.get_household_aggregate(self.db, household_id)
        return aggregate_from_row(row) if row else None

    def save_sectoral_profile(self, profile: SectoralProfile) -> None:
        values = {"resident_id": profile.resident_id, "as_of": profile.as_of}
        values.update({name: getattr(profile, name) for name in PROFILE_FLAGS})
        try:
            derived_repo.save_sectoral_profile(self.db, values)
        except SQLAlchemyError as exc:
            raise persistence_failure(exc, f"save sectoral profile for resident {profile.resident_id}") from exc

    def save_household_aggregate(self, aggregate: HouseholdAggregate) -> None:
        values = {
            "household_id": aggregate.household_id,
            "as_of": aggregate.as_of,
            "member_count": aggregate.member_count,
            "migrant_count": aggregate.migrant_count,
            "total_monthly_income": aggregate.total_monthly_income,
            "income_class": aggregate.income_class,
            "household_name": aggregate.household_name,
        }
        try:
            derived_repo.save_household_aggregate(self.db, values)
        except SQLAlchemyError as exc:
            raise persistence_failure(exc, f"save aggregate for household {aggregate.household_id}") from exc

    def list_resident_ids(self) -> List[uuid.UUID]:
        return residents_repo.get_resident_ids(self.db)

    def list_household_ids(self) -> List[uuid.UUID]:
        return households_repo.get_household_ids(self.db)
