"""
Sectoral classification of a single resident.

Pure and deterministic: every age-dependent flag is evaluated against the one
``as_of`` date passed in, never against the wall clock.
"""
from __future__ import annotations

from datetime import date
from typing import FrozenSet, Optional

from registry.derivation.errors import ValidationError
from registry.derivation.types import (
    EducationLevel,
    EducationStatus,
    EmploymentStatus,
    ResidentFacts,
    SectoralProfile,
)
from registry.utils.settings import ClassificationPolicy

SENIOR_CITIZEN_AGE = 60
OSC_AGE_RANGE = (6, 14)
OSY_MAX_AGE = 24

EMPLOYED_STATUSES: FrozenSet[EmploymentStatus] = frozenset({
    EmploymentStatus.EMPLOYED,
    EmploymentStatus.SELF_EMPLOYED,
})
UNEMPLOYED_STATUSES: FrozenSet[EmploymentStatus] = frozenset({
    EmploymentStatus.UNEMPLOYED,
    EmploymentStatus.LOOKING_FOR_WORK,
})
OUT_OF_SCHOOL_STATUSES: FrozenSet[EducationStatus] = frozenset({
    EducationStatus.NOT_STUDYING,
    EducationStatus.DROPPED_OUT,
})
TERTIARY_LEVELS: FrozenSet[EducationLevel] = frozenset({
    EducationLevel.COLLEGE,
    EducationLevel.POST_GRADUATE,
})

_DEFAULT_POLICY = ClassificationPolicy()


def age_on(birthdate: date, as_of: date) -> int:
    """Whole completed years at ``as_of``.

    The year is counted once ``as_of`` reaches the birthday's month/day, so a
    29 February birthday is reached on 1 March in common years.
    """
    if birthdate > as_of:
        raise ValidationError(f"birthdate {birthdate.isoformat()} is after {as_of.isoformat()}", field="birthdate")
    years = as_of.year - birthdate.year
    if (as_of.month, as_of.day) < (birthdate.month, birthdate.day):
        years -= 1
    return years


def employed_statuses(policy: ClassificationPolicy) -> FrozenSet[EmploymentStatus]:
    if policy.count_underemployed_as_employed:
        return EMPLOYED_STATUSES | {EmploymentStatus.UNDEREMPLOYED}
    return EMPLOYED_STATUSES


def _is_out_of_school(status: Optional[EducationStatus]) -> bool:
    return status in OUT_OF_SCHOOL_STATUSES


def classify(
    facts: ResidentFacts,
    has_migration_record: bool,
    as_of: date,
    policy: ClassificationPolicy = _DEFAULT_POLICY,
) -> SectoralProfile:
    """Compute the sectoral profile for ``facts`` as of ``as_of``."""
    age = age_on(facts.birthdate, as_of)
    employed = employed_statuses(policy)
    is_employed = facts.employment_status in employed
    out_of_school = _is_out_of_school(facts.education_status)

    is_osc = OSC_AGE_RANGE[0] <= age <= OSC_AGE_RANGE[1] and out_of_school
    is_osy = (
        policy.osy_min_age <= age <= OSY_MAX_AGE
        and out_of_school
        and facts.education_attainment not in TERTIARY_LEVELS
        and not is_employed
    )

    return SectoralProfile(
        resident_id=facts.id,
        as_of=as_of,
        is_labor_force_employed=is_employed,
        is_unemployed=facts.employment_status in UNEMPLOYED_STATUSES,
        is_out_of_school_children=is_osc,
        is_out_of_school_youth=is_osy,
        is_senior_citizen=age >= SENIOR_CITIZEN_AGE,
        is_registered_senior_citizen=facts.is_registered_senior_citizen,
        is_solo_parent=facts.is_solo_parent,
        is_indigenous_people=facts.is_indigenous_people,
        is_person_with_disability=facts.is_person_with_disability,
        is_overseas_filipino_worker=facts.is_overseas_filipino_worker,
        is_migrant=bool(has_migration_record),
    )
