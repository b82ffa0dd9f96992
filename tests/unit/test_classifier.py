import uuid
from datetime import date

import pytest

from registry.derivation.classifier import age_on, classify
from registry.derivation.errors import ValidationError
from registry.derivation.types import (
    EducationLevel,
    EducationStatus,
    EmploymentStatus,
    ResidentFacts,
)
from registry.utils.settings import ClassificationPolicy

AS_OF = date(2024, 6, 15)


def _years_before(years: int, as_of: date = AS_OF) -> date:
    return date(as_of.year - years, as_of.month, as_of.day)


def _facts(**overrides) -> ResidentFacts:
    values = dict(
        id=uuid.uuid4(),
        last_name="Santos",
        birthdate=_years_before(30),
        employment_status=EmploymentStatus.NOT_IN_LABOR_FORCE,
    )
    values.update(overrides)
    return ResidentFacts(**values)


def test_age_on_counts_completed_years():
    assert age_on(date(2000, 6, 15), AS_OF) == 24
    assert age_on(date(2000, 6, 16), AS_OF) == 23
    assert age_on(AS_OF, AS_OF) == 0


def test_age_on_leap_day_birthday_reached_on_first_of_march():
    born = date(1964, 2, 29)
    assert age_on(born, date(2029, 2, 28)) == 64
    assert age_on(born, date(2029, 3, 1)) == 65
    assert age_on(born, date(2028, 2, 29)) == 64


def test_future_birthdate_is_rejected():
    with pytest.raises(ValidationError) as exc:
        classify(_facts(birthdate=date(2024, 6, 16)), False, AS_OF)
    assert exc.value.field == "birthdate"


def test_retired_sixty_year_old_scenario():
    profile = classify(
        _facts(birthdate=_years_before(60), employment_status=EmploymentStatus.RETIRED), False, AS_OF
    )
    assert profile.is_senior_citizen is True
    assert profile.is_labor_force_employed is False
    assert profile.is_unemployed is False
    assert profile.is_migrant is False
    assert profile.is_out_of_school_youth is False


def test_senior_citizen_flips_exactly_on_sixtieth_birthday():
    birthdate = date(1964, 6, 15)
    assert classify(_facts(birthdate=birthdate), False, date(2024, 6, 14)).is_senior_citizen is False
    assert classify(_facts(birthdate=birthdate), False, date(2024, 6, 15)).is_senior_citizen is True


@pytest.mark.parametrize("age,expected", [(5, False), (6, True), (14, True), (15, False)])
def test_out_of_school_children_age_band(age, expected):
    facts = _facts(birthdate=_years_before(age), education_status=EducationStatus.NOT_STUDYING)
    assert classify(facts, False, AS_OF).is_out_of_school_children is expected


def test_studying_child_is_not_out_of_school():
    facts = _facts(birthdate=_years_before(10), education_status=EducationStatus.CURRENTLY_STUDYING)
    assert classify(facts, False, AS_OF).is_out_of_school_children is False


def test_missing_education_status_is_not_out_of_school():
    facts = _facts(birthdate=_years_before(10), education_status=None)
    assert classify(facts, False, AS_OF).is_out_of_school_children is False


@pytest.mark.parametrize("age,expected", [(14, False), (15, True), (24, True), (25, False)])
def test_out_of_school_youth_age_band(age, expected):
    facts = _facts(birthdate=_years_before(age), education_status=EducationStatus.DROPPED_OUT)
    assert classify(facts, False, AS_OF).is_out_of_school_youth is expected


def test_out_of_school_youth_minimum_age_is_configurable():
    facts = _facts(birthdate=_years_before(15), education_status=EducationStatus.NOT_STUDYING)
    policy = ClassificationPolicy(osy_min_age=16)
    assert classify(facts, False, AS_OF, policy).is_out_of_school_youth is False
    older = _facts(birthdate=_years_before(16), education_status=EducationStatus.NOT_STUDYING)
    assert classify(older, False, AS_OF, policy).is_out_of_school_youth is True


def test_employed_youth_is_not_out_of_school_youth():
    facts = _facts(
        birthdate=_years_before(20),
        education_status=EducationStatus.NOT_STUDYING,
        employment_status=EmploymentStatus.EMPLOYED,
    )
    profile = classify(facts, False, AS_OF)
    assert profile.is_out_of_school_youth is False
    assert profile.is_labor_force_employed is True


@pytest.mark.parametrize("level", [EducationLevel.COLLEGE, EducationLevel.POST_GRADUATE])
def test_tertiary_attainment_excludes_out_of_school_youth(level):
    facts = _facts(
        birthdate=_years_before(22),
        education_status=EducationStatus.GRADUATED,
        education_attainment=level,
    )
    assert classify(facts, False, AS_OF).is_out_of_school_youth is False


def test_age_fourteen_dropout_is_child_not_youth():
    facts = _facts(birthdate=_years_before(14), education_status=EducationStatus.DROPPED_OUT)
    profile = classify(facts, False, AS_OF)
    assert profile.is_out_of_school_children is True
    assert profile.is_out_of_school_youth is False


@pytest.mark.parametrize(
    "status,employed,unemployed",
    [
        (EmploymentStatus.EMPLOYED, True, False),
        (EmploymentStatus.SELF_EMPLOYED, True, False),
        (EmploymentStatus.UNDEREMPLOYED, False, False),
        (EmploymentStatus.UNEMPLOYED, False, True),
        (EmploymentStatus.LOOKING_FOR_WORK, False, True),
        (EmploymentStatus.STUDENT, False, False),
        (EmploymentStatus.HOMEMAKER, False, False),
    ],
)
def test_labor_force_flags(status, employed, unemployed):
    profile = classify(_facts(employment_status=status), False, AS_OF)
    assert profile.is_labor_force_employed is employed
    assert profile.is_unemployed is unemployed


def test_underemployed_counts_as_employed_when_policy_says_so():
    policy = ClassificationPolicy(count_underemployed_as_employed=True)
    profile = classify(_facts(employment_status=EmploymentStatus.UNDEREMPLOYED), False, AS_OF, policy)
    assert profile.is_labor_force_employed is True


def test_registration_flags_are_copied():
    facts = _facts(
        is_registered_senior_citizen=True,
        is_solo_parent=True,
        is_indigenous_people=True,
        is_person_with_disability=True,
        is_overseas_filipino_worker=True,
    )
    profile = classify(facts, False, AS_OF)
    assert profile.is_registered_senior_citizen
    assert profile.is_solo_parent
    assert profile.is_indigenous_people
    assert profile.is_person_with_disability
    assert profile.is_overseas_filipino_worker


def test_migrant_flag_follows_migration_record():
    facts = _facts()
    assert classify(facts, True, AS_OF).is_migrant is True
    assert classify(facts, False, AS_OF).is_migrant is False


def test_classify_is_deterministic():
    facts = _facts(birthdate=_years_before(17), education_status=EducationStatus.NOT_STUDYING)
    assert classify(facts, True, AS_OF) == classify(facts, True, AS_OF)


def test_same_flags_ignores_as_of():
    facts = _facts()
    first = classify(facts, False, AS_OF)
    later = classify(facts, False, date(2024, 7, 1))
    assert first != later
    assert first.same_flags(later)
    assert not first.same_flags(None)
