"""Household aggregate computed from the active membership set."""
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from registry.derivation.errors import ValidationError
from registry.derivation.income import IncomeBracketTable, DEFAULT_INCOME_BRACKETS
from registry.derivation.types import ActiveMember, HouseholdAggregate, ResidentRef

_ZERO = Decimal("0")


def total_income(members: Sequence[ActiveMember]) -> Decimal:
    total = _ZERO
    for member in members:
        if member.salary is None:
            continue
        if member.salary < 0:
            raise ValidationError(
                f"resident {member.resident_id} has a negative salary ({member.salary})", field="salary"
            )
        total += member.salary
    return total


def aggregate(
    household_id: uuid.UUID,
    members: Sequence[ActiveMember],
    head: Optional[ResidentRef],
    as_of: date,
    brackets: IncomeBracketTable = DEFAULT_INCOME_BRACKETS,
) -> HouseholdAggregate:
    """Recompute the full aggregate for one household.

    Raises ``ValidationError`` for negative salaries, duplicated members, and
    a head that is not among the active members.
    """
    member_ids = [m.resident_id for m in members]
    if len(set(member_ids)) != len(member_ids):
        raise ValidationError(f"household {household_id} lists a resident more than once")

    household_name = None
    if head is not None:
        if head.id not in set(member_ids):
            raise ValidationError(
                f"head {head.id} of household {household_id} is not an active member", field="household_head_id"
            )
        household_name = head.last_name

    income = total_income(members)
    return HouseholdAggregate(
        household_id=household_id,
        as_of=as_of,
        member_count=len(members),
        migrant_count=sum(1 for m in members if m.profile.is_migrant),
        total_monthly_income=income,
        income_class=brackets.classify(income),
        household_name=household_name,
    )
