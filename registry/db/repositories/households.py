"""
Household repository functions.

Implements reads for households and their memberships plus the membership
mutations (add, deactivate, transfer) used by the recomputation write paths.
"""
from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from registry.db import models, schemas


def get_household(db: Session, household_id: uuid.UUID):
    return db.query(models.Household).filter(models.Household.id == household_id).first()


def lock_household(db: Session, household_id: uuid.UUID):
    """Fetch the household row with ``FOR UPDATE`` (a no-op on SQLite)."""
    return (
        db.query(models.Household)
        .filter(models.Household.id == household_id)
        .with_for_update()
        .first()
    )


def get_household_ids(db: Session, skip: int = 0, limit: Optional[int] = None) -> List[uuid.UUID]:
    query = db.query(models.Household.id).order_by(models.Household.id).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return [row[0] for row in query.all()]


def create_household(db: Session, household: schemas.HouseholdCreate):
    db_household = models.Household(**household.model_dump())
    db.add(db_household)
    db.flush()
    return db_household


def set_household_head(db: Session, household_id: uuid.UUID, resident_id: Optional[uuid.UUID]):
    db_household = get_household(db, household_id)
    if db_household:
        db_household.household_head_id = resident_id
        db.flush()
    return db_household


def get_active_membership(db: Session, resident_id: uuid.UUID):
    return (
        db.query(models.HouseholdMember)
        .filter(
            models.HouseholdMember.resident_id == resident_id,
            models.HouseholdMember.is_active.is_(True),
        )
        .first()
    )


def get_active_member_rows(db: Session, household_id: uuid.UUID):
    """Active members joined with their resident row and stored profile (outer join)."""
    return (
        db.query(models.Resident, models.ResidentSectoralProfile)
        .join(models.HouseholdMember, models.HouseholdMember.resident_id == models.Resident.id)
        .outerjoin(
            models.ResidentSectoralProfile,
            models.ResidentSectoralProfile.resident_id == models.Resident.id,
        )
        .filter(
            models.HouseholdMember.household_id == household_id,
            models.HouseholdMember.is_active.is_(True),
        )
        .order_by(models.Resident.id)
        .all()
    )


def add_membership(db: Session, household_id: uuid.UUID, member: schemas.HouseholdMemberCreate):
    db_member = models.HouseholdMember(
        household_id=household_id,
        is_active=True,
        **member.model_dump(),
    )
    db.add(db_member)
    db.flush()
    return db_member


def deactivate_membership(db: Session, membership: models.HouseholdMember, move_out_date: Optional[date] = None):
    membership.is_active = False
    membership.move_out_date = move_out_date
    # Flush before any new active link is inserted for the same resident
    db.flush()
    return membership
