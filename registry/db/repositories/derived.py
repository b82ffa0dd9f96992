"""
Derived record repository functions.

Profiles and aggregates are replaced wholesale: every save overwrites every
column of the existing row (or inserts it) and flushes.
"""
from __future__ import annotations

import uuid

from sqlalchemy.orm import Session

from registry.db import models


def get_sectoral_profile(db: Session, resident_id: uuid.UUID):
    return db.get(models.ResidentSectoralProfile, resident_id)


def save_sectoral_profile(db: Session, values: dict):
    row = db.get(models.ResidentSectoralProfile, values["resident_id"])
    if row is None:
        row = models.ResidentSectoralProfile(**values)
        db.add(row)
    else:
        for key, value in values.items():
            setattr(row, key, value)
    row.computed_at = models.now_utc()
    db.flush()
    return row


def get_household_aggregate(db: Session, household_id: uuid.UUID):
    return db.get(models.HouseholdAggregate, household_id)


def save_household_aggregate(db: Session, values: dict):
    row = db.get(models.HouseholdAggregate, values["household_id"])
    if row is None:
        row = models.HouseholdAggregate(**values)
        db.add(row)
    else:
        for key, value in values.items():
            setattr(row, key, value)
    row.computed_at = models.now_utc()
    db.flush()
    return row
