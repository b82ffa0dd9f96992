"""
Resident repository functions.

Reads resident facts and migration records; write helpers flush but never
commit so callers control the unit of work.
"""
from __future__ import annotations

import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from registry.db import models, schemas


def get_resident(db: Session, resident_id: uuid.UUID):
    return db.query(models.Resident).filter(models.Resident.id == resident_id).first()


def lock_resident(db: Session, resident_id: uuid.UUID):
    """Fetch the resident row with ``FOR UPDATE`` (a no-op on SQLite)."""
    return (
        db.query(models.Resident)
        .filter(models.Resident.id == resident_id)
        .with_for_update()
        .first()
    )


def get_resident_ids(db: Session, skip: int = 0, limit: Optional[int] = None) -> List[uuid.UUID]:
    query = db.query(models.Resident.id).order_by(models.Resident.id).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return [row[0] for row in query.all()]


def create_resident(db: Session, resident: schemas.ResidentCreate):
    db_resident = models.Resident(**resident.model_dump())
    db.add(db_resident)
    db.flush()
    return db_resident


def update_resident(db: Session, resident_id: uuid.UUID, resident: schemas.ResidentUpdate):
    db_resident = get_resident(db, resident_id)
    if db_resident:
        update_data = resident.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(db_resident, key, value)
        db.flush()
    return db_resident


def delete_resident(db: Session, resident_id: uuid.UUID) -> bool:
    db_resident = get_resident(db, resident_id)
    if db_resident:
        db.delete(db_resident)
        db.flush()
        return True
    return False


def get_migration_info(db: Session, resident_id: uuid.UUID):
    return db.query(models.MigrationInfo).filter(models.MigrationInfo.resident_id == resident_id).first()


def has_migration_info(db: Session, resident_id: uuid.UUID) -> bool:
    return db.query(models.MigrationInfo.id).filter(models.MigrationInfo.resident_id == resident_id).first() is not None


def upsert_migration_info(db: Session, resident_id: uuid.UUID, migration: schemas.MigrationInfoCreate):
    db_migration = get_migration_info(db, resident_id)
    if db_migration is None:
        db_migration = models.MigrationInfo(resident_id=resident_id, **migration.model_dump())
        db.add(db_migration)
    else:
        for key, value in migration.model_dump().items():
            setattr(db_migration, key, value)
    db.flush()
    return db_migration


def delete_migration_info(db: Session, resident_id: uuid.UUID) -> bool:
    db_migration = get_migration_info(db, resident_id)
    if db_migration:
        db.delete(db_migration)
        db.flush()
        return True
    return False
