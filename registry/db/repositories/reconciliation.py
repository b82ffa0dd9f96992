"""
Reconciliation run repository functions.
"""
from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy.orm import Session

from registry.db import models


def create_reconciliation_run(db: Session, as_of: date):
    run = models.ReconciliationRun(status="running", as_of=as_of, started_at=models.now_utc())
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def get_reconciliation_run(db: Session, run_id: uuid.UUID):
    return db.query(models.ReconciliationRun).filter(models.ReconciliationRun.id == run_id).first()


def get_reconciliation_runs(db: Session, skip: int = 0, limit: int = 20):
    return (
        db.query(models.ReconciliationRun)
        .order_by(models.ReconciliationRun.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def finish_reconciliation_run(db: Session, run_id: uuid.UUID, *, status: str, summary: dict, errors: list):
    run = get_reconciliation_run(db, run_id)
    if run is None:
        return None
    run.status = status
    run.residents_checked = summary.get("residents_checked", 0)
    run.households_checked = summary.get("households_checked", 0)
    run.profile_corrections = summary.get("profile_corrections", 0)
    run.aggregate_corrections = summary.get("aggregate_corrections", 0)
    run.error_count = len(errors)
    run.error_log = {"errors": errors} if errors else None
    run.finished_at = models.now_utc()
    db.commit()
    db.refresh(run)
    return run
