"""
Reconciliation endpoints.

Trigger a full sweep on demand and inspect recorded runs.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from registry.api.deps import get_reconciliation_job
from registry.db import schemas
from registry.db.database import get_db
from registry.db.repositories import reconciliation as reconciliation_repo
from registry.workers.reconciliation_worker import ReconciliationJob

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reconciliation"])


@router.post("/reconciliation/runs", response_model=schemas.ReconciliationRun, status_code=status.HTTP_201_CREATED)
def trigger_reconciliation_endpoint(
    as_of: Optional[date] = None,
    job: ReconciliationJob = Depends(get_reconciliation_job),
    db: Session = Depends(get_db),
):
    """Run a reconciliation sweep synchronously and return the recorded run."""
    logger.info("Manual trigger of reconciliation received (as_of=%s)", as_of)
    report = job.reconcile_all(as_of=as_of)
    run = reconciliation_repo.get_reconciliation_run(db, report.run_id) if report.run_id else None
    if run is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Reconciliation run was not recorded")
    return run


@router.get("/reconciliation/runs", response_model=List[schemas.ReconciliationRun])
def list_reconciliation_runs_endpoint(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return reconciliation_repo.get_reconciliation_runs(db, skip=skip, limit=limit)


@router.get("/reconciliation/runs/{run_id}", response_model=schemas.ReconciliationRun)
def get_reconciliation_run_endpoint(run_id: uuid.UUID, db: Session = Depends(get_db)):
    run = reconciliation_repo.get_reconciliation_run(db, run_id)
    if run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reconciliation run not found")
    return run
