"""
Recompute endpoints.

Intake for fact-change events (resident facts, migration records, household
membership) plus reads of the stored derived records.
"""
from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from registry.api.deps import get_coordinator
from registry.db import schemas
from registry.db.database import get_db
from registry.db.repositories import derived as derived_repo
from registry.derivation.coordinator import RecomputationCoordinator, RecomputeOutcome

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recompute"])


def _to_result(outcome: RecomputeOutcome) -> schemas.RecomputeResult:
    return schemas.RecomputeResult(
        profile=(
            schemas.SectoralProfile.model_validate(outcome.profile, from_attributes=True)
            if outcome.profile is not None else None
        ),
        aggregates=[
            schemas.HouseholdAggregate.model_validate(item, from_attributes=True) for item in outcome.aggregates
        ],
    )


@router.post("/recompute/residents/{resident_id}", response_model=schemas.RecomputeResult)
def resident_facts_changed_endpoint(
    resident_id: uuid.UUID,
    payload: schemas.RecomputeRequest = schemas.RecomputeRequest(),
    coordinator: RecomputationCoordinator = Depends(get_coordinator),
):
    """Recompute a resident's sectoral profile and its household's aggregate."""
    logger.info("Resident facts changed for %s", resident_id)
    return _to_result(coordinator.on_resident_facts_changed(resident_id, as_of=payload.as_of))


@router.post("/recompute/residents/{resident_id}/migration", response_model=schemas.RecomputeResult)
def migration_record_changed_endpoint(
    resident_id: uuid.UUID,
    payload: schemas.RecomputeRequest = schemas.RecomputeRequest(),
    coordinator: RecomputationCoordinator = Depends(get_coordinator),
):
    logger.info("Migration record changed for %s", resident_id)
    return _to_result(coordinator.on_migration_record_changed(resident_id, as_of=payload.as_of))


@router.post("/recompute/households", response_model=schemas.RecomputeResult)
def household_membership_changed_endpoint(
    payload: schemas.MembershipChangeRequest,
    coordinator: RecomputationCoordinator = Depends(get_coordinator),
):
    """Recompute every listed household in one unit of work."""
    if not payload.household_ids:
        raise HTTPException(status_code=422, detail="household_ids must not be empty")
    first, *rest = payload.household_ids
    return _to_result(coordinator.on_household_membership_changed(first, *rest, as_of=payload.as_of))


@router.post("/recompute/transfers", response_model=schemas.RecomputeResult)
def transfer_member_endpoint(
    transfer: schemas.HouseholdTransfer,
    coordinator: RecomputationCoordinator = Depends(get_coordinator),
):
    """Move a resident between households and recompute both aggregates."""
    logger.info(
        "Transfer of resident %s from %s to %s", transfer.resident_id, transfer.from_household_id, transfer.to_household_id
    )
    return _to_result(coordinator.transfer_member(transfer))


@router.get("/residents/{resident_id}/sectoral-profile", response_model=schemas.SectoralProfile)
def get_sectoral_profile_endpoint(resident_id: uuid.UUID, db: Session = Depends(get_db)):
    profile = derived_repo.get_sectoral_profile(db, resident_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sectoral profile not found")
    return profile


@router.get("/households/{household_id}/aggregate", response_model=schemas.HouseholdAggregate)
def get_household_aggregate_endpoint(household_id: uuid.UUID, db: Session = Depends(get_db)):
    aggregate = derived_repo.get_household_aggregate(db, household_id)
    if aggregate is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Household aggregate not found")
    return aggregate
