"""
Recomputation coordinator.

Turns fact mutations into recomputes of the dependent derived records, in
dependency order (resident -> sectoral profile -> household aggregate), inside
one unit of work per call.

Every public method accepts an optional ``db`` session. Without one, the
coordinator opens its own session, commits on success and retries retryable
failures with bounded backoff. With one, it joins the caller's transaction and
leaves the commit to the caller; on any failure it rolls that session back so
the triggering mutation is discarded together with the derived writes.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional, Tuple, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from registry.db import schemas
from registry.db.repositories import households as households_repo
from registry.db.repositories import residents as residents_repo
from registry.derivation.aggregator import aggregate
from registry.derivation.classifier import classify
from registry.derivation.errors import NotFound, RecomputationError, ValidationError
from registry.derivation.fact_store import FactStore, SessionFactStore, persistence_failure
from registry.derivation.locks import HouseholdLockRegistry, household_key, resident_key
from registry.derivation.retry import with_retry
from registry.derivation.types import ActiveMember, HouseholdAggregate, SectoralProfile
from registry.utils.settings import RecomputationSettings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RecomputeOutcome:
    """Derived records written by one coordinator call."""

    profile: Optional[SectoralProfile] = None
    aggregates: List[HouseholdAggregate] = field(default_factory=list)

    def aggregate_for(self, household_id: uuid.UUID) -> Optional[HouseholdAggregate]:
        for item in self.aggregates:
            if item.household_id == household_id:
                return item
        return None


class RecomputationCoordinator:
    """Entry points for the three mutation sources plus the combined write paths."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        settings: Optional[RecomputationSettings] = None,
        locks: Optional[HouseholdLockRegistry] = None,
        clock: Callable[[], date] = date.today,
        store_factory: Callable[[Session], FactStore] = SessionFactStore,
    ):
        if session_factory is None:
            from registry.db.database import SessionLocal
            session_factory = SessionLocal
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.locks = locks or HouseholdLockRegistry()
        self.clock = clock
        self.store_factory = store_factory

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------
    def _run(self, description: str, operation: Callable[[Session, FactStore], T], db: Optional[Session] = None) -> T:
        if db is not None:
            return self._attempt(description, operation, db)
        return with_retry(
            lambda: self._own_unit(description, operation),
            max_attempts=self.settings.max_attempts,
            backoff_seconds=self.settings.backoff_seconds,
            description=description,
        )

    def _attempt(self, description: str, operation: Callable[[Session, FactStore], T], db: Session) -> T:
        try:
            return operation(db, self.store_factory(db))
        except RecomputationError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            raise persistence_failure(exc, description) from exc

    def _own_unit(self, description: str, operation: Callable[[Session, FactStore], T]) -> T:
        db = self.session_factory()
        try:
            result = self._attempt(description, operation, db)
            try:
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise persistence_failure(exc, f"commit {description}") from exc
            return result
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Recompute steps
    # ------------------------------------------------------------------
    def _lock_timeout(self) -> float:
        return self.settings.lock_timeout_seconds

    def _recompute_profile(
        self, db: Session, store: FactStore, resident_id: uuid.UUID, as_of: date, *, only_if_changed: bool = False
    ) -> Tuple[SectoralProfile, bool]:
        self.locks.acquire(db, resident_key(resident_id), self._lock_timeout())
        store.lock_resident(resident_id)
        facts = store.get_resident_facts(resident_id)
        profile = classify(facts, store.has_migration_record(resident_id), as_of, self.settings.policy)
        stored = store.get_sectoral_profile(resident_id)
        changed = not profile.same_flags(stored)
        if changed or not only_if_changed:
            store.save_sectoral_profile(profile)
        if changed and stored is not None:
            logger.info("Sectoral profile of resident %s changed as of %s", resident_id, as_of)
        return profile, changed

    def _recompute_household(
        self, db: Session, store: FactStore, household_id: uuid.UUID, as_of: date, *, only_if_changed: bool = False
    ) -> Tuple[HouseholdAggregate, bool]:
        self.locks.acquire(db, household_key(household_id), self._lock_timeout())
        store.lock_household(household_id)
        members = []
        for member in store.get_active_members(household_id):
            profile = member.profile
            if profile is None:
                # Member never classified; derive its profile first.
                profile = classify(
                    member.facts, store.has_migration_record(member.facts.id), as_of, self.settings.policy
                )
                store.save_sectoral_profile(profile)
            members.append(ActiveMember(
                resident_id=member.facts.id,
                last_name=member.facts.last_name,
                salary=member.facts.salary,
                profile=profile,
            ))
        result = aggregate(household_id, members, store.get_head(household_id), as_of, self.settings.income_brackets)
        stored = store.get_household_aggregate(household_id)
        changed = not result.same_values(stored)
        if changed or not only_if_changed:
            store.save_household_aggregate(result)
        return result, changed

    def _lock_resident_scope(self, db: Session, store: FactStore, resident_id: uuid.UUID) -> Optional[uuid.UUID]:
        """Lock the resident, then its current household; returns that household id."""
        self.locks.acquire(db, resident_key(resident_id), self._lock_timeout())
        store.lock_resident(resident_id)
        household_id = store.get_active_membership(resident_id)
        if household_id is not None:
            self.locks.acquire(db, household_key(household_id), self._lock_timeout())
        return household_id

    def _resident_cascade(self, db: Session, store: FactStore, resident_id: uuid.UUID, as_of: date) -> RecomputeOutcome:
        household_id = self._lock_resident_scope(db, store, resident_id)
        profile, _ = self._recompute_profile(db, store, resident_id, as_of)
        outcome = RecomputeOutcome(profile=profile)
        if household_id is not None:
            outcome.aggregates.append(self._recompute_household(db, store, household_id, as_of)[0])
        return outcome

    def _households(self, db: Session, store: FactStore, household_ids, as_of: date) -> RecomputeOutcome:
        self.locks.acquire_many(db, [household_key(h) for h in household_ids], self._lock_timeout())
        outcome = RecomputeOutcome()
        for household_id in dict.fromkeys(household_ids):
            outcome.aggregates.append(self._recompute_household(db, store, household_id, as_of)[0])
        return outcome

    # ------------------------------------------------------------------
    # Event entry points
    # ------------------------------------------------------------------
    def on_resident_facts_changed(
        self, resident_id: uuid.UUID, *, as_of: Optional[date] = None, db: Optional[Session] = None
    ) -> RecomputeOutcome:
        as_of = as_of or self.clock()
        return self._run(
            f"recompute resident {resident_id}",
            lambda s, store: self._resident_cascade(s, store, resident_id, as_of),
            db,
        )

    def on_migration_record_changed(
        self, resident_id: uuid.UUID, *, as_of: Optional[date] = None, db: Optional[Session] = None
    ) -> RecomputeOutcome:
        as_of = as_of or self.clock()
        return self._run(
            f"recompute migrant status of resident {resident_id}",
            lambda s, store: self._resident_cascade(s, store, resident_id, as_of),
            db,
        )

    def on_household_membership_changed(
        self,
        household_id: uuid.UUID,
        *additional_household_ids: uuid.UUID,
        as_of: Optional[date] = None,
        db: Optional[Session] = None,
    ) -> RecomputeOutcome:
        """Recompute every listed household; pass old and new household for a transfer."""
        as_of = as_of or self.clock()
        household_ids = [household_id, *additional_household_ids]
        return self._run(
            f"recompute households {', '.join(str(h) for h in household_ids)}",
            lambda s, store: self._households(s, store, household_ids, as_of),
            db,
        )

    # ------------------------------------------------------------------
    # Write paths: fact mutation and recompute in one unit of work
    # ------------------------------------------------------------------
    def update_resident(
        self, resident_id: uuid.UUID, update: schemas.ResidentUpdate, *, as_of: Optional[date] = None,
        db: Optional[Session] = None,
    ) -> RecomputeOutcome:
        as_of = as_of or self.clock()
        cleared = update.cleared_required_fields()
        if cleared:
            raise ValidationError(f"resident {resident_id}: {', '.join(cleared)} cannot be cleared", field=cleared[0])

        def op(s: Session, store: FactStore) -> RecomputeOutcome:
            self._lock_resident_scope(s, store, resident_id)
            if residents_repo.update_resident(s, resident_id, update) is None:
                raise NotFound("resident", resident_id)
            return self._resident_cascade(s, store, resident_id, as_of)

        return self._run(f"update resident {resident_id}", op, db)

    def record_migration(
        self, resident_id: uuid.UUID, migration: schemas.MigrationInfoCreate, *, as_of: Optional[date] = None,
        db: Optional[Session] = None,
    ) -> RecomputeOutcome:
        as_of = as_of or self.clock()

        def op(s: Session, store: FactStore) -> RecomputeOutcome:
            self._lock_resident_scope(s, store, resident_id)
            if residents_repo.get_resident(s, resident_id) is None:
                raise NotFound("resident", resident_id)
            residents_repo.upsert_migration_info(s, resident_id, migration)
            return self._resident_cascade(s, store, resident_id, as_of)

        return self._run(f"record migration of resident {resident_id}", op, db)

    def delete_migration(
        self, resident_id: uuid.UUID, *, as_of: Optional[date] = None, db: Optional[Session] = None
    ) -> RecomputeOutcome:
        as_of = as_of or self.clock()

        def op(s: Session, store: FactStore) -> RecomputeOutcome:
            self._lock_resident_scope(s, store, resident_id)
            if not residents_repo.delete_migration_info(s, resident_id):
                raise NotFound("migration record of resident", resident_id)
            return self._resident_cascade(s, store, resident_id, as_of)

        return self._run(f"delete migration of resident {resident_id}", op, db)

    def add_member(
        self, household_id: uuid.UUID, member: schemas.HouseholdMemberCreate, *, as_of: Optional[date] = None,
        db: Optional[Session] = None,
    ) -> RecomputeOutcome:
        as_of = as_of or self.clock()
        resident_id = member.resident_id

        def op(s: Session, store: FactStore) -> RecomputeOutcome:
            self.locks.acquire(s, resident_key(resident_id), self._lock_timeout())
            self.locks.acquire(s, household_key(household_id), self._lock_timeout())
            store.lock_resident(resident_id)
            store.lock_household(household_id)
            existing = households_repo.get_active_membership(s, resident_id)
            if existing is not None:
                if existing.household_id == household_id:
                    raise ValidationError(f"resident {resident_id} is already an active member of household {household_id}")
                raise ValidationError(
                    f"resident {resident_id} is an active member of household {existing.household_id}; transfer instead"
                )
            profile, _ = self._recompute_profile(s, store, resident_id, as_of)
            households_repo.add_membership(s, household_id, member)
            outcome = RecomputeOutcome(profile=profile)
            outcome.aggregates.append(self._recompute_household(s, store, household_id, as_of)[0])
            return outcome

        return self._run(f"add resident {resident_id} to household {household_id}", op, db)

    def remove_member(
        self, household_id: uuid.UUID, resident_id: uuid.UUID, *, move_out_date: Optional[date] = None,
        as_of: Optional[date] = None, db: Optional[Session] = None,
    ) -> RecomputeOutcome:
        as_of = as_of or self.clock()

        def op(s: Session, store: FactStore) -> RecomputeOutcome:
            self.locks.acquire(s, resident_key(resident_id), self._lock_timeout())
            self.locks.acquire(s, household_key(household_id), self._lock_timeout())
            membership = households_repo.get_active_membership(s, resident_id)
            if membership is None or membership.household_id != household_id:
                raise NotFound(f"active membership in household {household_id} for resident", resident_id)
            households_repo.deactivate_membership(s, membership, move_out_date or as_of)
            return RecomputeOutcome(aggregates=[self._recompute_household(s, store, household_id, as_of)[0]])

        return self._run(f"remove resident {resident_id} from household {household_id}", op, db)

    def transfer_member(
        self, transfer: schemas.HouseholdTransfer, *, as_of: Optional[date] = None, db: Optional[Session] = None
    ) -> RecomputeOutcome:
        """Move a resident between households; both aggregates change in the same transaction."""
        as_of = as_of or self.clock()
        source, target = transfer.from_household_id, transfer.to_household_id
        if source == target:
            raise ValidationError("transfer source and destination households are the same")

        def op(s: Session, store: FactStore) -> RecomputeOutcome:
            self.locks.acquire(s, resident_key(transfer.resident_id), self._lock_timeout())
            self.locks.acquire_many(s, [household_key(source), household_key(target)], self._lock_timeout())
            store.lock_household(target)
            membership = households_repo.get_active_membership(s, transfer.resident_id)
            if membership is None or membership.household_id != source:
                raise NotFound(f"active membership in household {source} for resident", transfer.resident_id)
            moved_on = transfer.transfer_date or as_of
            households_repo.deactivate_membership(s, membership, moved_on)
            households_repo.add_membership(s, target, schemas.HouseholdMemberCreate(
                resident_id=transfer.resident_id,
                relationship_to_head=transfer.relationship_to_head,
                move_in_date=moved_on,
            ))
            return self._households(s, store, [source, target], as_of)

        return self._run(f"transfer resident {transfer.resident_id} from {source} to {target}", op, db)

    def set_household_head(
        self, household_id: uuid.UUID, resident_id: Optional[uuid.UUID], *, as_of: Optional[date] = None,
        db: Optional[Session] = None,
    ) -> RecomputeOutcome:
        as_of = as_of or self.clock()

        def op(s: Session, store: FactStore) -> RecomputeOutcome:
            self.locks.acquire(s, household_key(household_id), self._lock_timeout())
            if households_repo.set_household_head(s, household_id, resident_id) is None:
                raise NotFound("household", household_id)
            return RecomputeOutcome(aggregates=[self._recompute_household(s, store, household_id, as_of)[0]])

        return self._run(f"set head of household {household_id}", op, db)

    def delete_resident(
        self, resident_id: uuid.UUID, *, as_of: Optional[date] = None, db: Optional[Session] = None
    ) -> RecomputeOutcome:
        """Delete a resident (and its profile); the former household is recomputed without it."""
        as_of = as_of or self.clock()

        def op(s: Session, store: FactStore) -> RecomputeOutcome:
            household_id = self._lock_resident_scope(s, store, resident_id)
            if household_id is not None:
                household = households_repo.get_household(s, household_id)
                if household is not None and household.household_head_id == resident_id:
                    households_repo.set_household_head(s, household_id, None)
            if not residents_repo.delete_resident(s, resident_id):
                raise NotFound("resident", resident_id)
            outcome = RecomputeOutcome()
            if household_id is not None:
                outcome.aggregates.append(self._recompute_household(s, store, household_id, as_of)[0])
            return outcome

        return self._run(f"delete resident {resident_id}", op, db)

    # ------------------------------------------------------------------
    # Reconciliation primitives
    # ------------------------------------------------------------------
    def reconcile_resident(self, resident_id: uuid.UUID, as_of: date, *, db: Optional[Session] = None) -> bool:
        """Recompute one profile from scratch; overwrite and return True only on mismatch."""
        return self._run(
            f"reconcile resident {resident_id}",
            lambda s, store: self._recompute_profile(s, store, resident_id, as_of, only_if_changed=True)[1],
            db,
        )

    def reconcile_household(self, household_id: uuid.UUID, as_of: date, *, db: Optional[Session] = None) -> bool:
        """Recompute one aggregate from scratch; overwrite and return True only on mismatch."""
        return self._run(
            f"reconcile household {household_id}",
            lambda s, store: self._recompute_household(s, store, household_id, as_of, only_if_changed=True)[1],
            db,
        )
