"""
Fixtures for database-backed tests.

Each test gets its own file-backed SQLite database so independent sessions
(and threads) see committed data the way they would on PostgreSQL.
"""
import uuid
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from registry.db import models, schemas
from registry.db.database import session_scope
from registry.db.repositories import derived as derived_repo
from registry.db.repositories import households as households_repo
from registry.db.repositories import residents as residents_repo
from registry.derivation.coordinator import RecomputationCoordinator
from registry.derivation.fact_store import aggregate_from_row, profile_from_row
from registry.utils.settings import RecomputationSettings

AS_OF = date(2024, 6, 15)


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'registry.db'}",
        connect_args={"timeout": 30, "check_same_thread": False},
    )
    models.Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def settings():
    return RecomputationSettings(lock_timeout_seconds=10.0, max_attempts=3, backoff_seconds=0.0)


@pytest.fixture
def coordinator(session_factory, settings):
    return RecomputationCoordinator(session_factory=session_factory, settings=settings, clock=lambda: AS_OF)


class RegistryBuilder:
    """Writes raw facts (no recompute) and reads back derived records."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def resident(self, last_name="Cruz", birthdate=date(1990, 1, 1), **fields) -> uuid.UUID:
        with session_scope(self.session_factory) as db:
            row = residents_repo.create_resident(
                db, schemas.ResidentCreate(first_name="Juan", last_name=last_name, birthdate=birthdate, **fields)
            )
            return row.id

    def household(self, code=None, head_id=None) -> uuid.UUID:
        with session_scope(self.session_factory) as db:
            row = households_repo.create_household(
                db, schemas.HouseholdCreate(code=code or f"HH-{uuid.uuid4().hex[:8]}", household_head_id=head_id)
            )
            return row.id

    def member(self, household_id, resident_id, relationship="member") -> None:
        with session_scope(self.session_factory) as db:
            households_repo.add_membership(
                db, household_id, schemas.HouseholdMemberCreate(resident_id=resident_id, relationship_to_head=relationship)
            )

    def set_head(self, household_id, resident_id) -> None:
        with session_scope(self.session_factory) as db:
            households_repo.set_household_head(db, household_id, resident_id)

    def migration(self, resident_id, **fields) -> None:
        with session_scope(self.session_factory) as db:
            residents_repo.upsert_migration_info(
                db, resident_id, schemas.MigrationInfoCreate(previous_country="Philippines", **fields)
            )

    def update_resident(self, resident_id, **fields) -> None:
        with session_scope(self.session_factory) as db:
            residents_repo.update_resident(db, resident_id, schemas.ResidentUpdate(**fields))

    def profile(self, resident_id):
        with session_scope(self.session_factory) as db:
            row = derived_repo.get_sectoral_profile(db, resident_id)
            return profile_from_row(row) if row else None

    def aggregate(self, household_id):
        with session_scope(self.session_factory) as db:
            row = derived_repo.get_household_aggregate(db, household_id)
            return aggregate_from_row(row) if row else None

    def active_household_of(self, resident_id):
        with session_scope(self.session_factory) as db:
            membership = households_repo.get_active_membership(db, resident_id)
            return membership.household_id if membership else None


@pytest.fixture
def registry(session_factory):
    return RegistryBuilder(session_factory)
