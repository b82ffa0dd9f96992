"""
End-to-end checks against a real PostgreSQL started through testcontainers.

Skipped when docker is unavailable or SKIP_DOCKER_TESTS=1.
"""
import os
import shutil
import threading
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker

from registry.db import models, schemas
from registry.db.database import session_scope
from registry.db.repositories import households as households_repo
from registry.db.repositories import residents as residents_repo
from registry.derivation.coordinator import RecomputationCoordinator
from registry.utils.settings import RecomputationSettings
from registry.workers.reconciliation_worker import ReconciliationJob

AS_OF = date(2024, 6, 15)


@pytest.fixture(scope="module")
def postgres_url():
    if os.getenv("SKIP_DOCKER_TESTS") == "1":
        pytest.skip("SKIP_DOCKER_TESTS=1")
    if not shutil.which("docker"):
        pytest.skip("Docker CLI is not available; skipping e2e tests that require containers")
    from testcontainers.postgres import PostgresContainer

    image = os.getenv("TEST_POSTGRES_IMAGE", "postgres:16-alpine")
    try:
        container = PostgresContainer(image)
        container.start()
    except Exception as exc:  # noqa
        pytest.skip(f"Docker daemon is not available: {exc}")
    try:
        yield container.get_connection_url()
    finally:
        container.stop()


def _alembic_config(database_url: str) -> Config:
    root = Path(__file__).resolve().parents[2]
    cfg = Config(str(root / "alembic.ini"))
    cfg.set_main_option("script_location", str(root / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


@pytest.fixture(scope="module")
def migrated(postgres_url):
    previous = os.environ.get("TEST_DATABASE_URL")
    os.environ["TEST_DATABASE_URL"] = postgres_url
    try:
        cfg = _alembic_config(postgres_url)
        command.upgrade(cfg, "head")
        yield postgres_url
    finally:
        if previous is None:
            os.environ.pop("TEST_DATABASE_URL", None)
        else:
            os.environ["TEST_DATABASE_URL"] = previous


@pytest.mark.e2e
@pytest.mark.slow
def test_migrations_create_every_table(migrated):
    tables = set(inspect(create_engine(migrated)).get_table_names())
    assert {
        "residents",
        "resident_migrant_info",
        "households",
        "household_members",
        "resident_sectoral_profiles",
        "household_aggregates",
        "reconciliation_runs",
    } <= tables


@pytest.mark.e2e
@pytest.mark.slow
def test_transfer_and_reconcile_on_postgres(migrated):
    engine = create_engine(migrated)
    factory = sessionmaker(bind=engine, autoflush=False)
    coordinator = RecomputationCoordinator(
        session_factory=factory,
        settings=RecomputationSettings(backoff_seconds=0),
        clock=lambda: AS_OF,
    )

    with session_scope(factory) as db:
        mover = residents_repo.create_resident(db, schemas.ResidentCreate(
            first_name="Ana", last_name="Reyes", birthdate=date(1995, 2, 2), salary=Decimal("12000"),
        )).id
        source = households_repo.create_household(db, schemas.HouseholdCreate(code="PG-SOURCE")).id
        target = households_repo.create_household(db, schemas.HouseholdCreate(code="PG-TARGET")).id

    coordinator.add_member(source, schemas.HouseholdMemberCreate(resident_id=mover))
    outcome = coordinator.transfer_member(schemas.HouseholdTransfer(
        resident_id=mover, from_household_id=source, to_household_id=target,
    ))

    by_id = {a.household_id: a for a in outcome.aggregates}
    assert by_id[source].member_count == 0
    assert by_id[target].total_monthly_income == Decimal("12000")

    report = ReconciliationJob(coordinator=coordinator).reconcile_all(as_of=AS_OF)
    assert report.errors == []
    assert report.corrections == 0

    command.downgrade(_alembic_config(migrated), "base")
    assert "residents" not in set(inspect(engine).get_table_names())
    command.upgrade(_alembic_config(migrated), "head")


@pytest.mark.e2e
@pytest.mark.slow
def test_reconcile_waits_for_uncommitted_resident_update(migrated):
    engine = create_engine(migrated)
    factory = sessionmaker(bind=engine, autoflush=False)
    settings = RecomputationSettings(backoff_seconds=0)
    # Separate coordinators share no in-process locks, like the API and the worker process.
    api = RecomputationCoordinator(session_factory=factory, settings=settings, clock=lambda: AS_OF)
    worker = RecomputationCoordinator(session_factory=factory, settings=settings, clock=lambda: AS_OF)

    with session_scope(factory) as db:
        resident = residents_repo.create_resident(db, schemas.ResidentCreate(
            first_name="Lito", last_name="Garcia", birthdate=date(1988, 8, 8), employment_status="employed",
        )).id
    api.on_resident_facts_changed(resident)

    results = []
    db = factory()
    try:
        api.update_resident(resident, schemas.ResidentUpdate(employment_status="unemployed"), db=db)
        sweep = threading.Thread(target=lambda: results.append(worker.reconcile_resident(resident, AS_OF)))
        sweep.start()
        sweep.join(timeout=1.0)
        assert sweep.is_alive()
        db.commit()
    finally:
        db.close()
    sweep.join(timeout=10)

    assert results == [False]
    with session_scope(factory) as check:
        stored = check.get(models.ResidentSectoralProfile, resident)
        assert stored.is_unemployed is True
        assert stored.is_labor_force_employed is False
