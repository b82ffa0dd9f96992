import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from registry.api.deps import get_coordinator, get_reconciliation_job
from registry.api.main import app
from registry.db.database import get_db
from registry.derivation.coordinator import RecomputationCoordinator
from registry.derivation.locks import household_key
from registry.utils.settings import RecomputationSettings
from registry.workers.reconciliation_worker import ReconciliationJob

from .conftest import AS_OF


@pytest.fixture
def client(session_factory, coordinator):
    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    app.dependency_overrides[get_reconciliation_job] = lambda: ReconciliationJob(coordinator=coordinator)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _household(registry, salary="15000"):
    head = registry.resident(last_name="Torres", salary=Decimal(salary))
    household = registry.household()
    registry.member(household, head)
    registry.set_head(household, head)
    return household, head


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_resident_event_returns_derived_records(client, registry):
    household, head = _household(registry)

    response = client.post(f"/recompute/residents/{head}", json={"as_of": AS_OF.isoformat()})

    assert response.status_code == 200
    body = response.json()
    assert body["profile"]["resident_id"] == str(head)
    assert body["profile"]["as_of"] == AS_OF.isoformat()
    assert body["aggregates"][0]["household_id"] == str(household)
    assert body["aggregates"][0]["household_name"] == "Torres"
    assert body["aggregates"][0]["income_class"] == "low_income"


def test_resident_event_without_body_uses_clock(client, registry):
    _, head = _household(registry)
    response = client.post(f"/recompute/residents/{head}")
    assert response.status_code == 200
    assert response.json()["profile"]["as_of"] == AS_OF.isoformat()


def test_migration_event(client, registry):
    household, head = _household(registry)
    registry.migration(head)

    response = client.post(f"/recompute/residents/{head}/migration")

    assert response.status_code == 200
    assert response.json()["profile"]["is_migrant"] is True
    assert response.json()["aggregates"][0]["migrant_count"] == 1


def test_membership_event_for_several_households(client, registry):
    first, _ = _household(registry, "1000")
    second, _ = _household(registry, "2000")

    response = client.post("/recompute/households", json={"household_ids": [str(first), str(second)]})

    assert response.status_code == 200
    assert {a["household_id"] for a in response.json()["aggregates"]} == {str(first), str(second)}


def test_membership_event_requires_households(client):
    assert client.post("/recompute/households", json={"household_ids": []}).status_code == 422


def test_transfer_endpoint(client, registry, coordinator):
    source, _ = _household(registry)
    target = registry.household()
    mover = registry.resident(salary=Decimal("500"))
    registry.member(source, mover)

    response = client.post("/recompute/transfers", json={
        "resident_id": str(mover),
        "from_household_id": str(source),
        "to_household_id": str(target),
    })

    assert response.status_code == 200
    counts = {a["household_id"]: a["member_count"] for a in response.json()["aggregates"]}
    assert counts == {str(source): 1, str(target): 1}


def test_unknown_resident_maps_to_404(client):
    response = client.post(f"/recompute/residents/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json()["detail"]["kind"] == "not_found"


def test_invalid_head_maps_to_422(client, registry):
    member = registry.resident()
    household = registry.household(head_id=registry.resident())
    registry.member(household, member)

    response = client.post(f"/recompute/residents/{member}")

    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "validation_error"


def test_lock_timeout_maps_to_503_with_retry_after(session_factory, registry):
    household, _ = _household(registry)
    impatient = RecomputationCoordinator(
        session_factory=session_factory,
        settings=RecomputationSettings(lock_timeout_seconds=0.05, max_attempts=1, backoff_seconds=0),
        clock=lambda: AS_OF,
    )
    app.dependency_overrides[get_coordinator] = lambda: impatient
    holder = session_factory()
    try:
        impatient.locks.acquire(holder, household_key(household), timeout=1)
        response = TestClient(app).post("/recompute/households", json={"household_ids": [str(household)]})
    finally:
        holder.close()
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["detail"]["retryable"] is True


def test_read_derived_records(client, registry, coordinator):
    household, head = _household(registry)
    assert client.get(f"/residents/{head}/sectoral-profile").status_code == 404
    assert client.get(f"/households/{household}/aggregate").status_code == 404

    coordinator.on_resident_facts_changed(head)

    profile = client.get(f"/residents/{head}/sectoral-profile")
    aggregate = client.get(f"/households/{household}/aggregate")
    assert profile.status_code == 200
    assert profile.json()["computed_at"] is not None
    assert aggregate.status_code == 200
    assert aggregate.json()["member_count"] == 1


def test_reconciliation_runs(client, registry):
    _household(registry)

    created = client.post("/reconciliation/runs", params={"as_of": AS_OF.isoformat()})

    assert created.status_code == 201
    run = created.json()
    assert run["status"] == "completed"
    assert run["profile_corrections"] == 1
    assert run["aggregate_corrections"] == 1

    listed = client.get("/reconciliation/runs")
    assert [r["id"] for r in listed.json()] == [run["id"]]
    assert client.get(f"/reconciliation/runs/{run['id']}").json()["as_of"] == AS_OF.isoformat()
    assert client.get(f"/reconciliation/runs/{uuid.uuid4()}").status_code == 404
