import threading
from decimal import Decimal

from registry.db import schemas

from .conftest import AS_OF


def _run_concurrently(targets):
    barrier = threading.Barrier(len(targets))
    errors = []

    def _wrap(fn):
        def _run():
            barrier.wait()
            try:
                fn()
            except Exception as exc:  # noqa
                errors.append(exc)
        return _run

    threads = [threading.Thread(target=_wrap(fn)) for fn in targets]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return errors


def test_concurrent_adds_to_one_household_converge(coordinator, registry):
    household = registry.household()
    residents = [registry.resident(salary=Decimal("1000")) for _ in range(6)]

    errors = _run_concurrently([
        (lambda rid=rid: coordinator.add_member(household, schemas.HouseholdMemberCreate(resident_id=rid)))
        for rid in residents
    ])

    assert errors == []
    stored = registry.aggregate(household)
    assert stored.member_count == 6
    assert stored.total_monthly_income == Decimal("6000")
    assert coordinator.reconcile_household(household, AS_OF) is False
    assert len(coordinator.locks) == 0


def test_concurrent_salary_updates_leave_consistent_total(coordinator, registry):
    household = registry.household()
    residents = [registry.resident(salary=Decimal("100")) for _ in range(4)]
    for rid in residents:
        coordinator.add_member(household, schemas.HouseholdMemberCreate(resident_id=rid))

    errors = _run_concurrently([
        (lambda rid=rid, n=n: coordinator.update_resident(rid, schemas.ResidentUpdate(salary=Decimal(1000 * (n + 1)))))
        for n, rid in enumerate(residents)
    ])

    assert errors == []
    assert registry.aggregate(household).total_monthly_income == Decimal("10000")
    assert coordinator.reconcile_household(household, AS_OF) is False


def test_transfers_in_opposite_directions_do_not_deadlock(coordinator, registry):
    first = registry.household()
    second = registry.household()
    a = registry.resident(salary=Decimal("10"))
    b = registry.resident(salary=Decimal("20"))
    coordinator.add_member(first, schemas.HouseholdMemberCreate(resident_id=a))
    coordinator.add_member(second, schemas.HouseholdMemberCreate(resident_id=b))

    errors = _run_concurrently([
        lambda: coordinator.transfer_member(
            schemas.HouseholdTransfer(resident_id=a, from_household_id=first, to_household_id=second)
        ),
        lambda: coordinator.transfer_member(
            schemas.HouseholdTransfer(resident_id=b, from_household_id=second, to_household_id=first)
        ),
    ])

    assert errors == []
    assert registry.aggregate(first).total_monthly_income == Decimal("20")
    assert registry.aggregate(second).total_monthly_income == Decimal("10")
