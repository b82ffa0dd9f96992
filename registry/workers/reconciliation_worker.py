"""
Reconciliation Worker for the resident registry

Runs as a background process that re-derives every sectoral profile and every
household aggregate from current facts and overwrites stored records that
disagree. It repairs drift left by missed events and applies time-driven flag
changes (a resident turning 60, aging out of the out-of-school age bands).

Profiles are swept before aggregates, one unit of work per entity, so a
failure on one entity is recorded in the run report and the sweep continues.

Usage:
    python -m registry.workers.reconciliation_worker          # loop forever
    python -m registry.workers.reconciliation_worker --once   # single sweep

Configuration:
    - REGISTRY_RECONCILE_INTERVAL_SECONDS: seconds between sweeps (default: 86400)
    - REGISTRY_RECONCILE_LOG_DIR: directory for the worker log file (default: logs)
"""
from __future__ import annotations

import argparse
import logging
import os
import signal
import threading
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from registry.db.database import session_scope
from registry.db.repositories import reconciliation as reconciliation_repo
from registry.derivation.coordinator import RecomputationCoordinator
from registry.derivation.errors import NotFound, RecomputationError
from registry.utils.settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    as_of: date
    run_id: Optional[uuid.UUID] = None
    residents_checked: int = 0
    households_checked: int = 0
    profile_corrections: int = 0
    aggregate_corrections: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    cancelled: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def corrections(self) -> int:
        return self.profile_corrections + self.aggregate_corrections

    @property
    def status(self) -> str:
        if self.cancelled:
            return "cancelled"
        return "completed_with_errors" if self.errors else "completed"

    def summary(self) -> Dict[str, int]:
        return {
            "residents_checked": self.residents_checked,
            "households_checked": self.households_checked,
            "profile_corrections": self.profile_corrections,
            "aggregate_corrections": self.aggregate_corrections,
        }


class ReconciliationJob:
    """Full sweep over residents then households."""

    def __init__(
        self,
        coordinator: Optional[RecomputationCoordinator] = None,
        session_factory: Optional[Callable[[], Session]] = None,
        record_runs: bool = True,
    ):
        self.coordinator = coordinator or RecomputationCoordinator(session_factory=session_factory)
        self.session_factory = session_factory or self.coordinator.session_factory
        self.record_runs = record_runs

    def _list_ids(self):
        with session_scope(self.session_factory) as db:
            store = self.coordinator.store_factory(db)
            return store.list_resident_ids(), store.list_household_ids()

    def _check(self, report: ReconciliationReport, entity: str, entity_id: uuid.UUID, fn) -> Optional[bool]:
        try:
            return fn(entity_id, report.as_of)
        except NotFound:
            # Deleted after the sweep listed it.
            logger.debug("%s %s disappeared during reconciliation", entity, entity_id)
            return None
        except RecomputationError as exc:
            logger.warning("Reconciliation of %s %s failed: %s", entity, entity_id, exc)
            report.errors.append({"entity": entity, "id": str(entity_id), **exc.to_dict()})
            return None
        except Exception as exc:  # noqa
            logger.exception("Unexpected error reconciling %s %s", entity, entity_id)
            report.errors.append({"entity": entity, "id": str(entity_id), "kind": "unexpected", "message": str(exc)})
            return None

    def reconcile_all(
        self, as_of: Optional[date] = None, cancel_event: Optional[threading.Event] = None
    ) -> ReconciliationReport:
        """Re-derive all records as of ``as_of`` (default: today).

        Setting ``cancel_event`` stops the sweep between entities; work already
        committed stays committed and the report is marked cancelled.
        """
        as_of = as_of or self.coordinator.clock()
        report = ReconciliationReport(as_of=as_of, started_at=datetime.now(timezone.utc))
        if self.record_runs:
            with session_scope(self.session_factory) as db:
                report.run_id = reconciliation_repo.create_reconciliation_run(db, as_of).id

        logger.info("Reconciliation started as of %s (run %s)", as_of, report.run_id)
        resident_ids, household_ids = self._list_ids()

        for resident_id in resident_ids:
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                break
            changed = self._check(report, "resident", resident_id, self.coordinator.reconcile_resident)
            if changed is None:
                continue
            report.residents_checked += 1
            if changed:
                report.profile_corrections += 1

        if not report.cancelled:
            for household_id in household_ids:
                if cancel_event is not None and cancel_event.is_set():
                    report.cancelled = True
                    break
                changed = self._check(report, "household", household_id, self.coordinator.reconcile_household)
                if changed is None:
                    continue
                report.households_checked += 1
                if changed:
                    report.aggregate_corrections += 1

        report.finished_at = datetime.now(timezone.utc)
        if report.run_id is not None:
            with session_scope(self.session_factory) as db:
                reconciliation_repo.finish_reconciliation_run(
                    db, report.run_id, status=report.status, summary=report.summary(), errors=report.errors
                )
        logger.info(
            "Reconciliation %s as of %s: %s residents, %s households checked; "
            "%s profile and %s aggregate corrections; %s errors",
            report.status, as_of, report.residents_checked, report.households_checked,
            report.profile_corrections, report.aggregate_corrections, len(report.errors),
        )
        return report


def run_periodically(job: ReconciliationJob, interval_seconds: float, stop_event: threading.Event) -> int:
    """Run sweeps every ``interval_seconds`` until ``stop_event`` is set. Returns the number of sweeps."""
    sweeps = 0
    while not stop_event.is_set():
        try:
            job.reconcile_all(cancel_event=stop_event)
        except Exception:  # noqa
            logger.exception("Reconciliation sweep failed")
        sweeps += 1
        if stop_event.wait(interval_seconds):
            break
    return sweeps


def _configure_logging() -> None:
    log_dir = os.getenv("REGISTRY_RECONCILE_LOG_DIR", "logs")
    log_file = os.path.join(log_dir, "registry_reconciliation.log")
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile derived registry records against current facts.")
    parser.add_argument("--once", action="store_true", help="run a single sweep and exit")
    parser.add_argument("--as-of", type=date.fromisoformat, default=None, help="reference date (YYYY-MM-DD)")
    args = parser.parse_args(argv)

    _configure_logging()
    job = ReconciliationJob()
    if args.once:
        report = job.reconcile_all(as_of=args.as_of)
        return 1 if report.errors else 0

    stop_event = threading.Event()

    def _stop(signum, _frame):
        logger.info("Received signal %s, stopping after the current entity", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    run_periodically(job, get_settings().reconcile_interval_seconds, stop_event)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
