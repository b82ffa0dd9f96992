"""
Keyed in-process locks scoped to a SQLAlchemy session transaction.

A lock taken through ``HouseholdLockRegistry.acquire`` stays held until the
session's outermost transaction ends (commit, rollback or close), so the
read-compute-write window of a recompute and the commit that publishes it are
covered by the same exclusive section. Keys already held by the session are
not re-acquired.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Hashable, Iterable, List, Tuple

from sqlalchemy import event
from sqlalchemy.orm import Session

from registry.derivation.errors import ConcurrencyTimeout

logger = logging.getLogger(__name__)

_HELD_LOCKS_KEY = "registry_held_locks"


class _Entry:
    __slots__ = ("lock", "refs")

    def __init__(self):
        self.lock = threading.Lock()
        self.refs = 0


class HouseholdLockRegistry:
    """Keyed mutex table; one exclusive lock per household (or resident) key."""

    def __init__(self):
        self._mutex = threading.Lock()
        self._entries: Dict[Hashable, _Entry] = {}

    def _checkout(self, key: Hashable) -> _Entry:
        with self._mutex:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.refs += 1
            return entry

    def _checkin(self, key: Hashable, entry: _Entry) -> None:
        with self._mutex:
            entry.refs -= 1
            if entry.refs <= 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def acquire(self, db: Session, key: Hashable, timeout: float) -> None:
        """Take ``key`` for the lifetime of ``db``'s current transaction."""
        held: List[Tuple[HouseholdLockRegistry, Hashable, _Entry]] = db.info.setdefault(_HELD_LOCKS_KEY, [])
        if any(reg is self and k == key for reg, k, _ in held):
            return
        # Make sure a root transaction exists so its end releases the lock.
        db.connection()
        entry = self._checkout(key)
        if not entry.lock.acquire(timeout=timeout):
            self._checkin(key, entry)
            logger.warning("Lock timeout on %s after %.2fs", key, timeout)
            raise ConcurrencyTimeout(key, timeout)
        held.append((self, key, entry))

    def acquire_many(self, db: Session, keys: Iterable[Hashable], timeout: float) -> None:
        """Acquire several keys in a stable order to avoid lock-order inversions."""
        for key in sorted(set(keys), key=str):
            self.acquire(db, key, timeout)

    def release(self, key: Hashable, entry: _Entry) -> None:
        entry.lock.release()
        self._checkin(key, entry)

    def is_locked(self, key: Hashable) -> bool:
        with self._mutex:
            entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        with self._mutex:
            return len(self._entries)


def release_session_locks(db: Session) -> None:
    held = db.info.pop(_HELD_LOCKS_KEY, None) or []
    for registry, key, entry in reversed(held):
        registry.release(key, entry)


@event.listens_for(Session, "after_transaction_end")
def _release_on_transaction_end(session, transaction):
    if transaction.parent is not None:
        return
    release_session_locks(session)


def household_key(household_id) -> Tuple[str, str]:
    return ("household", str(household_id))


def resident_key(resident_id) -> Tuple[str, str]:
    return ("resident", str(resident_id))
