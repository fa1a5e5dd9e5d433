"""
Per-key mutual exclusion for slot check-then-insert.

Bookings for the same doctor and day are serialized inside one process; the
unique index on (doctor_id, appointment_date, slot_start) catches races
between processes.
"""

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Hashable, Optional

logger = logging.getLogger(__name__)


class LockTimeout(Exception):
    """Raised when a key lock could not be acquired before the deadline"""


class KeyedLocks:
    """Registry of one lock per key, entries dropped once nobody holds or waits"""

    def __init__(self):
        self._locks: dict[Hashable, list] = {}  # key -> [lock, refcount]
        self._guard = Lock()

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None):
        with self._guard:
            entry = self._locks.setdefault(key, [Lock(), 0])
            entry[1] += 1

        acquired = entry[0].acquire(timeout=-1 if timeout is None else max(timeout, 0))
        try:
            if not acquired:
                logger.warning(f"⏱️ Timed out waiting for booking lock {key}")
                raise LockTimeout(f"Could not lock {key}")
            yield
        finally:
            if acquired:
                entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


slot_locks = KeyedLocks()
