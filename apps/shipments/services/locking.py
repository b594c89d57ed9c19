"""
Per-shipment mutual exclusion for payment submission.

The database row lock (``select_for_update``) serializes writers on backends
that support it. SQLite silently ignores it, so submissions are also
serialized in-process with one lock per shipment. The lock is taken before
the transaction opens and released after it commits, which guarantees the
next writer reads the committed payment list.
"""
import logging
import threading
import weakref
from contextlib import contextmanager

from django.db import connection

from apps.shipments.exceptions import ConflictRetryError

logger = logging.getLogger(__name__)


class _ShipmentLock:
    """Weak-referenceable holder; entries vanish once no caller holds one."""

    __slots__ = ('_lock', '__weakref__')

    def __init__(self):
        self._lock = threading.Lock()

    def acquire(self, timeout: float) -> bool:
        return self._lock.acquire(timeout=timeout)

    def release(self):
        self._lock.release()


_registry_lock = threading.Lock()
_shipment_locks = weakref.WeakValueDictionary()


def _lock_for(shipment_id) -> _ShipmentLock:
    with _registry_lock:
        lock = _shipment_locks.get(shipment_id)
        if lock is None:
            lock = _ShipmentLock()
            _shipment_locks[shipment_id] = lock
        return lock


@contextmanager
def shipment_write_lock(shipment_id, *, timeout: float = 5.0):
    """
    Hold the write lock for ``shipment_id``.

    Raises:
        ConflictRetryError: Lock not acquired within ``timeout`` seconds.
    """
    lock = _lock_for(shipment_id)
    if not lock.acquire(timeout=timeout):
        logger.warning(
            "Payment lock timeout on shipment %s after %.1fs", shipment_id, timeout
        )
        raise ConflictRetryError(details={'shipment_id': str(shipment_id)})
    try:
        yield
    finally:
        lock.release()


def set_database_lock_timeout(timeout: float):
    """
    Bound how long the current transaction waits on row locks.

    PostgreSQL only; other backends keep their own busy timeout.
    """
    if connection.vendor != 'postgresql':
        return
    with connection.cursor() as cursor:
        cursor.execute(f"SET LOCAL lock_timeout = '{int(timeout * 1000)}ms'")
