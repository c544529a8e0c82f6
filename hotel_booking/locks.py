import logging
from contextlib import contextmanager
from threading import Lock

from .exceptions import TransientStoreError

logger = logging.getLogger(__name__)


class RoomLocks:
    """One mutex per room, serialising check-then-insert within this process.

    Cross-process serialisation comes from the ``SELECT ... FOR UPDATE`` on the
    room row taken inside the same critical section.
    """

    def __init__(self, timeout=10.0):
        self.timeout = timeout
        self._locks = {}
        self._registry_lock = Lock()

    def _lock_for(self, room_id):
        key = str(room_id)
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = Lock()
            return lock

    @contextmanager
    def hold(self, room_id):
        lock = self._lock_for(room_id)
        if not lock.acquire(timeout=self.timeout):
            logger.warning("Timed out after %ss waiting for room %s lock", self.timeout, room_id)
            raise TransientStoreError(f"Timed out waiting for room {room_id}")
        try:
            yield
        finally:
            lock.release()
