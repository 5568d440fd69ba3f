"""
Per-slot mutual exclusion for admission decisions.

Every admission for a given schedule (department, date, half day) runs while
holding the lock for that key. Different keys never contend with each other.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, Optional

from redis.exceptions import LockError

from .config import settings
from .exceptions import Unavailable

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class SlotLockTable:
    """In-process lock table holding one lock per slot key.

    Entries are created on first use and dropped once no thread holds or
    waits for them, so the table only grows with the number of slots being
    booked concurrently.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._entries: Dict[Hashable, _Entry] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _checkout(self, key: Hashable) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: Hashable, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        entry = self._checkout(key)
        try:
            timeout = -1 if self.timeout is None else self.timeout
            if not entry.lock.acquire(timeout=timeout):
                logger.warning(f"Timed out waiting for slot lock {key!r}")
                raise Unavailable(f"Schedule {key} is busy, please retry")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)


class RedisSlotLockTable:
    """Slot locks shared between processes through Redis."""

    def __init__(self, redis_client, timeout: Optional[float] = None, ttl: float = 30.0,
                 prefix: str = "slot-lock"):
        self.redis = redis_client
        self.timeout = timeout
        self.ttl = ttl
        self.prefix = prefix

    def lock_name(self, key: Hashable) -> str:
        if isinstance(key, tuple):
            key = ":".join(str(part) for part in key)
        return f"{self.prefix}:{key}"

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the distributed lock for ``key`` for the duration of the block."""
        lock = self.redis.lock(
            self.lock_name(key),
            timeout=self.ttl,
            blocking_timeout=self.timeout,
        )
        if not lock.acquire():
            logger.warning(f"Timed out waiting for slot lock {key!r}")
            raise Unavailable(f"Schedule {key} is busy, please retry")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                logger.error(f"Slot lock {key!r} expired before release")


# Process-wide table used by the API layer
slot_locks = SlotLockTable(timeout=settings.SLOT_LOCK_TIMEOUT_SECONDS)


def get_slot_locks():
    """Get the slot lock table configured for this deployment."""
    if settings.SLOT_LOCK_BACKEND == "redis":
        from .database import get_redis

        return RedisSlotLockTable(
            get_redis(),
            timeout=settings.SLOT_LOCK_TIMEOUT_SECONDS,
            ttl=settings.SLOT_LOCK_TTL_SECONDS,
        )
    return slot_locks
