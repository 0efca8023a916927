"""Per-event serialization of booking admissions.

Every read-check-write sequence on an event's booked total runs while
holding that event's lock. Locks are keyed per event, so admissions on
different events never wait on each other. Multiple events are always
locked in sorted key order to avoid deadlocks.
"""

import asyncio
import logging
import uuid
import weakref
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as redis

from ticketing.config import Settings
from ticketing.exceptions import LockUnavailableError

logger = logging.getLogger(__name__)


def lock_keys(event_ids) -> list[str]:
    """Deduplicated lock keys for the given events in acquisition order."""
    return sorted({f"event:{event_id}" for event_id in event_ids})


class EventLockManager(ABC):
    """Grants exclusive access to one or more events."""

    @abstractmethod
    def hold(self, *event_ids: uuid.UUID) -> AbstractAsyncContextManager[None]:
        """Context manager holding the locks of all given events."""

    async def close(self) -> None:
        pass


class LocalEventLocks(EventLockManager):
    """
    In-process per-event asyncio locks.

    Only correct while this process is the sole writer of the database.
    Idle locks are dropped automatically once no coroutine references them.
    """

    def __init__(self, timeout_seconds: float = 30):
        self.timeout_seconds = timeout_seconds
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _acquire(self, key: str, lock: asyncio.Lock) -> None:
        waiter = asyncio.ensure_future(lock.acquire())
        try:
            done, _ = await asyncio.wait({waiter}, timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            # A waiter that already finished owns the lock
            if not waiter.cancel() and not waiter.cancelled():
                lock.release()
            raise
        if not done:
            # A pending acquire that is cancelled never takes the lock
            waiter.cancel()
            raise LockUnavailableError(f"Timed out waiting for lock on {key}")

    @asynccontextmanager
    async def hold(self, *event_ids: uuid.UUID) -> AsyncIterator[None]:
        keys = lock_keys(event_ids)
        locks = [self._lock_for(key) for key in keys]
        acquired: list[asyncio.Lock] = []
        try:
            for key, lock in zip(keys, locks):
                await self._acquire(key, lock)
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


class RedisLock:
    """
    Redis-based lock on a single key.

    Uses SET NX EX for acquisition with expiration. Release goes through a
    Lua script so only the owning token can delete the key.
    """

    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key: str,
        timeout_seconds: int = 30,
        retry_delay_ms: int = 100,
        max_retries: int = 50,
    ):
        self.redis = redis_client
        self.key = f"lock:{key}"
        self.timeout_seconds = timeout_seconds
        self.retry_delay_ms = retry_delay_ms
        self.max_retries = max_retries
        self.token: str | None = None
        self._release_script = self.redis.register_script(self.RELEASE_SCRIPT)

    async def acquire(self, blocking: bool = True) -> bool:
        """
        Acquire the lock.

        Args:
            blocking: Retry up to ``max_retries`` times when the key is taken.

        Returns:
            True if the lock was acquired.
        """
        token = str(uuid.uuid4())
        for attempt in range(self.max_retries + 1):
            if await self.redis.set(self.key, token, nx=True, ex=self.timeout_seconds):
                self.token = token
                return True
            if not blocking or attempt == self.max_retries:
                break
            await asyncio.sleep(self.retry_delay_ms / 1000)
        return False

    async def release(self) -> bool:
        """
        Release the lock.

        Returns:
            False if the lock was not held by us anymore (e.g. it expired).
        """
        if self.token is None:
            return False
        result = await self._release_script(keys=[self.key], args=[self.token])
        self.token = None
        return bool(result)


class RedisEventLocks(EventLockManager):
    """Per-event locks shared by every instance talking to the same Redis."""

    def __init__(
        self,
        redis_client: redis.Redis,
        timeout_seconds: int = 30,
        retry_delay_ms: int = 100,
        max_retries: int = 50,
    ):
        self.redis = redis_client
        self.timeout_seconds = timeout_seconds
        self.retry_delay_ms = retry_delay_ms
        self.max_retries = max_retries

    @asynccontextmanager
    async def hold(self, *event_ids: uuid.UUID) -> AsyncIterator[None]:
        acquired: list[RedisLock] = []
        try:
            for key in lock_keys(event_ids):
                lock = RedisLock(
                    self.redis,
                    key,
                    self.timeout_seconds,
                    self.retry_delay_ms,
                    self.max_retries,
                )
                if not await lock.acquire():
                    raise LockUnavailableError(f"Failed to acquire lock for key: {key}")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                if not await lock.release():
                    logger.warning(f"Lock {lock.key} expired before it was released")


def build_event_locks(
    settings: Settings,
    redis_client: redis.Redis | None = None,
) -> EventLockManager:
    """Create the lock manager selected by ``LOCK_BACKEND``."""
    if settings.LOCK_BACKEND == "local":
        return LocalEventLocks(timeout_seconds=settings.LOCK_TIMEOUT_SECONDS)

    if settings.LOCK_BACKEND == "redis":
        if redis_client is None:
            raise ValueError("Redis lock backend requires a Redis client")
        return RedisEventLocks(
            redis_client,
            timeout_seconds=settings.LOCK_TIMEOUT_SECONDS,
            retry_delay_ms=settings.LOCK_RETRY_DELAY_MS,
            max_retries=settings.LOCK_MAX_RETRIES,
        )

    raise ValueError(f"Unknown lock backend: {settings.LOCK_BACKEND}")
