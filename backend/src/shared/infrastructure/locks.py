import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import LockNotOwnedError

from shared.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


class LockManager(Protocol):
    def hold(self, document_id: UUID) -> AbstractAsyncContextManager[None]: ...


class LocalLockManager:
    """Per-diagram asyncio locks for a single-process deployment.

    Locks are created on demand and dropped once nobody holds or waits on
    them, so the map only ever contains diagrams with in-flight writes.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._users: dict[UUID, int] = {}

    def is_locked(self, document_id: UUID) -> bool:
        lock = self._locks.get(document_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, document_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        self._users[document_id] = self._users.get(document_id, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), self.timeout)
            except TimeoutError:
                logger.warning(
                    "Lock wait on diagram %s exceeded %.2fs", document_id, self.timeout
                )
                raise LockTimeoutError(str(document_id), self.timeout) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[document_id] -= 1
            if not self._users[document_id]:
                del self._users[document_id]
                del self._locks[document_id]


def _lock_name(document_id: UUID) -> str:
    return f"diagram:{document_id}:lock"


class RedisLockManager:
    """Per-diagram locks shared by every API process through Redis.

    ``lease`` bounds how long a crashed holder can keep the lock.
    """

    def __init__(self, redis: Redis, timeout: float, lease: float = 30.0):
        self.redis = redis
        self.timeout = timeout
        self.lease = lease

    @asynccontextmanager
    async def hold(self, document_id: UUID) -> AsyncIterator[None]:
        lock = self.redis.lock(
            _lock_name(document_id),
            timeout=self.lease,
            blocking_timeout=self.timeout,
        )
        if not await lock.acquire():
            logger.warning(
                "Redis lock wait on diagram %s exceeded %.2fs", document_id, self.timeout
            )
            raise LockTimeoutError(str(document_id), self.timeout)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockNotOwnedError:
                logger.warning("Lease on diagram %s expired before release", document_id)
