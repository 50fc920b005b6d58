from collections.abc import AsyncGenerator
from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auth.application.services import verify_token
from auth.domain.entities import User
from auth.infrastructure.user_repository import DbUserRepository
from shared.config import settings
from shared.infrastructure.database import async_session
from shared.infrastructure.locks import LocalLockManager, LockManager, RedisLockManager
from shared.infrastructure.redis import get_redis

security = HTTPBearer()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    repo = DbUserRepository(db)
    return await verify_token(repo, credentials.credentials)


@lru_cache
def get_lock_manager() -> LockManager:
    if settings.LOCK_BACKEND == "redis":
        return RedisLockManager(get_redis(), timeout=settings.LOCK_TIMEOUT_SECONDS)
    return LocalLockManager(timeout=settings.LOCK_TIMEOUT_SECONDS)
