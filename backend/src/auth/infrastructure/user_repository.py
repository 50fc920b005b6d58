from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth.domain.entities import User
from auth.infrastructure.models import UserModel


class DbUserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        return await self._first(UserModel.id == user_id)

    async def get_by_email(self, email: str) -> User | None:
        return await self._first(UserModel.email == email)

    async def get_by_username(self, username: str) -> User | None:
        return await self._first(UserModel.username == username)

    async def exists(self, user_id: UUID) -> bool:
        result = await self.session.execute(
            select(UserModel.id).where(UserModel.id == user_id)
        )
        return result.scalar_one_or_none() is not None

    async def create(self, user: User) -> User:
        model = UserModel(
            username=user.username,
            email=user.email,
            password_hash=user.password_hash,
        )
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return _to_entity(model)

    async def _first(self, condition) -> User | None:
        result = await self.session.execute(select(UserModel).where(condition))
        model = result.scalar_one_or_none()
        return _to_entity(model) if model else None


def _to_entity(model: UserModel) -> User:
    return User(
        id=model.id,
        username=model.username,
        email=model.email,
        password_hash=model.password_hash,
        created_at=model.created_at,
    )
