from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from diagrams.domain.permissions import PermissionLevel
from diagrams.infrastructure.models import DiagramModel
from sharing.domain.entities import ShareEntry
from sharing.infrastructure.models import ShareModel
from shared.exceptions import AlreadySharedError


class DbShareRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, document_id: UUID, grantee_id: UUID) -> ShareEntry | None:
        model = await self._get_model(document_id, grantee_id)
        return _to_entity(model) if model else None

    async def get_level(
        self, document_id: UUID, grantee_id: UUID
    ) -> PermissionLevel | None:
        result = await self.session.execute(
            select(ShareModel.level).where(
                ShareModel.document_id == document_id,
                ShareModel.grantee_id == grantee_id,
            )
        )
        level = result.scalar_one_or_none()
        return PermissionLevel(level) if level else None

    async def list_for_document(self, document_id: UUID) -> list[ShareEntry]:
        result = await self.session.execute(
            select(ShareModel)
            .where(ShareModel.document_id == document_id)
            .order_by(ShareModel.created_at.asc(), ShareModel.id.asc())
            .execution_options(populate_existing=True)
        )
        return [_to_entity(m) for m in result.scalars().all()]

    async def list_for_grantee(self, grantee_id: UUID) -> list[ShareEntry]:
        result = await self.session.execute(
            select(ShareModel)
            .where(ShareModel.grantee_id == grantee_id)
            .order_by(ShareModel.created_at.desc(), ShareModel.id.desc())
            .execution_options(populate_existing=True)
        )
        return [_to_entity(m) for m in result.scalars().all()]

    async def count_for_document(self, document_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(ShareModel)
            .where(ShareModel.document_id == document_id)
        )
        return result.scalar_one()

    async def lock_document(self, document_id: UUID) -> bool:
        """Take a shared lock on the diagram row for the rest of the transaction.

        Share writes then wait for an in-flight payload commit on the same
        diagram but not for each other.
        """
        result = await self.session.execute(
            select(DiagramModel.id)
            .where(DiagramModel.id == document_id)
            .with_for_update(read=True)
        )
        return result.scalar_one_or_none() is not None

    async def create(self, entry: ShareEntry) -> ShareEntry:
        model = ShareModel(
            document_id=entry.document_id,
            grantee_id=entry.grantee_id,
            grantor_id=entry.grantor_id,
            level=entry.level.value,
        )
        self.session.add(model)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise AlreadySharedError()
        await self.session.refresh(model)
        return _to_entity(model)

    async def update_level(
        self,
        document_id: UUID,
        grantee_id: UUID,
        level: PermissionLevel,
        grantor_id: UUID,
    ) -> ShareEntry | None:
        model = await self._get_model(document_id, grantee_id)
        if model is None:
            return None
        model.level = level.value
        model.grantor_id = grantor_id
        await self.session.commit()
        await self.session.refresh(model)
        return _to_entity(model)

    async def delete(self, document_id: UUID, grantee_id: UUID) -> bool:
        result = await self.session.execute(
            delete(ShareModel).where(
                ShareModel.document_id == document_id,
                ShareModel.grantee_id == grantee_id,
            )
        )
        await self.session.commit()
        return result.rowcount > 0

    async def _get_model(self, document_id: UUID, grantee_id: UUID) -> ShareModel | None:
        result = await self.session.execute(
            select(ShareModel)
            .where(
                ShareModel.document_id == document_id,
                ShareModel.grantee_id == grantee_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


def _to_entity(model: ShareModel) -> ShareEntry:
    return ShareEntry(
        id=model.id,
        document_id=model.document_id,
        grantee_id=model.grantee_id,
        grantor_id=model.grantor_id,
        level=PermissionLevel(model.level),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
