import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import delete, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from diagrams.domain.entities import Diagram, VersionInfo
from diagrams.domain.outcomes import Committed, Conflicted, MutationOutcome
from diagrams.domain.permissions import PermissionLevel
from diagrams.domain.repository import Authorizer
from diagrams.infrastructure.models import DiagramModel
from sharing.infrastructure.models import ShareModel
from shared.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

_is_shared = (
    exists()
    .where(ShareModel.document_id == DiagramModel.id)
    .correlate(DiagramModel)
    .label("is_shared")
)


class DbDiagramRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, document_id: UUID) -> Diagram | None:
        result = await self.session.execute(
            select(DiagramModel, _is_shared)
            .where(DiagramModel.id == document_id)
            .execution_options(populate_existing=True)
        )
        row = result.one_or_none()
        return _to_entity(*row) if row else None

    async def get_version_info(self, document_id: UUID) -> VersionInfo | None:
        result = await self.session.execute(
            select(
                DiagramModel.id,
                DiagramModel.owner_id,
                DiagramModel.version,
                DiagramModel.last_modified_by,
                DiagramModel.last_modified_at,
            ).where(DiagramModel.id == document_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return VersionInfo(
            document_id=row.id,
            owner_id=row.owner_id,
            version=row.version,
            last_modified_by=row.last_modified_by,
            last_modified_at=row.last_modified_at,
        )

    async def list_owned_by(self, owner_id: UUID) -> list[Diagram]:
        result = await self.session.execute(
            select(DiagramModel, _is_shared)
            .where(DiagramModel.owner_id == owner_id)
            .order_by(DiagramModel.last_modified_at.desc())
            .execution_options(populate_existing=True)
        )
        return [_to_entity(model, shared) for model, shared in result.all()]

    async def list_by_ids(self, document_ids: list[UUID]) -> list[Diagram]:
        if not document_ids:
            return []
        result = await self.session.execute(
            select(DiagramModel, _is_shared)
            .where(DiagramModel.id.in_(document_ids))
            .execution_options(populate_existing=True)
        )
        return [_to_entity(model, shared) for model, shared in result.all()]

    async def create(self, diagram: Diagram) -> Diagram:
        now = datetime.now(timezone.utc)
        model = DiagramModel(
            owner_id=diagram.owner_id,
            payload=diagram.payload,
            version=1,
            last_modified_by=diagram.owner_id,
            last_modified_at=now,
            created_at=now,
        )
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return _to_entity(model, False)

    async def compare_and_swap(
        self,
        document_id: UUID,
        expected_version: int,
        payload: dict[str, Any],
        mutator_id: UUID,
        authorize: Authorizer,
    ) -> MutationOutcome | None:
        """Write ``payload`` iff the stored version equals ``expected_version``.

        The row is read ``FOR UPDATE`` and the permission check is repeated on
        that locked snapshot, so a share revoked concurrently cannot let the
        write through. Nothing is written unless the versions match.
        """
        result = await self.session.execute(
            select(DiagramModel)
            .where(DiagramModel.id == document_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            await self.session.rollback()
            return None

        current = _to_entity(model, await self._has_shares(document_id))
        share_level = await self._share_level(document_id, mutator_id)
        if not authorize(current, share_level):
            await self.session.rollback()
            raise AuthorizationError("No edit permission")

        if model.version != expected_version:
            await self.session.rollback()
            return Conflicted(current)

        now = datetime.now(timezone.utc)
        result = await self.session.execute(
            update(DiagramModel)
            .where(
                DiagramModel.id == document_id,
                DiagramModel.version == expected_version,
            )
            .values(
                payload=payload,
                version=expected_version + 1,
                last_modified_by=mutator_id,
                last_modified_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Lost a race with a writer that did not go through the row lock.
            await self.session.rollback()
            latest = await self.get_by_id(document_id)
            return Conflicted(latest) if latest else None

        await self.session.commit()
        committed = replace(
            current,
            payload=payload,
            version=expected_version + 1,
            last_modified_by=mutator_id,
            last_modified_at=now,
        )
        return Committed(committed.version, committed)

    async def delete(self, document_id: UUID) -> None:
        await self.session.execute(
            delete(ShareModel).where(ShareModel.document_id == document_id)
        )
        await self.session.execute(
            delete(DiagramModel).where(DiagramModel.id == document_id)
        )
        await self.session.commit()

    async def _has_shares(self, document_id: UUID) -> bool:
        result = await self.session.execute(
            select(exists().where(ShareModel.document_id == document_id))
        )
        return bool(result.scalar())

    async def _share_level(
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


def _to_entity(model: DiagramModel, is_shared: bool) -> Diagram:
    return Diagram(
        id=model.id,
        owner_id=model.owner_id,
        payload=model.payload,
        version=model.version,
        last_modified_by=model.last_modified_by,
        last_modified_at=model.last_modified_at,
        is_shared=bool(is_shared),
        created_at=model.created_at,
    )
