import logging
from typing import Any
from uuid import UUID

from diagrams.application.access import resolve_permission
from diagrams.domain.entities import Diagram, VersionInfo
from diagrams.domain.outcomes import Conflicted, InSync, SyncOutcome
from diagrams.domain.permissions import can_delete, can_read
from diagrams.domain.repository import DiagramRepository, ShareLookup
from shared.exceptions import AuthorizationError, NotFoundError
from shared.infrastructure.locks import LockManager

logger = logging.getLogger(__name__)


async def create_diagram(
    repo: DiagramRepository,
    owner_id: UUID,
    payload: dict[str, Any],
) -> Diagram:
    diagram = await repo.create(Diagram(owner_id=owner_id, payload=payload))
    logger.info("Diagram %s created by %s", diagram.id, owner_id)
    return diagram


async def get_diagram(
    repo: DiagramRepository,
    shares: ShareLookup,
    document_id: UUID,
    actor_id: UUID,
) -> Diagram:
    diagram = await repo.get_by_id(document_id)
    if not diagram:
        raise NotFoundError("Diagram", str(document_id))
    if not can_read(await resolve_permission(shares, actor_id, diagram)):
        raise AuthorizationError("Access denied")
    return diagram


async def list_owned_diagrams(repo: DiagramRepository, owner_id: UUID) -> list[Diagram]:
    return await repo.list_owned_by(owner_id)


async def peek_version(
    repo: DiagramRepository,
    shares: ShareLookup,
    document_id: UUID,
    actor_id: UUID,
) -> VersionInfo:
    """Current version metadata, read without taking the write lock."""
    info = await repo.get_version_info(document_id)
    if not info:
        raise NotFoundError("Diagram", str(document_id))
    if actor_id != info.owner_id:
        if await shares.get_level(document_id, actor_id) is None:
            raise AuthorizationError("Access denied")
    return info


async def check_sync(
    repo: DiagramRepository,
    shares: ShareLookup,
    document_id: UUID,
    actor_id: UUID,
    expected_version: int,
) -> SyncOutcome:
    diagram = await get_diagram(repo, shares, document_id, actor_id)
    if diagram.version != expected_version:
        return Conflicted(diagram)
    return InSync(diagram.version)


async def duplicate_diagram(
    repo: DiagramRepository,
    shares: ShareLookup,
    document_id: UUID,
    actor_id: UUID,
) -> Diagram:
    source = await get_diagram(repo, shares, document_id, actor_id)
    payload = dict(source.payload)
    if isinstance(payload.get("name"), str):
        payload["name"] = f"{payload['name']} (Copy)"
    copy = await repo.create(Diagram(owner_id=actor_id, payload=payload))
    logger.info("Diagram %s duplicated into %s by %s", document_id, copy.id, actor_id)
    return copy


async def delete_diagram(
    repo: DiagramRepository,
    locks: LockManager,
    document_id: UUID,
    actor_id: UUID,
) -> None:
    diagram = await repo.get_by_id(document_id)
    if not diagram:
        raise NotFoundError("Diagram", str(document_id))
    if not can_delete(actor_id, diagram):
        raise AuthorizationError("Only the diagram creator can delete it")
    async with locks.hold(document_id):
        await repo.delete(document_id)
    logger.info("Diagram %s deleted by %s", document_id, actor_id)
