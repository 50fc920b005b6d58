import logging
from uuid import UUID

from auth.domain.repository import UserRepository
from diagrams.application.access import resolve_permission
from diagrams.domain.entities import Diagram
from diagrams.domain.permissions import GRANTABLE_LEVELS, PermissionLevel, can_manage_shares
from diagrams.domain.repository import DiagramRepository
from sharing.domain.entities import ShareEntry, SharedDiagram
from sharing.domain.repository import ShareRepository
from shared.exceptions import (
    AlreadySharedError,
    AuthorizationError,
    InvalidShareLevelError,
    NotFoundError,
    UnknownGranteeError,
)

logger = logging.getLogger(__name__)


async def _require_manager(
    diagrams: DiagramRepository,
    shares: ShareRepository,
    document_id: UUID,
    requester_id: UUID,
    lock: bool = True,
) -> Diagram:
    if lock and not await shares.lock_document(document_id):
        raise NotFoundError("Diagram", str(document_id))
    diagram = await diagrams.get_by_id(document_id)
    if not diagram:
        raise NotFoundError("Diagram", str(document_id))
    if not can_manage_shares(await resolve_permission(shares, requester_id, diagram)):
        raise AuthorizationError("Only owners can manage shares")
    return diagram


def _grantable(level: PermissionLevel | str) -> PermissionLevel:
    try:
        level = PermissionLevel(level)
    except ValueError:
        raise InvalidShareLevelError(str(level)) from None
    if level not in GRANTABLE_LEVELS:
        raise InvalidShareLevelError(level)
    return level


async def grant_share(
    diagrams: DiagramRepository,
    shares: ShareRepository,
    users: UserRepository,
    document_id: UUID,
    grantor_id: UUID,
    grantee_id: UUID,
    level: PermissionLevel,
) -> ShareEntry:
    diagram = await _require_manager(diagrams, shares, document_id, grantor_id)
    level = _grantable(level)
    if not await users.exists(grantee_id):
        raise UnknownGranteeError(str(grantee_id))
    if grantee_id == diagram.owner_id:
        raise AlreadySharedError("The diagram creator already has full access")
    if await shares.get(document_id, grantee_id):
        raise AlreadySharedError()

    entry = await shares.create(
        ShareEntry(
            document_id=document_id,
            grantee_id=grantee_id,
            grantor_id=grantor_id,
            level=level,
        )
    )
    logger.info(
        "Diagram %s shared with %s as %s by %s",
        document_id,
        grantee_id,
        entry.level,
        grantor_id,
    )
    return entry


async def update_share_level(
    diagrams: DiagramRepository,
    shares: ShareRepository,
    document_id: UUID,
    requester_id: UUID,
    grantee_id: UUID,
    level: PermissionLevel,
) -> ShareEntry:
    await _require_manager(diagrams, shares, document_id, requester_id)
    level = _grantable(level)
    entry = await shares.update_level(
        document_id, grantee_id, level, requester_id
    )
    if not entry:
        raise NotFoundError("Share", str(grantee_id))
    logger.info(
        "Share of diagram %s for %s changed to %s by %s",
        document_id,
        grantee_id,
        entry.level,
        requester_id,
    )
    return entry


async def revoke_share(
    diagrams: DiagramRepository,
    shares: ShareRepository,
    document_id: UUID,
    requester_id: UUID,
    grantee_id: UUID,
) -> None:
    await _require_manager(diagrams, shares, document_id, requester_id)
    if not await shares.delete(document_id, grantee_id):
        raise NotFoundError("Share", str(grantee_id))
    logger.info(
        "Share of diagram %s for %s revoked by %s", document_id, grantee_id, requester_id
    )
    if not await shares.count_for_document(document_id):
        logger.info("Diagram %s is no longer shared", document_id)


async def list_shares(
    diagrams: DiagramRepository,
    shares: ShareRepository,
    document_id: UUID,
    requester_id: UUID,
) -> list[ShareEntry]:
    await _require_manager(diagrams, shares, document_id, requester_id, lock=False)
    return await shares.list_for_document(document_id)


async def list_shared_with(
    diagrams: DiagramRepository,
    shares: ShareRepository,
    actor_id: UUID,
) -> list[SharedDiagram]:
    entries = await shares.list_for_grantee(actor_id)
    by_id = {
        diagram.id: diagram
        for diagram in await diagrams.list_by_ids([e.document_id for e in entries])
    }
    return [
        SharedDiagram(diagram=by_id[e.document_id], level=e.level, grantor_id=e.grantor_id)
        for e in entries
        if e.document_id in by_id
    ]
