from uuid import UUID

from diagrams.domain.entities import Diagram
from diagrams.domain.permissions import PermissionLevel, effective_permission
from diagrams.domain.repository import ShareLookup


async def resolve_permission(
    shares: ShareLookup, actor_id: UUID, diagram: Diagram
) -> PermissionLevel:
    if actor_id == diagram.owner_id:
        return PermissionLevel.OWNER
    share_level = await shares.get_level(diagram.id, actor_id)
    return effective_permission(actor_id, diagram, share_level)
