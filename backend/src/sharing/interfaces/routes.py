from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth.domain.entities import User
from auth.infrastructure.user_repository import DbUserRepository
from diagrams.infrastructure.diagram_repository import DbDiagramRepository
from diagrams.interfaces.dependencies import get_diagram_repo, get_share_repo
from sharing.application.services import (
    grant_share,
    list_shares,
    revoke_share,
    update_share_level,
)
from sharing.infrastructure.share_repository import DbShareRepository
from sharing.interfaces.schemas import (
    GrantShareRequest,
    ShareResponse,
    UpdateShareRequest,
)
from shared.dependencies import get_current_user, get_db

router = APIRouter(prefix="/api/diagrams/{document_id}/shares", tags=["sharing"])


@router.post("", response_model=ShareResponse, status_code=201)
async def grant(
    document_id: UUID,
    body: GrantShareRequest,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
    db: AsyncSession = Depends(get_db),
):
    return await grant_share(
        repo,
        shares,
        DbUserRepository(db),
        document_id=document_id,
        grantor_id=current_user.id,
        grantee_id=body.grantee_id,
        level=body.level,
    )


@router.get("", response_model=list[ShareResponse])
async def list_all(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
):
    return await list_shares(repo, shares, document_id, current_user.id)


@router.put("/{grantee_id}", response_model=ShareResponse)
async def update(
    document_id: UUID,
    grantee_id: UUID,
    body: UpdateShareRequest,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
):
    return await update_share_level(
        repo,
        shares,
        document_id=document_id,
        requester_id=current_user.id,
        grantee_id=grantee_id,
        level=body.level,
    )


@router.delete("/{grantee_id}", status_code=204)
async def revoke(
    document_id: UUID,
    grantee_id: UUID,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
):
    await revoke_share(
        repo,
        shares,
        document_id=document_id,
        requester_id=current_user.id,
        grantee_id=grantee_id,
    )
