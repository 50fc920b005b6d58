from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from auth.domain.entities import User
from diagrams.application.services import (
    check_sync,
    create_diagram,
    delete_diagram,
    duplicate_diagram,
    get_diagram,
    list_owned_diagrams,
    peek_version,
)
from diagrams.application.versioning import mutate_diagram
from diagrams.domain.entities import Diagram
from diagrams.domain.outcomes import Conflicted
from diagrams.infrastructure.diagram_repository import DbDiagramRepository
from diagrams.interfaces.dependencies import get_diagram_repo, get_share_repo
from diagrams.interfaces.schemas import (
    ConflictResponse,
    CreateDiagramRequest,
    DiagramResponse,
    InSyncResponse,
    MutateDiagramRequest,
    SyncRequest,
    VersionResponse,
)
from sharing.application.services import list_shared_with
from sharing.infrastructure.share_repository import DbShareRepository
from sharing.interfaces.schemas import AccessibleDiagramsResponse, SharedDiagramResponse
from shared.dependencies import get_current_user, get_lock_manager
from shared.infrastructure.locks import LockManager

router = APIRouter(prefix="/api/diagrams", tags=["diagrams"])

_CONFLICT_RESPONSES = {409: {"model": ConflictResponse}}


def _conflict(current: Diagram) -> JSONResponse:
    body = ConflictResponse(current=DiagramResponse.model_validate(current, from_attributes=True))
    return JSONResponse(status_code=409, content=body.model_dump(mode="json"))


@router.post("/", response_model=DiagramResponse, status_code=201)
async def create(
    body: CreateDiagramRequest,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
):
    return await create_diagram(repo, owner_id=current_user.id, payload=body.payload)


@router.get("/", response_model=AccessibleDiagramsResponse)
async def list_all(
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
):
    own = await list_owned_diagrams(repo, current_user.id)
    shared = await list_shared_with(repo, shares, current_user.id)
    return {"own": own, "shared": shared}


@router.get("/shared-with-me", response_model=list[SharedDiagramResponse])
async def shared_with_me(
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
):
    return await list_shared_with(repo, shares, current_user.id)


@router.get("/{document_id}", response_model=DiagramResponse)
async def get_one(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
):
    return await get_diagram(repo, shares, document_id, current_user.id)


@router.put("/{document_id}", response_model=DiagramResponse, responses=_CONFLICT_RESPONSES)
async def update(
    document_id: UUID,
    body: MutateDiagramRequest,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
    locks: LockManager = Depends(get_lock_manager),
):
    outcome = await mutate_diagram(
        repo,
        shares,
        locks,
        document_id=document_id,
        actor_id=current_user.id,
        expected_version=body.expected_version,
        payload=body.payload,
    )
    if isinstance(outcome, Conflicted):
        return _conflict(outcome.current)
    return outcome.diagram


@router.delete("/{document_id}", status_code=204)
async def delete(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    locks: LockManager = Depends(get_lock_manager),
):
    await delete_diagram(repo, locks, document_id=document_id, actor_id=current_user.id)


@router.post("/{document_id}/duplicate", response_model=DiagramResponse, status_code=201)
async def duplicate(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
):
    return await duplicate_diagram(repo, shares, document_id, current_user.id)


@router.get("/{document_id}/version", response_model=VersionResponse)
async def version(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
):
    return await peek_version(repo, shares, document_id, current_user.id)


@router.post("/{document_id}/sync", response_model=InSyncResponse, responses=_CONFLICT_RESPONSES)
async def sync(
    document_id: UUID,
    body: SyncRequest,
    current_user: User = Depends(get_current_user),
    repo: DbDiagramRepository = Depends(get_diagram_repo),
    shares: DbShareRepository = Depends(get_share_repo),
):
    outcome = await check_sync(repo, shares, document_id, current_user.id, body.expected_version)
    if isinstance(outcome, Conflicted):
        return _conflict(outcome.current)
    return InSyncResponse(version=outcome.version)
