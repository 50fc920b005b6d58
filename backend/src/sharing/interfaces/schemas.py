from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from diagrams.domain.permissions import PermissionLevel
from diagrams.interfaces.schemas import DiagramResponse

ShareLevel = Literal["viewer", "editor", "owner"]


class GrantShareRequest(BaseModel):
    grantee_id: UUID
    level: ShareLevel = "viewer"


class UpdateShareRequest(BaseModel):
    level: ShareLevel


class ShareResponse(BaseModel):
    document_id: UUID
    grantee_id: UUID
    grantor_id: UUID
    level: PermissionLevel
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SharedDiagramResponse(BaseModel):
    diagram: DiagramResponse
    level: PermissionLevel
    grantor_id: UUID


class AccessibleDiagramsResponse(BaseModel):
    own: list[DiagramResponse]
    shared: list[SharedDiagramResponse]
