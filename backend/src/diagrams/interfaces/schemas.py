from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field


class CreateDiagramRequest(BaseModel):
    payload: dict[str, Any] = Field(default_factory=dict)


class MutateDiagramRequest(BaseModel):
    expected_version: int = Field(ge=1)
    payload: dict[str, Any]


class SyncRequest(BaseModel):
    expected_version: int = Field(ge=1)


class DiagramResponse(BaseModel):
    id: UUID
    owner_id: UUID
    payload: dict[str, Any]
    version: int
    last_modified_by: UUID
    last_modified_at: datetime
    is_shared: bool
    created_at: datetime | None = None


class VersionResponse(BaseModel):
    document_id: UUID
    owner_id: UUID
    version: int
    last_modified_by: UUID
    last_modified_at: datetime


class ConflictResponse(BaseModel):
    detail: str = "Diagram was modified by another user"
    code: Literal["version_conflict"] = "version_conflict"
    current: DiagramResponse


class InSyncResponse(BaseModel):
    status: Literal["in_sync"] = "in_sync"
    version: int
