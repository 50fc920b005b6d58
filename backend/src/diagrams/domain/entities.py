from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass
class Diagram:
    owner_id: UUID
    payload: dict[str, Any]
    version: int = 1
    last_modified_by: UUID | None = field(default=None)
    last_modified_at: datetime | None = field(default=None)
    is_shared: bool = False
    id: UUID | None = field(default=None)
    created_at: datetime | None = field(default=None)


@dataclass(frozen=True)
class VersionInfo:
    document_id: UUID
    owner_id: UUID
    version: int
    last_modified_by: UUID
    last_modified_at: datetime

    @classmethod
    def of(cls, diagram: Diagram) -> "VersionInfo":
        return cls(
            document_id=diagram.id,
            owner_id=diagram.owner_id,
            version=diagram.version,
            last_modified_by=diagram.last_modified_by,
            last_modified_at=diagram.last_modified_at,
        )
