from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from diagrams.domain.entities import Diagram
from diagrams.domain.permissions import GRANTABLE_LEVELS, PermissionLevel


@dataclass
class ShareEntry:
    document_id: UUID
    grantee_id: UUID
    grantor_id: UUID
    level: PermissionLevel
    id: int | None = field(default=None)
    created_at: datetime | None = field(default=None)
    updated_at: datetime | None = field(default=None)

    def __post_init__(self):
        self.level = PermissionLevel(self.level)
        if self.level not in GRANTABLE_LEVELS:
            raise ValueError(f"Cannot share with level {self.level!r}")


@dataclass(frozen=True)
class SharedDiagram:
    """A diagram as seen by one of its grantees."""

    diagram: Diagram
    level: PermissionLevel
    grantor_id: UUID
