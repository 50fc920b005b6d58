from typing import Protocol
from uuid import UUID

from diagrams.domain.permissions import PermissionLevel
from sharing.domain.entities import ShareEntry


class ShareRepository(Protocol):
    async def get(self, document_id: UUID, grantee_id: UUID) -> ShareEntry | None: ...

    async def get_level(
        self, document_id: UUID, grantee_id: UUID
    ) -> PermissionLevel | None: ...

    async def list_for_document(self, document_id: UUID) -> list[ShareEntry]: ...

    async def list_for_grantee(self, grantee_id: UUID) -> list[ShareEntry]: ...

    async def count_for_document(self, document_id: UUID) -> int: ...

    async def lock_document(self, document_id: UUID) -> bool: ...

    async def create(self, entry: ShareEntry) -> ShareEntry: ...

    async def update_level(
        self,
        document_id: UUID,
        grantee_id: UUID,
        level: PermissionLevel,
        grantor_id: UUID,
    ) -> ShareEntry | None: ...

    async def delete(self, document_id: UUID, grantee_id: UUID) -> bool: ...
