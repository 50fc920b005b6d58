from collections.abc import Callable
from typing import Any, Protocol
from uuid import UUID

from diagrams.domain.entities import Diagram, VersionInfo
from diagrams.domain.outcomes import MutationOutcome
from diagrams.domain.permissions import PermissionLevel

# Re-evaluated against the locked row: (diagram, mutator's share level) -> allowed
Authorizer = Callable[[Diagram, PermissionLevel | None], bool]


class DiagramRepository(Protocol):
    async def get_by_id(self, document_id: UUID) -> Diagram | None: ...

    async def get_version_info(self, document_id: UUID) -> VersionInfo | None: ...

    async def list_owned_by(self, owner_id: UUID) -> list[Diagram]: ...

    async def list_by_ids(self, document_ids: list[UUID]) -> list[Diagram]: ...

    async def create(self, diagram: Diagram) -> Diagram: ...

    async def compare_and_swap(
        self,
        document_id: UUID,
        expected_version: int,
        payload: dict[str, Any],
        mutator_id: UUID,
        authorize: Authorizer,
    ) -> MutationOutcome | None: ...

    async def delete(self, document_id: UUID) -> None: ...


class ShareLookup(Protocol):
    async def get_level(
        self, document_id: UUID, grantee_id: UUID
    ) -> PermissionLevel | None: ...
