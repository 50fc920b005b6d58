from typing import Any
from uuid import UUID

import httpx

from diagrams.domain.entities import Diagram, VersionInfo
from diagrams.domain.outcomes import Committed, Conflicted, InSync, MutationOutcome, SyncOutcome
from diagrams.domain.permissions import PermissionLevel
from diagrams.interfaces.schemas import ConflictResponse, DiagramResponse, VersionResponse
from sharing.domain.entities import ShareEntry, SharedDiagram
from sharing.interfaces.schemas import ShareResponse, SharedDiagramResponse
from shared.exceptions import (
    AlreadySharedError,
    AppError,
    AuthenticationError,
    AuthorizationError,
    InvalidShareLevelError,
    LockTimeoutError,
    NotFoundError,
    UnknownGranteeError,
)


def _diagram(data: dict[str, Any]) -> Diagram:
    return Diagram(**DiagramResponse.model_validate(data).model_dump())


def _share(data: dict[str, Any]) -> ShareEntry:
    return ShareEntry(**ShareResponse.model_validate(data).model_dump())


def _raise_for_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    message = body.get("detail") if isinstance(body.get("detail"), str) else response.text
    code = body.get("code")

    if response.status_code == 401:
        raise AuthenticationError(message)
    if response.status_code == 403:
        raise AuthorizationError(message)
    if response.status_code == 404:
        error = UnknownGranteeError() if code == UnknownGranteeError.code else NotFoundError()
        error.message = message
        raise error
    if response.status_code == 409 and code == AlreadySharedError.code:
        raise AlreadySharedError(message)
    if response.status_code == 422 and code == InvalidShareLevelError.code:
        error = InvalidShareLevelError()
        error.message = message
        raise error
    if response.status_code == 423:
        retry_after = response.headers.get("Retry-After")
        error = LockTimeoutError(timeout=float(retry_after) if retry_after else None)
        error.message = message
        raise error
    if response.status_code >= 500:
        raise AppError(message)
    response.raise_for_status()


class DiagramApiClient:
    """Typed access to the diagram REST API.

    ``http`` must already carry the base URL and the bearer token.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        prefix: str = "/api/diagrams",
        auth_prefix: str = "/api/auth",
    ):
        self.http = http
        self.prefix = prefix.rstrip("/")
        self.auth_prefix = auth_prefix.rstrip("/")

    def _url(self, *parts: object) -> str:
        return "/".join([self.prefix, *(str(p) for p in parts)])

    async def create(self, payload: dict[str, Any]) -> Diagram:
        response = await self.http.post(f"{self.prefix}/", json={"payload": payload})
        _raise_for_error(response)
        return _diagram(response.json())

    async def get(self, document_id: UUID) -> Diagram:
        response = await self.http.get(self._url(document_id))
        _raise_for_error(response)
        return _diagram(response.json())

    async def peek_version(self, document_id: UUID) -> VersionInfo:
        response = await self.http.get(self._url(document_id, "version"))
        _raise_for_error(response)
        body = VersionResponse.model_validate(response.json())
        return VersionInfo(
            document_id=body.document_id,
            owner_id=body.owner_id,
            version=body.version,
            last_modified_by=body.last_modified_by,
            last_modified_at=body.last_modified_at,
        )

    async def mutate(
        self, document_id: UUID, expected_version: int, payload: dict[str, Any]
    ) -> MutationOutcome:
        response = await self.http.put(
            self._url(document_id),
            json={"expected_version": expected_version, "payload": payload},
        )
        if response.status_code == 409:
            return self._conflicted(response)
        _raise_for_error(response)
        diagram = _diagram(response.json())
        return Committed(diagram.version, diagram)

    async def check_sync(self, document_id: UUID, expected_version: int) -> SyncOutcome:
        response = await self.http.post(
            self._url(document_id, "sync"), json={"expected_version": expected_version}
        )
        if response.status_code == 409:
            return self._conflicted(response)
        _raise_for_error(response)
        return InSync(response.json()["version"])

    async def lookup_user(self, email: str) -> UUID:
        response = await self.http.get(f"{self.auth_prefix}/users/lookup", params={"email": email})
        _raise_for_error(response)
        return UUID(response.json()["id"])

    async def delete(self, document_id: UUID) -> None:
        _raise_for_error(await self.http.delete(self._url(document_id)))

    async def grant(
        self, document_id: UUID, grantee_id: UUID, level: PermissionLevel
    ) -> ShareEntry:
        response = await self.http.post(
            self._url(document_id, "shares"),
            json={"grantee_id": str(grantee_id), "level": str(level)},
        )
        _raise_for_error(response)
        return _share(response.json())

    async def update_share(
        self, document_id: UUID, grantee_id: UUID, level: PermissionLevel
    ) -> ShareEntry:
        response = await self.http.put(
            self._url(document_id, "shares", grantee_id), json={"level": str(level)}
        )
        _raise_for_error(response)
        return _share(response.json())

    async def revoke(self, document_id: UUID, grantee_id: UUID) -> None:
        _raise_for_error(await self.http.delete(self._url(document_id, "shares", grantee_id)))

    async def list_shares(self, document_id: UUID) -> list[ShareEntry]:
        response = await self.http.get(self._url(document_id, "shares"))
        _raise_for_error(response)
        return [_share(item) for item in response.json()]

    async def shared_with_me(self) -> list[SharedDiagram]:
        response = await self.http.get(self._url("shared-with-me"))
        _raise_for_error(response)
        result = []
        for item in response.json():
            body = SharedDiagramResponse.model_validate(item)
            result.append(
                SharedDiagram(
                    diagram=Diagram(**body.diagram.model_dump()),
                    level=body.level,
                    grantor_id=body.grantor_id,
                )
            )
        return result

    @staticmethod
    def _conflicted(response: httpx.Response) -> Conflicted:
        body = response.json()
        if body.get("code") != "version_conflict":
            _raise_for_error(response)
        conflict = ConflictResponse.model_validate(body)
        return Conflicted(Diagram(**conflict.current.model_dump()))
