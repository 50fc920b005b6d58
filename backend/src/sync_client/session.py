"""Client side of the conflict contract.

An ``EditingSession`` keeps the last diagram state it synchronized with and the
user's unsaved payload. It never resolves a disagreement with the server on its
own: staleness is reported through ``SessionListener.on_stale`` and a rejected
save through ``SessionListener.on_conflict``, after which the user picks a
``Resolution``.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol
from uuid import UUID

import httpx

from diagrams.domain.entities import Diagram, VersionInfo
from diagrams.domain.outcomes import Committed, Conflicted, MutationOutcome
from shared.config import settings
from shared.exceptions import AppError, AuthorizationError, NotFoundError
from sync_client.api import DiagramApiClient

logger = logging.getLogger(__name__)


class Resolution(StrEnum):
    KEEP_REMOTE = "keep-remote"
    KEEP_LOCAL = "keep-local"
    DEFER = "defer"


@dataclass(frozen=True)
class StaleNotice:
    document_id: UUID
    synced_version: int
    remote: VersionInfo


@dataclass(frozen=True)
class ConflictState:
    remote: Diagram
    local_payload: dict[str, Any]


class SessionListener(Protocol):
    def on_stale(self, notice: StaleNotice) -> None: ...

    def on_conflict(self, conflict: ConflictState) -> None: ...

    def on_access_lost(self, document_id: UUID, error: AppError) -> None: ...


class LoggingListener:
    def on_stale(self, notice: StaleNotice) -> None:
        logger.info(
            "Diagram %s changed remotely: v%d by %s (local v%d)",
            notice.document_id,
            notice.remote.version,
            notice.remote.last_modified_by,
            notice.synced_version,
        )

    def on_conflict(self, conflict: ConflictState) -> None:
        logger.info(
            "Save of diagram %s conflicted with v%d by %s",
            conflict.remote.id,
            conflict.remote.version,
            conflict.remote.last_modified_by,
        )

    def on_access_lost(self, document_id: UUID, error: AppError) -> None:
        logger.warning("Lost access to diagram %s: %s", document_id, error.message)


class PendingConflictError(RuntimeError):
    """A conflict must be resolved before saving again."""


class UnsavedChangesError(RuntimeError):
    """Reloading would discard unsaved local edits."""


class EditingSession:
    def __init__(
        self,
        api: DiagramApiClient,
        diagram: Diagram,
        listener: SessionListener | None = None,
        poll_interval: float | None = None,
    ):
        self.api = api
        self.synced = diagram
        self.listener = listener or LoggingListener()
        self.poll_interval = poll_interval or settings.POLL_INTERVAL_SECONDS
        self.local_payload: dict[str, Any] | None = None
        self.conflict: ConflictState | None = None
        self.stale: StaleNotice | None = None
        self.access_lost: AppError | None = None
        self._poller: asyncio.Task | None = None

    @classmethod
    async def open(cls, api: DiagramApiClient, document_id: UUID, **kwargs) -> "EditingSession":
        return cls(api, await api.get(document_id), **kwargs)

    @property
    def document_id(self) -> UUID:
        return self.synced.id

    @property
    def dirty(self) -> bool:
        return self.local_payload is not None

    def edit(self, payload: dict[str, Any]) -> None:
        self.local_payload = payload

    async def save(self) -> MutationOutcome | None:
        if self.conflict:
            raise PendingConflictError(f"Unresolved conflict on diagram {self.document_id}")
        if not self.dirty:
            return None
        return await self._write(self.synced.version)

    async def reload(self, discard_local: bool = False) -> Diagram:
        if self.dirty and not discard_local:
            raise UnsavedChangesError(f"Unsaved edits on diagram {self.document_id}")
        self._sync_to(await self.api.get(self.document_id))
        return self.synced

    async def resolve(self, resolution: Resolution) -> MutationOutcome | None:
        if not self.conflict:
            return None
        resolution = Resolution(resolution)
        if resolution is Resolution.DEFER:
            return None
        if resolution is Resolution.KEEP_REMOTE:
            self._sync_to(self.conflict.remote)
            return None

        # Keep local: overwrite the remote state the user has now seen. The
        # conflict stays pending until the retry returns an outcome.
        return await self._write(self.conflict.remote.version)

    async def poll_once(self) -> StaleNotice | None:
        remote = await self.api.peek_version(self.document_id)
        if remote.version <= self.synced.version:
            return None
        if self.stale and self.stale.remote.version == remote.version:
            return self.stale
        self.stale = StaleNotice(self.document_id, self.synced.version, remote)
        self.listener.on_stale(self.stale)
        return self.stale

    async def run_polling(self) -> None:
        """Poll until cancelled or until the diagram becomes unreachable."""
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.poll_once()
            except (AuthorizationError, NotFoundError) as exc:
                self.access_lost = exc
                self.listener.on_access_lost(self.document_id, exc)
                return
            except AppError as exc:
                logger.warning(
                    "Version check for diagram %s failed: %s", self.document_id, exc.message
                )
            except httpx.TransportError as exc:
                logger.warning("Version check for diagram %s failed: %s", self.document_id, exc)

    def start_polling(self) -> asyncio.Task:
        if self._poller is None or self._poller.done():
            self._poller = asyncio.create_task(self.run_polling())
        return self._poller

    async def stop_polling(self) -> None:
        poller, self._poller = self._poller, None
        if poller is None:
            return
        if not poller.done():
            poller.cancel()
        try:
            await poller
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Poller for diagram %s failed", self.document_id)

    async def _write(self, expected_version: int) -> MutationOutcome:
        outcome = await self.api.mutate(self.document_id, expected_version, self.local_payload)
        if isinstance(outcome, Committed):
            self._sync_to(outcome.diagram)
        elif isinstance(outcome, Conflicted):
            self.conflict = ConflictState(outcome.current, self.local_payload)
            self.listener.on_conflict(self.conflict)
        return outcome

    def _sync_to(self, diagram: Diagram) -> None:
        self.synced = diagram
        self.local_payload = None
        self.conflict = None
        self.stale = None
