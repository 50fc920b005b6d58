"""Optimistic version control for diagram payloads.

A write names the version it was based on. The write is applied only if that
is still the stored version; otherwise the caller gets the stored diagram back
and decides how to reconcile. Writes to one diagram are serialized by a
per-diagram lock, writes to different diagrams never contend.
"""

import logging
from typing import Any
from uuid import UUID

from diagrams.application.access import resolve_permission
from diagrams.domain.entities import Diagram
from diagrams.domain.mutation import MutationAttempt, MutationState
from diagrams.domain.outcomes import Conflicted, MutationOutcome
from diagrams.domain.permissions import (
    PermissionLevel,
    can_mutate_payload,
    effective_permission,
)
from diagrams.domain.repository import Authorizer, DiagramRepository, ShareLookup
from shared.exceptions import AppError, AuthorizationError, NotFoundError
from shared.infrastructure.locks import LockManager

logger = logging.getLogger(__name__)


def _mutation_authorizer(actor_id: UUID) -> Authorizer:
    def authorize(diagram: Diagram, share_level: PermissionLevel | None) -> bool:
        return can_mutate_payload(effective_permission(actor_id, diagram, share_level))

    return authorize


def _reject(attempt: MutationAttempt, error: AppError) -> AppError:
    attempt.advance(MutationState.REJECTED)
    logger.warning(
        "Write to diagram %s by %s rejected: %s",
        attempt.document_id,
        attempt.actor_id,
        error.code,
    )
    return error


async def mutate_diagram(
    repo: DiagramRepository,
    shares: ShareLookup,
    locks: LockManager,
    document_id: UUID,
    actor_id: UUID,
    expected_version: int,
    payload: dict[str, Any],
    attempt: MutationAttempt | None = None,
) -> MutationOutcome:
    """Apply ``payload`` if ``expected_version`` is still current.

    Returns ``Committed`` or ``Conflicted``. Raises ``NotFoundError``,
    ``AuthorizationError`` or ``LockTimeoutError``; none of them leaves a
    partial write behind.
    """
    attempt = attempt or MutationAttempt(document_id, actor_id, expected_version, payload)

    attempt.advance(MutationState.AUTHORIZING)
    diagram = await repo.get_by_id(document_id)
    if not diagram:
        raise _reject(attempt, NotFoundError("Diagram", str(document_id)))
    if not can_mutate_payload(await resolve_permission(shares, actor_id, diagram)):
        raise _reject(attempt, AuthorizationError("No edit permission"))

    attempt.advance(MutationState.LOCKING)
    try:
        async with locks.hold(document_id):
            attempt.advance(MutationState.COMPARING)
            outcome = await repo.compare_and_swap(
                document_id,
                expected_version,
                payload,
                actor_id,
                _mutation_authorizer(actor_id),
            )
            if outcome is None:
                raise NotFoundError("Diagram", str(document_id))
    except AppError as exc:
        raise _reject(attempt, exc)

    if isinstance(outcome, Conflicted):
        attempt.advance(MutationState.CONFLICTED)
        logger.info(
            "Write to diagram %s by %s conflicted: expected v%d, stored v%d",
            document_id,
            actor_id,
            expected_version,
            outcome.current.version,
        )
        return outcome

    attempt.advance(MutationState.APPLYING)
    attempt.advance(MutationState.COMMITTED)
    logger.info("Diagram %s committed v%d by %s", document_id, outcome.version, actor_id)
    return outcome
