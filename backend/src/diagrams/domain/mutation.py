from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any
from uuid import UUID


class MutationState(StrEnum):
    REQUESTED = "requested"
    AUTHORIZING = "authorizing"
    LOCKING = "locking"
    COMPARING = "comparing"
    APPLYING = "applying"
    COMMITTED = "committed"
    CONFLICTED = "conflicted"
    REJECTED = "rejected"


TERMINAL_STATES = frozenset(
    {MutationState.COMMITTED, MutationState.CONFLICTED, MutationState.REJECTED}
)

_TRANSITIONS: dict[MutationState, frozenset[MutationState]] = {
    MutationState.REQUESTED: frozenset({MutationState.AUTHORIZING}),
    MutationState.AUTHORIZING: frozenset({MutationState.LOCKING, MutationState.REJECTED}),
    MutationState.LOCKING: frozenset({MutationState.COMPARING, MutationState.REJECTED}),
    MutationState.COMPARING: frozenset(
        {MutationState.APPLYING, MutationState.CONFLICTED, MutationState.REJECTED}
    ),
    MutationState.APPLYING: frozenset({MutationState.COMMITTED}),
}


class IllegalTransitionError(RuntimeError):
    pass


@dataclass
class MutationAttempt:
    """Tracks one write attempt through the versioning protocol."""

    document_id: UUID
    actor_id: UUID
    expected_version: int
    payload: dict[str, Any]
    state: MutationState = MutationState.REQUESTED
    history: list[MutationState] = field(
        default_factory=lambda: [MutationState.REQUESTED]
    )

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, state: MutationState) -> None:
        if state not in _TRANSITIONS.get(self.state, frozenset()):
            raise IllegalTransitionError(f"{self.state} -> {state}")
        self.state = state
        self.history.append(state)
