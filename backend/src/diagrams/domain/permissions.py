"""Access control for diagrams.

A diagram's creator always holds ``OWNER``. Anyone else holds whatever their
share entry grants, or ``NONE``. The guards below are the only place the
levels are interpreted.
"""

from enum import StrEnum
from uuid import UUID

from diagrams.domain.entities import Diagram


class PermissionLevel(StrEnum):
    NONE = "none"
    VIEWER = "viewer"
    EDITOR = "editor"
    OWNER = "owner"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __ge__(self, other):
        if not isinstance(other, PermissionLevel):
            return NotImplemented
        return self.rank >= other.rank

    def __gt__(self, other):
        if not isinstance(other, PermissionLevel):
            return NotImplemented
        return self.rank > other.rank

    def __le__(self, other):
        if not isinstance(other, PermissionLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __lt__(self, other):
        if not isinstance(other, PermissionLevel):
            return NotImplemented
        return self.rank < other.rank


_RANKS = {level: rank for rank, level in enumerate(PermissionLevel)}

# Levels a share entry may carry.
GRANTABLE_LEVELS = frozenset(
    {PermissionLevel.VIEWER, PermissionLevel.EDITOR, PermissionLevel.OWNER}
)


def effective_permission(
    actor_id: UUID, diagram: Diagram, share_level: PermissionLevel | None
) -> PermissionLevel:
    if actor_id == diagram.owner_id:
        return PermissionLevel.OWNER
    if share_level is not None:
        return share_level
    return PermissionLevel.NONE


def can_read(level: PermissionLevel) -> bool:
    return level >= PermissionLevel.VIEWER


def can_mutate_payload(level: PermissionLevel) -> bool:
    return level >= PermissionLevel.EDITOR


def can_manage_shares(level: PermissionLevel) -> bool:
    return level == PermissionLevel.OWNER


def can_delete(actor_id: UUID, diagram: Diagram) -> bool:
    # Narrower than can_manage_shares: an owner-level share does not grant it.
    return actor_id == diagram.owner_id
