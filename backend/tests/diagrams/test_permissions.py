from uuid import uuid4

import pytest

from diagrams.domain.entities import Diagram
from diagrams.domain.permissions import (
    PermissionLevel,
    can_delete,
    can_manage_shares,
    can_mutate_payload,
    can_read,
    effective_permission,
)

CREATOR = uuid4()
OTHER = uuid4()


@pytest.fixture
def diagram():
    return Diagram(id=uuid4(), owner_id=CREATOR, payload={})


def test_levels_are_totally_ordered():
    assert (
        PermissionLevel.NONE
        < PermissionLevel.VIEWER
        < PermissionLevel.EDITOR
        < PermissionLevel.OWNER
    )
    assert max(PermissionLevel) == PermissionLevel.OWNER
    assert sorted([PermissionLevel.OWNER, PermissionLevel.NONE, PermissionLevel.EDITOR]) == [
        PermissionLevel.NONE,
        PermissionLevel.EDITOR,
        PermissionLevel.OWNER,
    ]


def test_creator_is_always_owner(diagram):
    for share_level in (None, PermissionLevel.VIEWER, PermissionLevel.EDITOR):
        assert effective_permission(CREATOR, diagram, share_level) == PermissionLevel.OWNER


def test_share_level_applies_to_others(diagram):
    assert effective_permission(OTHER, diagram, PermissionLevel.EDITOR) == PermissionLevel.EDITOR


def test_no_share_means_none(diagram):
    assert effective_permission(OTHER, diagram, None) == PermissionLevel.NONE


@pytest.mark.parametrize(
    "level,read,mutate,manage",
    [
        (PermissionLevel.NONE, False, False, False),
        (PermissionLevel.VIEWER, True, False, False),
        (PermissionLevel.EDITOR, True, True, False),
        (PermissionLevel.OWNER, True, True, True),
    ],
)
def test_guards(level, read, mutate, manage):
    assert can_read(level) is read
    assert can_mutate_payload(level) is mutate
    assert can_manage_shares(level) is manage


def test_only_creator_can_delete(diagram):
    assert can_delete(CREATOR, diagram)
    # An owner-level share manages shares but cannot delete.
    assert can_manage_shares(effective_permission(OTHER, diagram, PermissionLevel.OWNER))
    assert not can_delete(OTHER, diagram)
