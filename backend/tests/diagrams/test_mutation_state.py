from uuid import uuid4

import pytest

from diagrams.domain.mutation import IllegalTransitionError, MutationAttempt, MutationState


@pytest.fixture
def attempt():
    return MutationAttempt(uuid4(), uuid4(), 1, {"tables": []})


def test_commit_path(attempt):
    for state in (
        MutationState.AUTHORIZING,
        MutationState.LOCKING,
        MutationState.COMPARING,
        MutationState.APPLYING,
        MutationState.COMMITTED,
    ):
        attempt.advance(state)
    assert attempt.finished
    assert attempt.history[0] == MutationState.REQUESTED
    assert attempt.history[-1] == MutationState.COMMITTED


def test_conflict_path(attempt):
    attempt.advance(MutationState.AUTHORIZING)
    attempt.advance(MutationState.LOCKING)
    attempt.advance(MutationState.COMPARING)
    attempt.advance(MutationState.CONFLICTED)
    assert attempt.finished


def test_cannot_skip_authorization(attempt):
    with pytest.raises(IllegalTransitionError):
        attempt.advance(MutationState.LOCKING)


def test_cannot_apply_without_comparing(attempt):
    attempt.advance(MutationState.AUTHORIZING)
    attempt.advance(MutationState.LOCKING)
    with pytest.raises(IllegalTransitionError):
        attempt.advance(MutationState.APPLYING)


def test_terminal_states_are_final(attempt):
    attempt.advance(MutationState.AUTHORIZING)
    attempt.advance(MutationState.REJECTED)
    assert attempt.finished
    with pytest.raises(IllegalTransitionError):
        attempt.advance(MutationState.LOCKING)
