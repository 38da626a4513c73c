"""Tests for import status transitions."""

import pytest

from importflow.domain.entities import ImportStatus
from importflow.domain.errors import InvalidTransitionError, ValidationError
from importflow.domain.state_machine import (
    TERMINAL_STATUSES,
    can_transition,
    ensure_transition,
    is_terminal,
)

S = ImportStatus


@pytest.mark.parametrize(
    "current,target",
    [
        (S.PENDING, S.ANALYZING),
        (S.ANALYZING, S.ANALYZED),
        (S.ANALYZED, S.PROCESSING),
        (S.ANALYZED, S.WRONG_ACCOUNT_DETECTED),
        (S.PROCESSING, S.COMPLETED),
        (S.PENDING, S.FAILED),
        (S.ANALYZING, S.FAILED),
        (S.ANALYZED, S.FAILED),
        (S.PROCESSING, S.FAILED),
    ],
)
def test_forward_transitions_allowed(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.ANALYZED, S.PENDING),
        (S.PROCESSING, S.ANALYZED),
        (S.PENDING, S.PROCESSING),
        (S.COMPLETED, S.FAILED),
        (S.FAILED, S.ANALYZING),
        (S.WRONG_ACCOUNT_DETECTED, S.PROCESSING),
        (S.PROCESSING, S.PROCESSING),
    ],
)
def test_backward_and_skipping_transitions_rejected(current, target):
    assert not can_transition(current, target)


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES | {S.WRONG_ACCOUNT_DETECTED}))
def test_terminal_states_accept_nothing(status):
    assert not any(can_transition(status, target) for target in S)


def test_retry_is_the_only_reentry():
    assert can_transition(S.FAILED, S.ANALYZING, retry=True)
    assert not can_transition(S.COMPLETED, S.ANALYZING, retry=True)
    assert not can_transition(S.FAILED, S.PROCESSING, retry=True)


def test_ensure_transition_raises():
    with pytest.raises(InvalidTransitionError) as excinfo:
        ensure_transition("up-1", S.COMPLETED, S.PROCESSING)

    assert str(excinfo.value) == "Import up-1 cannot move from COMPLETED to PROCESSING"
    assert excinfo.value.code == "INVALID_TRANSITION"
    # Transition errors are validation errors for callers
    assert isinstance(excinfo.value, ValidationError)


def test_is_terminal():
    assert is_terminal(S.COMPLETED)
    assert is_terminal(S.FAILED)
    assert not is_terminal(S.PROCESSING)
