"""
Tests for the policy status machine.

Every (from, to) pair is checked against the allowed-transition table,
so adding or dropping an edge fails loudly.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest

from policy_ledger.errors import InvalidTransitionError
from policy_ledger.models import PolicyStatus
from policy_ledger.services.state_machine import (
    ALLOWED_TRANSITIONS,
    IN_FORCE_STATUSES,
    TERMINAL_STATUSES,
    allowed_targets,
    can_transition,
    is_initial_activation,
    is_terminal,
    validate_transition,
)

S = PolicyStatus

EXPECTED_EDGES = {
    (S.DRAFT, S.SUBMITTED), (S.DRAFT, S.CANCELLED),
    (S.SUBMITTED, S.UNDERWRITING), (S.SUBMITTED, S.CANCELLED),
    (S.UNDERWRITING, S.ACTIVE), (S.UNDERWRITING, S.CANCELLED),
    (S.ACTIVE, S.AMENDED), (S.ACTIVE, S.LAPSED), (S.ACTIVE, S.CANCELLED),
    (S.AMENDED, S.ACTIVE), (S.AMENDED, S.LAPSED), (S.AMENDED, S.CANCELLED),
    (S.LAPSED, S.REINSTATED), (S.LAPSED, S.CANCELLED),
    (S.REINSTATED, S.ACTIVE), (S.REINSTATED, S.LAPSED), (S.REINSTATED, S.CANCELLED),
}

ALL_PAIRS = [(a, b) for a in PolicyStatus for b in PolicyStatus]


@pytest.mark.parametrize("current,target", ALL_PAIRS)
def test_table_matches_expected_edges(current, target):
    assert can_transition(current, target) == ((current, target) in EXPECTED_EDGES)


@pytest.mark.parametrize("current,target", ALL_PAIRS)
def test_validate_raises_exactly_for_missing_edges(current, target):
    if (current, target) in EXPECTED_EDGES:
        validate_transition(current, target)
    else:
        with pytest.raises(InvalidTransitionError):
            validate_transition(current, target)


def test_every_status_has_an_entry():
    assert set(ALLOWED_TRANSITIONS) == set(PolicyStatus)


def test_no_self_transitions():
    for status in PolicyStatus:
        assert not can_transition(status, status)


def test_cancelled_is_only_terminal_status():
    assert TERMINAL_STATUSES == {S.CANCELLED}
    assert is_terminal(S.CANCELLED)
    assert not is_terminal(S.LAPSED)
    assert allowed_targets(S.CANCELLED) == frozenset()


@pytest.mark.parametrize("target", list(PolicyStatus))
def test_cancelled_error_carries_current_and_requested(target):
    with pytest.raises(InvalidTransitionError) as exc_info:
        validate_transition(S.CANCELLED, target)
    assert exc_info.value.current == "cancelled"
    assert exc_info.value.requested == target.value
    assert exc_info.value.to_dict()["code"] == "INVALID_TRANSITION"


def test_accepts_plain_strings():
    assert can_transition("draft", "submitted")
    assert not can_transition("draft", "active")


def test_only_underwriting_to_active_is_initial_activation():
    assert is_initial_activation(S.UNDERWRITING, S.ACTIVE)
    assert not is_initial_activation(S.AMENDED, S.ACTIVE)
    assert not is_initial_activation(S.REINSTATED, S.ACTIVE)


def test_in_force_statuses():
    assert IN_FORCE_STATUSES == {S.ACTIVE, S.AMENDED, S.REINSTATED}
