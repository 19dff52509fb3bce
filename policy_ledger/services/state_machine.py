"""
Policy status machine.

Allowed transitions:
    draft        -> submitted, cancelled
    submitted    -> underwriting, cancelled
    underwriting -> active, cancelled
    active       -> amended, lapsed, cancelled
    amended      -> active, lapsed, cancelled
    lapsed       -> reinstated, cancelled
    reinstated   -> active, lapsed, cancelled
    cancelled    -> (terminal)
"""

from typing import FrozenSet, Mapping

from policy_ledger.errors import InvalidTransitionError
from policy_ledger.models.policy import PolicyStatus

ALLOWED_TRANSITIONS: Mapping[PolicyStatus, FrozenSet[PolicyStatus]] = {
    PolicyStatus.DRAFT: frozenset({PolicyStatus.SUBMITTED, PolicyStatus.CANCELLED}),
    PolicyStatus.SUBMITTED: frozenset({PolicyStatus.UNDERWRITING, PolicyStatus.CANCELLED}),
    PolicyStatus.UNDERWRITING: frozenset({PolicyStatus.ACTIVE, PolicyStatus.CANCELLED}),
    PolicyStatus.ACTIVE: frozenset({
        PolicyStatus.AMENDED, PolicyStatus.LAPSED, PolicyStatus.CANCELLED,
    }),
    PolicyStatus.AMENDED: frozenset({
        PolicyStatus.ACTIVE, PolicyStatus.LAPSED, PolicyStatus.CANCELLED,
    }),
    PolicyStatus.LAPSED: frozenset({PolicyStatus.REINSTATED, PolicyStatus.CANCELLED}),
    PolicyStatus.REINSTATED: frozenset({
        PolicyStatus.ACTIVE, PolicyStatus.LAPSED, PolicyStatus.CANCELLED,
    }),
    PolicyStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# Statuses in which the insurer is collecting premium
IN_FORCE_STATUSES = frozenset({
    PolicyStatus.ACTIVE,
    PolicyStatus.AMENDED,
    PolicyStatus.REINSTATED,
})


def allowed_targets(current: PolicyStatus) -> FrozenSet[PolicyStatus]:
    return ALLOWED_TRANSITIONS.get(PolicyStatus(current), frozenset())


def can_transition(current: PolicyStatus, target: PolicyStatus) -> bool:
    return PolicyStatus(target) in allowed_targets(current)


def validate_transition(current: PolicyStatus, target: PolicyStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is an allowed edge."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current=current, requested=target)


def is_terminal(status: PolicyStatus) -> bool:
    return PolicyStatus(status) in TERMINAL_STATUSES


def is_initial_activation(current: PolicyStatus, target: PolicyStatus) -> bool:
    """Only underwriting -> active earns initial commission."""
    return (
        PolicyStatus(current) == PolicyStatus.UNDERWRITING
        and PolicyStatus(target) == PolicyStatus.ACTIVE
    )
