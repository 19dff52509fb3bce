"""Business logic services."""

from policy_ledger.services.clawback import apply_clawback, clawback_percentage
from policy_ledger.services.commission import (
    commission_ledger,
    post_due_renewals,
    post_initial,
    post_renewal,
)
from policy_ledger.services.notifications import NotificationDispatcher, OutboxDispatcher
from policy_ledger.services.policies import (
    create_policy,
    delete_policy,
    get_policy,
    list_policies,
    transition_history,
    transition_policy,
    update_policy,
)
from policy_ledger.services.renewals import clawback_watch_active, renewals_due

__all__ = [
    # Policies
    "create_policy",
    "get_policy",
    "list_policies",
    "update_policy",
    "delete_policy",
    "transition_policy",
    "transition_history",
    # Commission
    "post_initial",
    "post_renewal",
    "post_due_renewals",
    "commission_ledger",
    "apply_clawback",
    "clawback_percentage",
    # Scheduler queries
    "renewals_due",
    "clawback_watch_active",
    "NotificationDispatcher",
    "OutboxDispatcher",
]
