"""
Clawback calculator.

When a policy lapses early, part of the initial commission must be repaid:

    days since inception <= 365   -> 100% of initial commission paid
    366 - 730 days                -> 50%
    more than 730 days            -> nothing

The 730-day end of the window is settings.clawback_watch_days, the same
value that sets a policy's clawback_watch_until.

The repayment is posted as a negative clawback entry in the commission
ledger.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from policy_ledger.config import settings
from policy_ledger.models import CommissionEntry, CommissionType, Policy
from policy_ledger.services.money import add_days, apply_percentage, days_between
from policy_ledger.services.repository import count_entries, sum_entries

logger = logging.getLogger(__name__)

FULL_CLAWBACK_DAYS = 365


def clawback_tiers() -> Tuple[Tuple[int, int], ...]:
    """(max days since inception, clawback percentage), checked in order."""
    watch_days = settings.clawback_watch_days
    return (
        (min(FULL_CLAWBACK_DAYS, watch_days), 100),
        (watch_days, 50),
    )


def clawback_percentage(inception_date: date, lapse_date: date) -> int:
    """Whole-number clawback percentage for a lapse on lapse_date."""
    days = days_between(inception_date, lapse_date)
    for max_days, percentage in clawback_tiers():
        if days <= max_days:
            return percentage
    return 0


def calculate_clawback_amount(
    initial_commission_paid: int,
    inception_date: date,
    lapse_date: date,
) -> int:
    """Repayable amount in cents (positive)."""
    percentage = clawback_percentage(inception_date, lapse_date)
    return apply_percentage(initial_commission_paid, percentage)


def clawback_watch_until(inception_date: date) -> date:
    """Last date on which a lapse still triggers a clawback."""
    return add_days(inception_date, settings.clawback_watch_days)


async def apply_clawback(
    db: AsyncSession,
    policy: Policy,
    lapse_date: date,
    actor_id: Optional[str] = None,
) -> Optional[CommissionEntry]:
    """
    Post the clawback for a lapse inside the caller's transaction.

    No entry is posted when the policy never earned initial commission,
    when the lapse is past the last tier, or when earlier clawbacks
    (a previous lapse before reinstatement) already cover the amount.
    """
    if not await count_entries(db, policy.id, CommissionType.INITIAL):
        logger.info(f"Policy {policy.id} has no initial commission, nothing to claw back")
        return None

    percentage = clawback_percentage(policy.inception_date, lapse_date)
    if percentage == 0:
        logger.info(
            f"Policy {policy.id} lapsed {days_between(policy.inception_date, lapse_date)} "
            f"days after inception, outside clawback window"
        )
        return None

    initial_paid = await sum_entries(db, policy.id, CommissionType.INITIAL)
    repayable = apply_percentage(initial_paid, percentage)
    already_clawed = -await sum_entries(db, policy.id, CommissionType.CLAWBACK)
    amount = repayable - already_clawed
    if amount <= 0:
        logger.info(f"Policy {policy.id} clawback already settled ({already_clawed}c)")
        return None

    entry = CommissionEntry(
        tenant_id=policy.tenant_id,
        policy_id=policy.id,
        entry_type=CommissionType.CLAWBACK,
        amount=-amount,
        computed_on=lapse_date,
        basis_commission_pct=Decimal(percentage) / Decimal(100),
        basis_amount=initial_paid,
        created_by=actor_id,
    )
    db.add(entry)

    logger.info(
        f"Clawback {percentage}% ({-amount}c) posted for policy {policy.id} "
        f"(tenant={policy.tenant_id})"
    )
    return entry
