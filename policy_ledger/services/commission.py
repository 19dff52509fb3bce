"""
Commission accrual engine.

Rules:
- Initial commission: monthly premium x initial commission %, posted once,
  on the first underwriting -> active transition
- Renewal commission: monthly premium x renewal commission %, posted once
  per renewal cycle (cycle length from premium frequency, counted from
  inception); cycle 0 is paid by the initial commission
- Amounts are integer cents, rounded half-up
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from policy_ledger.errors import InternalError
from policy_ledger.models import CommissionEntry, CommissionType, Policy, PremiumFrequency
from policy_ledger.schemas.commission import LedgerSummary
from policy_ledger.services.money import add_months, apply_rate, calculate_vat, months_between
from policy_ledger.services.repository import count_entries, load_policy
from policy_ledger.services.state_machine import IN_FORCE_STATUSES

logger = logging.getLogger(__name__)

# Renewal cycle length in months; None means no renewals
RENEWAL_CYCLE_MONTHS: Dict[PremiumFrequency, Optional[int]] = {
    PremiumFrequency.MONTHLY: 1,
    PremiumFrequency.QUARTERLY: 3,
    PremiumFrequency.BI_ANNUAL: 6,
    PremiumFrequency.ANNUAL: 12,
    PremiumFrequency.ONCE_OFF: None,
}


def calculate_initial_commission(policy: Policy) -> int:
    """Initial commission in cents."""
    return apply_rate(policy.monthly_premium, policy.initial_commission_pct)


def calculate_renewal_commission(policy: Policy) -> int:
    """Renewal commission in cents for one cycle."""
    return apply_rate(policy.monthly_premium, policy.renewal_commission_pct)


def renewal_period_for(policy: Policy, as_of: date) -> Optional[date]:
    """
    Start date of the renewal cycle containing as_of.

    Returns None when the policy has no renewals (once-off premium) or
    as_of still falls in the first cycle.
    """
    cycle_months = RENEWAL_CYCLE_MONTHS.get(PremiumFrequency(policy.premium_frequency))
    if not cycle_months:
        return None

    cycles = months_between(policy.inception_date, as_of) // cycle_months
    if cycles < 1:
        return None
    return add_months(policy.inception_date, cycles * cycle_months)


async def post_initial(
    db: AsyncSession,
    policy: Policy,
    posted_on: date,
    actor_id: Optional[str] = None,
) -> Optional[CommissionEntry]:
    """
    Post the initial commission entry for a policy.

    Runs inside the caller's transaction. A policy already holding an
    initial entry gets nothing new. A zero amount (0% initial
    commission) is still posted so the entry marks the activation.
    """
    if await count_entries(db, policy.id, CommissionType.INITIAL):
        logger.info(f"Policy {policy.id} already has initial commission, not reposting")
        return None

    entry = CommissionEntry(
        tenant_id=policy.tenant_id,
        policy_id=policy.id,
        entry_type=CommissionType.INITIAL,
        amount=calculate_initial_commission(policy),
        computed_on=posted_on,
        basis_commission_pct=policy.initial_commission_pct,
        basis_amount=policy.monthly_premium,
        created_by=actor_id,
    )
    db.add(entry)

    logger.info(
        f"Initial commission {entry.amount}c posted for policy {policy.id} "
        f"(tenant={policy.tenant_id})"
    )
    return entry


async def post_renewal(
    db: AsyncSession,
    policy: Policy,
    as_of: date,
    actor_id: Optional[str] = None,
) -> Optional[CommissionEntry]:
    """
    Post the renewal commission for the cycle containing as_of.

    Idempotent per (policy, period): the existence check covers the common
    case and the unique constraint catches a concurrent poster, whose
    insert is rolled back to a savepoint. Returns None when nothing was
    posted (not in force, no cycle due, or already posted).
    """
    if policy.status not in IN_FORCE_STATUSES:
        logger.debug(f"Policy {policy.id} not in force ({policy.status}), no renewal")
        return None

    period = renewal_period_for(policy, as_of)
    if period is None:
        return None

    existing = await db.scalar(
        select(CommissionEntry.id).where(
            CommissionEntry.policy_id == policy.id,
            CommissionEntry.renewal_period == period,
        )
    )
    if existing is not None:
        logger.debug(f"Renewal for policy {policy.id} period {period} already posted")
        return None

    entry = CommissionEntry(
        tenant_id=policy.tenant_id,
        policy_id=policy.id,
        entry_type=CommissionType.RENEWAL,
        amount=calculate_renewal_commission(policy),
        computed_on=as_of,
        basis_commission_pct=policy.renewal_commission_pct,
        basis_amount=policy.monthly_premium,
        renewal_period=period,
        created_by=actor_id,
    )

    try:
        async with db.begin_nested():
            db.add(entry)
    except IntegrityError:
        logger.info(f"Renewal for policy {policy.id} period {period} posted concurrently")
        return None

    logger.info(
        f"Renewal commission {entry.amount}c posted for policy {policy.id} "
        f"period {period} (tenant={policy.tenant_id})"
    )
    return entry


async def post_due_renewals(
    db: AsyncSession,
    tenant_id: str,
    as_of: date,
) -> int:
    """
    Post the current renewal entry for every in-force policy of a tenant.

    Returns:
        Number of entries posted
    """
    try:
        result = await db.execute(
            select(Policy)
            .where(
                Policy.tenant_id == tenant_id,
                Policy.deleted_at.is_(None),
                Policy.status.in_(list(IN_FORCE_STATUSES)),
            )
            .order_by(Policy.id)
        )
        policies = result.scalars().all()

        posted = 0
        for policy in policies:
            if await post_renewal(db, policy, as_of):
                posted += 1

        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Renewal posting failed for tenant {tenant_id}: {e}")
        raise InternalError() from e

    if posted:
        logger.info(f"Posted {posted} renewal entries for tenant {tenant_id} as of {as_of}")
    return posted


async def commission_ledger(
    db: AsyncSession,
    tenant_id: str,
    policy_id: int,
) -> List[CommissionEntry]:
    """
    All commission entries for a policy, oldest first.

    Soft-deleted policies keep their ledger visible for audit.
    """
    await load_policy(db, tenant_id, policy_id, include_deleted=True)

    try:
        result = await db.execute(
            select(CommissionEntry)
            .where(
                CommissionEntry.policy_id == policy_id,
                CommissionEntry.tenant_id == tenant_id,
            )
            .order_by(CommissionEntry.id)
        )
    except SQLAlchemyError as e:
        logger.exception(f"Ledger read failed for policy {policy_id} (tenant={tenant_id}): {e}")
        raise InternalError() from e
    return list(result.scalars().all())


def summarize_ledger(policy_id: int, entries: Sequence[CommissionEntry]) -> LedgerSummary:
    """Totals per entry type; balance is the plain sum of all entries."""
    totals = {entry_type: 0 for entry_type in CommissionType}
    for entry in entries:
        totals[CommissionType(entry.entry_type)] += entry.amount

    balance = sum(totals.values())
    return LedgerSummary(
        policy_id=policy_id,
        initial_total=totals[CommissionType.INITIAL],
        renewal_total=totals[CommissionType.RENEWAL],
        clawback_total=totals[CommissionType.CLAWBACK],
        balance=balance,
        vat_on_balance=calculate_vat(balance),
        entry_count=len(entries),
    )
