"""
Renewal and clawback-watch scans.

Read-only queries over persisted policies. They never write, so any
number of them can run alongside transitions.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from policy_ledger.errors import ValidationError
from policy_ledger.models import Policy, PolicyStatus
from policy_ledger.services.money import add_days
from policy_ledger.services.money import today as utc_today

RENEWABLE_STATUSES = (PolicyStatus.ACTIVE, PolicyStatus.REINSTATED)


async def renewals_due(
    db: AsyncSession,
    tenant_id: str,
    days_ahead: int,
    *,
    today: Optional[date] = None,
) -> List[Policy]:
    """
    Active or reinstated policies expiring within [today, today + days_ahead],
    soonest expiry first.
    """
    if days_ahead < 0:
        raise ValidationError("days_ahead cannot be negative")

    start = today or utc_today()
    cutoff = add_days(start, days_ahead)

    result = await db.execute(
        select(Policy)
        .where(
            Policy.tenant_id == tenant_id,
            Policy.deleted_at.is_(None),
            Policy.status.in_(RENEWABLE_STATUSES),
            Policy.expiry_date.is_not(None),
            Policy.expiry_date >= start,
            Policy.expiry_date <= cutoff,
        )
        .order_by(Policy.expiry_date, Policy.id)
    )
    return list(result.scalars().all())


async def clawback_watch_active(
    db: AsyncSession,
    tenant_id: str,
    *,
    today: Optional[date] = None,
) -> List[Policy]:
    """Policies whose clawback watch ends after today, earliest end first."""
    start = today or utc_today()

    result = await db.execute(
        select(Policy)
        .where(
            Policy.tenant_id == tenant_id,
            Policy.deleted_at.is_(None),
            Policy.clawback_watch_until.is_not(None),
            Policy.clawback_watch_until > start,
        )
        .order_by(Policy.clawback_watch_until, Policy.id)
    )
    return list(result.scalars().all())
