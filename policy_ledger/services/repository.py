"""
Tenant-scoped lookups shared by the policy, commission and scheduler services.
"""

from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from policy_ledger.errors import NotFoundError
from policy_ledger.models import CommissionEntry, CommissionType, Policy


async def load_policy(
    db: AsyncSession,
    tenant_id: str,
    policy_id: int,
    *,
    for_update: bool = False,
    include_deleted: bool = False,
) -> Policy:
    """
    Fetch a policy by (id, tenant).

    Raises NotFoundError for a missing id and for another tenant's id
    alike. for_update takes a row lock where the database supports it
    and always refreshes the instance from the row.
    """
    query = select(Policy).where(
        Policy.id == policy_id,
        Policy.tenant_id == tenant_id,
    )
    if not include_deleted:
        query = query.where(Policy.deleted_at.is_(None))
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)

    result = await db.execute(query)
    policy = result.scalar_one_or_none()
    if policy is None:
        raise NotFoundError("Policy", policy_id)
    return policy


async def sum_entries(db: AsyncSession, policy_id: int, entry_type: CommissionType) -> int:
    """Total amount (cents) of one entry type for a policy."""
    total = await db.scalar(
        select(func.coalesce(func.sum(CommissionEntry.amount), 0)).where(
            CommissionEntry.policy_id == policy_id,
            CommissionEntry.entry_type == entry_type,
        )
    )
    return int(total or 0)


async def count_entries(db: AsyncSession, policy_id: int, entry_type: CommissionType) -> int:
    total = await db.scalar(
        select(func.count()).select_from(CommissionEntry).where(
            CommissionEntry.policy_id == policy_id,
            CommissionEntry.entry_type == entry_type,
        )
    )
    return int(total or 0)


async def tenants_with_policies(db: AsyncSession) -> List[str]:
    """Distinct tenants owning at least one live policy."""
    result = await db.execute(
        select(Policy.tenant_id)
        .where(Policy.deleted_at.is_(None))
        .distinct()
        .order_by(Policy.tenant_id)
    )
    return [row[0] for row in result.all()]
