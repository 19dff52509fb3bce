"""
Hand-off of due-lists to the notification service.

The scheduler only decides what is due; delivery, channels and retries
belong to whoever consumes the outbox.
"""

import logging
from typing import Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from policy_ledger.models import NotificationKind, NotificationOutbox, OutboxStatus, Policy

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    """Anything that accepts a due-list for one tenant."""

    async def dispatch(
        self,
        kind: NotificationKind,
        tenant_id: str,
        policies: Sequence[Policy],
    ) -> int:
        """Queue notices; returns how many were newly queued."""
        ...


def _due_on(kind: NotificationKind, policy: Policy):
    if kind == NotificationKind.RENEWAL_DUE:
        return policy.expiry_date
    return policy.clawback_watch_until


def build_payload(kind: NotificationKind, policy: Policy) -> dict:
    """Message body for the downstream notifier."""
    due_on = _due_on(kind, policy)
    return {
        "kind": kind.value,
        "policy_id": policy.id,
        "policy_number": policy.policy_number,
        "client_id": policy.client_id,
        "agent_id": policy.agent_id,
        "status": policy.status.value,
        "insurer_name": policy.insurer_name,
        "monthly_premium": policy.monthly_premium,
        "due_on": due_on.isoformat() if due_on else None,
    }


class OutboxDispatcher:
    """
    Writes one outbox row per (policy, kind, due date).

    Notices already queued by an earlier scan are skipped, so running
    the scan repeatedly is harmless.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def dispatch(
        self,
        kind: NotificationKind,
        tenant_id: str,
        policies: Sequence[Policy],
    ) -> int:
        if not policies:
            return 0

        result = await self.db.execute(
            select(NotificationOutbox.policy_id, NotificationOutbox.due_on).where(
                NotificationOutbox.kind == kind,
                NotificationOutbox.policy_id.in_([p.id for p in policies]),
            )
        )
        already_queued = {(row[0], row[1]) for row in result.all()}

        queued = 0
        for policy in policies:
            due_on = _due_on(kind, policy)
            if due_on is None or (policy.id, due_on) in already_queued:
                continue
            self.db.add(NotificationOutbox(
                tenant_id=tenant_id,
                policy_id=policy.id,
                kind=kind,
                due_on=due_on,
                payload=build_payload(kind, policy),
                status=OutboxStatus.PENDING,
            ))
            queued += 1

        if queued:
            logger.info(f"Queued {queued} {kind.value} notices for tenant {tenant_id}")
        return queued


async def pending_notices(
    db: AsyncSession,
    tenant_id: Optional[str] = None,
    limit: int = 100,
) -> list:
    """Oldest pending outbox rows, for the delivery worker."""
    query = select(NotificationOutbox).where(
        NotificationOutbox.status == OutboxStatus.PENDING
    )
    if tenant_id is not None:
        query = query.where(NotificationOutbox.tenant_id == tenant_id)

    result = await db.execute(
        query.order_by(NotificationOutbox.created_at, NotificationOutbox.id).limit(limit)
    )
    return list(result.scalars().all())
