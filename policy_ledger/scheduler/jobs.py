"""
Background job definitions using APScheduler.

Jobs include:
- Renewal notices (policies expiring within the notice window)
- Clawback-watch notices (policies still inside the clawback window)
- Renewal commission posting
"""

import logging
from datetime import date
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from policy_ledger.config import settings
from policy_ledger.db import get_db_context
from policy_ledger.models import NotificationKind
from policy_ledger.services.commission import post_due_renewals
from policy_ledger.services.money import today as utc_today
from policy_ledger.services.notifications import NotificationDispatcher, OutboxDispatcher
from policy_ledger.services.renewals import clawback_watch_active, renewals_due
from policy_ledger.services.repository import tenants_with_policies
from policy_ledger.services.state_machine import IN_FORCE_STATUSES

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()

DispatcherFactory = Callable[[AsyncSession], NotificationDispatcher]


async def notify_renewals_due(
    db: AsyncSession,
    days_ahead: Optional[int] = None,
    today: Optional[date] = None,
    dispatcher_factory: DispatcherFactory = OutboxDispatcher,
) -> int:
    """Scan every tenant for renewals due and hand them to the dispatcher."""
    days_ahead = settings.renewal_notice_days if days_ahead is None else days_ahead
    dispatcher = dispatcher_factory(db)

    queued = 0
    for tenant_id in await tenants_with_policies(db):
        due = await renewals_due(db, tenant_id, days_ahead, today=today)
        queued += await dispatcher.dispatch(NotificationKind.RENEWAL_DUE, tenant_id, due)
    return queued


async def notify_clawback_watch(
    db: AsyncSession,
    today: Optional[date] = None,
    dispatcher_factory: DispatcherFactory = OutboxDispatcher,
) -> int:
    """
    Scan every tenant for in-force policies inside the clawback window.

    Drafts and cancelled or lapsed policies are skipped: there is no
    lapse left to warn about.
    """
    dispatcher = dispatcher_factory(db)

    queued = 0
    for tenant_id in await tenants_with_policies(db):
        watched = [
            policy for policy in await clawback_watch_active(db, tenant_id, today=today)
            if policy.status in IN_FORCE_STATUSES
        ]
        queued += await dispatcher.dispatch(NotificationKind.CLAWBACK_WATCH, tenant_id, watched)
    return queued


async def post_renewal_commissions(db: AsyncSession, as_of: Optional[date] = None) -> int:
    """Post the current renewal commission for every tenant."""
    as_of = as_of or utc_today()

    posted = 0
    for tenant_id in await tenants_with_policies(db):
        posted += await post_due_renewals(db, tenant_id, as_of)
    return posted


async def renewal_notice_job():
    """Queue renewal notices."""
    logger.debug("Running renewal notice job")
    try:
        async with get_db_context() as db:
            queued = await notify_renewals_due(db)
            if queued:
                logger.info(f"Renewal notice job: queued {queued} notices")
    except Exception as e:
        logger.exception(f"Renewal notice job error: {e}")


async def clawback_watch_job():
    """Queue clawback-watch notices."""
    logger.debug("Running clawback watch job")
    try:
        async with get_db_context() as db:
            queued = await notify_clawback_watch(db)
            if queued:
                logger.info(f"Clawback watch job: queued {queued} notices")
    except Exception as e:
        logger.exception(f"Clawback watch job error: {e}")


async def renewal_commission_job():
    """Post renewal commission entries that have come due."""
    logger.debug("Running renewal commission job")
    try:
        async with get_db_context() as db:
            posted = await post_renewal_commissions(db)
            if posted:
                logger.info(f"Renewal commission job: posted {posted} entries")
    except Exception as e:
        logger.exception(f"Renewal commission job error: {e}")


def setup_scheduler():
    """
    Configure and add all scheduled jobs.

    Called during application startup.
    """
    interval = IntervalTrigger(minutes=settings.scheduler_interval_minutes)

    scheduler.add_job(
        renewal_notice_job,
        trigger=interval,
        id="renewal_notices",
        name="Queue renewal notices",
        replace_existing=True,
    )
    scheduler.add_job(
        clawback_watch_job,
        trigger=interval,
        id="clawback_watch",
        name="Queue clawback-watch notices",
        replace_existing=True,
    )
    scheduler.add_job(
        renewal_commission_job,
        trigger=interval,
        id="renewal_commissions",
        name="Post renewal commissions",
        replace_existing=True,
    )

    logger.info(
        f"Scheduler configured with jobs (every {settings.scheduler_interval_minutes} min)"
    )
