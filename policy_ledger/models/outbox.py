"""
NotificationOutbox model for renewal and clawback-watch notices.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from policy_ledger.models.base import Base


class NotificationKind(str, Enum):
    """Due-event raised by the scheduler."""
    RENEWAL_DUE = "renewal_due"
    CLAWBACK_WATCH = "clawback_watch"


class OutboxStatus(str, Enum):
    """Delivery status, owned by the downstream dispatcher."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class NotificationOutbox(Base):
    """
    Outgoing notice queue.

    Rows are added by the scheduler scans and picked up by the
    notification service, which owns delivery and retries.
    (policy_id, kind, due_on) is unique so a repeated scan never queues
    the same notice twice.
    """

    __tablename__ = "notification_outbox"
    __table_args__ = (
        UniqueConstraint("policy_id", "kind", "due_on", name="uq_outbox_policy_kind_due"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    policy_id: Mapped[int] = mapped_column(
        ForeignKey("policies.id"),
        nullable=False,
    )
    kind: Mapped[NotificationKind] = mapped_column(
        SQLAlchemyEnum(
            NotificationKind,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    due_on: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Expiry date or clawback-watch end the notice is about",
    )
    payload: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
    )
    status: Mapped[OutboxStatus] = mapped_column(
        SQLAlchemyEnum(
            OutboxStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=OutboxStatus.PENDING,
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<NotificationOutbox(id={self.id}, kind={self.kind}, policy_id={self.policy_id})>"
