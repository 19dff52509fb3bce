"""
PolicyTransition model (status change audit trail).
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from policy_ledger.models.base import Base
from policy_ledger.models.policy import PolicyStatus

if TYPE_CHECKING:
    from policy_ledger.models.policy import Policy


class PolicyTransition(Base):
    """
    One row per status change.

    Written in the same transaction as the status update, so every
    status a policy has held is explained by an allowed edge.
    """

    __tablename__ = "policy_transitions"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    policy_id: Mapped[int] = mapped_column(
        ForeignKey("policies.id"),
        nullable=False,
        index=True,
    )
    from_status: Mapped[PolicyStatus] = mapped_column(
        SQLAlchemyEnum(
            PolicyStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    to_status: Mapped[PolicyStatus] = mapped_column(
        SQLAlchemyEnum(
            PolicyStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    actor_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    # Relationships
    policy: Mapped["Policy"] = relationship(
        "Policy",
        back_populates="transitions",
    )

    def __repr__(self) -> str:
        return (
            f"<PolicyTransition(policy_id={self.policy_id}, "
            f"{self.from_status} -> {self.to_status})>"
        )
