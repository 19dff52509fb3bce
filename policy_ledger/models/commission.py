"""
Commission ledger model.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, Date, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from policy_ledger.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from policy_ledger.models.policy import Policy


class CommissionType(str, Enum):
    """Kind of commission ledger entry."""
    INITIAL = "initial"      # Posted once, on first activation
    RENEWAL = "renewal"      # One per renewal cycle
    CLAWBACK = "clawback"    # Negative, on early lapse


class CommissionEntry(Base, TimestampMixin):
    """
    Immutable commission ledger entry.

    Entries are never edited or deleted; a correction is a new
    offsetting entry. The sum of a policy's entries is its commission
    balance. Clawback amounts are negative.

    (policy_id, renewal_period) is unique so that concurrent scheduler
    instances cannot post the same renewal twice. Initial and clawback
    entries leave renewal_period NULL.
    """

    __tablename__ = "commission_entries"
    __table_args__ = (
        UniqueConstraint("policy_id", "renewal_period", name="uq_commission_policy_period"),
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
        index=True,
    )
    entry_type: Mapped[CommissionType] = mapped_column(
        SQLAlchemyEnum(
            CommissionType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Signed integer cents",
    )
    computed_on: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    basis_commission_pct: Mapped[Decimal] = mapped_column(
        Numeric(7, 4),
        nullable=False,
        comment="Fraction for initial/renewal, clawback percentage / 100 for clawback",
    )
    basis_amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Premium (initial/renewal) or initial commission paid (clawback), in cents",
    )
    renewal_period: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        comment="Start of the renewal cycle this entry pays for",
    )
    created_by: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )

    # Relationships
    policy: Mapped["Policy"] = relationship(
        "Policy",
        back_populates="commission_entries",
    )

    def __repr__(self) -> str:
        return (
            f"<CommissionEntry(id={self.id}, policy_id={self.policy_id}, "
            f"type={self.entry_type}, amount={self.amount})>"
        )
