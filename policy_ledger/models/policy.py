"""
Policy model and its lifecycle enums.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from policy_ledger.models.base import Base, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from policy_ledger.models.client import Client
    from policy_ledger.models.commission import CommissionEntry
    from policy_ledger.models.transition import PolicyTransition


class PolicyStatus(str, Enum):
    """Lifecycle status of a policy."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDERWRITING = "underwriting"
    ACTIVE = "active"
    AMENDED = "amended"
    LAPSED = "lapsed"
    REINSTATED = "reinstated"
    CANCELLED = "cancelled"     # Terminal


class ProductCategory(str, Enum):
    """Product line the policy was written under."""
    LIFE = "life"
    DISABILITY_LUMP = "disability_lump"
    INCOME_PROTECTION = "income_protection"
    CRITICAL_ILLNESS = "critical_illness"
    FUNERAL = "funeral"
    SHORT_TERM_PERSONAL = "short_term_personal"
    SHORT_TERM_COMMERCIAL = "short_term_commercial"
    MEDICAL_AID = "medical_aid"
    GAP_COVER = "gap_cover"
    RETRENCHMENT = "retrenchment"
    INVESTMENT = "investment"
    KEY_PERSON = "key_person"


class PremiumFrequency(str, Enum):
    """How often the premium is collected."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BI_ANNUAL = "bi_annual"
    ANNUAL = "annual"
    ONCE_OFF = "once_off"


class CollectionMethod(str, Enum):
    """How the premium is collected."""
    DEBIT_ORDER = "debit_order"
    EFT = "eft"
    STOP_ORDER = "stop_order"
    CREDIT_CARD = "credit_card"
    CASH = "cash"


class Policy(Base, TimestampMixin, SoftDeleteMixin):
    """
    An insurance policy owned by a tenant.

    Status is only ever changed through the state machine in
    services.policies.transition_policy. The version column is the
    optimistic concurrency token: a stale writer fails its UPDATE and
    must re-read and re-validate.

    Money columns are integer cents; commission percentages are
    fractions in [0, 1].
    """

    __tablename__ = "policies"
    __table_args__ = (
        UniqueConstraint("tenant_id", "policy_number", name="uq_policies_tenant_number"),
        CheckConstraint("sum_assured > 0", name="ck_policies_sum_assured_positive"),
        CheckConstraint("monthly_premium > 0", name="ck_policies_premium_positive"),
        CheckConstraint(
            "initial_commission_pct >= 0 AND initial_commission_pct <= 1",
            name="ck_policies_initial_pct_range",
        ),
        CheckConstraint(
            "renewal_commission_pct >= 0 AND renewal_commission_pct <= 1",
            name="ck_policies_renewal_pct_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id"),
        nullable=False,
        index=True,
    )
    agent_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    created_by: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    policy_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Product
    product_category: Mapped[ProductCategory] = mapped_column(
        SQLAlchemyEnum(
            ProductCategory,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    product_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    insurer_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    insurer_policy_ref: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    # Financials (integer cents)
    sum_assured: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )
    monthly_premium: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )
    premium_frequency: Mapped[PremiumFrequency] = mapped_column(
        SQLAlchemyEnum(
            PremiumFrequency,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=PremiumFrequency.MONTHLY,
        nullable=False,
    )
    collection_method: Mapped[CollectionMethod] = mapped_column(
        SQLAlchemyEnum(
            CollectionMethod,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=CollectionMethod.DEBIT_ORDER,
        nullable=False,
    )
    escalation_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 4),
        nullable=True,
        comment="Annual premium escalation as a fraction",
    )

    # Dates
    inception_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    expiry_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        index=True,
    )

    # Status
    status: Mapped[PolicyStatus] = mapped_column(
        SQLAlchemyEnum(
            PolicyStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=PolicyStatus.DRAFT,
        nullable=False,
        index=True,
    )
    lapse_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )
    cancellation_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    # Commission terms
    initial_commission_pct: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        default=Decimal("0"),
        nullable=False,
    )
    renewal_commission_pct: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        default=Decimal("0"),
        nullable=False,
    )
    clawback_watch_until: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        index=True,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Relationships
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="policies",
    )
    commission_entries: Mapped[List["CommissionEntry"]] = relationship(
        "CommissionEntry",
        back_populates="policy",
        order_by="CommissionEntry.id",
    )
    transitions: Mapped[List["PolicyTransition"]] = relationship(
        "PolicyTransition",
        back_populates="policy",
        order_by="PolicyTransition.id",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Policy(id={self.id}, number='{self.policy_number}', status={self.status})>"
