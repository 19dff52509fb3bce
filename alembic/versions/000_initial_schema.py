"""Initial database schema

Revision ID: 000_initial_schema
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "000_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

POLICY_STATUSES = (
    "draft", "submitted", "underwriting", "active",
    "amended", "lapsed", "reinstated", "cancelled",
)


def upgrade() -> None:
    """Create all initial tables."""

    # Clients table
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_clients_tenant_id", "clients", ["tenant_id"])
    op.create_index("ix_clients_deleted_at", "clients", ["deleted_at"])

    # Policies table
    op.create_table(
        "policies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("agent_id", sa.String(64), nullable=False),
        sa.Column("created_by", sa.String(64), nullable=False),
        sa.Column("policy_number", sa.String(50), nullable=False),
        sa.Column(
            "product_category",
            sa.Enum(
                "life", "disability_lump", "income_protection", "critical_illness",
                "funeral", "short_term_personal", "short_term_commercial",
                "medical_aid", "gap_cover", "retrenchment", "investment", "key_person",
                name="productcategory",
            ),
            nullable=False,
        ),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("insurer_name", sa.String(200), nullable=False),
        sa.Column("insurer_policy_ref", sa.String(100), nullable=True),
        sa.Column("sum_assured", sa.BigInteger(), nullable=False),
        sa.Column("monthly_premium", sa.BigInteger(), nullable=False),
        sa.Column(
            "premium_frequency",
            sa.Enum("monthly", "quarterly", "bi_annual", "annual", "once_off", name="premiumfrequency"),
            nullable=False,
        ),
        sa.Column(
            "collection_method",
            sa.Enum("debit_order", "eft", "stop_order", "credit_card", "cash", name="collectionmethod"),
            nullable=False,
        ),
        sa.Column("escalation_rate", sa.Numeric(5, 4), nullable=True),
        sa.Column("inception_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("status", sa.Enum(*POLICY_STATUSES, name="policystatus"), nullable=False),
        sa.Column("lapse_date", sa.Date(), nullable=True),
        sa.Column("cancellation_date", sa.Date(), nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        sa.Column("initial_commission_pct", sa.Numeric(5, 4), nullable=False),
        sa.Column("renewal_commission_pct", sa.Numeric(5, 4), nullable=False),
        sa.Column("clawback_watch_until", sa.Date(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("tenant_id", "policy_number", name="uq_policies_tenant_number"),
        sa.CheckConstraint("sum_assured > 0", name="ck_policies_sum_assured_positive"),
        sa.CheckConstraint("monthly_premium > 0", name="ck_policies_premium_positive"),
        sa.CheckConstraint(
            "initial_commission_pct >= 0 AND initial_commission_pct <= 1",
            name="ck_policies_initial_pct_range",
        ),
        sa.CheckConstraint(
            "renewal_commission_pct >= 0 AND renewal_commission_pct <= 1",
            name="ck_policies_renewal_pct_range",
        ),
    )
    op.create_index("ix_policies_tenant_id", "policies", ["tenant_id"])
    op.create_index("ix_policies_client_id", "policies", ["client_id"])
    op.create_index("ix_policies_agent_id", "policies", ["agent_id"])
    op.create_index("ix_policies_status", "policies", ["status"])
    op.create_index("ix_policies_expiry_date", "policies", ["expiry_date"])
    op.create_index("ix_policies_clawback_watch_until", "policies", ["clawback_watch_until"])
    op.create_index("ix_policies_deleted_at", "policies", ["deleted_at"])

    # Commission ledger
    op.create_table(
        "commission_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("policy_id", sa.Integer(), sa.ForeignKey("policies.id"), nullable=False),
        sa.Column(
            "entry_type",
            sa.Enum("initial", "renewal", "clawback", name="commissiontype"),
            nullable=False,
        ),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("computed_on", sa.Date(), nullable=False),
        sa.Column("basis_commission_pct", sa.Numeric(7, 4), nullable=False),
        sa.Column("basis_amount", sa.BigInteger(), nullable=False),
        sa.Column("renewal_period", sa.Date(), nullable=True),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("policy_id", "renewal_period", name="uq_commission_policy_period"),
    )
    op.create_index("ix_commission_entries_tenant_id", "commission_entries", ["tenant_id"])
    op.create_index("ix_commission_entries_policy_id", "commission_entries", ["policy_id"])
    op.create_index("ix_commission_entries_entry_type", "commission_entries", ["entry_type"])

    # Transition history
    op.create_table(
        "policy_transitions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("policy_id", sa.Integer(), sa.ForeignKey("policies.id"), nullable=False),
        sa.Column("from_status", postgresql.ENUM(*POLICY_STATUSES, name="policystatus", create_type=False), nullable=False),
        sa.Column("to_status", postgresql.ENUM(*POLICY_STATUSES, name="policystatus", create_type=False), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column("reason", sa.String(500), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_policy_transitions_tenant_id", "policy_transitions", ["tenant_id"])
    op.create_index("ix_policy_transitions_policy_id", "policy_transitions", ["policy_id"])
    op.create_index("ix_policy_transitions_occurred_at", "policy_transitions", ["occurred_at"])

    # Notification outbox
    op.create_table(
        "notification_outbox",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("policy_id", sa.Integer(), sa.ForeignKey("policies.id"), nullable=False),
        sa.Column(
            "kind",
            sa.Enum("renewal_due", "clawback_watch", name="notificationkind"),
            nullable=False,
        ),
        sa.Column("due_on", sa.Date(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("pending", "sent", "failed", name="outboxstatus"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("policy_id", "kind", "due_on", name="uq_outbox_policy_kind_due"),
    )
    op.create_index("ix_notification_outbox_tenant_id", "notification_outbox", ["tenant_id"])
    op.create_index("ix_notification_outbox_kind", "notification_outbox", ["kind"])
    op.create_index("ix_notification_outbox_status", "notification_outbox", ["status"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("notification_outbox")
    op.drop_table("policy_transitions")
    op.drop_table("commission_entries")
    op.drop_table("policies")
    op.drop_table("clients")

    for enum_name in (
        "outboxstatus", "notificationkind", "commissiontype", "policystatus",
        "collectionmethod", "premiumfrequency", "productcategory",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
