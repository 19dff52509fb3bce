"""
Database models for the policy ledger.

All models are exported here for convenient imports:
    from policy_ledger.models import Policy, CommissionEntry, etc.
"""

from policy_ledger.models.base import Base, SoftDeleteMixin, TimestampMixin
from policy_ledger.models.client import Client
from policy_ledger.models.commission import CommissionEntry, CommissionType
from policy_ledger.models.outbox import NotificationKind, NotificationOutbox, OutboxStatus
from policy_ledger.models.policy import (
    CollectionMethod,
    Policy,
    PolicyStatus,
    PremiumFrequency,
    ProductCategory,
)
from policy_ledger.models.transition import PolicyTransition

__all__ = [
    # Base
    "Base",
    "SoftDeleteMixin",
    "TimestampMixin",
    # Client
    "Client",
    # Policy
    "Policy",
    "PolicyStatus",
    "ProductCategory",
    "PremiumFrequency",
    "CollectionMethod",
    "PolicyTransition",
    # Commission
    "CommissionEntry",
    "CommissionType",
    # Notifications
    "NotificationOutbox",
    "NotificationKind",
    "OutboxStatus",
]
