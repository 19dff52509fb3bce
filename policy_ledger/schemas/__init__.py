"""Pydantic schemas for request/response validation."""

from policy_ledger.schemas.commission import (
    CommissionEntryResponse,
    LedgerResponse,
    LedgerSummary,
)
from policy_ledger.schemas.policy import (
    CancelRequest,
    PolicyCreate,
    PolicyListResponse,
    PolicyResponse,
    PolicyUpdate,
    TransitionRecordResponse,
    TransitionRequest,
)

__all__ = [
    # Policy
    "PolicyCreate",
    "PolicyUpdate",
    "PolicyResponse",
    "PolicyListResponse",
    "TransitionRequest",
    "TransitionRecordResponse",
    "CancelRequest",
    # Commission
    "CommissionEntryResponse",
    "LedgerSummary",
    "LedgerResponse",
]
