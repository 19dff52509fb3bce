"""Commission ledger schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from policy_ledger.models.commission import CommissionType


class CommissionEntryResponse(BaseModel):
    """Single ledger entry. Amounts are signed integer cents."""

    id: int
    policy_id: int
    entry_type: CommissionType
    amount: int
    computed_on: date
    basis_commission_pct: Decimal
    basis_amount: int
    renewal_period: Optional[date] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LedgerSummary(BaseModel):
    """Per-type totals and the reconciled balance for one policy."""

    policy_id: int
    initial_total: int = 0
    renewal_total: int = 0
    clawback_total: int = 0
    balance: int = 0
    vat_on_balance: int = 0
    entry_count: int = 0


class LedgerResponse(BaseModel):
    """Commission ledger for one policy, oldest entry first."""

    summary: LedgerSummary
    items: List[CommissionEntryResponse]
