"""
Policy request/response schemas.

Money fields are integer cents; commission and escalation rates are
fractions in [0, 1].
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from policy_ledger.models.policy import (
    CollectionMethod,
    PolicyStatus,
    PremiumFrequency,
    ProductCategory,
)


class PolicyCreate(BaseModel):
    """Request to create a draft policy."""

    client_id: int = Field(..., gt=0)
    agent_id: str = Field(..., min_length=1, max_length=64)
    policy_number: str = Field(..., min_length=1, max_length=50)
    product_category: ProductCategory
    product_name: str = Field(..., min_length=1, max_length=200)
    insurer_name: str = Field(..., min_length=1, max_length=200)
    insurer_policy_ref: Optional[str] = Field(None, max_length=100)
    sum_assured: int = Field(..., gt=0, description="Cents")
    monthly_premium: int = Field(..., gt=0, description="Cents")
    premium_frequency: PremiumFrequency = PremiumFrequency.MONTHLY
    collection_method: CollectionMethod = CollectionMethod.DEBIT_ORDER
    escalation_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    inception_date: date
    expiry_date: Optional[date] = None
    initial_commission_pct: Decimal = Field(Decimal("0"), ge=0, le=1)
    renewal_commission_pct: Decimal = Field(Decimal("0"), ge=0, le=1)
    clawback_watch_until: Optional[date] = None


class PolicyUpdate(BaseModel):
    """Partial update of non-status attributes."""

    product_name: Optional[str] = Field(None, min_length=1, max_length=200)
    insurer_name: Optional[str] = Field(None, min_length=1, max_length=200)
    insurer_policy_ref: Optional[str] = Field(None, max_length=100)
    sum_assured: Optional[int] = Field(None, gt=0)
    monthly_premium: Optional[int] = Field(None, gt=0)
    premium_frequency: Optional[PremiumFrequency] = None
    collection_method: Optional[CollectionMethod] = None
    escalation_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    inception_date: Optional[date] = None
    expiry_date: Optional[date] = None
    initial_commission_pct: Optional[Decimal] = Field(None, ge=0, le=1)
    renewal_commission_pct: Optional[Decimal] = Field(None, ge=0, le=1)
    clawback_watch_until: Optional[date] = None


class TransitionRequest(BaseModel):
    """Request to move a policy to another status."""

    status: PolicyStatus
    reason: Optional[str] = Field(None, max_length=500)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class PolicyResponse(BaseModel):
    """Full policy as stored."""

    id: int
    tenant_id: str
    client_id: int
    agent_id: str
    policy_number: str
    product_category: ProductCategory
    product_name: str
    insurer_name: str
    insurer_policy_ref: Optional[str]
    sum_assured: int
    monthly_premium: int
    premium_frequency: PremiumFrequency
    collection_method: CollectionMethod
    escalation_rate: Optional[Decimal]
    inception_date: date
    expiry_date: Optional[date]
    status: PolicyStatus
    lapse_date: Optional[date]
    cancellation_date: Optional[date]
    cancellation_reason: Optional[str]
    initial_commission_pct: Decimal
    renewal_commission_pct: Decimal
    clawback_watch_until: Optional[date]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PolicyListResponse(BaseModel):
    items: List[PolicyResponse]
    total: int


class TransitionRecordResponse(BaseModel):
    """One entry of a policy's status history."""

    id: int
    policy_id: int
    from_status: PolicyStatus
    to_status: PolicyStatus
    actor_id: str
    reason: Optional[str]
    occurred_at: datetime

    model_config = {"from_attributes": True}
