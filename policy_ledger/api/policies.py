"""Policy lifecycle API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from policy_ledger.api.dependencies import Identity, get_identity
from policy_ledger.config import settings
from policy_ledger.db import get_db
from policy_ledger.models import PolicyStatus
from policy_ledger.schemas.commission import CommissionEntryResponse, LedgerResponse
from policy_ledger.schemas.policy import (
    CancelRequest,
    PolicyCreate,
    PolicyListResponse,
    PolicyResponse,
    PolicyUpdate,
    TransitionRecordResponse,
    TransitionRequest,
)
from policy_ledger.services import commission as commission_service
from policy_ledger.services import policies as policy_service
from policy_ledger.services.renewals import clawback_watch_active, renewals_due

router = APIRouter(prefix="/policies", tags=["Policies"])


def _list_response(policies) -> PolicyListResponse:
    return PolicyListResponse(
        items=[PolicyResponse.model_validate(p) for p in policies],
        total=len(policies),
    )


# Fixed paths first so they are not captured by /{policy_id}


@router.get("/renewals-due", response_model=PolicyListResponse)
async def list_renewals_due(
    days: int = Query(settings.renewal_notice_days, ge=0, le=3650),
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Active/reinstated policies expiring within the next `days` days."""
    policies = await renewals_due(db, identity.tenant_id, days)
    return _list_response(policies)


@router.get("/clawback-watch", response_model=PolicyListResponse)
async def list_clawback_watch(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Policies still inside their clawback window."""
    policies = await clawback_watch_active(db, identity.tenant_id)
    return _list_response(policies)


@router.get("", response_model=PolicyListResponse)
async def list_policies(
    status_filter: Optional[PolicyStatus] = Query(None, alias="status"),
    client_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """List the tenant's policies."""
    policies = await policy_service.list_policies(
        db, identity.tenant_id, status=status_filter, client_id=client_id
    )
    return _list_response(policies)


@router.post("", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(
    data: PolicyCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Create a draft policy."""
    policy = await policy_service.create_policy(db, identity.tenant_id, identity.actor_id, data)
    return PolicyResponse.model_validate(policy)


@router.get("/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    policy = await policy_service.get_policy(db, identity.tenant_id, policy_id)
    return PolicyResponse.model_validate(policy)


@router.patch("/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: int,
    data: PolicyUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Edit non-status attributes."""
    policy = await policy_service.update_policy(
        db, identity.tenant_id, identity.actor_id, policy_id, data
    )
    return PolicyResponse.model_validate(policy)


@router.delete("/{policy_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_policy(
    policy_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Soft-delete a policy."""
    await policy_service.delete_policy(db, identity.tenant_id, identity.actor_id, policy_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{policy_id}/status", response_model=PolicyResponse)
async def transition_policy(
    policy_id: int,
    data: TransitionRequest,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Move the policy through the status machine."""
    policy = await policy_service.transition_policy(
        db, identity.tenant_id, identity.actor_id, policy_id, data.status, data.reason
    )
    return PolicyResponse.model_validate(policy)


@router.post("/{policy_id}/lapse", response_model=PolicyResponse)
async def lapse_policy(
    policy_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    policy = await policy_service.transition_policy(
        db, identity.tenant_id, identity.actor_id, policy_id, PolicyStatus.LAPSED
    )
    return PolicyResponse.model_validate(policy)


@router.post("/{policy_id}/cancel", response_model=PolicyResponse)
async def cancel_policy(
    policy_id: int,
    data: Optional[CancelRequest] = None,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    policy = await policy_service.transition_policy(
        db, identity.tenant_id, identity.actor_id, policy_id, PolicyStatus.CANCELLED,
        data.reason if data else None,
    )
    return PolicyResponse.model_validate(policy)


@router.post("/{policy_id}/reinstate", response_model=PolicyResponse)
async def reinstate_policy(
    policy_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    policy = await policy_service.transition_policy(
        db, identity.tenant_id, identity.actor_id, policy_id, PolicyStatus.REINSTATED
    )
    return PolicyResponse.model_validate(policy)


@router.get("/{policy_id}/commissions", response_model=LedgerResponse)
async def get_commission_ledger(
    policy_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Commission ledger with per-type totals."""
    entries = await commission_service.commission_ledger(db, identity.tenant_id, policy_id)
    return LedgerResponse(
        summary=commission_service.summarize_ledger(policy_id, entries),
        items=[CommissionEntryResponse.model_validate(e) for e in entries],
    )


@router.get("/{policy_id}/transitions", response_model=list[TransitionRecordResponse])
async def get_transition_history(
    policy_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Status history, oldest first."""
    records = await policy_service.transition_history(db, identity.tenant_id, policy_id)
    return [TransitionRecordResponse.model_validate(r) for r in records]
