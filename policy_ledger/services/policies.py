"""
Policy lifecycle service.

Every operation takes the tenant and actor explicitly and scopes every
read and write to the tenant. Status changes go through
transition_policy only; the status write, the transition record and
the commission side effects commit together or not at all.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from policy_ledger.config import settings
from policy_ledger.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    PolicyLedgerError,
    ValidationError,
)
from policy_ledger.models import Client, Policy, PolicyStatus, PolicyTransition
from policy_ledger.schemas.policy import PolicyCreate, PolicyUpdate
from policy_ledger.services.clawback import apply_clawback, clawback_watch_until
from policy_ledger.services.commission import post_initial
from policy_ledger.services.repository import load_policy
from policy_ledger.services.state_machine import (
    is_initial_activation,
    is_terminal,
    validate_transition,
)

logger = logging.getLogger(__name__)

# Columns an update may not set to NULL
_REQUIRED_COLUMNS = frozenset(
    column.name for column in Policy.__table__.columns if not column.nullable
)


def _parse(schema, data):
    """Coerce a mapping into a request schema, mapping failures to ValidationError."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError("Invalid policy data", details=details) from e


def _check_dates(
    inception_date: date,
    expiry_date: Optional[date],
    watch_until: Optional[date],
) -> None:
    if expiry_date is not None and expiry_date < inception_date:
        raise ValidationError("Expiry date cannot be before inception date")
    if watch_until is not None and watch_until < inception_date:
        raise ValidationError("Clawback watch date cannot be before inception date")


async def create_policy(
    db: AsyncSession,
    tenant_id: str,
    actor_id: str,
    data: Union[PolicyCreate, Mapping[str, Any]],
) -> Policy:
    """
    Create a draft policy for a client of this tenant.

    Raises:
        ValidationError: malformed values
        NotFoundError: client missing or owned by another tenant
        ConflictError: policy number already used in this tenant
    """
    data = _parse(PolicyCreate, data)
    _check_dates(data.inception_date, data.expiry_date, data.clawback_watch_until)

    client = await db.scalar(
        select(Client.id).where(
            Client.id == data.client_id,
            Client.tenant_id == tenant_id,
            Client.deleted_at.is_(None),
        )
    )
    if client is None:
        raise NotFoundError("Client", data.client_id)

    duplicate = await db.scalar(
        select(Policy.id).where(
            Policy.tenant_id == tenant_id,
            Policy.policy_number == data.policy_number,
        )
    )
    if duplicate is not None:
        raise ConflictError(f"Policy number '{data.policy_number}' already exists")

    policy = Policy(
        tenant_id=tenant_id,
        created_by=actor_id,
        status=PolicyStatus.DRAFT,
        **data.model_dump(exclude={"clawback_watch_until"}),
        clawback_watch_until=(
            data.clawback_watch_until or clawback_watch_until(data.inception_date)
        ),
    )
    db.add(policy)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        # Lost a race on (tenant_id, policy_number)
        raise ConflictError(f"Policy number '{data.policy_number}' already exists") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Failed to create policy for tenant {tenant_id}: {e}")
        raise InternalError() from e

    await db.refresh(policy)
    logger.info(
        f"Policy {policy.id} ({policy.policy_number}) created in draft "
        f"by {actor_id} (tenant={tenant_id})"
    )
    return policy


async def get_policy(db: AsyncSession, tenant_id: str, policy_id: int) -> Policy:
    """Scoped point lookup."""
    return await load_policy(db, tenant_id, policy_id)


async def list_policies(
    db: AsyncSession,
    tenant_id: str,
    status: Optional[PolicyStatus] = None,
    client_id: Optional[int] = None,
) -> List[Policy]:
    """Live policies of a tenant, newest first."""
    query = select(Policy).where(
        Policy.tenant_id == tenant_id,
        Policy.deleted_at.is_(None),
    )
    if status is not None:
        query = query.where(Policy.status == status)
    if client_id is not None:
        query = query.where(Policy.client_id == client_id)

    result = await db.execute(query.order_by(Policy.id.desc()))
    return list(result.scalars().all())


async def update_policy(
    db: AsyncSession,
    tenant_id: str,
    actor_id: str,
    policy_id: int,
    data: Union[PolicyUpdate, Mapping[str, Any]],
) -> Policy:
    """
    Edit non-status attributes of a policy.

    Cancelled policies are frozen. Moving the inception date moves the
    clawback watch date with it unless one is supplied.
    """
    data = _parse(PolicyUpdate, data)
    changes = data.model_dump(exclude_unset=True)

    policy = await load_policy(db, tenant_id, policy_id, for_update=True)
    if is_terminal(policy.status):
        raise ValidationError(
            f"Policy {policy.policy_number} is {policy.status.value} and can no longer be edited"
        )

    cleared = sorted(
        field for field, value in changes.items()
        if value is None and field in _REQUIRED_COLUMNS
    )
    if cleared:
        raise ValidationError(
            f"{', '.join(cleared)} cannot be cleared",
            details=[{"field": field, "message": "cannot be null"} for field in cleared],
        )

    if "inception_date" in changes and "clawback_watch_until" not in changes:
        changes["clawback_watch_until"] = clawback_watch_until(changes["inception_date"])

    _check_dates(
        changes.get("inception_date", policy.inception_date),
        changes.get("expiry_date", policy.expiry_date),
        changes.get("clawback_watch_until", policy.clawback_watch_until),
    )

    for field, value in changes.items():
        setattr(policy, field, value)

    try:
        await db.commit()
    except StaleDataError as e:
        await db.rollback()
        raise ConflictError("Policy was modified concurrently, please retry") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Failed to update policy {policy_id} (tenant={tenant_id}): {e}")
        raise InternalError() from e

    await db.refresh(policy)
    logger.info(f"Policy {policy_id} updated by {actor_id}: {sorted(changes)}")
    return policy


async def delete_policy(
    db: AsyncSession,
    tenant_id: str,
    actor_id: str,
    policy_id: int,
) -> None:
    """
    Soft-delete a policy.

    Status, transition history and commission entries are kept.
    """
    policy = await load_policy(db, tenant_id, policy_id, for_update=True)
    policy.deleted_at = datetime.now(timezone.utc)

    try:
        await db.commit()
    except StaleDataError as e:
        await db.rollback()
        raise ConflictError("Policy was modified concurrently, please retry") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Failed to delete policy {policy_id} (tenant={tenant_id}): {e}")
        raise InternalError() from e

    logger.info(f"Policy {policy_id} soft-deleted by {actor_id} (tenant={tenant_id})")


async def _apply_transition(
    db: AsyncSession,
    tenant_id: str,
    actor_id: str,
    policy_id: int,
    target: PolicyStatus,
    reason: Optional[str],
    at: datetime,
) -> Policy:
    """
    One attempt: re-read, validate, stage all writes and flush.

    Flushing runs the versioned UPDATE, so a concurrent writer surfaces
    here as StaleDataError before anything is committed.
    """
    policy = await load_policy(db, tenant_id, policy_id, for_update=True)
    current = PolicyStatus(policy.status)
    validate_transition(current, target)

    on_date = at.date()
    policy.status = target

    db.add(PolicyTransition(
        tenant_id=tenant_id,
        policy_id=policy.id,
        from_status=current,
        to_status=target,
        actor_id=actor_id,
        reason=reason,
        occurred_at=at,
    ))

    if is_initial_activation(current, target):
        if policy.clawback_watch_until is None:
            policy.clawback_watch_until = clawback_watch_until(policy.inception_date)
        await post_initial(db, policy, on_date, actor_id)

    elif target == PolicyStatus.LAPSED:
        policy.lapse_date = on_date
        await apply_clawback(db, policy, on_date, actor_id)

    elif target == PolicyStatus.CANCELLED:
        policy.cancellation_date = on_date
        if reason:
            policy.cancellation_reason = reason
        if settings.clawback_on_cancel:
            await apply_clawback(db, policy, on_date, actor_id)

    await db.flush()
    return policy


async def transition_policy(
    db: AsyncSession,
    tenant_id: str,
    actor_id: str,
    policy_id: int,
    target_status: Union[PolicyStatus, str],
    reason: Optional[str] = None,
    *,
    at: Optional[datetime] = None,
) -> Policy:
    """
    Move a policy to target_status.

    Side effects, in the same transaction as the status write:
    - underwriting -> active: initial commission entry
    - -> lapsed: lapse date stamped, clawback posted
    - -> cancelled: cancellation date (and reason) stamped

    A write that loses to a concurrent transition of the same policy is
    retried from a fresh read, so the transition is re-validated against
    the status the winner left behind.

    Args:
        at: Effective time of the transition (defaults to now, UTC)

    Raises:
        NotFoundError: no such policy for this tenant
        InvalidTransitionError: target not allowed from the current status
        ConflictError: still losing after transition_max_retries attempts
    """
    try:
        target = PolicyStatus(target_status)
    except ValueError as e:
        raise ValidationError(f"Unknown policy status '{target_status}'") from e

    at = at or datetime.now(timezone.utc)
    attempts = settings.transition_max_retries

    for attempt in range(1, attempts + 1):
        try:
            policy = await _apply_transition(db, tenant_id, actor_id, policy_id, target, reason, at)
            await db.commit()
            await db.refresh(policy)
        except StaleDataError:
            await db.rollback()
            logger.warning(
                f"Concurrent update on policy {policy_id} (tenant={tenant_id}), "
                f"retrying transition to {target.value} ({attempt}/{attempts})"
            )
            continue
        except PolicyLedgerError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception(
                f"Transition of policy {policy_id} to {target.value} failed "
                f"(tenant={tenant_id}, actor={actor_id}): {e}"
            )
            raise InternalError() from e

        logger.info(
            f"Policy {policy_id} -> {target.value} by {actor_id} (tenant={tenant_id})"
        )
        return policy

    raise ConflictError(
        f"Policy {policy_id} kept changing concurrently, transition to {target.value} abandoned"
    )


async def transition_history(
    db: AsyncSession,
    tenant_id: str,
    policy_id: int,
) -> List[PolicyTransition]:
    """Status changes of a policy, oldest first."""
    await load_policy(db, tenant_id, policy_id, include_deleted=True)

    result = await db.execute(
        select(PolicyTransition)
        .where(
            PolicyTransition.policy_id == policy_id,
            PolicyTransition.tenant_id == tenant_id,
        )
        .order_by(PolicyTransition.id)
    )
    return list(result.scalars().all())
