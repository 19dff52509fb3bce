"""
FastAPI dependencies for caller identity.

Authentication happens upstream. The identity provider's gateway
forwards the verified tenant, actor and role as headers; this service
trusts them and only checks they are present.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from policy_ledger.errors import UnauthorizedError


@dataclass(frozen=True)
class Identity:
    """Per-request caller context."""

    tenant_id: str
    actor_id: str
    role: str


async def get_identity(
    x_tenant_id: Optional[str] = Header(None),
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Identity:
    """
    Build the caller identity from gateway headers.

    Raises 401 if tenant or actor is missing.
    """
    if not x_tenant_id or not x_actor_id:
        raise UnauthorizedError("Missing tenant or actor context")
    return Identity(
        tenant_id=x_tenant_id,
        actor_id=x_actor_id,
        role=x_actor_role or "agent",
    )
