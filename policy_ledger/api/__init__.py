"""API router aggregation."""

from fastapi import APIRouter

from policy_ledger.api.health import router as health_router
from policy_ledger.api.policies import router as policies_router

# Main API router (for /api/* endpoints)
api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(policies_router)

__all__ = ["api_router"]
