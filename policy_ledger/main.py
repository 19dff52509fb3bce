"""
Policy Ledger - insurance policy lifecycle and commission accounting

Main FastAPI application with:
- Policy status machine with commission side effects
- Commission ledger (initial, renewal, clawback)
- Background renewal / clawback-watch scans
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from policy_ledger.api import api_router
from policy_ledger.api.errors import register_exception_handlers
from policy_ledger.config import settings
from policy_ledger.scheduler import scheduler, setup_scheduler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Registers and starts the background jobs

    Shutdown:
    - Stops the scheduler
    """
    logger.info("Starting Policy Ledger...")

    if settings.scheduler_enabled:
        setup_scheduler()
        scheduler.start()

    logger.info("Policy Ledger started successfully!")

    yield

    # Shutdown
    logger.info("Shutting down Policy Ledger...")
    if scheduler.running:
        scheduler.shutdown(wait=False)


# Create FastAPI application
app = FastAPI(
    title="Policy Ledger",
    description="Insurance policy lifecycle and commission accounting",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

register_exception_handlers(app)

# Include routers
app.include_router(api_router)  # /api/* endpoints


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "policy_ledger.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
