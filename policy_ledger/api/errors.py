"""
Exception handlers mapping domain errors to HTTP responses.

All error bodies share one envelope:
    {"error": {"code": ..., "message": ..., ...}}
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from policy_ledger.errors import InternalError, PolicyLedgerError

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: PolicyLedgerError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error(f"Internal error on {request.method} {request.url.path}")
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": details,
            }
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": InternalError().to_dict()})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PolicyLedgerError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
