"""
Domain error taxonomy.

Every expected failure is a PolicyLedgerError subclass with a stable
code, an HTTP status for the API layer and structured fields callers
can read directly (e.g. InvalidTransitionError.current / .requested).
"""

from typing import Any, Optional


class PolicyLedgerError(Exception):
    """Base class for all domain errors."""

    code: str = "ERROR"
    http_status: int = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Error payload for API responses."""
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class NotFoundError(PolicyLedgerError):
    """
    Entity is absent or belongs to another tenant.

    Both cases are reported the same way so tenants cannot be enumerated.
    """

    code = "NOT_FOUND"
    http_status = 404


class UnauthorizedError(PolicyLedgerError):
    """Request arrived without the tenant or actor context."""

    code = "UNAUTHORIZED"
    http_status = 401

    def __init__(self, resource: str, resource_id: Optional[Any] = None):
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class InvalidTransitionError(PolicyLedgerError):
    """Requested status change is not in the allowed-transition table."""

    code = "INVALID_TRANSITION"
    http_status = 422

    def __init__(self, current: str, requested: str):
        self.current = getattr(current, "value", current)
        self.requested = getattr(requested, "value", requested)
        super().__init__(
            f"Cannot move policy from {self.current} to {self.requested}"
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["current"] = self.current
        payload["requested"] = self.requested
        return payload


class ValidationError(PolicyLedgerError):
    """Malformed input values (negative money, out-of-range percentages...)."""

    code = "VALIDATION_ERROR"
    http_status = 400


class ConflictError(PolicyLedgerError):
    """Uniqueness violation or a write that kept losing to concurrent writers."""

    code = "CONFLICT"
    http_status = 409


class InternalError(PolicyLedgerError):
    """
    Unexpected persistence failure.

    Carries a generic message only. The cause is logged where the
    error is raised and never reaches the caller.
    """

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str = "An unexpected error occurred. Please try again or contact support."):
        super().__init__(message)
