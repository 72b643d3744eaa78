"""
Domain error taxonomy for the refund core.

Every error carries a machine-readable code, a human-readable message and the
HTTP status the API layer maps it to.
"""
from __future__ import annotations


class RefundError(Exception):
    """Base class for all caller-facing refund errors."""

    code = "REFUND_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None, code: str | None = None):
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


class ValidationError(RefundError):
    """Malformed or out-of-range input. Always caller-fixable."""

    code = "VALIDATION_ERROR"


class PolicyRejection(RefundError):
    """Refunds are disabled or the payment method is not allowed."""

    code = "POLICY_REJECTED"


class NotFound(RefundError):
    code = "REFUND_NOT_FOUND"
    http_status = 404


class InvalidTransition(RefundError):
    """Well-formed request for a state change the lifecycle does not allow."""

    code = "INVALID_TRANSITION"


class TransientStoreError(RefundError):
    """Lock timeout or persistence failure. Nothing was committed; safe to retry."""

    code = "STORE_UNAVAILABLE"
    http_status = 500
