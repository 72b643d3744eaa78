from .refund import RefundStatus, RefundCreate, RefundUpdate, RefundRequest, RefundStats, TERMINAL_STATUSES
from .audit import (
    AuditLogEntry,
    AuditPayload,
    RequestedPayload,
    ApprovedPayload,
    RejectedPayload,
    CompletedPayload,
)
from .settings import RefundSettings

__all__ = [
    "RefundStatus", "RefundCreate", "RefundUpdate", "RefundRequest", "RefundStats", "TERMINAL_STATUSES",
    "AuditLogEntry", "AuditPayload", "RequestedPayload", "ApprovedPayload", "RejectedPayload", "CompletedPayload",
    "RefundSettings",
]
