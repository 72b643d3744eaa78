"""
Audit service: append-only audit log management.

Every refund state change (requested, approved, rejected, completed) is
recorded here, inside the same transaction as the change it describes.
Entries are never modified or deleted.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from pos_refunds.models.audit import (
    AuditLogEntry,
    AuditPayload,
    RequestedPayload,
    ApprovedPayload,
    RejectedPayload,
    CompletedPayload,
)
from pos_refunds.models.refund import RefundRequest
from pos_refunds.repository.store import StoreTransaction, store


def record(
    tx: StoreTransaction,
    refund_id: str,
    action: str,
    actor: Optional[str],
    message: str,
    metadata: AuditPayload,
) -> AuditLogEntry:
    """
    Stage one audit entry in the caller's transaction.

    Args:
        tx: The open transaction that performs the state change.
        refund_id: The refund the entry belongs to.
        action: One of requested, approved, rejected, completed.
        actor: Who performed the change; None for system actions.
        message: Human-readable description.
        metadata: Action-specific payload.

    Returns:
        The staged AuditLogEntry.
    """
    entry = AuditLogEntry(
        id=str(uuid.uuid4()),
        refund_id=refund_id,
        action=action,
        actor=actor,
        message=message,
        metadata=metadata,
        created_at=datetime.now(timezone.utc),
    )
    tx.append_audit(entry)
    return entry


def record_refund_requested(tx: StoreTransaction, refund: RefundRequest) -> AuditLogEntry:
    payload = RequestedPayload(
        original_amount=refund.original_amount,
        refund_amount=refund.refund_amount,
        payment_method=refund.payment_method,
        authorized_by=refund.authorized_by,
    )
    return record(tx, refund.id, "requested", refund.requested_by, build_message(refund, payload), payload)


def record_refund_auto_approved(
    tx: StoreTransaction,
    refund: RefundRequest,
    rule: str,
    note: Optional[str],
) -> AuditLogEntry:
    """Policy approvals are system actions: no actor, the approver lives in the payload."""
    payload = ApprovedPayload(approved_by=refund.approved_by, auto=True, rule=rule, notes=note)
    return record(tx, refund.id, "approved", None, build_message(refund, payload), payload)


def record_transition(
    tx: StoreTransaction,
    refund: RefundRequest,
    payload: AuditPayload,
    actor: Optional[str],
) -> AuditLogEntry:
    return record(tx, refund.id, payload.action, actor, build_message(refund, payload), payload)


def get_audit_entries(refund_id: Optional[str] = None) -> list[AuditLogEntry]:
    """
    Retrieve committed audit entries, optionally filtered by refund.

    Returns:
        List of matching AuditLogEntry objects in chronological order.
    """
    return store.get_audit_log(refund_id=refund_id)


def build_message(refund: RefundRequest, payload: AuditPayload) -> str:
    """Build a human-readable explanation of one audit entry."""
    if isinstance(payload, RequestedPayload):
        return (
            f"Refund of {payload.refund_amount} (of {payload.original_amount}) requested "
            f"for order {refund.order_number} by {refund.requested_by}, "
            f"authorized by {payload.authorized_by}. Reason: {refund.reason}"
        )
    if isinstance(payload, ApprovedPayload):
        if payload.auto:
            return f"{payload.notes or 'Auto-approved'} for {payload.approved_by}."
        message = f"Refund approved by {payload.approved_by}."
        if payload.notes:
            message += f" Note: {payload.notes}"
        return message
    if isinstance(payload, RejectedPayload):
        message = f"Refund rejected by {payload.rejected_by} (was {payload.from_status.value})."
        if payload.previous_approver:
            message += f" Overrides approval by {payload.previous_approver}."
        if payload.notes:
            message += f" Reason: {payload.notes}"
        return message
    if isinstance(payload, CompletedPayload):
        message = f"Refund of {payload.refund_amount} paid out via {payload.refund_method}."
        if payload.transaction_id:
            message += f" Transaction: {payload.transaction_id}."
        return message
    raise TypeError(f"unsupported audit payload: {type(payload).__name__}")
