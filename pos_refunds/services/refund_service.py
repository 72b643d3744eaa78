"""
Refund service: orchestrates validation, policy, persistence, and audit.

Create flow: validate → policy → persist row + audit entries (one transaction)
Transition flow: lock → validate transition → update + audit → commit
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pos_refunds.engine.policy import decide_initial_status
from pos_refunds.models.refund import RefundCreate, RefundRequest, RefundStats, RefundStatus, RefundUpdate
from pos_refunds.models.settings import RefundSettings
from pos_refunds.repository.refund_store import refund_store
from pos_refunds.services import audit_service
from pos_refunds.validators.refund_validator import validate_refund_create

logger = logging.getLogger("refunds")

DEFAULT_LIST_LIMIT = 200
MAX_LIST_LIMIT = 500


def create_refund(data: RefundCreate, settings: RefundSettings) -> RefundRequest:
    """
    Create a refund request end-to-end.

    Steps:
      1. Validate shape and amounts (raises ValidationError).
      2. Run the policy engine (raises PolicyRejection).
      3. Persist the row, the "requested" entry and, when the policy
         auto-approved, an "approved" entry, all in one transaction.

    Args:
        data: The parsed body from the API layer.
        settings: The refund policy in effect for this request.

    Returns:
        The persisted RefundRequest.
    """
    validate_refund_create(data)
    decision = decide_initial_status(data.refund_amount, data.authorized_by, data.payment_method, settings)

    now = datetime.now(timezone.utc)
    notes = data.additional_notes
    if decision.note:
        notes = f"{notes}\n{decision.note}" if notes else decision.note

    refund = RefundRequest(
        id=str(uuid.uuid4()),
        order_id=data.order_id,
        order_number=data.order_number,
        customer_name=data.customer_name,
        original_amount=data.original_amount,
        refund_amount=data.refund_amount,
        payment_method=data.payment_method,
        reason=data.reason,
        authorized_by=data.authorized_by,
        additional_notes=notes,
        status=decision.status,
        requested_by=data.requested_by,
        requested_at=now,
        approved_by=decision.approved_by,
        approved_at=now if decision.auto_approved else None,
        transaction_id=data.transaction_id,
    )

    def _audit(tx) -> None:
        audit_service.record_refund_requested(tx, refund)
        if decision.auto_approved:
            audit_service.record_refund_auto_approved(tx, refund, decision.rule, decision.note)

    refund_store.create(refund, _audit)
    _log_event(
        "refund_created",
        refund_id=refund.id,
        order_id=refund.order_id,
        status=refund.status.value,
        rule=decision.rule,
        actor=refund.requested_by,
    )
    return refund


def transition_refund(refund_id: str, update: RefundUpdate, settings: RefundSettings) -> RefundRequest:
    """
    Move a refund to a new status.

    Resubmitting the current status returns the unchanged row.

    Raises:
        NotFound: Unknown refund id.
        InvalidTransition: Illegal change or failed precondition.
        TransientStoreError: Lock timeout or persistence failure; safe to retry.
    """
    previous, refund = refund_store.apply_transition(refund_id, update, settings)
    _log_event(
        "refund_transitioned" if refund is not previous else "refund_transition_noop",
        refund_id=refund_id,
        **{"from": previous.status.value},
        to=refund.status.value,
        actor=update.approved_by,
    )
    return refund


def get_refund(refund_id: str) -> RefundRequest:
    """Retrieve a single refund by ID (raises NotFound)."""
    return refund_store.get(refund_id)


def list_refunds(
    order_id: Optional[str] = None,
    status: Optional[RefundStatus] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[RefundRequest]:
    """List refunds newest first. `limit` is clamped to [1, 500], `offset` to >= 0."""
    limit = DEFAULT_LIST_LIMIT if limit is None else max(1, min(limit, MAX_LIST_LIMIT))
    offset = 0 if offset is None else max(0, offset)
    return refund_store.list(order_id=order_id, status=status, limit=limit, offset=offset)


def get_refund_stats() -> RefundStats:
    """Counts per status and the total amount actually paid out."""
    refunds = refund_store.list()
    counts = {status: 0 for status in RefundStatus}
    total_amount = Decimal("0")
    for refund in refunds:
        counts[refund.status] += 1
        if refund.status == RefundStatus.COMPLETED:
            total_amount += refund.refund_amount
    return RefundStats(
        total=len(refunds),
        pending=counts[RefundStatus.PENDING],
        approved=counts[RefundStatus.APPROVED],
        rejected=counts[RefundStatus.REJECTED],
        completed=counts[RefundStatus.COMPLETED],
        total_amount=total_amount,
    )


def _log_event(event: str, **fields) -> None:
    logger.info(json.dumps({"event": event, **fields}, default=str))
