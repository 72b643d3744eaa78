from __future__ import annotations

"""
Refund lifecycle state machine.

Pure validation: given the current (locked) row and a requested status change,
decide whether the change is a no-op, illegal, or legal, and compute the
column updates and audit payload for a legal change. Nothing here touches the
store.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Union

from pos_refunds.errors import InvalidTransition
from pos_refunds.models.audit import ApprovedPayload, RejectedPayload, CompletedPayload
from pos_refunds.models.refund import TERMINAL_STATUSES, RefundRequest, RefundStatus, RefundUpdate

CASH = "cash"

# Single source of truth for allowed edges.
ALLOWED_TRANSITIONS: dict[RefundStatus, frozenset[RefundStatus]] = {
    RefundStatus.PENDING: frozenset({RefundStatus.APPROVED, RefundStatus.REJECTED}),
    RefundStatus.APPROVED: frozenset({RefundStatus.REJECTED, RefundStatus.COMPLETED}),
    RefundStatus.REJECTED: frozenset(),
    RefundStatus.COMPLETED: frozenset(),
}

TransitionPayload = Union[ApprovedPayload, RejectedPayload, CompletedPayload]


@dataclass(frozen=True)
class TransitionPlan:
    """Outcome of a legal request. A no-op plan carries no changes and no payload."""

    noop: bool
    changes: dict = field(default_factory=dict)
    payload: Optional[TransitionPayload] = None
    actor: Optional[str] = None


def can_transition(*, current: RefundStatus, new: RefundStatus) -> bool:
    return new == current or new in ALLOWED_TRANSITIONS.get(current, frozenset())


def allowed_next_statuses(*, current: RefundStatus) -> Iterable[str]:
    return sorted(s.value for s in ALLOWED_TRANSITIONS.get(current, frozenset()))


def plan_transition(
    refund: RefundRequest,
    update: RefundUpdate,
    allowed_payment_methods: Iterable[str],
    now: datetime,
) -> TransitionPlan:
    """
    Validate a requested status change against the current row.

    Resubmitting the current status is a no-op so that client retries are safe.

    Raises:
        InvalidTransition: If the edge is not allowed or a precondition fails.
    """
    current = refund.status
    desired = update.status

    if desired == current:
        return TransitionPlan(noop=True)

    if not can_transition(current=current, new=desired):
        raise InvalidTransition(
            f"Cannot transition refund from '{current.value}' to '{desired.value}'",
            details={
                "from": current.value,
                "to": desired.value,
                "allowed": list(allowed_next_statuses(current=current)),
                "terminal": current in TERMINAL_STATUSES,
            },
        )

    if desired == RefundStatus.APPROVED:
        return _plan_approval(refund, update, now)
    if desired == RefundStatus.REJECTED:
        return _plan_rejection(refund, update, now)
    return _plan_completion(refund, update, allowed_payment_methods, now)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _append_note(existing: Optional[str], prefix: str, notes: Optional[str]) -> Optional[str]:
    if _is_blank(notes):
        return existing
    return f"{existing or ''}\n{prefix}: {notes}"


def _require_actor(update: RefundUpdate) -> str:
    if _is_blank(update.approved_by):
        raise InvalidTransition("approvedBy is required", details={"field": "approvedBy"})
    return update.approved_by.strip()


def _plan_approval(refund: RefundRequest, update: RefundUpdate, now: datetime) -> TransitionPlan:
    actor = _require_actor(update)
    return TransitionPlan(
        noop=False,
        changes={
            "status": RefundStatus.APPROVED,
            "approved_by": actor,
            "approved_at": now,
            "additional_notes": _append_note(refund.additional_notes, "Note", update.notes),
        },
        payload=ApprovedPayload(
            from_status=refund.status,
            approved_by=actor,
            notes=update.notes,
        ),
        actor=actor,
    )


def _plan_rejection(refund: RefundRequest, update: RefundUpdate, now: datetime) -> TransitionPlan:
    actor = _require_actor(update)
    # approved_by/approved_at become "last decision" metadata; the overridden
    # approver survives in the audit payload.
    previous_approver = refund.approved_by if refund.status == RefundStatus.APPROVED else None
    return TransitionPlan(
        noop=False,
        changes={
            "status": RefundStatus.REJECTED,
            "approved_by": actor,
            "approved_at": now,
            "additional_notes": _append_note(refund.additional_notes, "Rejected", update.notes),
        },
        payload=RejectedPayload(
            from_status=refund.status,
            rejected_by=actor,
            previous_approver=previous_approver,
            notes=update.notes,
        ),
        actor=actor,
    )


def _plan_completion(
    refund: RefundRequest,
    update: RefundUpdate,
    allowed_payment_methods: Iterable[str],
    now: datetime,
) -> TransitionPlan:
    if _is_blank(update.refund_method):
        raise InvalidTransition("refundMethod is required", details={"field": "refundMethod"})

    refund_method = update.refund_method.strip()
    allowed = set(allowed_payment_methods)
    if refund_method not in allowed:
        raise InvalidTransition(
            f"refundMethod '{refund_method}' is not allowed",
            details={"refund_method": refund_method, "allowed_payment_methods": sorted(allowed)},
        )

    transaction_id = update.transaction_id if not _is_blank(update.transaction_id) else refund.transaction_id
    if refund_method != CASH and _is_blank(transaction_id):
        raise InvalidTransition(
            "transactionId is required for non-cash refunds",
            details={"field": "transactionId", "refund_method": refund_method},
        )

    actor = None if _is_blank(update.approved_by) else update.approved_by.strip()
    return TransitionPlan(
        noop=False,
        changes={
            "status": RefundStatus.COMPLETED,
            "completed_at": now,
            "refund_method": refund_method,
            "transaction_id": transaction_id,
        },
        payload=CompletedPayload(
            refund_amount=refund.refund_amount,
            refund_method=refund_method,
            transaction_id=transaction_id,
        ),
        actor=actor,
    )
