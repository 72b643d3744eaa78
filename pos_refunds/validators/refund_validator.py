from __future__ import annotations

"""
Input validation for new refund requests.

All validations execute in order and stop at the first failure. Validators
never read from or write to the store; no side effects.
"""
from decimal import Decimal
from pos_refunds.errors import ValidationError
from pos_refunds.models.refund import RefundCreate

REQUIRED_TEXT_FIELDS = (
    ("order_id", "orderId"),
    ("reason", "reason"),
    ("authorized_by", "authorizedBy"),
    ("requested_by", "requestedBy"),
)


def validate_refund_create(data: RefundCreate) -> None:
    """
    Run all shape and range validations for a refund request.

    Raises:
        ValidationError: On the first failing rule, with message and details.
    """
    _validate_required_fields(data)
    _validate_amount("originalAmount", data.original_amount)
    _validate_amount("refundAmount", data.refund_amount)
    _validate_refund_within_original(data)


def _validate_required_fields(data: RefundCreate) -> None:
    """Rule 1: Required text fields must not be blank."""
    for attr, name in REQUIRED_TEXT_FIELDS:
        if not getattr(data, attr).strip():
            raise ValidationError(f"{name} is required", details={"field": name})


def _validate_amount(name: str, value: Decimal) -> None:
    """Rule 2: Amounts must be finite and greater than zero."""
    if not value.is_finite():
        raise ValidationError(f"{name} must be a finite number", details={"field": name})
    if value <= Decimal("0"):
        raise ValidationError(
            f"{name} must be greater than 0",
            details={"field": name, "value": str(value)},
        )


def _validate_refund_within_original(data: RefundCreate) -> None:
    """Rule 3: A refund can never exceed the sale it refunds."""
    if data.refund_amount > data.original_amount:
        raise ValidationError(
            "Refund amount cannot exceed original amount",
            details={
                "original_amount": str(data.original_amount),
                "refund_amount": str(data.refund_amount),
            },
            code="REFUND_AMOUNT_EXCEEDED",
        )
