from __future__ import annotations

"""
Refund policy engine.

Pure decision function with no side effects or I/O: maps a proposed refund and
the current refund settings to the initial status of the refund request.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from pos_refunds.errors import PolicyRejection
from pos_refunds.models.refund import RefundStatus

if TYPE_CHECKING:
    from pos_refunds.models.settings import RefundSettings

ADMIN_ROLE = "admin"
MANAGER_ROLE = "Restaurant Manager"

RULE_SMALL_AMOUNT = "small_amount"
RULE_BELOW_THRESHOLD = "below_threshold"
RULE_MANAGER_CAP = "manager_cap"
RULE_REQUIRES_APPROVAL = "requires_approval"

_AUTO_APPROVAL_NOTES = {
    RULE_SMALL_AMOUNT: "Auto-approved (Small Amount)",
    RULE_BELOW_THRESHOLD: "Auto-approved (Below Threshold)",
}


@dataclass(frozen=True)
class PolicyDecision:
    status: RefundStatus
    rule: str
    approved_by: Optional[str] = None

    @property
    def auto_approved(self) -> bool:
        return self.status == RefundStatus.APPROVED

    @property
    def note(self) -> Optional[str]:
        return _AUTO_APPROVAL_NOTES.get(self.rule)


def check_refunds_allowed(payment_method: str, settings: "RefundSettings") -> None:
    """Rules 1-2: refunds must be enabled and the payment method allowed."""
    if not settings.enabled:
        raise PolicyRejection("Refunds are not enabled", code="REFUNDS_DISABLED")
    if payment_method not in settings.allowed_payment_methods:
        raise PolicyRejection(
            "Payment method not allowed for refunds",
            details={
                "payment_method": payment_method,
                "allowed_payment_methods": sorted(settings.allowed_payment_methods),
            },
            code="PAYMENT_METHOD_NOT_ALLOWED",
        )


def decide_initial_status(
    refund_amount: Decimal,
    authorized_by: str,
    payment_method: str,
    settings: "RefundSettings",
) -> PolicyDecision:
    """
    Decide the initial status of a new refund request.

    Rules are evaluated in order and the first match wins:
      1. Refunds disabled → PolicyRejection.
      2. Payment method not allowed → PolicyRejection.
      3. Small amount (when enabled) → approved.
      4. Manager above their cap → pending (escalates).
      5. Approval not required, or amount within threshold → approved.
      6. Otherwise → pending.

    Args:
        refund_amount: The amount to refund.
        authorized_by: Role-equivalent label of whoever authorized the refund.
        payment_method: Payment method of the original sale.
        settings: The refund policy in effect for this call.

    Returns:
        A PolicyDecision naming the status and the rule that produced it.

    Raises:
        PolicyRejection: If refunds are disabled or the method is not allowed.
    """
    check_refunds_allowed(payment_method, settings)

    if settings.auto_approve_small_amounts and refund_amount <= settings.small_amount_threshold:
        return PolicyDecision(RefundStatus.APPROVED, RULE_SMALL_AMOUNT, approved_by=authorized_by)

    if authorized_by == MANAGER_ROLE and refund_amount > settings.max_manager_refund:
        return PolicyDecision(RefundStatus.PENDING, RULE_MANAGER_CAP)

    if not settings.require_approval or refund_amount <= settings.approval_threshold:
        return PolicyDecision(RefundStatus.APPROVED, RULE_BELOW_THRESHOLD, approved_by=authorized_by)

    return PolicyDecision(RefundStatus.PENDING, RULE_REQUIRES_APPROVAL)


def can_approve_refund(role: str, refund_amount: Decimal, settings: "RefundSettings") -> bool:
    """Admins approve any amount, managers up to their cap, other roles nothing."""
    if role == ADMIN_ROLE:
        return True
    if role == MANAGER_ROLE:
        return refund_amount <= settings.max_manager_refund
    return False
