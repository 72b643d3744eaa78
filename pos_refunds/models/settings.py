from decimal import Decimal
from pydantic import BaseModel, Field


class RefundSettings(BaseModel):
    """Refund policy consumed by the policy engine and the transition validator."""

    model_config = {"extra": "forbid", "frozen": True}

    enabled: bool = True
    require_approval: bool = True
    approval_threshold: Decimal = Field(Decimal("500"), ge=Decimal("0"))
    auto_approve_small_amounts: bool = True
    small_amount_threshold: Decimal = Field(Decimal("50"), ge=Decimal("0"))
    max_manager_refund: Decimal = Field(Decimal("200"), ge=Decimal("0"))
    allowed_payment_methods: frozenset[str] = frozenset({"cash", "card", "mobile"})
