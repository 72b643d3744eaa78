from decimal import Decimal
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class RefundStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset({RefundStatus.REJECTED, RefundStatus.COMPLETED})


class RefundCreate(BaseModel):
    """Body of POST /refunds."""

    model_config = {"extra": "forbid", "alias_generator": to_camel, "populate_by_name": True}

    order_id: str = Field(..., min_length=1, max_length=100)
    order_number: str = Field(..., min_length=1, max_length=100)
    customer_name: str = Field("", max_length=200)
    original_amount: Decimal
    refund_amount: Decimal
    payment_method: str = Field(..., min_length=1, max_length=50)
    reason: str = Field(..., min_length=1, max_length=500)
    authorized_by: str = Field(..., min_length=1, max_length=100)
    requested_by: str = Field(..., min_length=1, max_length=100)
    additional_notes: Optional[str] = Field(None, max_length=2000)
    transaction_id: Optional[str] = Field(None, max_length=100)


class RefundUpdate(BaseModel):
    """Body of PUT /refunds/{id}. Clients never set `pending` directly."""

    model_config = {"extra": "forbid", "alias_generator": to_camel, "populate_by_name": True}

    status: RefundStatus
    approved_by: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)
    refund_method: Optional[str] = Field(None, max_length=50)
    transaction_id: Optional[str] = Field(None, max_length=100)

    @field_validator("status")
    @classmethod
    def _not_pending(cls, value: RefundStatus) -> RefundStatus:
        if value == RefundStatus.PENDING:
            raise ValueError("status must be one of: approved, rejected, completed")
        return value


class RefundRequest(BaseModel):
    """A persisted refund row.

    `approved_by`/`approved_at` hold the actor and time of the *last* decision
    (approval or rejection). The audit log is the authoritative history.
    """

    model_config = {"frozen": True, "alias_generator": to_camel, "populate_by_name": True}

    id: str
    order_id: str
    order_number: str
    customer_name: str
    original_amount: Decimal
    refund_amount: Decimal
    payment_method: str
    reason: str
    authorized_by: str
    additional_notes: Optional[str] = None
    status: RefundStatus
    requested_by: str
    requested_at: datetime
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    refund_method: Optional[str] = None
    transaction_id: Optional[str] = None


class RefundStats(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    total: int
    pending: int
    approved: int
    rejected: int
    completed: int
    total_amount: Decimal
