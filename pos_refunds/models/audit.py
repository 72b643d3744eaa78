from decimal import Decimal
from datetime import datetime
from typing import Optional, Literal, Union, Annotated
from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

from pos_refunds.models.refund import RefundStatus

_CONFIG = {"frozen": True, "extra": "forbid", "alias_generator": to_camel, "populate_by_name": True}


class RequestedPayload(BaseModel):
    model_config = _CONFIG

    action: Literal["requested"] = "requested"
    from_status: Optional[RefundStatus] = Field(None, alias="from")
    to_status: RefundStatus = Field(RefundStatus.PENDING, alias="to")
    original_amount: Decimal
    refund_amount: Decimal
    payment_method: str
    authorized_by: str


class ApprovedPayload(BaseModel):
    model_config = _CONFIG

    action: Literal["approved"] = "approved"
    from_status: RefundStatus = Field(RefundStatus.PENDING, alias="from")
    to_status: RefundStatus = Field(RefundStatus.APPROVED, alias="to")
    approved_by: str
    auto: bool = False
    rule: Optional[str] = None
    notes: Optional[str] = None


class RejectedPayload(BaseModel):
    model_config = _CONFIG

    action: Literal["rejected"] = "rejected"
    from_status: RefundStatus = Field(alias="from")
    to_status: RefundStatus = Field(RefundStatus.REJECTED, alias="to")
    rejected_by: str
    # Approver being overridden when an approved refund is rejected.
    previous_approver: Optional[str] = None
    notes: Optional[str] = None


class CompletedPayload(BaseModel):
    model_config = _CONFIG

    action: Literal["completed"] = "completed"
    from_status: RefundStatus = Field(RefundStatus.APPROVED, alias="from")
    to_status: RefundStatus = Field(RefundStatus.COMPLETED, alias="to")
    refund_amount: Decimal
    refund_method: str
    transaction_id: Optional[str] = None


AuditPayload = Annotated[
    Union[RequestedPayload, ApprovedPayload, RejectedPayload, CompletedPayload],
    Field(discriminator="action"),
]


class AuditLogEntry(BaseModel):
    model_config = _CONFIG

    id: str
    refund_id: str
    action: Literal["requested", "approved", "rejected", "completed"]
    actor: Optional[str] = None
    message: str
    metadata: AuditPayload
    created_at: datetime

    @model_validator(mode="after")
    def _action_matches_payload(self) -> "AuditLogEntry":
        if self.metadata.action != self.action:
            raise ValueError(f"metadata for '{self.metadata.action}' cannot describe action '{self.action}'")
        return self
