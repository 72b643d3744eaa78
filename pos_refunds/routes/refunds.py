"""Refund endpoints: POST/GET /api/v1/refunds, GET/PUT /api/v1/refunds/{id}"""
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from pos_refunds.config import get_refund_settings
from pos_refunds.errors import ValidationError
from pos_refunds.models.refund import RefundCreate, RefundStatus, RefundUpdate
from pos_refunds.models.settings import RefundSettings
from pos_refunds.security.auth import require_api_key
from pos_refunds.services import audit_service, refund_service

router = APIRouter(prefix="/api/v1/refunds", tags=["refunds"], dependencies=[Depends(require_api_key)])


def _envelope(data, request: Request) -> dict:
    return {
        "data": data,
        "meta": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    }


def _parse_status(value: Optional[str]) -> Optional[RefundStatus]:
    if value is None or value == "":
        return None
    try:
        return RefundStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid status '{value}'",
            details={"allowed": [s.value for s in RefundStatus]},
        ) from None


@router.post("", status_code=status.HTTP_201_CREATED)
def create_refund(
    body: RefundCreate,
    request: Request,
    settings: RefundSettings = Depends(get_refund_settings),
) -> dict:
    """Create a refund request. The policy decides whether it starts pending or approved."""
    refund = refund_service.create_refund(body, settings)
    return _envelope(refund.model_dump(mode="json", by_alias=True), request)


@router.get("")
def list_refunds(
    request: Request,
    order_id: Optional[str] = Query(None, alias="orderId"),
    refund_status: Optional[str] = Query(None, alias="status"),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> dict:
    """List refunds newest first, optionally filtered by orderId and status."""
    results = refund_service.list_refunds(
        order_id=order_id,
        status=_parse_status(refund_status),
        limit=limit,
        offset=offset,
    )
    return _envelope([r.model_dump(mode="json", by_alias=True) for r in results], request)


@router.get("/stats")
def refund_stats(request: Request) -> dict:
    """Counts per status and the total amount paid out."""
    stats = refund_service.get_refund_stats()
    return _envelope(stats.model_dump(mode="json", by_alias=True), request)


@router.get("/{refund_id}")
def get_refund_by_id(refund_id: str, request: Request) -> dict:
    """Retrieve a single refund by its ID."""
    refund = refund_service.get_refund(refund_id)
    return _envelope(refund.model_dump(mode="json", by_alias=True), request)


@router.put("/{refund_id}")
def update_refund(
    refund_id: str,
    body: RefundUpdate,
    request: Request,
    settings: RefundSettings = Depends(get_refund_settings),
) -> dict:
    """Approve, reject or complete a refund.

    Resubmitting the refund's current status returns it unchanged, so retries are safe.
    """
    refund = refund_service.transition_refund(refund_id, body, settings)
    return _envelope(refund.model_dump(mode="json", by_alias=True), request)


@router.get("/{refund_id}/audit")
def get_refund_audit(refund_id: str, request: Request) -> dict:
    """The audit trail of one refund in chronological order."""
    refund_service.get_refund(refund_id)
    entries = audit_service.get_audit_entries(refund_id=refund_id)
    return _envelope([e.model_dump(mode="json", by_alias=True) for e in entries], request)
