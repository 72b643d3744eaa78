"""Audit endpoints: GET /api/v1/audit"""
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from pos_refunds.services.audit_service import get_audit_entries
from pos_refunds.security.auth import require_api_key

router = APIRouter(prefix="/api/v1/audit", tags=["audit"])


@router.get("")
async def get_audit(
    request: Request,
    refund_id: Optional[str] = Query(None, alias="refundId"),
    _: str = Depends(require_api_key),
) -> dict:
    """Retrieve audit log entries, optionally filtered by refundId. Read-only."""
    entries = get_audit_entries(refund_id=refund_id)
    return {
        "data": [e.model_dump(mode="json", by_alias=True) for e in entries],
        "meta": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": getattr(request.state, "request_id", "unknown"),
            "count": len(entries),
        },
    }
