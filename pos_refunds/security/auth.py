import hmac
from typing import Optional
from fastapi import Header, HTTPException, Request, status
from pos_refunds.config import API_KEY

_UNAUTHORIZED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail={"error": {"code": "UNAUTHORIZED", "message": "Invalid or missing API key", "details": {}}},
)


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> str:
    """Verify the back-office API key using constant-time comparison.

    The outcome is left on request.state for the access log, which never sees
    the key itself.
    """
    if not x_api_key or not hmac.compare_digest(x_api_key.encode(), API_KEY.encode()):
        request.state.auth = "failed"
        raise _UNAUTHORIZED
    request.state.auth = "ok"
    return x_api_key
