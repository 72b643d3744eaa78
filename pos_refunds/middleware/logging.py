import time
import json
import logging
from datetime import datetime, timezone
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("access")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one JSON access-log line per request. Never logs the API key value."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000)

        # Set by the auth dependency; absent when the route never ran it.
        auth_outcome = getattr(request.state, "auth", None)
        if auth_outcome is None:
            auth_outcome = "present" if "X-API-Key" in request.headers else "missing"

        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": getattr(request.state, "request_id", "unknown"),
            "method": request.method,
            "path": str(request.url.path),
            "status_code": response.status_code,
            "ip": request.client.host if request.client else "unknown",
            "duration_ms": duration_ms,
            "auth": auth_outcome,
        }
        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        logger.log(level, json.dumps(log_entry))

        return response
