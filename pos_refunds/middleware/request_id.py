import re
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"
_VALID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate a caller-supplied X-Request-ID, or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next) -> Response:
        incoming = request.headers.get(HEADER, "")
        request_id = incoming if _VALID.match(incoming) else str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[HEADER] = request_id
        return response
