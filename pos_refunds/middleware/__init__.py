from .request_id import RequestIDMiddleware
from .logging import StructuredLoggingMiddleware

__all__ = [
    "RequestIDMiddleware",
    "StructuredLoggingMiddleware",
]
