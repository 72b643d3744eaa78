"""
FastAPI application entry point.

Registers middleware (in order), routes and exception handlers.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from pos_refunds.config import LOG_LEVEL, is_production, get_cors_origins
from pos_refunds.errors import RefundError
from pos_refunds.middleware import RequestIDMiddleware, StructuredLoggingMiddleware
from pos_refunds.routes.refunds import router as refunds_router
from pos_refunds.routes.audit import router as audit_router

logger = logging.getLogger("refunds")


def configure_logging() -> None:
    logging.basicConfig(level=LOG_LEVEL.upper(), format="%(message)s")


def create_app() -> FastAPI:
    configure_logging()
    docs_url = None if is_production() else "/docs"
    redoc_url = None if is_production() else "/redoc"

    application = FastAPI(
        title="POS Back Office: Refund Service",
        description="Refund-request lifecycle: policy decisions, guarded transitions and an append-only audit log.",
        version="1.0.0",
        docs_url=docs_url,
        redoc_url=redoc_url,
    )

    # ── Middleware stack (last added runs first) ────────────────────────────
    application.add_middleware(StructuredLoggingMiddleware)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Content-Type", "X-API-Key", "X-Request-ID"],
    )

    # ── Routes ──────────────────────────────────────────────────────────────
    application.include_router(refunds_router)
    application.include_router(audit_router)

    # ── Exception handlers ───────────────────────────────────────────────────
    @application.exception_handler(RefundError)
    async def refund_error_handler(request: Request, exc: RefundError):
        if exc.http_status >= 500:
            logger.error("refund operation failed: %s (%s)", exc.message, exc.code)
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @application.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request failed validation",
                    "details": {"errors": errors},
                }
            },
        )

    @application.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            content = exc.detail
        else:
            content = {"error": {"code": "HTTP_ERROR", "message": str(exc.detail), "details": {}}}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @application.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Never leak stack traces to clients."""
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred", "details": {}}},
        )

    return application


app = create_app()
