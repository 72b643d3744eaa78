import os
from decimal import Decimal
from dotenv import load_dotenv

from pos_refunds.models.settings import RefundSettings

load_dotenv()

# Required: fails fast if missing
API_KEY: str = os.environ["API_KEY"]

APP_ENV: str = os.getenv("APP_ENV", "development")
PORT: int = int(os.getenv("PORT", "8000"))
CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
STORE_LOCK_TIMEOUT_SECONDS: float = float(os.getenv("STORE_LOCK_TIMEOUT_SECONDS", "5"))


def is_production() -> bool:
    return APP_ENV == "production"


def get_cors_origins() -> list[str]:
    if not CORS_ORIGINS:
        return []
    return [origin.strip() for origin in CORS_ORIGINS.split(",") if origin.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_refund_settings() -> RefundSettings:
    """
    Settings provider for the refund policy.

    Read from the environment on every call so that each request sees the
    current policy. The returned object is immutable.
    """
    defaults = RefundSettings()
    methods = os.getenv("REFUND_ALLOWED_PAYMENT_METHODS")
    return RefundSettings(
        enabled=_env_bool("REFUNDS_ENABLED", defaults.enabled),
        require_approval=_env_bool("REFUND_REQUIRE_APPROVAL", defaults.require_approval),
        approval_threshold=Decimal(os.getenv("REFUND_APPROVAL_THRESHOLD", str(defaults.approval_threshold))),
        auto_approve_small_amounts=_env_bool(
            "REFUND_AUTO_APPROVE_SMALL_AMOUNTS", defaults.auto_approve_small_amounts
        ),
        small_amount_threshold=Decimal(
            os.getenv("REFUND_SMALL_AMOUNT_THRESHOLD", str(defaults.small_amount_threshold))
        ),
        max_manager_refund=Decimal(os.getenv("REFUND_MAX_MANAGER_REFUND", str(defaults.max_manager_refund))),
        allowed_payment_methods=(
            frozenset(m.strip() for m in methods.split(",") if m.strip())
            if methods is not None
            else defaults.allowed_payment_methods
        ),
    )
