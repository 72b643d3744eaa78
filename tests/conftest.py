"""Shared fixtures for all test modules."""
import os
import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("API_KEY", "TEST-KEY-2026")
os.environ.setdefault("APP_ENV", "development")

from pos_refunds.config import get_refund_settings
from pos_refunds.main import app
from pos_refunds.models.settings import RefundSettings
from pos_refunds.repository.store import store


@pytest.fixture(autouse=True)
def reset_store():
    """Reset in-memory store before each test to ensure isolation."""
    from pos_refunds.repository.store import InMemoryStore
    new_store = InMemoryStore()
    store._refunds = new_store._refunds
    store._row_locks = new_store._row_locks
    store._audit_log = new_store._audit_log
    app.dependency_overrides.clear()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def settings() -> RefundSettings:
    """The default policy: small amounts <= 50 auto-approve, approval above 500, manager cap 200."""
    return RefundSettings()


@pytest.fixture
def use_settings():
    """Install a refund policy for HTTP tests."""
    def _install(**overrides) -> RefundSettings:
        policy = RefundSettings(**overrides)
        app.dependency_overrides[get_refund_settings] = lambda: policy
        return policy
    return _install


@pytest.fixture
def client():
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def auth_headers():
    return {"X-API-Key": "TEST-KEY-2026"}
