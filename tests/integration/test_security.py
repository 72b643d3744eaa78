"""Integration tests: authentication, error hygiene and request tracing."""
import pytest

BODY = {
    "orderId": "ORD-1",
    "orderNumber": "1",
    "originalAmount": "50.00",
    "refundAmount": "5.00",
    "paymentMethod": "cash",
    "reason": "test",
    "authorizedBy": "Shift Lead",
    "requestedBy": "cashier-1",
}


def test_post_without_api_key_returns_401(client):
    resp = client.post("/api/v1/refunds", json=BODY)
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


def test_post_with_wrong_api_key_returns_401(client):
    resp = client.post("/api/v1/refunds", json=BODY, headers={"X-API-Key": "WRONG-KEY"})
    assert resp.status_code == 401


def test_every_endpoint_requires_api_key(client, auth_headers):
    for method, path in [
        ("GET", "/api/v1/refunds"),
        ("GET", "/api/v1/refunds/stats"),
        ("GET", "/api/v1/refunds/some-id"),
        ("GET", "/api/v1/refunds/some-id/audit"),
        ("PUT", "/api/v1/refunds/some-id"),
        ("GET", "/api/v1/audit"),
    ]:
        resp = client.request(method, path, json={"status": "approved"} if method == "PUT" else None)
        assert resp.status_code == 401, f"Expected 401 for {method} {path}, got {resp.status_code}"
    assert client.get("/api/v1/refunds", headers=auth_headers).status_code == 200


def test_extra_unknown_fields_rejected(client, auth_headers):
    resp = client.post("/api/v1/refunds", json={**BODY, "status": "approved"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_oversized_reason_rejected(client, auth_headers):
    resp = client.post("/api/v1/refunds", json={**BODY, "reason": "x" * 501}, headers=auth_headers)
    assert resp.status_code == 400


def test_stack_trace_never_in_error_response(client, auth_headers, monkeypatch):
    from pos_refunds.services import refund_service

    def explode(*args, **kwargs):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(refund_service, "get_refund_stats", explode)
    resp = client.get("/api/v1/refunds/stats", headers=auth_headers)
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "INTERNAL_ERROR"
    assert "Traceback" not in resp.text
    assert "secret internals" not in resp.text


def test_store_failure_returns_500_and_is_retryable(client, auth_headers, monkeypatch):
    from pos_refunds.services import audit_service

    def broken(*args, **kwargs):
        raise OSError("audit table unavailable")

    monkeypatch.setattr(audit_service, "record_refund_requested", broken)
    resp = client.post("/api/v1/refunds", json=BODY, headers=auth_headers)
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "STORE_UNAVAILABLE"
    monkeypatch.undo()
    assert client.get("/api/v1/refunds", headers=auth_headers).json()["data"] == []
    assert client.post("/api/v1/refunds", json=BODY, headers=auth_headers).status_code == 201


def test_api_key_never_in_response_body(client, auth_headers):
    resp = client.post("/api/v1/refunds", json=BODY, headers=auth_headers)
    assert "TEST-KEY-2026" not in resp.text


def test_audit_log_cannot_be_deleted(client, auth_headers):
    client.post("/api/v1/refunds", json=BODY, headers=auth_headers)
    assert client.delete("/api/v1/audit", headers=auth_headers).status_code == 405
    assert client.put("/api/v1/audit", headers=auth_headers).status_code == 405


def test_request_id_generated_when_absent(client):
    resp = client.get("/api/v1/refunds")
    assert resp.headers.get("X-Request-ID")


@pytest.mark.parametrize("incoming, echoed", [("till-7-abc123", True), ("bad id with spaces", False)])
def test_request_id_propagated_when_valid(client, auth_headers, incoming, echoed):
    resp = client.get("/api/v1/refunds", headers={**auth_headers, "X-Request-ID": incoming})
    assert (resp.headers["X-Request-ID"] == incoming) is echoed
    assert (resp.json()["meta"]["request_id"] == incoming) is echoed


def test_unknown_refund_ids_leave_no_lock_behind(client, auth_headers):
    from pos_refunds.repository.store import store

    for i in range(20):
        resp = client.put(
            f"/api/v1/refunds/nope-{i}",
            json={"status": "approved", "approvedBy": "Owner"},
            headers=auth_headers,
        )
        assert resp.status_code == 404
    assert store._row_locks == {}
