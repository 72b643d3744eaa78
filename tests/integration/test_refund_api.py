"""Integration tests: full HTTP cycle per lifecycle path."""
import pytest
from decimal import Decimal


def _body(**kwargs) -> dict:
    body = {
        "orderId": "ORD-1001",
        "orderNumber": "1001",
        "customerName": "Walk-in",
        "originalAmount": "120.00",
        "refundAmount": "20.00",
        "paymentMethod": "cash",
        "reason": "cold food",
        "authorizedBy": "Shift Lead",
        "requestedBy": "cashier-1",
    }
    body.update(kwargs)
    return body


def _create(client, auth_headers, **kwargs) -> dict:
    resp = client.post("/api/v1/refunds", json=_body(**kwargs), headers=auth_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_create_small_refund_is_auto_approved(client, auth_headers):
    data = _create(client, auth_headers)
    assert data["status"] == "approved"
    assert data["approvedBy"] == "Shift Lead"
    assert data["approvedAt"] is not None
    assert data["refundAmount"] == "20.00"
    assert data["additionalNotes"] == "Auto-approved (Small Amount)"
    assert data["id"]


def test_create_pending_then_approve_then_complete(client, auth_headers):
    data = _create(client, auth_headers, refundAmount="110.00", authorizedBy="Restaurant Manager")
    assert data["status"] == "pending"
    refund_id = data["id"]

    resp = client.put(
        f"/api/v1/refunds/{refund_id}",
        json={"status": "approved", "approvedBy": "Owner", "notes": "loyal guest"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    approved = resp.json()["data"]
    assert approved["status"] == "approved"
    assert approved["approvedBy"] == "Owner"
    assert approved["additionalNotes"].endswith("Note: loyal guest")

    resp = client.put(
        f"/api/v1/refunds/{refund_id}",
        json={"status": "completed", "refundMethod": "card", "transactionId": "TX-42"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    completed = resp.json()["data"]
    assert completed["status"] == "completed"
    assert completed["refundMethod"] == "card"
    assert completed["transactionId"] == "TX-42"
    assert completed["completedAt"] is not None

    audit = client.get(f"/api/v1/refunds/{refund_id}/audit", headers=auth_headers).json()["data"]
    assert [e["action"] for e in audit] == ["requested", "approved", "completed"]
    assert audit[1]["actor"] == "Owner"
    assert audit[2]["metadata"]["transactionId"] == "TX-42"


def test_reject_pending(client, auth_headers):
    data = _create(client, auth_headers, refundAmount="110.00", authorizedBy="Restaurant Manager")
    resp = client.put(
        f"/api/v1/refunds/{data['id']}",
        json={"status": "rejected", "approvedBy": "Owner", "notes": "no receipt"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "rejected"
    assert resp.json()["data"]["additionalNotes"].endswith("Rejected: no receipt")


def test_put_unknown_id_returns_404(client, auth_headers):
    resp = client.put(
        "/api/v1/refunds/does-not-exist",
        json={"status": "approved", "approvedBy": "Owner"},
        headers=auth_headers,
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "REFUND_NOT_FOUND"


def test_put_pending_status_is_rejected(client, auth_headers):
    data = _create(client, auth_headers)
    resp = client.put(f"/api/v1/refunds/{data['id']}", json={"status": "pending"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_illegal_transition_returns_400_with_rule(client, auth_headers):
    data = _create(client, auth_headers, refundAmount="110.00", authorizedBy="Restaurant Manager")
    resp = client.put(
        f"/api/v1/refunds/{data['id']}",
        json={"status": "completed", "refundMethod": "cash"},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "INVALID_TRANSITION"
    assert error["details"]["allowed"] == ["approved", "rejected"]


def test_refund_above_original_returns_400(client, auth_headers):
    resp = client.post(
        "/api/v1/refunds",
        json=_body(originalAmount="10.00", refundAmount="10.01"),
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Refund amount cannot exceed original amount"


@pytest.mark.parametrize("amount", ["0", "-1", "abc"])
def test_bad_amounts_return_400(client, auth_headers, amount):
    resp = client.post("/api/v1/refunds", json=_body(refundAmount=amount), headers=auth_headers)
    assert resp.status_code == 400


def test_missing_required_field_returns_400(client, auth_headers):
    body = _body()
    del body["authorizedBy"]
    resp = client.post("/api/v1/refunds", json=body, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_refunds_disabled_returns_400(client, auth_headers, use_settings):
    use_settings(enabled=False)
    resp = client.post("/api/v1/refunds", json=_body(), headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "REFUNDS_DISABLED"


def test_disallowed_payment_method_returns_400(client, auth_headers, use_settings):
    use_settings(allowed_payment_methods=frozenset({"cash"}))
    resp = client.post("/api/v1/refunds", json=_body(paymentMethod="card"), headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Payment method not allowed for refunds"


def test_list_filters_and_orders_newest_first(client, auth_headers):
    first = _create(client, auth_headers, orderId="ORD-A")
    second = _create(client, auth_headers, orderId="ORD-B")
    third = _create(client, auth_headers, orderId="ORD-A", refundAmount="110.00", authorizedBy="Restaurant Manager")

    resp = client.get("/api/v1/refunds", headers=auth_headers)
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()["data"]] == [third["id"], second["id"], first["id"]]

    resp = client.get("/api/v1/refunds?orderId=ORD-A&status=approved", headers=auth_headers)
    assert [r["id"] for r in resp.json()["data"]] == [first["id"]]

    resp = client.get("/api/v1/refunds?limit=1&offset=1", headers=auth_headers)
    assert [r["id"] for r in resp.json()["data"]] == [second["id"]]


def test_list_rejects_unknown_status(client, auth_headers):
    resp = client.get("/api/v1/refunds?status=refunded", headers=auth_headers)
    assert resp.status_code == 400
    assert "refunded" in resp.json()["error"]["message"]


def test_get_refund_by_id(client, auth_headers):
    data = _create(client, auth_headers)
    resp = client.get(f"/api/v1/refunds/{data['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == data


def test_get_unknown_refund_returns_404(client, auth_headers):
    assert client.get("/api/v1/refunds/nope", headers=auth_headers).status_code == 404
    assert client.get("/api/v1/refunds/nope/audit", headers=auth_headers).status_code == 404


def test_stats_endpoint(client, auth_headers):
    data = _create(client, auth_headers, refundAmount="15.50")
    client.put(
        f"/api/v1/refunds/{data['id']}",
        json={"status": "completed", "refundMethod": "cash"},
        headers=auth_headers,
    )
    _create(client, auth_headers, refundAmount="110.00", authorizedBy="Restaurant Manager")
    stats = client.get("/api/v1/refunds/stats", headers=auth_headers).json()["data"]
    assert stats["total"] == 2
    assert stats["completed"] == 1
    assert stats["pending"] == 1
    assert Decimal(stats["totalAmount"]) == Decimal("15.50")


def test_audit_endpoint_filters_by_refund(client, auth_headers):
    first = _create(client, auth_headers)
    _create(client, auth_headers, refundAmount="110.00", authorizedBy="Restaurant Manager")
    resp = client.get("/api/v1/audit", headers=auth_headers)
    assert resp.json()["meta"]["count"] == 3
    resp = client.get(f"/api/v1/audit?refundId={first['id']}", headers=auth_headers)
    entries = resp.json()["data"]
    assert [e["action"] for e in entries] == ["requested", "approved"]
    assert entries[1]["actor"] is None
    assert entries[1]["metadata"]["auto"] is True


def test_response_envelope_structure(client, auth_headers):
    resp = client.post("/api/v1/refunds", json=_body(), headers=auth_headers)
    body = resp.json()
    assert "data" in body
    assert "meta" in body
    assert "timestamp" in body["meta"]
    assert "request_id" in body["meta"]
