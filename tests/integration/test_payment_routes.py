"""Integration tests for payment API endpoints."""

from typing import Any

from fastapi.testclient import TestClient

from src.core.signature import client_callback_payload, compute_signature


def _create_order(client: TestClient, **overrides: Any) -> dict[str, Any]:
    payload = {
        "amount": "299.00",
        "currency": "INR",
        "planId": "pro",
        "userId": "U1",
        "email": "a@b.c",
        **overrides,
    }
    response = client.post("/api/v1/payments/orders", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["order"]


def _verify_payload(order_id: str, payment_id: str, secret: str = "test-callback-secret") -> dict[str, str]:
    return {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": compute_signature(client_callback_payload(order_id, payment_id), secret),
    }


class TestCreateOrder:
    """Tests for POST /api/v1/payments/orders."""

    def test_returns_minor_units(self, client: TestClient) -> None:
        order = _create_order(client)

        assert order["amount"] == 29900
        assert order["currency"] == "INR"
        assert order["id"].startswith("order_")

    def test_rejects_zero_amount(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/payments/orders",
            json={"amount": 0, "planId": "pro", "userId": "U1", "email": "a@b.c"},
        )

        assert response.status_code == 422

    def test_gateway_failure_returns_502(self, client: TestClient, gateway: Any, store: Any) -> None:
        gateway.fail_create = True

        response = client.post(
            "/api/v1/payments/orders",
            json={"amount": "299.00", "planId": "pro", "userId": "U1", "email": "a@b.c"},
        )

        assert response.status_code == 502
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "gateway_unavailable"
        assert store.tables["orders"] == {}


class TestVerifyPayment:
    """Tests for POST /api/v1/payments/verify."""

    def test_verifies_and_activates_plan(self, client: TestClient, store: Any) -> None:
        order = _create_order(client)

        response = client.post("/api/v1/payments/verify", json=_verify_payload(order["id"], "pay_1"))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["plan_id"] == "pro"
        assert body["data"]["payment_id"] == "pay_1"
        assert body["data"]["application_tag"] == "Dine"
        assert store.tables["tenants"]["U1"]["subscription"]["plan_id"] == "pro"

    def test_invalid_signature_returns_400(self, client: TestClient, store: Any) -> None:
        order = _create_order(client)
        payload = _verify_payload(order["id"], "pay_1", secret="wrong-secret")

        response = client.post("/api/v1/payments/verify", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_signature"
        assert store.tables["payment_records"] == {}

    def test_unknown_order_returns_404(self, client: TestClient) -> None:
        response = client.post("/api/v1/payments/verify", json=_verify_payload("order_missing", "pay_1"))

        assert response.status_code == 404
        assert response.json()["error"] == "order_not_found"

    def test_storage_failure_returns_503(self, client: TestClient, store: Any) -> None:
        order = _create_order(client)
        store.fail.add(("create", "payment_records"))

        response = client.post("/api/v1/payments/verify", json=_verify_payload(order["id"], "pay_1"))

        assert response.status_code == 503
        assert response.json()["success"] is False

    def test_missing_fields_return_422(self, client: TestClient) -> None:
        response = client.post("/api/v1/payments/verify", json={"razorpay_order_id": "order_1"})

        assert response.status_code == 422


class TestPaymentHistory:
    """Tests for GET /api/v1/payments/history/{tenant_user_id}."""

    def test_lists_verified_payments_in_major_units(self, client: TestClient) -> None:
        order = _create_order(client)
        client.post("/api/v1/payments/verify", json=_verify_payload(order["id"], "pay_1"))

        response = client.get("/api/v1/payments/history/U1")

        assert response.status_code == 200
        items = response.json()["data"]
        assert len(items) == 1
        assert items[0]["payment_id"] == "pay_1"
        assert items[0]["status"] == "verified"
        assert float(items[0]["amount"]) == 299.0

    def test_empty_history(self, client: TestClient) -> None:
        response = client.get("/api/v1/payments/history/nobody")

        assert response.status_code == 200
        assert response.json()["data"] == []
