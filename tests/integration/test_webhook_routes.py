"""Integration tests for webhook API endpoints."""

import json
from typing import Any

from fastapi.testclient import TestClient

from src.core.signature import compute_signature


def _captured(order_id: str, payment_id: str = "pay_1") -> bytes:
    return json.dumps(
        {
            "event": "payment.captured",
            "payload": {
                "payment": {
                    "entity": {
                        "id": payment_id,
                        "order_id": order_id,
                        "status": "captured",
                        "amount": 29900,
                        "currency": "INR",
                    }
                }
            },
        }
    ).encode("utf-8")


def _post(client: TestClient, body: bytes, signature: str | None = None) -> Any:
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["X-Signature"] = signature
    return client.post("/api/v1/webhooks/gateway", content=body, headers=headers)


class TestGatewayWebhook:
    """Tests for POST /api/v1/webhooks/gateway."""

    def test_processes_captured_payment(self, client: TestClient, store: Any) -> None:
        order = client.post(
            "/api/v1/payments/orders",
            json={"amount": "299.00", "planId": "pro", "userId": "U1", "email": "a@b.c"},
        ).json()["order"]
        body = _captured(order["id"])

        response = _post(client, body, compute_signature(body, "test-webhook-secret"))

        assert response.status_code == 200
        assert response.json()["status"] == "received"
        assert store.tables["orders"][order["id"]]["status"] == "paid"
        assert store.tables["payment_records"]["pay_1"]["status"] == "webhook_confirmed"

    def test_returns_400_for_invalid_signature(self, client: TestClient) -> None:
        body = _captured("order_1")

        response = _post(client, body, "invalid")

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_signature"

    def test_returns_400_for_missing_signature(self, client: TestClient) -> None:
        response = _post(client, _captured("order_1"))

        assert response.status_code == 400

    def test_foreign_order_is_ignored(self, client: TestClient, gateway: Any, store: Any) -> None:
        gateway.add_foreign_order("order_foreign")
        body = _captured("order_foreign")

        response = _post(client, body, compute_signature(body, "test-webhook-secret"))

        assert response.status_code == 200
        assert response.json()["status"] == "ignored"
        assert store.writes == []

    def test_returns_502_when_ownership_unknown(self, client: TestClient, gateway: Any) -> None:
        gateway.fail_fetch = True
        body = _captured("order_1")

        response = _post(client, body, compute_signature(body, "test-webhook-secret"))

        assert response.status_code == 502
        assert response.json()["error"] == "gateway_unavailable"

    def test_verify_then_webhook_creates_one_record(self, client: TestClient, store: Any) -> None:
        """Test both channels confirming the same payment converge on one record."""
        from src.core.signature import client_callback_payload

        order = client.post(
            "/api/v1/payments/orders",
            json={"amount": "299.00", "planId": "pro", "userId": "U1", "email": "a@b.c"},
        ).json()["order"]
        signature = compute_signature(client_callback_payload(order["id"], "pay_1"), "test-callback-secret")
        client.post(
            "/api/v1/payments/verify",
            json={"order_id": order["id"], "payment_id": "pay_1", "signature": signature},
        )
        body = _captured(order["id"])

        response = _post(client, body, compute_signature(body, "test-webhook-secret"))

        assert response.status_code == 200
        assert list(store.tables["payment_records"]) == ["pay_1"]
        assert store.tables["payment_records"]["pay_1"]["status"] == "verified"
