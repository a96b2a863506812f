"""Pytest configuration and fixtures."""

import copy
import os
from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("GATEWAY_KEY_ID", "rzp_test_key_id")
os.environ.setdefault("GATEWAY_KEY_SECRET", "test-gateway-key-secret")
os.environ.setdefault("CLIENT_CALLBACK_SECRET", "test-callback-secret")
os.environ.setdefault("WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("APPLICATION_TAG", "Dine")
os.environ.setdefault("STORAGE_RETRY_ATTEMPTS", "1")
os.environ.setdefault("STORAGE_RETRY_MAX_WAIT_SECONDS", "0")

from src.core.document_store import StorageError  # noqa: E402
from src.core.gateway import GatewayError  # noqa: E402

FIXED_NOW = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

# Key field per table; None means append-only with a surrogate id
TABLE_KEYS: dict[str, str | None] = {
    "orders": "order_id",
    "payment_records": "payment_id",
    "tenants": "tenant_user_id",
    "webhook_events": None,
}


class InMemoryDocumentStore:
    """DocumentStore double keeping rows in dicts.

    ``fail`` holds (operation, table) pairs that raise StorageError, the
    same way the real store does once its retries are exhausted.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[Any, dict[str, Any]]] = {name: {} for name in TABLE_KEYS}
        self.fail: set[tuple[str, str]] = set()
        self.writes: list[tuple[str, str]] = []
        self._next_id = 1

    def _check(self, operation: str, table: str) -> None:
        if (operation, table) in self.fail:
            raise StorageError(operation, table, RuntimeError("simulated outage"))

    def rows(self, table: str) -> list[dict[str, Any]]:
        return list(self.tables[table].values())

    def get(self, table: str, key_field: str, key: str) -> dict[str, Any] | None:
        self._check("get", table)
        row = self.tables[table].get(key)
        return copy.deepcopy(row) if row else None

    def find_one(self, table: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        rows = self.find_many(table, filters, limit=1)
        return rows[0] if rows else None

    def find_many(
        self,
        table: str,
        filters: dict[str, Any],
        order_by: str | None = None,
        desc: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self._check("find", table)
        rows = [
            copy.deepcopy(row)
            for row in self.tables[table].values()
            if all(row.get(k) == v for k, v in filters.items())
        ]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by) or "", reverse=desc)
        return rows[:limit] if limit is not None else rows

    def create_if_absent(self, table: str, document: dict[str, Any]) -> bool:
        self._check("create", table)
        key = document[TABLE_KEYS[table]]
        if key in self.tables[table]:
            return False
        self.tables[table][key] = copy.deepcopy(document)
        self.writes.append(("create", table))
        return True

    def insert(self, table: str, document: dict[str, Any]) -> dict[str, Any]:
        self._check("insert", table)
        row = {"id": self._next_id, **copy.deepcopy(document)}
        self.tables[table][self._next_id] = row
        self._next_id += 1
        self.writes.append(("insert", table))
        return row

    def merge_update(
        self,
        table: str,
        key_field: str,
        key: str,
        changes: dict[str, Any],
    ) -> dict[str, Any] | None:
        self._check("update", table)
        row = self.tables[table].get(key)
        if row is None:
            return None
        row.update(copy.deepcopy(changes))
        self.writes.append(("update", table))
        return copy.deepcopy(row)


class FakeGateway:
    """GatewayClient double holding orders in memory."""

    def __init__(self) -> None:
        self.orders: dict[str, dict[str, Any]] = {}
        self.fail_create = False
        self.fail_fetch = False
        self.fetch_calls = 0
        self._counter = 0

    @property
    def is_configured(self) -> bool:
        return True

    async def create_order(
        self,
        amount_minor_units: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> dict[str, Any]:
        if self.fail_create:
            raise GatewayError("create_order", "request timed out")
        self._counter += 1
        order_id = f"order_test{self._counter:04d}"
        order = {
            "id": order_id,
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt,
            "notes": dict(notes),
            "status": "created",
        }
        self.orders[order_id] = order
        return order

    async def fetch_order(self, order_id: str) -> dict[str, Any]:
        self.fetch_calls += 1
        if self.fail_fetch:
            raise GatewayError("fetch_order", "request timed out")
        if order_id not in self.orders:
            raise GatewayError("fetch_order", "HTTP 404")
        return self.orders[order_id]

    def add_foreign_order(self, order_id: str, tag: str = "OtherApp", legacy_key: bool = False) -> None:
        """Register an order minted by another application on the same account."""
        notes = {"app": tag} if legacy_key else {"application_tag": tag}
        self.orders[order_id] = {"id": order_id, "amount": 100, "currency": "INR", "notes": notes}


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Provide an empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def gateway() -> FakeGateway:
    """Provide a fake payment gateway."""
    return FakeGateway()


@pytest.fixture
def fixed_clock() -> Any:
    """Provide a clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def ledger(store: InMemoryDocumentStore, gateway: FakeGateway, test_settings: Any) -> Any:
    from src.services.order_ledger_service import OrderLedgerService

    return OrderLedgerService(store=store, gateway=gateway, settings=test_settings)


@pytest.fixture
def payments(store: InMemoryDocumentStore, test_settings: Any) -> Any:
    from src.services.payment_record_service import PaymentRecordService

    return PaymentRecordService(store=store, settings=test_settings)


@pytest.fixture
def subscriptions(store: InMemoryDocumentStore, test_settings: Any, fixed_clock: Any) -> Any:
    from src.services.subscription_service import SubscriptionService

    return SubscriptionService(store=store, settings=test_settings, clock=fixed_clock)


@pytest.fixture
def reconciliation(ledger: Any, payments: Any, subscriptions: Any) -> Any:
    from src.services.reconciliation_service import ReconciliationService

    return ReconciliationService(ledger=ledger, payments=payments, subscriptions=subscriptions)


@pytest.fixture
def verification_service(ledger: Any, reconciliation: Any, test_settings: Any) -> Any:
    from src.services.verification_service import VerificationService

    return VerificationService(ledger=ledger, reconciliation=reconciliation, settings=test_settings)


@pytest.fixture
def webhook_service(
    store: InMemoryDocumentStore,
    gateway: FakeGateway,
    ledger: Any,
    reconciliation: Any,
    test_settings: Any,
) -> Any:
    from src.services.ownership_cache import OwnershipCache
    from src.services.webhook_service import WebhookService

    return WebhookService(
        store=store,
        gateway=gateway,
        ledger=ledger,
        reconciliation=reconciliation,
        ownership_cache=OwnershipCache(),
        settings=test_settings,
    )


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("src.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def client(
    mock_supabase_client: MagicMock,
    ledger: Any,
    payments: Any,
    subscriptions: Any,
    verification_service: Any,
    webhook_service: Any,
) -> Generator[TestClient, None, None]:
    """Provide a test client wired to the in-memory store and fake gateway.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.api import deps
    from src.main import app

    app.dependency_overrides[deps.get_order_ledger_service] = lambda: ledger
    app.dependency_overrides[deps.get_payment_record_service] = lambda: payments
    app.dependency_overrides[deps.get_subscription_service] = lambda: subscriptions
    app.dependency_overrides[deps.get_verification_service] = lambda: verification_service
    app.dependency_overrides[deps.get_webhook_service] = lambda: webhook_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
