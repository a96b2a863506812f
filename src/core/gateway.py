"""Payment gateway REST client."""

import logging
import time
from typing import Any

import httpx

from src.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Latency thresholds for logging (milliseconds)
SLOW_CALL_THRESHOLD_MS = 2000


class GatewayError(Exception):
    """Raised when the payment gateway cannot be reached or answers badly."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"Gateway {operation} failed: {message}")


class GatewayClient:
    """Async client for the gateway's order API.

    Every request carries a bounded timeout. Timeouts, transport errors,
    non-2xx responses and unparseable bodies all surface as GatewayError
    so callers never have to guess whether an order exists upstream.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the gateway client.

        Args:
            settings: Application settings. Defaults to the cached settings.
            http_client: Optional pre-built httpx client (used in tests).
        """
        self.settings = settings or get_settings()
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        """Check whether API credentials are present."""
        return self.settings.is_gateway_configured

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.settings.gateway_base_url,
                auth=(self.settings.gateway_key_id, self.settings.gateway_key_secret),
                timeout=self.settings.gateway_timeout_seconds,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self.is_configured:
            raise GatewayError(operation, "gateway credentials are not configured")

        start_time = time.perf_counter()
        try:
            response = await self._client().request(method, path, json=json)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            logger.error("Gateway %s timed out after %.1fs", operation, self.settings.gateway_timeout_seconds)
            raise GatewayError(operation, "request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error("Gateway %s returned HTTP %d", operation, e.response.status_code)
            raise GatewayError(operation, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Gateway %s transport error: %s", operation, e)
            raise GatewayError(operation, str(e)) from e
        except ValueError as e:
            raise GatewayError(operation, "invalid JSON response") from e
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            if latency_ms > SLOW_CALL_THRESHOLD_MS:
                logger.warning("SLOW gateway call: %s %.2fms", operation, latency_ms)
            else:
                logger.debug("Gateway call: %s %.2fms", operation, latency_ms)

        if not isinstance(payload, dict):
            raise GatewayError(operation, "unexpected response payload type")
        return payload

    async def create_order(
        self,
        amount_minor_units: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> dict[str, Any]:
        """Mint a gateway-side order.

        Args:
            amount_minor_units: Amount in the smallest currency unit.
            currency: ISO currency code.
            receipt: Merchant receipt reference.
            notes: Free-form metadata stored with the order upstream.

        Returns:
            dict: Gateway order with at least ``id``, ``amount`` and ``currency``.
        """
        order = await self._request(
            "create_order",
            "POST",
            "/orders",
            json={
                "amount": amount_minor_units,
                "currency": currency,
                "receipt": receipt,
                "notes": notes,
            },
        )
        if not order.get("id"):
            raise GatewayError("create_order", "response missing order id")
        return order

    async def fetch_order(self, order_id: str) -> dict[str, Any]:
        """Fetch a gateway order including its notes."""
        return await self._request("fetch_order", "GET", f"/orders/{order_id}")


_gateway_client: GatewayClient | None = None


def get_gateway_client() -> GatewayClient:
    """Get or create the global gateway client instance."""
    global _gateway_client
    if _gateway_client is None:
        _gateway_client = GatewayClient()
    return _gateway_client


async def shutdown_gateway_client() -> None:
    """Close the global gateway client. Call at app shutdown."""
    global _gateway_client
    if _gateway_client is not None:
        await _gateway_client.close()
        _gateway_client = None
