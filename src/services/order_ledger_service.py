"""Order ledger: payment intents created before the payer checks out."""

import logging
import time
from datetime import datetime, timezone
from decimal import Decimal

from src.api.middleware.error_handler import GatewayUnavailableError, ValidationError
from src.core.config import Settings, get_settings
from src.core.document_store import DocumentStore, get_document_store
from src.core.gateway import GatewayClient, GatewayError, get_gateway_client
from src.core.money import to_minor_units
from src.models.order import Order, OrderStatus, OrderUpdate

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class OrderLedgerService:
    """Service for creating orders and tracking their paid state."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        gateway: GatewayClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the ledger with its collaborators."""
        self.store = store or get_document_store()
        self.gateway = gateway or get_gateway_client()
        self.settings = settings or get_settings()

    def _receipt(self) -> str:
        return f"{self.settings.application_tag.lower()}_{int(time.time() * 1000)}"

    async def create_order(
        self,
        amount: Decimal | int | str,
        currency: str | None,
        plan_id: str,
        tenant_user_id: str,
        tenant_email: str,
        phone: str | None = None,
        shop_id: str | None = None,
    ) -> Order:
        """Mint a gateway order and record it locally with status created.

        The gateway call happens first; the local record is only written
        once the gateway has returned an order id.

        Args:
            amount: Amount in major currency units.
            currency: ISO currency code, defaults to the configured currency.
            plan_id: Plan being purchased.
            tenant_user_id: Tenant account user id.
            tenant_email: Tenant account email.
            phone: Optional contact phone.
            shop_id: Optional shop id.

        Returns:
            Order: The persisted order.

        Raises:
            ValidationError: If the amount is not positive.
            GatewayUnavailableError: If the gateway call fails or times out.
            StorageError: If the local write fails after retries.
        """
        currency = (currency or self.settings.default_currency).upper()
        try:
            amount_minor_units = to_minor_units(amount, currency)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        notes = {
            "application_tag": self.settings.application_tag,
            "plan_id": plan_id,
            "tenant_user_id": tenant_user_id,
            "tenant_email": tenant_email,
        }
        if phone:
            notes["phone"] = phone
        if shop_id:
            notes["shop_id"] = shop_id

        logger.info(
            "Creating order: amount=%d %s plan=%s tenant=%s",
            amount_minor_units,
            currency,
            plan_id,
            tenant_user_id,
        )

        try:
            gateway_order = await self.gateway.create_order(
                amount_minor_units=amount_minor_units,
                currency=currency,
                receipt=self._receipt(),
                notes=notes,
            )
        except GatewayError as e:
            logger.error("Gateway order creation failed: %s", e.message)
            raise GatewayUnavailableError("Failed to create order with payment gateway") from e

        now = _utcnow_iso()
        order: Order = {
            "order_id": gateway_order["id"],
            "amount_minor_units": amount_minor_units,
            "currency": currency,
            "plan_id": plan_id,
            "tenant_user_id": tenant_user_id,
            "tenant_email": tenant_email,
            "application_tag": self.settings.application_tag,
            "status": OrderStatus.CREATED.value,
            "created_at": now,
            "updated_at": now,
        }
        if phone:
            order["phone"] = phone
        if shop_id:
            order["shop_id"] = shop_id

        if not self.store.create_if_absent(ORDERS_TABLE, dict(order)):
            # Gateway order ids are unique; a collision means a replayed response.
            logger.warning("Order %s already recorded", order["order_id"])
            existing = await self.get(order["order_id"])
            if existing:
                return existing

        logger.info("Order %s recorded with status created", order["order_id"])
        return order

    async def mark_paid(self, order_id: str, payment_id: str) -> None:
        """Mark an order as paid.

        A plain merge of the same fields, so applying it twice (or from two
        channels at once) leaves the order in the same state.
        """
        changes: OrderUpdate = {
            "status": OrderStatus.PAID.value,
            "payment_id": payment_id,
            "updated_at": _utcnow_iso(),
        }
        updated = self.store.merge_update(ORDERS_TABLE, "order_id", order_id, dict(changes))
        if updated is None:
            logger.warning("mark_paid matched no order: %s", order_id)
        else:
            logger.info("Order %s marked as paid (payment %s)", order_id, payment_id)

    async def get(self, order_id: str) -> Order | None:
        """Get an order by gateway order id.

        Returns:
            Order | None: The order or None if this service never created it.
        """
        return self.store.get(ORDERS_TABLE, "order_id", order_id)
