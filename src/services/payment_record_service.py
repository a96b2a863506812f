"""Payment record store: the de-duplication point for confirmed payments."""

import logging
from datetime import datetime, timezone
from typing import Any

from src.core.config import Settings, get_settings
from src.core.document_store import DocumentStore, get_document_store
from src.models.order import Order
from src.models.payment import PaymentRecord, PaymentStatus

logger = logging.getLogger(__name__)

PAYMENT_RECORDS_TABLE = "payment_records"


class PaymentRecordService:
    """Service for confirmed payment records keyed by gateway payment id."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store or get_document_store()
        self.settings = settings or get_settings()

    def build_record(
        self,
        order: Order,
        payment_id: str,
        status: PaymentStatus,
        signature: str | None = None,
        plan_id: str | None = None,
        tenant_user_id: str | None = None,
        amount_minor_units: int | None = None,
        currency: str | None = None,
    ) -> PaymentRecord:
        """Build a payment record from the order it settles.

        Values reported by the confirming channel take precedence over the
        order's own values where the channel supplies them.
        """
        record: PaymentRecord = {
            "payment_id": payment_id,
            "order_id": order["order_id"],
            "plan_id": plan_id or order.get("plan_id"),
            "tenant_email": order.get("tenant_email"),
            "tenant_user_id": tenant_user_id or order.get("tenant_user_id"),
            "amount_minor_units": amount_minor_units if amount_minor_units is not None else order.get("amount_minor_units"),
            "currency": currency or order.get("currency"),
            "application_tag": self.settings.application_tag,
            "status": status.value,
            "verified_at": datetime.now(timezone.utc).isoformat(),
        }
        if signature:
            record["signature"] = signature
        if order.get("phone"):
            record["phone"] = order["phone"]
        if order.get("shop_id"):
            record["shop_id"] = order["shop_id"]
        return record

    async def record_if_absent(self, record: PaymentRecord) -> bool:
        """Create the payment record unless one already exists.

        Returns:
            bool: True if this call created the record.
        """
        created = self.store.create_if_absent(PAYMENT_RECORDS_TABLE, dict(record))
        if created:
            logger.info(
                "Payment %s recorded for order %s (%s)",
                record["payment_id"],
                record["order_id"],
                record["status"],
            )
        else:
            logger.info("Payment %s already recorded, skipping", record["payment_id"])
        return created

    async def get(self, payment_id: str) -> PaymentRecord | None:
        """Get a payment record by gateway payment id."""
        return self.store.get(PAYMENT_RECORDS_TABLE, "payment_id", payment_id)

    async def list_for_tenant(self, tenant_user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """List this application's payments for a tenant, newest first."""
        return self.store.find_many(
            PAYMENT_RECORDS_TABLE,
            {
                "tenant_user_id": tenant_user_id,
                "application_tag": self.settings.application_tag,
            },
            order_by="verified_at",
            desc=True,
            limit=limit,
        )
