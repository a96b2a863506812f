"""Webhook ingestion: consumes at-least-once gateway payment callbacks."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from src.api.middleware.error_handler import (
    GatewayUnavailableError,
    InvalidSignatureError,
    MalformedPayloadError,
)
from src.core.config import Settings, get_settings
from src.core.document_store import DocumentStore, StorageError, get_document_store
from src.core.gateway import GatewayClient, GatewayError, get_gateway_client
from src.core.signature import verify_signature
from src.models.payment import PaymentStatus, WebhookEvent
from src.services.order_ledger_service import OrderLedgerService
from src.services.ownership_cache import OwnershipCache, get_ownership_cache
from src.services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)

WEBHOOK_EVENTS_TABLE = "webhook_events"

# Events that confirm money moved for an order
CAPTURE_EVENTS = frozenset({"payment.captured", "payment.authorized"})


class WebhookOutcome(str, Enum):
    """How a signed callback was disposed of. All are acknowledged with 2xx."""

    PROCESSED = "processed"
    IGNORED = "ignored"
    UNHANDLED_EVENT = "unhandled_event"
    ORDER_NOT_FOUND = "order_not_found"
    STORAGE_FAILED = "storage_failed"


@dataclass
class WebhookResult:
    """Result of handling one webhook delivery."""

    outcome: WebhookOutcome
    event: str
    order_id: str
    payment_id: str
    message: str


class WebhookService:
    """Service for verifying, filtering, logging and reconciling callbacks."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        gateway: GatewayClient | None = None,
        ledger: OrderLedgerService | None = None,
        reconciliation: ReconciliationService | None = None,
        ownership_cache: OwnershipCache | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize webhook service with its collaborators."""
        self.settings = settings or get_settings()
        self.store = store or get_document_store()
        self.gateway = gateway or get_gateway_client()
        self.ledger = ledger or OrderLedgerService(self.store, self.gateway, self.settings)
        self.reconciliation = reconciliation or ReconciliationService(ledger=self.ledger)
        # An empty cache is falsy, so test for None explicitly
        self.ownership_cache = ownership_cache if ownership_cache is not None else get_ownership_cache()

    def verify_signature(self, payload: bytes, signature: str | None) -> None:
        """Verify the webhook signature over the raw body.

        Raises:
            InvalidSignatureError: If the signature is missing or wrong.
        """
        if not verify_signature(payload, signature, self.settings.webhook_secret):
            logger.warning(
                "Rejected webhook with invalid signature (header length: %d)",
                len(signature) if signature else 0,
            )
            raise InvalidSignatureError("Invalid webhook signature")

    def parse(self, payload: bytes) -> tuple[str, dict[str, Any], dict[str, Any]]:
        """Extract the event name and payment entity from a callback body.

        Returns:
            tuple: (event name, payment entity, full decoded body)

        Raises:
            MalformedPayloadError: If the body is not JSON or lacks a payment.
        """
        try:
            body = json.loads(payload)
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedPayloadError("Webhook body is not valid JSON") from e

        if not isinstance(body, dict):
            raise MalformedPayloadError("Webhook body must be a JSON object")

        event = body.get("event")
        payment = ((body.get("payload") or {}).get("payment") or {}).get("entity")
        if not event or not isinstance(payment, dict):
            raise MalformedPayloadError("Invalid payment data in webhook")
        if not payment.get("id") or not payment.get("order_id"):
            raise MalformedPayloadError("Payment entity missing id or order_id")

        return str(event), payment, body

    async def resolve_owner(self, order_id: str) -> str:
        """Read the owning application tag from the gateway's order notes.

        The local ledger is not consulted: the tag upstream is what decides
        whether a callback on a shared gateway account belongs to us.

        Raises:
            GatewayUnavailableError: If the lookup fails, so the gateway retries.
        """
        cached = self.ownership_cache.get(order_id)
        if cached is not None:
            return cached

        try:
            gateway_order = await self.gateway.fetch_order(order_id)
        except GatewayError as e:
            logger.error("Failed to fetch order %s for ownership check: %s", order_id, e.message)
            raise GatewayUnavailableError("Error determining order ownership") from e

        notes = gateway_order.get("notes") or {}
        if not isinstance(notes, dict):
            notes = {}
        application_tag = str(notes.get("application_tag") or notes.get("app") or "Unknown")

        if application_tag == self.settings.application_tag:
            self.ownership_cache.remember_owned(order_id, application_tag)
        return application_tag

    def log_event(self, event: str, payment: dict[str, Any], body: dict[str, Any]) -> None:
        """Append an audit row for an owned callback."""
        row: WebhookEvent = {
            "event": event,
            "order_id": payment["order_id"],
            "payment_id": payment["id"],
            "status": payment.get("status"),
            "amount_minor_units": payment.get("amount"),
            "currency": payment.get("currency"),
            "application_tag": self.settings.application_tag,
            "received_at": datetime.now(timezone.utc).isoformat(),
            "full_payload": body,
        }
        self.store.insert(WEBHOOK_EVENTS_TABLE, dict(row))

    async def handle(self, payload: bytes, signature: str | None) -> WebhookResult:
        """Handle one webhook delivery end to end.

        Signature, payload and ownership failures raise and are answered with
        a non-2xx status so the gateway retries. Once ownership is confirmed
        every outcome, including datastore faults, is acknowledged: the
        gateway redelivering would only add duplicate side effects.

        Args:
            payload: Raw request body exactly as received.
            signature: Value of the signature header.

        Returns:
            WebhookResult: How the delivery was handled.

        Raises:
            InvalidSignatureError: Signature missing or wrong.
            MalformedPayloadError: Body lacks a payment entity.
            GatewayUnavailableError: Ownership lookup failed.
        """
        self.verify_signature(payload, signature)
        event, payment, body = self.parse(payload)
        order_id = str(payment["order_id"])
        payment_id = str(payment["id"])

        owner = await self.resolve_owner(order_id)
        if owner != self.settings.application_tag:
            logger.info("Ignoring webhook %s for app %s, order %s", event, owner, order_id)
            return WebhookResult(
                outcome=WebhookOutcome.IGNORED,
                event=event,
                order_id=order_id,
                payment_id=payment_id,
                message=f"Webhook acknowledged but ignored - not for {self.settings.application_tag}",
            )

        logger.info(
            "Processing webhook %s: payment=%s order=%s status=%s",
            event,
            payment_id,
            order_id,
            payment.get("status"),
        )

        try:
            self.log_event(event, payment, body)
        except StorageError as e:
            logger.error("Failed to log webhook event for payment %s: %s", payment_id, e)

        if event not in CAPTURE_EVENTS:
            logger.info("Unhandled webhook event type: %s", event)
            return WebhookResult(
                outcome=WebhookOutcome.UNHANDLED_EVENT,
                event=event,
                order_id=order_id,
                payment_id=payment_id,
                message="Webhook received",
            )

        try:
            order = await self.ledger.get(order_id)
            if not order:
                logger.warning("Order %s not found for webhook %s", order_id, event)
                return WebhookResult(
                    outcome=WebhookOutcome.ORDER_NOT_FOUND,
                    event=event,
                    order_id=order_id,
                    payment_id=payment_id,
                    message="Webhook received, order unknown",
                )

            await self.reconciliation.reconcile(
                order,
                payment_id,
                PaymentStatus.WEBHOOK_CONFIRMED,
                amount_minor_units=payment.get("amount"),
                currency=payment.get("currency"),
            )
        except StorageError as e:
            logger.error(
                "Giving up on webhook %s for payment %s after storage failure: %s",
                event,
                payment_id,
                e,
            )
            return WebhookResult(
                outcome=WebhookOutcome.STORAGE_FAILED,
                event=event,
                order_id=order_id,
                payment_id=payment_id,
                message="Webhook received",
            )

        return WebhookResult(
            outcome=WebhookOutcome.PROCESSED,
            event=event,
            order_id=order_id,
            payment_id=payment_id,
            message=f"Webhook processed successfully for {self.settings.application_tag}",
        )
