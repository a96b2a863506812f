"""Verification of client-side checkout confirmations."""

import logging
from typing import Any

from src.api.middleware.error_handler import (
    InvalidSignatureError,
    OrderNotFoundError,
    StorageFailureError,
)
from src.core.config import Settings, get_settings
from src.core.document_store import StorageError
from src.core.signature import client_callback_payload, verify_signature
from src.models.payment import PaymentStatus
from src.services.order_ledger_service import OrderLedgerService
from src.services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)


class VerificationService:
    """Service confirming a payment right after checkout.

    Runs in parallel with the slower webhook channel and converges on the
    same payment record through the shared reconciliation routine.
    """

    def __init__(
        self,
        ledger: OrderLedgerService | None = None,
        reconciliation: ReconciliationService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.ledger = ledger or OrderLedgerService(settings=self.settings)
        self.reconciliation = reconciliation or ReconciliationService(ledger=self.ledger)

    async def verify(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
        plan_id: str | None = None,
        tenant_user_id: str | None = None,
    ) -> dict[str, Any]:
        """Verify a checkout confirmation and reconcile the payment.

        Args:
            order_id: Gateway order id.
            payment_id: Gateway payment id.
            signature: HMAC over ``order_id|payment_id``.
            plan_id: Plan the client believes it bought.
            tenant_user_id: Tenant the client believes paid.

        Returns:
            dict: The reconciled order/payment view.

        Raises:
            InvalidSignatureError: Signature does not match.
            OrderNotFoundError: The order was never created here.
            StorageFailureError: The datastore failed; the client may retry.
        """
        payload = client_callback_payload(order_id, payment_id)
        if not verify_signature(payload, signature, self.settings.client_callback_secret):
            logger.warning("Rejected verification for order %s: invalid signature", order_id)
            raise InvalidSignatureError()

        try:
            order = await self.ledger.get(order_id)
            if not order:
                raise OrderNotFoundError(order_id)

            result = await self.reconciliation.reconcile(
                order,
                payment_id,
                PaymentStatus.VERIFIED,
                signature=signature,
                plan_id=plan_id,
                tenant_user_id=tenant_user_id,
            )
        except StorageError as e:
            logger.error("Verification of payment %s failed on storage: %s", payment_id, e)
            raise StorageFailureError() from e

        return {
            "plan_id": result.plan_id,
            "payment_id": payment_id,
            "tenant_email": order.get("tenant_email"),
            "tenant_user_id": order.get("tenant_user_id"),
            "order_id": order_id,
            "phone": order.get("phone"),
            "shop_id": order.get("shop_id"),
            "application_tag": self.settings.application_tag,
        }
