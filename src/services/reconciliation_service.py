"""Reconciliation routine shared by the verify and webhook channels."""

import logging
from dataclasses import dataclass

from src.models.order import Order, OrderStatus
from src.models.payment import PaymentStatus
from src.models.tenant import Subscription
from src.services.order_ledger_service import OrderLedgerService
from src.services.payment_record_service import PaymentRecordService
from src.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    """Outcome of reconciling one confirmed payment."""

    order_id: str
    payment_id: str
    plan_id: str
    payment_created: bool
    order_marked_paid: bool
    subscription: Subscription


class ReconciliationService:
    """Converges order, payment record and subscription for one payment.

    Both confirmation channels call ``reconcile`` and may do so concurrently
    or repeatedly. Each step is individually idempotent:

    1. the payment record is created only if absent,
    2. the order is merged to paid,
    3. the subscription is reconciled for the order's tenant, unless this
       is a replay of a payment older than the one already applied.
    """

    def __init__(
        self,
        ledger: OrderLedgerService | None = None,
        payments: PaymentRecordService | None = None,
        subscriptions: SubscriptionService | None = None,
    ) -> None:
        self.ledger = ledger or OrderLedgerService()
        self.payments = payments or PaymentRecordService()
        self.subscriptions = subscriptions or SubscriptionService()

    async def reconcile(
        self,
        order: Order,
        payment_id: str,
        source: PaymentStatus,
        signature: str | None = None,
        plan_id: str | None = None,
        tenant_user_id: str | None = None,
        amount_minor_units: int | None = None,
        currency: str | None = None,
    ) -> ReconciliationResult:
        """Reconcile a confirmed payment against its order.

        Args:
            order: The local order the payment settles.
            payment_id: Gateway payment id.
            source: Which channel confirmed the payment.
            signature: Verifying signature, stored for audit.
            plan_id: Plan reported by the channel, defaults to the order's.
            tenant_user_id: Tenant reported by the channel, defaults to the order's.
            amount_minor_units: Amount reported by the channel.
            currency: Currency reported by the channel.

        Returns:
            ReconciliationResult: What this call changed.

        Raises:
            StorageError: If a datastore write fails after retries.
        """
        order_id = order["order_id"]
        record = self.payments.build_record(
            order,
            payment_id,
            source,
            signature=signature,
            plan_id=plan_id,
            tenant_user_id=tenant_user_id,
            amount_minor_units=amount_minor_units,
            currency=currency,
        )
        created = await self.payments.record_if_absent(record)

        # A replay keeps the time the payment was first confirmed
        paid_at = record["verified_at"]
        if not created:
            existing = await self.payments.get(payment_id)
            if existing and existing.get("verified_at"):
                paid_at = existing["verified_at"]

        marked = False
        if order.get("status") != OrderStatus.PAID.value:
            await self.ledger.mark_paid(order_id, payment_id)
            marked = True

        # The order is authoritative for who paid and for which plan
        effective_plan_id = order.get("plan_id") or plan_id
        subscription = await self.subscriptions.reconcile(
            order.get("tenant_user_id") or tenant_user_id,
            order.get("tenant_email"),
            effective_plan_id,
            payment_id=payment_id,
            paid_at=paid_at,
            replay=not created,
        )

        logger.info(
            "Reconciled payment %s for order %s via %s (record_created=%s, marked_paid=%s)",
            payment_id,
            order_id,
            source.value,
            created,
            marked,
        )
        return ReconciliationResult(
            order_id=order_id,
            payment_id=payment_id,
            plan_id=effective_plan_id,
            payment_created=created,
            order_marked_paid=marked,
            subscription=subscription,
        )
