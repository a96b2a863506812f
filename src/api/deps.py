"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends

from src.services.order_ledger_service import OrderLedgerService
from src.services.payment_record_service import PaymentRecordService
from src.services.subscription_service import SubscriptionService
from src.services.verification_service import VerificationService
from src.services.webhook_service import WebhookService


def get_order_ledger_service() -> OrderLedgerService:
    """Provide the order ledger."""
    return OrderLedgerService()


def get_payment_record_service() -> PaymentRecordService:
    """Provide the payment record store."""
    return PaymentRecordService()


def get_subscription_service() -> SubscriptionService:
    """Provide the subscription manager."""
    return SubscriptionService()


def get_verification_service(
    ledger: Annotated[OrderLedgerService, Depends(get_order_ledger_service)],
) -> VerificationService:
    """Provide the client confirmation verifier, sharing the request's ledger."""
    return VerificationService(ledger=ledger)


def get_webhook_service(
    ledger: Annotated[OrderLedgerService, Depends(get_order_ledger_service)],
) -> WebhookService:
    """Provide the webhook ingestor, sharing the request's ledger."""
    return WebhookService(ledger=ledger)


# Type aliases for cleaner route signatures
OrderLedger = Annotated[OrderLedgerService, Depends(get_order_ledger_service)]
PaymentRecords = Annotated[PaymentRecordService, Depends(get_payment_record_service)]
Subscriptions = Annotated[SubscriptionService, Depends(get_subscription_service)]
Verifier = Annotated[VerificationService, Depends(get_verification_service)]
WebhookIngestor = Annotated[WebhookService, Depends(get_webhook_service)]
