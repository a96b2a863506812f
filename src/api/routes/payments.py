"""Payment API routes: order creation, client verification and history."""

import logging

from fastapi import APIRouter, Query, status

from src.api.deps import OrderLedger, PaymentRecords, Verifier
from src.api.middleware.error_handler import StorageFailureError
from src.core.document_store import StorageError
from src.core.money import from_minor_units
from src.schemas.payment import (
    CreateOrderRequest,
    CreateOrderResponse,
    GatewayOrderSummary,
    PaymentHistoryItem,
    PaymentHistoryResponse,
    VerifiedPayment,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/orders",
    response_model=CreateOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create payment order",
    description="Creates a gateway order for a plan purchase and records it locally.",
    responses={
        422: {"description": "Invalid amount or missing fields"},
        502: {"description": "Payment gateway unavailable"},
        503: {"description": "Order could not be recorded"},
    },
)
async def create_order(data: CreateOrderRequest, ledger: OrderLedger) -> CreateOrderResponse:
    """Create a payment order.

    The client opens the gateway checkout with the returned order id.

    Args:
        data: Order details.
        ledger: Order ledger service.

    Returns:
        CreateOrderResponse: Gateway order id, amount in minor units and currency.
    """
    try:
        order = await ledger.create_order(
            amount=data.amount,
            currency=data.currency,
            plan_id=data.plan_id,
            tenant_user_id=data.tenant_user_id,
            tenant_email=data.tenant_email,
            phone=data.phone,
            shop_id=data.shop_id,
        )
    except StorageError as e:
        logger.error("Order could not be recorded: %s", e)
        raise StorageFailureError("Order could not be recorded, please retry") from e

    return CreateOrderResponse(
        order=GatewayOrderSummary(
            id=order["order_id"],
            amount=order["amount_minor_units"],
            currency=order["currency"],
        )
    )


@router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    summary="Verify checkout payment",
    description="Verifies the client-side checkout signature and activates the purchased plan.",
    responses={
        400: {"description": "Invalid signature"},
        404: {"description": "Order not found"},
        503: {"description": "Payment could not be recorded"},
    },
)
async def verify_payment(data: VerifyPaymentRequest, verifier: Verifier) -> VerifyPaymentResponse:
    """Verify a payment confirmed by the checkout client.

    Args:
        data: Order id, payment id and signature from checkout.
        verifier: Verification service.

    Returns:
        VerifyPaymentResponse: The reconciled payment.
    """
    result = await verifier.verify(
        order_id=data.order_id,
        payment_id=data.payment_id,
        signature=data.signature,
        plan_id=data.plan_id,
        tenant_user_id=data.tenant_user_id,
    )
    return VerifyPaymentResponse(data=VerifiedPayment(**result))


@router.get(
    "/history/{tenant_user_id}",
    response_model=PaymentHistoryResponse,
    summary="Payment history",
    description="Lists a tenant's confirmed payments for this application, newest first.",
)
async def payment_history(
    tenant_user_id: str,
    payments: PaymentRecords,
    limit: int = Query(default=10, ge=1, le=100, description="Maximum records to return"),
) -> PaymentHistoryResponse:
    """List a tenant's payment history.

    Args:
        tenant_user_id: Tenant account user id.
        payments: Payment record service.
        limit: Maximum records to return.

    Returns:
        PaymentHistoryResponse: Payments, newest first.
    """
    try:
        records = await payments.list_for_tenant(tenant_user_id, limit=limit)
    except StorageError as e:
        raise StorageFailureError("Payment history is temporarily unavailable") from e

    default_currency = payments.settings.default_currency
    items = [
        PaymentHistoryItem(
            payment_id=record["payment_id"],
            order_id=record["order_id"],
            plan_id=record.get("plan_id"),
            amount=from_minor_units(
                record.get("amount_minor_units") or 0,
                record.get("currency") or default_currency,
            ),
            currency=record.get("currency") or default_currency,
            status=record.get("status", ""),
            date=record.get("verified_at"),
        )
        for record in records
    ]
    return PaymentHistoryResponse(data=items)
