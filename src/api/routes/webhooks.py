"""Webhook API routes for gateway payment callbacks."""

import logging

from fastapi import APIRouter, Header, Request, status

from src.api.deps import WebhookIngestor
from src.schemas.payment import WebhookAckResponse
from src.services.webhook_service import WebhookOutcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post(
    "/gateway",
    response_model=WebhookAckResponse,
    status_code=status.HTTP_200_OK,
    summary="Handle payment gateway webhooks",
    description="Receives gateway payment callbacks. Requires a valid X-Signature header.",
    responses={
        400: {"description": "Invalid signature or malformed payload"},
        502: {"description": "Order ownership could not be determined, gateway should retry"},
    },
)
async def gateway_webhook(
    request: Request,
    service: WebhookIngestor,
    x_signature: str | None = Header(default=None),
) -> WebhookAckResponse:
    """Handle gateway webhook events.

    The signature is checked against the raw body before anything else.
    Callbacks for orders minted by other applications on the same gateway
    account are acknowledged and dropped.

    Handles:
    - payment.captured: Reconciles the payment and activates the plan
    - payment.authorized: Same as captured

    Args:
        request: FastAPI request object for reading the raw body.
        service: Webhook ingestion service.
        x_signature: HMAC of the raw body.

    Returns:
        WebhookAckResponse: Acknowledgment for the gateway.
    """
    payload = await request.body()
    logger.info(
        "Received webhook with signature header (length: %d)",
        len(x_signature) if x_signature else 0,
    )
    logger.debug("Payload size: %d bytes", len(payload))

    result = await service.handle(payload, x_signature)

    # Every signed, owned delivery is acknowledged so the gateway stops retrying
    ack_status = "ignored" if result.outcome == WebhookOutcome.IGNORED else "received"
    return WebhookAckResponse(status=ack_status, message=result.message)
