"""Payment Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class CreateOrderRequest(BaseModel):
    """Schema for creating a payment order via POST /payments/orders."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    amount: Decimal = Field(gt=0, description="Amount in major currency units (e.g. 299.00)")
    currency: str | None = Field(default=None, min_length=3, max_length=3, description="ISO currency code")
    plan_id: str = Field(min_length=1, validation_alias=AliasChoices("plan_id", "planId"), description="Plan being purchased")
    tenant_user_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("tenant_user_id", "tenantUserId", "userId"),
        description="Tenant account user id",
    )
    tenant_email: str = Field(
        min_length=3,
        validation_alias=AliasChoices("tenant_email", "tenantEmail", "email"),
        description="Tenant account email",
    )
    phone: str | None = Field(default=None, description="Optional contact phone")
    shop_id: str | None = Field(default=None, validation_alias=AliasChoices("shop_id", "shopId"), description="Optional shop id")


class GatewayOrderSummary(BaseModel):
    """Gateway order details the client needs to open checkout."""

    id: str = Field(description="Gateway order id")
    amount: int = Field(description="Amount in minor currency units")
    currency: str = Field(description="ISO currency code")


class CreateOrderResponse(BaseModel):
    """Schema for order creation response."""

    success: bool = True
    order: GatewayOrderSummary


class VerifyPaymentRequest(BaseModel):
    """Client-side checkout confirmation.

    Accepts the gateway checkout handler field names as aliases.
    """

    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("order_id", "orderId", "razorpay_order_id"),
    )
    payment_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("payment_id", "paymentId", "razorpay_payment_id"),
    )
    signature: str = Field(
        min_length=1,
        validation_alias=AliasChoices("signature", "razorpay_signature"),
    )
    plan_id: str | None = Field(default=None, validation_alias=AliasChoices("plan_id", "planId"))
    tenant_user_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("tenant_user_id", "tenantUserId", "userId"),
    )


class VerifiedPayment(BaseModel):
    """Reconciled order/payment view returned to the client."""

    plan_id: str
    payment_id: str
    tenant_email: str
    tenant_user_id: str
    order_id: str
    phone: str | None = None
    shop_id: str | None = None
    application_tag: str


class VerifyPaymentResponse(BaseModel):
    """Schema for a successful verification."""

    success: bool = True
    message: str = "Payment verified successfully"
    data: VerifiedPayment


class PaymentHistoryItem(BaseModel):
    """A single confirmed payment in a tenant's history."""

    payment_id: str
    order_id: str
    plan_id: str | None = None
    amount: Decimal = Field(description="Amount in major currency units")
    currency: str | None = None
    status: str
    date: datetime | None = None


class PaymentHistoryResponse(BaseModel):
    """Schema for payment history responses."""

    success: bool = True
    data: list[PaymentHistoryItem]


class WebhookAckResponse(BaseModel):
    """Acknowledgement returned to the gateway."""

    status: str = Field(description="received | ignored")
    message: str
