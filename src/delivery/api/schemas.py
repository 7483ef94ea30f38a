"""Pydantic request/response schemas for the delivery API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

PaymentMethodField = Literal["cash_on_delivery", "credit_card_on_delivery", "credit_card"]


class SuccessResponse(BaseModel):
    status: str = "success"
    data: Any = None


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(BaseModel):
    quantity: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer_id: str
    payment_method: PaymentMethodField
    tip_amount: float = Field(ge=0, default=0.0)
    promo_code: str | None = None
    order_notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "payment_method": "credit_card",
                    "tip_amount": 2.0,
                    "promo_code": "WELCOME10",
                }
            ]
        }
    }


class ReorderRequest(BaseModel):
    customer_id: str
    payment_method: PaymentMethodField
    tip_amount: float = Field(ge=0, default=0.0)
    promo_code: str | None = None
    order_notes: str | None = None


class UpdateOrderStatusRequest(BaseModel):
    status: Literal[
        "pending",
        "confirmed",
        "ready-for-delivery",
        "out-for-delivery",
        "delivered",
        "cancelled",
        "failed",
    ]
    requested_by: str
    reason: str | None = None


class ChargesPreviewRequest(BaseModel):
    customer_id: str
    promo_code: str | None = None
    tip_amount: float = Field(ge=0, default=0.0)


class ApplyPromoCodeRequest(BaseModel):
    customer_id: str
    promo_code: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class PaymentRequest(BaseModel):
    customer_id: str


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Provider unavailable"
    auto_confirm: bool = False


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    auto_confirm: bool
