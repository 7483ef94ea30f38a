"""FastAPI routes for the delivery domain — carts, orders, payments, promotions."""

import os

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from protean.utils.globals import current_domain

from delivery.api.schemas import (
    AddToCartRequest,
    ApplyPromoCodeRequest,
    ChargesPreviewRequest,
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    PaymentRequest,
    PlaceOrderRequest,
    ReorderRequest,
    SuccessResponse,
    UpdateCartQuantityRequest,
    UpdateOrderStatusRequest,
)
from delivery.cache import get_cache, invalidate_product_caches
from delivery.cart.cart import Cart
from delivery.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from delivery.catalogue.queries import get_product
from delivery.errors import InvalidRequest, NotFound
from delivery.gateway import get_gateway
from delivery.gateway.fake_adapter import FakeGateway
from delivery.gateway.port import InvalidSignature
from delivery.order.cancellation import CancelOrder
from delivery.order.placement import PlaceOrder, Reorder
from delivery.order.queries import apply_promo_code, get_order, list_orders, preview_charges
from delivery.order.status import UpdateOrderStatus
from delivery.payment.intents import CancelPaymentIntent, ConfirmPayment, InitiatePayment
from delivery.payment.webhooks import CANCELED, PAYMENT_FAILED, ProcessProviderEvent

logger = structlog.get_logger(__name__)


def _iso(value):
    return value.isoformat() if value is not None else None


def cart_view(cart: Cart) -> dict:
    return {
        "id": str(cart.id),
        "customer_id": str(cart.customer_id),
        "items": cart.snapshot(),
        "total_price": cart.total_price,
    }


def order_view(order) -> dict:
    address, charges = order.delivery_address, order.charges
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "status": order.status,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "payment_intent_id": order.payment_intent_id,
        "refund_due": bool(order.refund_due),
        "delivery_partner_id": str(order.delivery_partner_id) if order.delivery_partner_id else None,
        "fulfillment_center_id": str(order.fulfillment_center_id),
        "delivery_time_range": order.delivery_time_range,
        "promo_code": order.promo_code,
        "order_notes": order.order_notes,
        "items": [
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
            }
            for item in order.items
        ],
        "delivery_address": {
            "address_details": address.address_details,
            "floor": address.floor,
            "apartment": address.apartment,
            "phone_number": address.phone_number,
            "latitude": address.latitude,
            "longitude": address.longitude,
        },
        "charges": {
            "product_subtotal": charges.product_subtotal,
            "delivery_fee": charges.delivery_fee,
            "service_fee": charges.service_fee,
            "distance_km": charges.distance_km,
            "discount": {"amount": charges.discount, "scoped_property": charges.discount_scope},
            "tip_amount": charges.tip_amount,
            "original_amount": charges.original_amount,
            "final_amount": charges.final_amount,
            "currency": charges.currency,
        },
        "status_history": [
            {"status": record.status, "changed_at": _iso(record.changed_at)} for record in order.history()
        ],
        "created_at": _iso(order.created_at),
        "delivered_at": _iso(order.delivered_at),
    }


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


def _cart_for(customer_id: str) -> Cart:
    cart = current_domain.repository_for(Cart).for_customer(customer_id)
    if cart is None:
        raise NotFound("Cart not found")
    return cart


@cart_router.get("/{customer_id}", response_model=SuccessResponse)
async def get_cart(customer_id: str) -> SuccessResponse:
    return SuccessResponse(data=cart_view(_cart_for(customer_id)))


@cart_router.post("/{customer_id}/items", status_code=201, response_model=SuccessResponse)
async def add_cart_item(customer_id: str, body: AddToCartRequest) -> SuccessResponse:
    command = AddToCart(
        customer_id=customer_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return SuccessResponse(data=cart_view(_cart_for(customer_id)))


@cart_router.put("/{customer_id}/items/{product_id}", response_model=SuccessResponse)
async def update_cart_item(customer_id: str, product_id: str, body: UpdateCartQuantityRequest) -> SuccessResponse:
    command = UpdateCartQuantity(
        customer_id=customer_id,
        product_id=product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return SuccessResponse(data=cart_view(_cart_for(customer_id)))


@cart_router.delete("/{customer_id}/items/{product_id}", response_model=SuccessResponse)
async def remove_cart_item(customer_id: str, product_id: str) -> SuccessResponse:
    current_domain.process(RemoveFromCart(customer_id=customer_id, product_id=product_id), asynchronous=False)
    return SuccessResponse(data=cart_view(_cart_for(customer_id)))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=SuccessResponse)
async def place_order(body: PlaceOrderRequest) -> SuccessResponse:
    command = PlaceOrder(
        customer_id=body.customer_id,
        payment_method=body.payment_method,
        tip_amount=body.tip_amount,
        promo_code=body.promo_code,
        order_notes=body.order_notes,
    )
    order_id = current_domain.process(command, asynchronous=False)
    invalidate_product_caches()
    return SuccessResponse(data=order_view(get_order(order_id)))


@order_router.get("", response_model=SuccessResponse)
async def get_orders(customer_id: str) -> SuccessResponse:
    orders = list_orders(customer_id)
    return SuccessResponse(data={"results": len(orders), "orders": [order_view(o) for o in orders]})


@order_router.post("/charges-preview", response_model=SuccessResponse)
async def charges_preview(body: ChargesPreviewRequest) -> SuccessResponse:
    charges, center = preview_charges(body.customer_id, promo_code=body.promo_code, tip_amount=body.tip_amount)
    return SuccessResponse(data={**charges.as_dict(), "fulfillment_center_id": str(center.id)})


@order_router.get("/{order_id}", response_model=SuccessResponse)
async def get_order_detail(order_id: str, customer_id: str | None = None) -> SuccessResponse:
    return SuccessResponse(data=order_view(get_order(order_id, customer_id)))


@order_router.delete("/{order_id}", response_model=SuccessResponse)
async def cancel_order(order_id: str, customer_id: str, reason: str | None = None) -> SuccessResponse:
    command = CancelOrder(order_id=order_id, customer_id=customer_id, reason=reason)
    current_domain.process(command, asynchronous=False)
    invalidate_product_caches()
    return SuccessResponse(data=order_view(get_order(order_id)))


@order_router.post("/{order_id}/reorder", status_code=201, response_model=SuccessResponse)
async def reorder(order_id: str, body: ReorderRequest) -> SuccessResponse:
    command = Reorder(
        order_id=order_id,
        customer_id=body.customer_id,
        payment_method=body.payment_method,
        tip_amount=body.tip_amount,
        promo_code=body.promo_code,
        order_notes=body.order_notes,
    )
    new_order_id = current_domain.process(command, asynchronous=False)
    invalidate_product_caches()
    return SuccessResponse(data=order_view(get_order(new_order_id)))


@order_router.patch("/{order_id}/status", response_model=SuccessResponse)
async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> SuccessResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        requested_by=body.requested_by,
        reason=body.reason,
    )
    current_domain.process(command, asynchronous=False)
    if body.status in ("cancelled", "failed"):
        invalidate_product_caches()
    return SuccessResponse(data=order_view(get_order(order_id)))


@order_router.post("/{order_id}/payment/initiate", response_model=SuccessResponse)
async def initiate_payment(order_id: str, body: PaymentRequest) -> SuccessResponse:
    command = InitiatePayment(order_id=order_id, customer_id=body.customer_id)
    result = current_domain.process(command, asynchronous=False)
    return SuccessResponse(data=result)


@order_router.post("/{order_id}/payment/confirm", response_model=SuccessResponse)
async def confirm_payment(order_id: str, body: PaymentRequest) -> SuccessResponse:
    command = ConfirmPayment(order_id=order_id, customer_id=body.customer_id)
    current_domain.process(command, asynchronous=False)
    return SuccessResponse(data=order_view(get_order(order_id)))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/intents/{intent_id}/cancel", response_model=SuccessResponse)
async def cancel_payment_intent(intent_id: str, body: PaymentRequest) -> SuccessResponse:
    command = CancelPaymentIntent(intent_id=intent_id, customer_id=body.customer_id)
    order_id = current_domain.process(command, asynchronous=False)
    invalidate_product_caches()
    return SuccessResponse(data=order_view(get_order(order_id)))


@payment_router.post("/webhook", response_model=SuccessResponse)
async def payment_webhook(request: Request, stripe_signature: str = Header(default="")) -> SuccessResponse:
    """Apply a signed payment provider notification."""
    payload = await request.body()
    try:
        event = get_gateway().construct_event(payload, stripe_signature)
    except InvalidSignature as exc:
        logger.warning("Webhook signature verification failed", error=str(exc))
        raise InvalidRequest("Webhook signature verification failed") from exc

    command = ProcessProviderEvent(
        event_id=event.id,
        event_type=event.type,
        intent_id=event.intent_id,
        failure_message=event.failure_message,
    )
    outcome = current_domain.process(command, asynchronous=False)
    if outcome == "applied" and event.type in (PAYMENT_FAILED, CANCELED):
        invalidate_product_caches()
    return SuccessResponse(data={"received": True, "outcome": outcome})


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        auto_confirm=body.auto_confirm,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        auto_confirm=gateway.auto_confirm,
    )


# ---------------------------------------------------------------------------
# Promotions, catalogue reads and operations
# ---------------------------------------------------------------------------
promo_router = APIRouter(prefix="/promo-codes", tags=["promotions"])


@promo_router.post("/apply", response_model=SuccessResponse)
async def apply_promo(body: ApplyPromoCodeRequest) -> SuccessResponse:
    return SuccessResponse(data=apply_promo_code(body.customer_id, body.promo_code))


product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.get("/{product_id}", response_model=SuccessResponse)
async def product_detail(product_id: str) -> SuccessResponse:
    return SuccessResponse(data=get_product(product_id))


ops_router = APIRouter(prefix="/ops", tags=["operations"])


@ops_router.post("/cache/flush", response_model=SuccessResponse)
async def flush_cache() -> SuccessResponse:
    get_cache().flush()
    logger.info("Cache flushed")
    return SuccessResponse(data={"flushed": True})
