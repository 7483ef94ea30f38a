"""Order cancellation — command, handler and the unwind shared by every path
that ends an order early (customer cancellation, admin cancel or fail,
payment failure or cancellation at the provider).

Unwinding returns each line's quantity to stock and merges the lines back
into the customer's cart.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from delivery.cart.items import restore_to_cart
from delivery.catalogue.product import Product
from delivery.domain import delivery
from delivery.errors import OrderNotFound, PaymentProviderError, TransitionRejected
from delivery.gateway import get_gateway
from delivery.gateway.port import GatewayError
from delivery.order.order import Order
from delivery.order.transitions import Actor, Effect, OrderStatus, can_transition
from delivery.push.dispatch import notify_customer

logger = structlog.get_logger(__name__)


@delivery.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String(max_length=500)


def unwind(order: Order, verdict) -> None:
    """Carry out the stock and cart effects of an accepted transition.

    A paid order that ends early is flagged for a refund.
    """
    if Effect.RESTORE_STOCK in verdict.effects and order.is_paid:
        order.flag_refund()

    if Effect.RESTORE_STOCK in verdict.effects:
        repo = current_domain.repository_for(Product)
        for line in order.line_items():
            try:
                product = repo.get(line["product_id"])
            except ObjectNotFoundError:
                logger.warning(
                    "Cannot restore stock for a missing product",
                    order_id=str(order.id),
                    product_id=line["product_id"],
                )
                continue
            product.restore(line["quantity"], reference=order.order_number)
            repo.add(product)

    if Effect.RESTORE_CART in verdict.effects:
        restore_to_cart(order.customer_id, order.id, order.line_items())


def owned_order(order_id, customer_id) -> Order:
    """Load an order the customer owns. Someone else's order looks missing."""
    try:
        order = current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise OrderNotFound() from None
    if str(order.customer_id) != str(customer_id):
        raise OrderNotFound()
    return order


def cancel_open_intent(order: Order) -> None:
    """Cancel the provider intent of an unpaid order, if one is still open."""
    if not order.payment_intent_id or order.is_paid:
        return

    gateway = get_gateway()
    try:
        intent = gateway.retrieve_intent(order.payment_intent_id)
        if intent.is_open:
            gateway.cancel_intent(order.payment_intent_id)
    except GatewayError as exc:
        logger.error(
            "Payment provider call failed",
            order_id=str(order.id),
            intent_id=order.payment_intent_id,
            error=str(exc),
        )
        raise PaymentProviderError() from exc


@delivery.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = owned_order(command.order_id, command.customer_id)

        verdict = can_transition(order.status, OrderStatus.CANCELLED, Actor.CUSTOMER)
        if not verdict.allowed:
            raise TransitionRejected(verdict.reason)

        cancel_open_intent(order)

        verdict = order.mark_payment_cancelled(role=Actor.CUSTOMER, reason=command.reason)
        unwind(order, verdict)
        current_domain.repository_for(Order).add(order)

        logger.info("Order cancelled", order_id=str(order.id), customer_id=str(order.customer_id))
        notify_customer(
            order.customer_id,
            "Order Cancelled",
            f"Your order {order.order_number} has been cancelled. Your cart has been restored.",
            data={"order_id": str(order.id), "status": order.status},
        )
        return str(order.id)
