"""Order status updates by operators, delivery partners and customers — command and handler.

The role comes from the requester's own record, never from the request, and
a customer can only move their own order. The order is read fresh inside
the unit of work and checked against the transition table before anything
is written. Ending an order early cancels its open payment intent first.
Every accepted transition is pushed to the customer's devices.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from delivery.customer.customer import Customer
from delivery.domain import delivery
from delivery.errors import AccessDenied, OrderNotFound, TransitionRejected
from delivery.order.cancellation import cancel_open_intent, owned_order, unwind
from delivery.order.order import Order
from delivery.order.transitions import Actor, OrderStatus, can_transition
from delivery.push.dispatch import notify_customer

logger = structlog.get_logger(__name__)

STATUS_MESSAGES = {
    OrderStatus.PENDING.value: ("Order Received", "We have received your order {number}."),
    OrderStatus.CONFIRMED.value: ("Order Confirmed", "Your order {number} has been confirmed."),
    OrderStatus.READY_FOR_DELIVERY.value: ("Order Ready", "Your order {number} is packed and ready for delivery."),
    OrderStatus.OUT_FOR_DELIVERY.value: ("On The Way", "Your order {number} is out for delivery."),
    OrderStatus.DELIVERED.value: ("Order Delivered", "Your order {number} has been delivered. Enjoy!"),
    OrderStatus.CANCELLED.value: ("Order Cancelled", "Your order {number} has been cancelled."),
    OrderStatus.FAILED.value: ("Order Failed", "Your order {number} could not be completed."),
}


@delivery.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    requested_by = Identifier(required=True)
    reason = Text()


def announce(order: Order) -> None:
    title, body = STATUS_MESSAGES[order.status]
    notify_customer(
        order.customer_id,
        title,
        body.format(number=order.order_number),
        data={"order_id": str(order.id), "status": order.status},
    )


def requester_role(requested_by) -> Actor:
    try:
        requester = current_domain.repository_for(Customer).get(str(requested_by))
    except ObjectNotFoundError:
        raise AccessDenied("Unknown requester") from None
    return Actor(requester.role)


@delivery.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        role = requester_role(command.requested_by)
        if role == Actor.CUSTOMER:
            order = owned_order(command.order_id, command.requested_by)
        else:
            try:
                order = current_domain.repository_for(Order).get(command.order_id)
            except ObjectNotFoundError:
                raise OrderNotFound() from None

        requested = OrderStatus(command.status)
        verdict = can_transition(order.status, requested, role)
        if not verdict.allowed:
            raise TransitionRejected(verdict.reason)

        previous = order.status
        if requested in (OrderStatus.CANCELLED, OrderStatus.FAILED):
            cancel_open_intent(order)
        if requested == OrderStatus.CANCELLED:
            verdict = order.mark_payment_cancelled(role=role, reason=command.reason)
        else:
            verdict = order.transition_to(requested, role, actor_id=command.requested_by, reason=command.reason)
        unwind(order, verdict)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=previous,
            to_status=order.status,
            role=role.value,
        )
        announce(order)
        return str(order.id)
