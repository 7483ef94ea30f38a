"""Payment provider notifications — command and handler.

The HTTP layer verifies the signature and turns the payload into a
``ProcessProviderEvent``. Here the event is applied to the order bound to
the intent:

- ``payment_intent.succeeded``: paid, and the order moves on to ``pending``;
  an order that already ended stays unpaid and is flagged for a refund
- ``payment_intent.payment_failed``: the order fails, stock and cart are restored
- ``payment_intent.canceled``: the order is cancelled, stock and cart are restored

Re-delivered events change nothing. Unknown event types and intents no
order refers to are logged and acknowledged.
"""

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.cancellation import unwind
from delivery.order.order import Order
from delivery.order.transitions import Actor, OrderStatus, can_transition
from delivery.push.dispatch import notify_customer

logger = structlog.get_logger(__name__)

SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"
CANCELED = "payment_intent.canceled"


@delivery.command(part_of="Order")
class ProcessProviderEvent:
    event_id = String(required=True, max_length=255)
    event_type = String(required=True, max_length=100)
    intent_id = String(max_length=255)
    failure_message = String(max_length=500)


@delivery.command_handler(part_of=Order)
class ProviderEventHandler:
    @handle(ProcessProviderEvent)
    def process_provider_event(self, command):
        if command.event_type not in (SUCCEEDED, PAYMENT_FAILED, CANCELED):
            logger.info("Ignoring unhandled webhook event", event_type=command.event_type, event_id=command.event_id)
            return "ignored"

        repo = current_domain.repository_for(Order)
        order = repo.find_by_intent(command.intent_id) if command.intent_id else None
        if order is None:
            logger.info("No order found for payment intent", intent_id=command.intent_id, event_type=command.event_type)
            return "ignored"

        if command.event_type == SUCCEEDED:
            return self._succeeded(repo, order)
        if command.event_type == PAYMENT_FAILED:
            return self._failed(repo, order, command.failure_message)
        return self._canceled(repo, order)

    def _succeeded(self, repo, order):
        if order.status in (OrderStatus.CANCELLED.value, OrderStatus.FAILED.value):
            return self._collected_after_end(repo, order)
        if not order.mark_paid():
            return "duplicate"
        if order.status != OrderStatus.PENDING.value:
            logger.warning("Payment succeeded for an order that moved on", order_id=str(order.id), status=order.status)

        repo.add(order)
        notify_customer(
            order.customer_id,
            "Payment Successful!",
            f"Your payment for order {order.order_number} has been confirmed.",
            data={"order_id": str(order.id), "status": order.status},
        )
        return "applied"

    def _collected_after_end(self, repo, order):
        """The provider charged an order that had already ended. It stays unpaid; the money goes back."""
        if not order.flag_refund():
            return "duplicate"

        logger.warning(
            "Payment succeeded for an order that already ended; refund required",
            order_id=str(order.id),
            intent_id=order.payment_intent_id,
            status=order.status,
        )
        repo.add(order)
        return "refund_due"

    def _failed(self, repo, order, failure_message):
        before = order.payment_status
        verdict = order.mark_payment_failed(reason=failure_message)
        if order.payment_status == before:
            return "duplicate"

        if verdict is not None:
            unwind(order, verdict)
        repo.add(order)
        notify_customer(
            order.customer_id,
            "Payment Failed",
            f"Your payment for order {order.order_number} was unsuccessful."
            + (" Your cart has been restored." if verdict is not None else ""),
            data={"order_id": str(order.id), "status": order.status},
        )
        return "applied"

    def _canceled(self, repo, order):
        if order.status == OrderStatus.CANCELLED.value:
            return "duplicate"
        if not can_transition(order.status, OrderStatus.CANCELLED, Actor.SYSTEM).allowed:
            logger.info("Ignoring cancellation for an order past payment", order_id=str(order.id), status=order.status)
            return "ignored"

        verdict = order.mark_payment_cancelled(role=Actor.SYSTEM)
        unwind(order, verdict)
        repo.add(order)
        notify_customer(
            order.customer_id,
            "Payment Cancelled",
            f"Your payment for order {order.order_number} was cancelled. Your cart has been restored.",
            data={"order_id": str(order.id), "status": order.status},
        )
        return "applied"
