"""Payment bridge — intent lifecycle commands and handler.

Each order has at most one open provider intent. Local order state stays
authoritative: an order only becomes ``paid`` after the provider reports
the intent ``succeeded``, either here on confirmation or through the
webhook. Both paths are idempotent against each other.

Provider failures abort the command. Their raw detail is logged and the
caller only sees a generic ``PaymentProviderError``.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from delivery import config
from delivery.domain import delivery
from delivery.errors import (
    AccessDenied,
    AlreadyPaid,
    ConflictError,
    OrderNotFound,
    PaymentNotSuccessful,
    PaymentProviderError,
    TransitionRejected,
)
from delivery.gateway import get_gateway
from delivery.gateway.port import GatewayError
from delivery.order.cancellation import owned_order, unwind
from delivery.order.order import Order
from delivery.order.transitions import Actor, OrderStatus, can_transition
from delivery.push.dispatch import notify_customer

logger = structlog.get_logger(__name__)


@delivery.command(part_of="Order")
class InitiatePayment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@delivery.command(part_of="Order")
class ConfirmPayment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@delivery.command(part_of="Order")
class CancelPaymentIntent:
    intent_id = String(required=True, max_length=255)
    customer_id = Identifier(required=True)


def _provider_failure(exc: GatewayError, order: Order, intent_id=None) -> PaymentProviderError:
    logger.error(
        "Payment provider call failed",
        order_id=str(order.id),
        intent_id=intent_id or order.payment_intent_id,
        error=str(exc),
    )
    return PaymentProviderError()


@delivery.command_handler(part_of=Order)
class PaymentIntentHandler:
    @handle(InitiatePayment)
    def initiate_payment(self, command):
        order = owned_order(command.order_id, command.customer_id)
        if order.is_paid:
            raise AlreadyPaid()
        if order.status != OrderStatus.AWAITING_PAYMENT.value:
            raise ConflictError(f"Order is {order.status} and does not take online payment")

        gateway = get_gateway()
        try:
            if order.payment_intent_id:
                previous = gateway.retrieve_intent(order.payment_intent_id)
                if previous.succeeded:
                    raise AlreadyPaid("Payment already succeeded; confirm it instead")
                if previous.is_open:
                    gateway.cancel_intent(previous.id)
                    logger.info("Superseded open payment intent", order_id=str(order.id), intent_id=previous.id)

            amount = order.charges.final_amount
            intent = gateway.create_intent(
                amount,
                config.CURRENCY,
                metadata={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "customer_id": str(order.customer_id),
                },
            )
        except GatewayError as exc:
            raise _provider_failure(exc, order) from exc

        order.record_payment_intent(intent.id, amount, config.CURRENCY)
        current_domain.repository_for(Order).add(order)

        logger.info("Payment intent created", order_id=str(order.id), intent_id=intent.id, amount=amount)
        return {"intent_id": intent.id, "client_secret": intent.client_secret}

    @handle(ConfirmPayment)
    def confirm_payment(self, command):
        order = owned_order(command.order_id, command.customer_id)
        if order.is_paid:
            return str(order.id)
        if not order.payment_intent_id:
            raise PaymentNotSuccessful("No payment has been initiated for this order")

        try:
            intent = get_gateway().retrieve_intent(order.payment_intent_id)
        except GatewayError as exc:
            raise _provider_failure(exc, order) from exc

        if not intent.succeeded:
            raise PaymentNotSuccessful(f"Payment has not succeeded (status: {intent.status})")

        if order.status in (OrderStatus.CANCELLED.value, OrderStatus.FAILED.value):
            if order.flag_refund():
                current_domain.repository_for(Order).add(order)
                logger.warning("Payment collected for an order that already ended", order_id=str(order.id))
            return str(order.id)

        order.mark_paid()
        current_domain.repository_for(Order).add(order)

        logger.info("Payment confirmed", order_id=str(order.id), intent_id=intent.id)
        notify_customer(
            order.customer_id,
            "Payment Successful!",
            f"Your payment for order {order.order_number} has been confirmed.",
            data={"order_id": str(order.id), "status": order.status},
        )
        return str(order.id)

    @handle(CancelPaymentIntent)
    def cancel_payment_intent(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_intent(command.intent_id)
        if order is None:
            raise OrderNotFound()
        if str(order.customer_id) != str(command.customer_id):
            raise AccessDenied("You are not allowed to cancel this payment")

        verdict = can_transition(order.status, OrderStatus.CANCELLED, Actor.CUSTOMER)
        if not verdict.allowed:
            raise TransitionRejected(verdict.reason)

        try:
            get_gateway().cancel_intent(command.intent_id)
        except GatewayError as exc:
            raise _provider_failure(exc, order, command.intent_id) from exc

        verdict = order.mark_payment_cancelled(role=Actor.CUSTOMER)
        unwind(order, verdict)
        repo.add(order)

        logger.info("Payment intent cancelled", order_id=str(order.id), intent_id=command.intent_id)
        notify_customer(
            order.customer_id,
            "Payment Cancelled",
            f"Your payment for order {order.order_number} was cancelled. Your cart has been restored.",
            data={"order_id": str(order.id), "status": order.status},
        )
        return str(order.id)
