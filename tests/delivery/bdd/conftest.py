"""Shared BDD fixtures and step definitions for the delivery domain."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from delivery.errors import TransitionRejected
from delivery.order.events import (
    DeliveryPartnerAssigned,
    DeliveryPartnerReleased,
    OrderCancelled,
    OrderStatusChanged,
    PaymentConfirmed,
    PaymentFailed,
)
from delivery.order.order import Order
from delivery.order.transitions import Effect
from delivery.pricing.charges import ChargeBreakdown
from pytest_bdd import given, parsers, then

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderStatusChanged": OrderStatusChanged,
    "DeliveryPartnerAssigned": DeliveryPartnerAssigned,
    "DeliveryPartnerReleased": DeliveryPartnerReleased,
    "OrderCancelled": OrderCancelled,
    "PaymentConfirmed": PaymentConfirmed,
    "PaymentFailed": PaymentFailed,
}


def _place(payment_method):
    order = Order.place(
        customer_id="cust-001",
        order_number="QD00000042",
        lines=[{"product_id": "prod-001", "name": "Orange Juice", "quantity": 2, "unit_price": 10.0}],
        delivery_address={"address_details": "12 North Road", "latitude": 0.1079, "longitude": 0.0},
        fulfillment_center_id="center-001",
        charges=ChargeBreakdown(
            product_subtotal=Decimal("20.00"),
            delivery_fee=Decimal("11.00"),
            service_fee=Decimal("3.50"),
            distance_km=12.0,
        ),
        payment_method=payment_method,
        delivery_time_range="10:24 - 10:44",
        placed_at=datetime.now(UTC),
    )
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def outcome():
    """Container for what the When step produced: the verdict or the rejection."""
    return {"verdict": None, "rejection": None}


# ---------------------------------------------------------------------------
# Given steps: orders at each point of the lifecycle
# ---------------------------------------------------------------------------
@given("a pending cash order", target_fixture="order")
def pending_cash_order():
    return _place("cash_on_delivery")


@given("an order awaiting card payment", target_fixture="order")
def order_awaiting_payment():
    return _place("credit_card")


@given("an order ready for delivery", target_fixture="order")
def order_ready_for_delivery():
    order = _place("cash_on_delivery")
    order.transition_to("confirmed", "admin")
    order.transition_to("ready-for-delivery", "admin")
    order._events.clear()
    return order


@given(parsers.cfparse('an order out for delivery with "{partner}"'), target_fixture="order")
def order_out_for_delivery(partner):
    order = order_ready_for_delivery()
    order.transition_to("out-for-delivery", "delivery-partner", actor_id=partner)
    order._events.clear()
    return order


@given(parsers.cfparse('an order delivered by "{partner}"'), target_fixture="order")
def order_delivered(partner):
    order = order_out_for_delivery(partner)
    order.transition_to("delivered", "delivery-partner", actor_id=partner)
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps: Order
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def payment_status_is(order, status):
    assert order.payment_status == status


@then("the transition is rejected")
def transition_rejected(outcome):
    assert isinstance(outcome["rejection"], TransitionRejected)


@then(parsers.cfparse('the transition is rejected with "{reason}"'))
def transition_rejected_with(outcome, reason):
    assert isinstance(outcome["rejection"], TransitionRejected)
    assert outcome["rejection"].message == reason


@then("stock and cart are to be restored")
def unwind_effects(outcome):
    assert outcome["verdict"].effects >= {Effect.RESTORE_STOCK, Effect.RESTORE_CART}


@then(parsers.cfparse("an {event_type} order event is raised"))
def an_order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(isinstance(e, event_cls) for e in order._events)


@then(parsers.cfparse("a {event_type} order event is raised"))
def a_order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"
