"""Application tests for customer cancellation and the unwind it triggers."""

import pytest
from delivery.cart.cart import Cart
from delivery.catalogue.product import Product
from delivery.errors import OrderNotFound, PaymentProviderError, TransitionRejected
from delivery.order.cancellation import CancelOrder
from delivery.order.order import Order
from delivery.order.status import UpdateOrderStatus
from protean import current_domain


def _cancel(order, customer, reason=None):
    return current_domain.process(
        CancelOrder(order_id=str(order.id), customer_id=str(customer.id), reason=reason),
        asynchronous=False,
    )


def _reload(order):
    return current_domain.repository_for(Order).get(order.id)


class TestCancelOrder:
    def test_cancels_pending_order(self, placed_order, customer):
        _cancel(placed_order, customer, reason="Ordered by mistake")

        order = _reload(placed_order)
        assert order.status == "cancelled"
        assert order.payment_status == "cancelled"
        assert [r.status for r in order.history()] == ["pending", "cancelled"]

    def test_restores_stock(self, placed_order, customer, product):
        _cancel(placed_order, customer)
        assert current_domain.repository_for(Product).get(product.id).stock == 10

    def test_restores_cart(self, placed_order, customer, product):
        _cancel(placed_order, customer)

        cart = current_domain.repository_for(Cart).for_customer(customer.id)
        assert cart.snapshot() == [{"product_id": str(product.id), "quantity": 2}]
        assert cart.total_price == 20.0

    def test_restore_merges_into_existing_cart(self, placed_order, customer, product, fill_cart):
        fill_cart(customer, product, 1)
        _cancel(placed_order, customer)

        cart = current_domain.repository_for(Cart).for_customer(customer.id)
        assert cart.items[0].quantity == 3

    def test_notifies_customer(self, placed_order, customer, push):
        _cancel(placed_order, customer)

        titles = [p["title"] for p in push.sent_pushes]
        assert "Order Cancelled" in titles

    def test_cannot_cancel_once_ready(self, placed_order, customer, product, admin):
        for status in ("confirmed", "ready-for-delivery"):
            current_domain.process(
                UpdateOrderStatus(order_id=str(placed_order.id), status=status, requested_by=str(admin.id)),
                asynchronous=False,
            )

        with pytest.raises(TransitionRejected):
            _cancel(placed_order, customer)

        assert _reload(placed_order).status == "ready-for-delivery"
        assert current_domain.repository_for(Product).get(product.id).stock == 8

    def test_cancelling_twice(self, placed_order, customer):
        _cancel(placed_order, customer)

        with pytest.raises(TransitionRejected):
            _cancel(placed_order, customer)

    def test_someone_elses_order(self, placed_order, make_customer):
        with pytest.raises(OrderNotFound):
            _cancel(placed_order, make_customer(email="stranger@example.com"))


class TestCancelCardOrder:
    def test_cancels_open_intent(self, card_order, customer, gateway):
        from delivery.payment.intents import InitiatePayment

        result = current_domain.process(
            InitiatePayment(order_id=str(card_order.id), customer_id=str(customer.id)),
            asynchronous=False,
        )
        _cancel(card_order, customer)

        assert gateway.intents[result["intent_id"]].status == "canceled"
        assert _reload(card_order).status == "cancelled"

    def test_provider_failure_aborts(self, card_order, customer, gateway, product):
        from delivery.payment.intents import InitiatePayment

        current_domain.process(
            InitiatePayment(order_id=str(card_order.id), customer_id=str(customer.id)),
            asynchronous=False,
        )
        gateway.configure(should_succeed=False)

        with pytest.raises(PaymentProviderError):
            _cancel(card_order, customer)

        assert _reload(card_order).status == "awaiting-payment"
        assert current_domain.repository_for(Product).get(product.id).stock == 8
