"""Application tests for placing orders from the cart."""

import pytest
from delivery.cart.cart import Cart
from delivery.catalogue.product import Product
from delivery.customer.customer import Customer
from delivery.errors import (
    EmptyCart,
    InsufficientStock,
    InvalidDeliveryAddress,
    NoFulfillmentCenterAvailable,
    UsageLimitReached,
)
from delivery.order.order import Order
from delivery.promotion.promo_code import PromoCode
from protean import current_domain


class TestPlaceOrder:
    def test_prices_and_routes_the_cart(self, placed_order, center, product):
        order = placed_order

        assert order.status == "pending"
        assert str(order.fulfillment_center_id) == str(center.id)
        assert order.charges.product_subtotal == 20.0
        assert order.charges.delivery_fee == 11.0
        assert order.charges.service_fee == 3.5
        assert order.charges.final_amount == 34.5
        assert str(order.items[0].product_id) == str(product.id)
        assert order.items[0].unit_price == 10.0
        assert order.order_number.startswith("QD")
        assert order.delivery_time_range

    def test_snapshots_the_default_address(self, placed_order, customer):
        assert placed_order.delivery_address.address_details == "12 North Road"
        assert placed_order.delivery_address.phone_number == "555-0100"
        assert placed_order.customer_email == "dana@example.com"

    def test_reserves_stock(self, placed_order, product):
        assert current_domain.repository_for(Product).get(product.id).stock == 8

    def test_consumes_the_cart(self, placed_order, customer):
        assert current_domain.repository_for(Cart).for_customer(customer.id) is None

    def test_placing_again_finds_an_empty_cart(self, placed_order, customer, place_order):
        with pytest.raises(EmptyCart):
            place_order(customer)

    def test_card_order_awaits_payment(self, card_order):
        assert card_order.status == "awaiting-payment"
        assert card_order.payment_status == "pending"

    def test_tip_and_notes(self, center, customer, product, fill_cart, place_order):
        fill_cart(customer, product, 2)
        order = place_order(customer, tip_amount=5.0, order_notes="Ring twice")

        assert order.charges.tip_amount == 5.0
        assert order.charges.original_amount == 34.5
        assert order.charges.final_amount == 39.5
        assert order.order_notes == "Ring twice"

    def test_prices_at_current_catalogue_price(self, center, customer, product, fill_cart, place_order):
        fill_cart(customer, product, 2)
        product.price = 12.5
        current_domain.repository_for(Product).add(product)

        order = place_order(customer)
        assert order.charges.product_subtotal == 25.0


class TestPlaceOrderWithPromo:
    def test_discount_applied_and_usage_recorded(self, center, customer, product, fill_cart, place_order, make_promo):
        make_promo()
        fill_cart(customer, product, 2)

        order = place_order(customer, promo_code="save10")

        assert order.promo_code == "SAVE10"
        assert order.charges.discount == 2.0
        assert order.charges.discount_scope == "product"
        assert order.charges.original_amount == 34.5
        assert order.charges.final_amount == 32.5

        promo = current_domain.repository_for(PromoCode).find_by_code("SAVE10")
        assert promo.usage_for(customer.id) == 1

    def test_usage_limit_blocks_second_use(self, center, customer, product, fill_cart, place_order, make_promo):
        make_promo(usage_limit=1)
        fill_cart(customer, product, 2)
        place_order(customer, promo_code="SAVE10")

        fill_cart(customer, product, 2)
        with pytest.raises(UsageLimitReached):
            place_order(customer, promo_code="SAVE10")

        # Nothing was written by the rejected order
        assert len(current_domain.repository_for(Order).for_customer(customer.id)) == 1
        assert current_domain.repository_for(Product).get(product.id).stock == 8


class TestPlaceOrderRejections:
    def test_no_cart(self, center, customer, place_order):
        with pytest.raises(EmptyCart):
            place_order(customer)

    def test_emptied_cart(self, center, customer, product, fill_cart, place_order):
        from delivery.cart.items import RemoveFromCart

        fill_cart(customer, product, 1)
        current_domain.process(
            RemoveFromCart(customer_id=str(customer.id), product_id=str(product.id)),
            asynchronous=False,
        )
        with pytest.raises(EmptyCart):
            place_order(customer)

    def test_address_without_coordinates(self, center, product, fill_cart, place_order):
        person = Customer(email="nogps@example.com")
        person.add_address("Unmapped Lane")
        current_domain.repository_for(Customer).add(person)
        fill_cart(person, product, 1)

        with pytest.raises(InvalidDeliveryAddress):
            place_order(person)

    def test_no_address_at_all(self, center, make_customer, product, fill_cart, place_order):
        person = make_customer()
        fill_cart(person, product, 1)

        with pytest.raises(InvalidDeliveryAddress):
            place_order(person)

    def test_no_center_in_range(self, customer, product, fill_cart, place_order):
        from delivery.geo.center import FulfillmentCenter

        current_domain.repository_for(FulfillmentCenter).add(
            FulfillmentCenter(name="Far Away", latitude=45.0, longitude=45.0)
        )
        fill_cart(customer, product, 1)

        with pytest.raises(NoFulfillmentCenterAvailable):
            place_order(customer)

    def test_insufficient_stock_writes_nothing(self, center, customer, make_product, fill_cart, place_order):
        plenty = make_product(name="Bread", price=3.0, stock=50)
        scarce = make_product(name="Milk", price=2.0, stock=1)
        fill_cart(customer, plenty, 5)
        fill_cart(customer, scarce, 2)

        with pytest.raises(InsufficientStock):
            place_order(customer)

        products = current_domain.repository_for(Product)
        assert products.get(plenty.id).stock == 50
        assert products.get(scarce.id).stock == 1
        assert current_domain.repository_for(Order).for_customer(customer.id) == []

        cart = current_domain.repository_for(Cart).for_customer(customer.id)
        assert len(cart.items) == 2

    def test_deactivated_product(self, center, customer, product, fill_cart, place_order):
        from delivery.errors import ProductNotFound

        fill_cart(customer, product, 1)
        product.is_active = False
        current_domain.repository_for(Product).add(product)

        with pytest.raises(ProductNotFound):
            place_order(customer)
