"""Application tests for placements that race on the same cart or stock.

Both placements load their cart and products before either commits. The
first commit wins; the other unit of work is rejected on the stale product
version and leaves nothing behind.
"""

import itertools
import threading

from delivery.cart.cart import Cart
from delivery.catalogue.product import Product
from delivery.customer.customer import Customer
from delivery.domain import delivery
from delivery.order import placement
from delivery.order.order import Order
from delivery.order.placement import PlaceOrder
from protean import current_domain
from protean.exceptions import ExpectedVersionError


def _race(monkeypatch, *commands):
    """Process ``commands`` on separate threads, all past their reads before any writes."""
    all_loaded = threading.Barrier(len(commands), timeout=10)
    arrivals = itertools.count()
    draw_number = placement.generate_order_number

    def generate_after_everyone_loaded():
        if next(arrivals) < len(commands):
            all_loaded.wait()
        return draw_number()

    monkeypatch.setattr(placement, "generate_order_number", generate_after_everyone_loaded)

    outcomes = [None] * len(commands)

    def run(slot, command):
        with delivery.domain_context():
            try:
                outcomes[slot] = current_domain.process(command, asynchronous=False)
            except Exception as exc:
                outcomes[slot] = exc

    threads = [threading.Thread(target=run, args=(slot, command)) for slot, command in enumerate(commands)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return outcomes


def _split(outcomes):
    placed = [o for o in outcomes if isinstance(o, str)]
    failed = [o for o in outcomes if isinstance(o, Exception)]
    return placed, failed


def test_same_cart_places_exactly_one_order(monkeypatch, center, customer, product, fill_cart, push):
    fill_cart(customer, product, 2)
    command = PlaceOrder(customer_id=str(customer.id), payment_method="cash_on_delivery")

    placed, failed = _split(_race(monkeypatch, command, command))

    assert len(placed) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], ExpectedVersionError)

    assert len(current_domain.repository_for(Order).for_customer(customer.id)) == 1
    assert current_domain.repository_for(Product).get(product.id).stock == 8
    assert current_domain.repository_for(Cart).for_customer(customer.id) is None


def test_last_units_go_to_one_customer(monkeypatch, center, customer, make_product, fill_cart, push):
    last_two = make_product(name="Sourdough", price=10.0, stock=2)
    neighbour = Customer(email="lee@example.com")
    neighbour.add_address("14 North Road", latitude=customer.default_address().latitude, longitude=0.0)
    current_domain.repository_for(Customer).add(neighbour)

    fill_cart(customer, last_two, 2)
    fill_cart(neighbour, last_two, 2)

    placed, failed = _split(
        _race(
            monkeypatch,
            PlaceOrder(customer_id=str(customer.id), payment_method="cash_on_delivery"),
            PlaceOrder(customer_id=str(neighbour.id), payment_method="cash_on_delivery"),
        )
    )

    assert len(placed) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], ExpectedVersionError)
    assert current_domain.repository_for(Product).get(last_two.id).stock == 0
