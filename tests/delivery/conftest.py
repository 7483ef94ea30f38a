"""Shared fixtures for the delivery domain.

The standard scene: one fulfillment center at (0, 0) and a customer whose
default address lies 12 km due north of it, with one registered device.
"""

import pytest
from protean.integrations.pytest import DomainFixture

# One degree of latitude on a sphere of radius 6371 km
KM_PER_DEGREE = 111.19492664455873
TWELVE_KM_NORTH = 12 / KM_PER_DEGREE


@pytest.fixture(scope="session")
def delivery_bed():
    from delivery.domain import delivery

    bed = DomainFixture(delivery)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(delivery_bed):
    from delivery.cache import init_cache, reset_cache
    from delivery.gateway import reset_gateway
    from delivery.push import reset_push

    reset_gateway()
    reset_push()
    init_cache()

    with delivery_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()

    reset_cache()


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
@pytest.fixture()
def gateway():
    from delivery.gateway import set_gateway
    from delivery.gateway.fake_adapter import FakeGateway

    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def push():
    from delivery.push import set_push
    from delivery.push.fake_push import FakePushAdapter

    fake = FakePushAdapter()
    set_push(fake)
    return fake


# ---------------------------------------------------------------------------
# Persisted scene
# ---------------------------------------------------------------------------
@pytest.fixture()
def center():
    from delivery.geo.center import FulfillmentCenter
    from protean import current_domain

    hub = FulfillmentCenter(name="Central", latitude=0.0, longitude=0.0)
    current_domain.repository_for(FulfillmentCenter).add(hub)
    return hub


@pytest.fixture()
def make_product():
    from delivery.catalogue.product import Product
    from protean import current_domain

    def _make(name="Orange Juice", price=10.0, stock=10, **extra):
        product = Product(name=name, price=price, stock=stock, **extra)
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture()
def product(make_product):
    return make_product()


@pytest.fixture()
def customer():
    from delivery.customer.customer import Customer
    from protean import current_domain

    person = Customer(email="dana@example.com", name="Dana")
    person.add_address("12 North Road", latitude=TWELVE_KM_NORTH, longitude=0.0, phone_number="555-0100")
    person.register_device_token("device-1")
    current_domain.repository_for(Customer).add(person)
    return person


@pytest.fixture()
def make_customer():
    from delivery.customer.customer import Customer
    from protean import current_domain

    def _make(email="sam@example.com", role="customer", tokens=()):
        person = Customer(email=email, role=role)
        for token in tokens:
            person.register_device_token(token)
        current_domain.repository_for(Customer).add(person)
        return person

    return _make


@pytest.fixture()
def admin(make_customer):
    return make_customer(email="ops@example.com", role="admin")


@pytest.fixture()
def rider(make_customer):
    return make_customer(email="rider@example.com", role="delivery-partner")


@pytest.fixture()
def second_rider(make_customer):
    return make_customer(email="rider2@example.com", role="delivery-partner")


@pytest.fixture()
def fill_cart():
    from delivery.cart.items import AddToCart
    from protean import current_domain

    def _fill(customer, product, quantity=2):
        return current_domain.process(
            AddToCart(customer_id=str(customer.id), product_id=str(product.id), quantity=quantity),
            asynchronous=False,
        )

    return _fill


@pytest.fixture()
def make_promo():
    from datetime import UTC, datetime, timedelta

    from delivery.promotion.promo_code import PromoCode
    from protean import current_domain

    def _make(
        code="SAVE10",
        discount_type="percentage",
        discount_value=10.0,
        applies_to="product",
        min_order_value=15.0,
        usage_limit=1,
        expires_at=None,
    ):
        promo = PromoCode.create(
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            applies_to=applies_to,
            min_order_value=min_order_value,
            usage_limit=usage_limit,
            expires_at=expires_at or datetime.now(UTC) + timedelta(days=7),
        )
        current_domain.repository_for(PromoCode).add(promo)
        return promo

    return _make


@pytest.fixture()
def place_order():
    from delivery.order.order import Order
    from delivery.order.placement import PlaceOrder
    from protean import current_domain

    def _place(customer, payment_method="cash_on_delivery", **kwargs):
        order_id = current_domain.process(
            PlaceOrder(customer_id=str(customer.id), payment_method=payment_method, **kwargs),
            asynchronous=False,
        )
        return current_domain.repository_for(Order).get(order_id)

    return _place


@pytest.fixture()
def placed_order(center, customer, product, fill_cart, place_order, push):
    """A cash order for two units of the product, already pending."""
    fill_cart(customer, product, 2)
    return place_order(customer)


@pytest.fixture()
def card_order(center, customer, product, fill_cart, place_order, push, gateway):
    """A card order for two units of the product, awaiting payment."""
    fill_cart(customer, product, 2)
    return place_order(customer, payment_method="credit_card")
