"""Order assembly — commands and handler.

Turns a cart (or a previous order's items) into a placed order. The whole
pipeline runs inside the unit of work ``current_domain.process`` opens for
the command, so either every write lands or none does:

1. load the cart, which must have items
2. resolve the customer's default delivery address, which must have coordinates
3. find the nearest fulfillment center
4. price the items at current catalogue prices and apply the promo code
5. add the tip
6. draw a unique order number
7. estimate the delivery window
8. create the order with its first status record
9. reserve stock for every line
10. consume the cart

Stock for all lines is reserved on the loaded products before anything is
persisted, so a shortage on any line aborts the order with nothing written.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from delivery import config
from delivery.cart.cart import Cart
from delivery.catalogue.product import Product
from delivery.customer.customer import Customer
from delivery.domain import delivery
from delivery.errors import (
    BelowMinimumOrder,
    CustomerNotFound,
    EmptyCart,
    InvalidDeliveryAddress,
    OrderNotFound,
    ProductNotFound,
)
from delivery.geo.locator import GeoPoint, nearest_center
from delivery.order.numbering import delivery_window, generate_order_number
from delivery.order.order import Order, PaymentMethod
from delivery.pricing.charges import price
from delivery.pricing.money import to_money
from delivery.promotion.promo_code import PromoCode
from delivery.promotion.validator import validate_and_scope

logger = structlog.get_logger(__name__)


@delivery.command(part_of="Order")
class PlaceOrder:
    """Convert the customer's cart into an order."""

    customer_id = Identifier(required=True)
    payment_method = String(required=True, choices=PaymentMethod)
    tip_amount = Float(default=0.0, min_value=0.0)
    promo_code = String(max_length=50)
    order_notes = Text()


@delivery.command(part_of="Order")
class Reorder:
    """Place a new order with the items of a previous one, at today's prices."""

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    payment_method = String(required=True, choices=PaymentMethod)
    tip_amount = Float(default=0.0, min_value=0.0)
    promo_code = String(max_length=50)
    order_notes = Text()


# ---------------------------------------------------------------------------
# Pipeline steps shared with the charge previews
# ---------------------------------------------------------------------------
def load_customer(customer_id) -> Customer:
    try:
        return current_domain.repository_for(Customer).get(str(customer_id))
    except ObjectNotFoundError:
        raise CustomerNotFound() from None


def delivery_point(customer: Customer):
    """The customer's default address and its coordinates."""
    address = customer.default_address()
    if address is None or not address.has_coordinates:
        raise InvalidDeliveryAddress()
    return address, GeoPoint(address.latitude, address.longitude)


def priced_lines(rows) -> tuple[list[dict], dict]:
    """Attach the current name and unit price to ``{product_id, quantity}`` rows.

    Returns the priced lines and the loaded products keyed by id.
    """
    repo = current_domain.repository_for(Product)
    lines, products = [], {}
    for row in rows:
        try:
            product = repo.get(str(row["product_id"]))
        except ObjectNotFoundError:
            raise ProductNotFound(f"Product {row['product_id']} not found") from None
        if not product.is_active:
            raise ProductNotFound(f"{product.name} is no longer available")

        products[str(product.id)] = product
        lines.append(
            {
                "product_id": str(product.id),
                "name": product.name,
                "quantity": row["quantity"],
                "unit_price": product.price,
            }
        )
    return lines, products


def quote(customer_id, rows, promo_code=None, tip_amount=0.0):
    """Price ``rows`` for delivery to the customer's default address.

    Returns ``(charges, context)`` where ``context`` carries what assembly
    needs next: the address, the center, the priced lines, the loaded
    products and the promo code applied, if any.
    """
    customer = load_customer(customer_id)
    address, point = delivery_point(customer)
    center = nearest_center(point)
    lines, products = priced_lines(rows)

    charges = price(lines, point, center.point)
    promo = None
    if promo_code:
        promo, charges = validate_and_scope(promo_code, charges, customer_id)
    charges = charges.with_tip(tip_amount)

    context = {
        "customer": customer,
        "address": address,
        "center": center,
        "lines": lines,
        "products": products,
        "promo": promo,
    }
    return charges, context


def _assemble(customer_id, rows, payment_method, tip_amount, promo_code, order_notes) -> Order:
    charges, context = quote(customer_id, rows, promo_code=promo_code, tip_amount=tip_amount)
    customer, address = context["customer"], context["address"]

    order_number = generate_order_number()
    placed_at = datetime.now(UTC)

    for line in context["lines"]:
        context["products"][line["product_id"]].reserve(line["quantity"], reference=order_number)

    order = Order.place(
        customer_id=customer_id,
        customer_email=customer.email,
        order_number=order_number,
        lines=context["lines"],
        delivery_address={
            "address_details": address.address_details,
            "floor": address.floor,
            "apartment": address.apartment,
            "phone_number": address.phone_number,
            "latitude": address.latitude,
            "longitude": address.longitude,
        },
        fulfillment_center_id=context["center"].id,
        charges=charges,
        payment_method=payment_method,
        delivery_time_range=delivery_window(charges.distance_km, placed_at),
        promo_code=context["promo"].code if context["promo"] else None,
        order_notes=order_notes,
        placed_at=placed_at,
    )

    current_domain.repository_for(Order).add(order)

    product_repo = current_domain.repository_for(Product)
    for product in context["products"].values():
        product_repo.add(product)

    if context["promo"]:
        context["promo"].record_usage(customer_id, order.id)
        current_domain.repository_for(PromoCode).add(context["promo"])

    logger.info(
        "Order placed",
        order_id=str(order.id),
        order_number=order_number,
        customer_id=str(customer_id),
        final_amount=order.charges.final_amount,
        status=order.status,
    )
    return order


@delivery.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.for_customer(command.customer_id)
        if cart is None or cart.is_empty:
            raise EmptyCart()

        order = _assemble(
            command.customer_id,
            cart.snapshot(),
            command.payment_method,
            command.tip_amount or 0.0,
            command.promo_code,
            command.order_notes,
        )

        cart_repo.remove(cart)
        return str(order.id)

    @handle(Reorder)
    def reorder(self, command):
        try:
            previous = current_domain.repository_for(Order).get(command.order_id)
        except ObjectNotFoundError:
            raise OrderNotFound() from None
        if str(previous.customer_id) != str(command.customer_id):
            raise OrderNotFound()

        rows = previous.line_items()
        if not rows:
            raise EmptyCart("The previous order has no items to reorder")

        # Gate on today's prices, before anything else is looked up
        lines, _ = priced_lines(rows)
        subtotal = sum((to_money(line["unit_price"]) * line["quantity"] for line in lines), start=to_money(0))
        if subtotal < to_money(config.MIN_REORDER_AMOUNT):
            raise BelowMinimumOrder(f"Reorders must be at least {config.MIN_REORDER_AMOUNT:.2f}")

        order = _assemble(
            command.customer_id,
            rows,
            command.payment_method,
            command.tip_amount or 0.0,
            command.promo_code,
            command.order_notes,
        )
        logger.info("Reordered", order_id=str(order.id), previous_order_id=str(previous.id))
        return str(order.id)
