"""Cart item management — commands and handler.

A cart is created on the first item a customer adds. After every change
the cart total is recomputed from current catalogue prices.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from delivery.cart.cart import Cart
from delivery.catalogue.product import Product
from delivery.domain import delivery
from delivery.errors import NotFound, ProductNotFound

logger = structlog.get_logger(__name__)


@delivery.command(part_of="Cart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@delivery.command(part_of="Cart")
class UpdateCartQuantity:
    """Set a line's quantity; zero removes it."""

    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=0)


@delivery.command(part_of="Cart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)


def reprice(cart: Cart) -> None:
    """Recompute the cart total from the catalogue's current prices."""
    repo = current_domain.repository_for(Product)
    prices = {}
    for item in cart.items:
        try:
            prices[str(item.product_id)] = repo.get(str(item.product_id)).price
        except ObjectNotFoundError:
            logger.warning(
                "Cart references a missing product",
                cart_id=str(cart.id),
                product_id=str(item.product_id),
            )
    cart.reprice(prices)


def restore_to_cart(customer_id, order_id, items) -> Cart:
    """Put an unfulfilled order's items back into the customer's cart.

    Merges into the existing cart, or creates one when the customer has none.
    """
    repo = current_domain.repository_for(Cart)
    cart = repo.for_customer(customer_id) or Cart.create(customer_id=customer_id)
    cart.restore_items(order_id, items)
    reprice(cart)
    repo.add(cart)
    return cart


def _existing_cart(customer_id) -> Cart:
    cart = current_domain.repository_for(Cart).for_customer(customer_id)
    if cart is None:
        raise NotFound("Cart not found")
    return cart


@delivery.command_handler(part_of=Cart)
class CartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        try:
            product = current_domain.repository_for(Product).get(str(command.product_id))
        except ObjectNotFoundError:
            raise ProductNotFound(f"Product {command.product_id} not found") from None
        if not product.is_active:
            raise ProductNotFound(f"{product.name} is no longer available")

        repo = current_domain.repository_for(Cart)
        cart = repo.for_customer(command.customer_id) or Cart.create(customer_id=command.customer_id)
        cart.add_item(command.product_id, command.quantity)
        reprice(cart)
        repo.add(cart)
        return str(cart.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        cart = _existing_cart(command.customer_id)
        cart.update_item_quantity(command.product_id, command.quantity)
        reprice(cart)
        current_domain.repository_for(Cart).add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = _existing_cart(command.customer_id)
        cart.remove_item(command.product_id)
        reprice(cart)
        current_domain.repository_for(Cart).add(cart)
