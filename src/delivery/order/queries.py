"""Order reads and charge previews.

Previews price the customer's current cart exactly as placing the order
would, but write nothing: promo usage is only recorded by a placed order.
"""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from delivery.cart.cart import Cart
from delivery.errors import EmptyCart, OrderNotFound
from delivery.order.order import Order
from delivery.order.placement import quote


def get_order(order_id, customer_id=None) -> Order:
    """Load an order. With ``customer_id``, someone else's order looks missing."""
    try:
        order = current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise OrderNotFound() from None
    if customer_id is not None and str(order.customer_id) != str(customer_id):
        raise OrderNotFound()
    return order


def list_orders(customer_id) -> list[Order]:
    """The customer's orders, newest first."""
    return current_domain.repository_for(Order).for_customer(customer_id)


def _cart_rows(customer_id) -> list[dict]:
    cart = current_domain.repository_for(Cart).for_customer(customer_id)
    if cart is None or cart.is_empty:
        raise EmptyCart()
    return cart.snapshot()


def preview_charges(customer_id, promo_code=None, tip_amount=0.0):
    """Full charge breakdown of the customer's cart, with the promo code if given."""
    charges, context = quote(customer_id, _cart_rows(customer_id), promo_code=promo_code, tip_amount=tip_amount)
    return charges, context["center"]


def apply_promo_code(customer_id, promo_code) -> dict:
    """What ``promo_code`` would save on the customer's cart right now."""
    charges, _ = quote(customer_id, _cart_rows(customer_id), promo_code=promo_code)
    return {
        "promo_code": promo_code.strip().upper(),
        "discount": float(charges.discount),
        "scoped_property": charges.scoped_property,
        "original_amount": float(charges.original_amount),
        "new_amount": float(charges.final_amount),
    }
