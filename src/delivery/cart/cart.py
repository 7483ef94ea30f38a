"""Cart aggregate — the mutable basket a customer turns into an order.

A customer owns at most one cart. Each product appears on one line only;
adding a product already in the cart increases that line's quantity.
``total_price`` is derived: it is recomputed from current catalogue prices
after every mutation (see ``reprice``) and never trusted at checkout.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer

from delivery.cart.events import (
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartRestored,
)
from delivery.domain import delivery
from delivery.pricing.money import to_money


@delivery.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@delivery.aggregate
class Cart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    total_price = Float(default=0.0, min_value=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, total_price=0.0, created_at=now, updated_at=now)

    def _line_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def snapshot(self) -> list[dict]:
        """Plain ``{product_id, quantity}`` rows for pricing and order assembly."""
        return [{"product_id": str(i.product_id), "quantity": i.quantity} for i in self.items]

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = self._line_for(product_id)
        if existing:
            existing.quantity += quantity
        else:
            self.add_items(CartItem(product_id=product_id, quantity=quantity))

        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(product_id),
                quantity=quantity,
            )
        )

    def update_item_quantity(self, product_id, quantity):
        """Set a line's quantity. Zero removes the line."""
        item = self._line_for(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Product is not in the cart"]})

        if quantity <= 0:
            self.remove_item(product_id)
            return

        previous_quantity = item.quantity
        item.quantity = quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id):
        item = self._line_for(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Product is not in the cart"]})

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))

    def restore_items(self, order_id, items):
        """Merge the lines of an unfulfilled order back into this cart."""
        for line in items:
            existing = self._line_for(line["product_id"])
            if existing:
                existing.quantity += line["quantity"]
            else:
                self.add_items(CartItem(product_id=line["product_id"], quantity=line["quantity"]))

        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartRestored(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                order_id=str(order_id),
                items=json.dumps(items),
            )
        )

    # -------------------------------------------------------------------
    # Derived total
    # -------------------------------------------------------------------
    def reprice(self, unit_prices):
        """Recompute ``total_price`` from ``{product_id: unit_price}``.

        Lines whose product is missing from ``unit_prices`` contribute nothing.
        """
        total = sum(
            (to_money(unit_prices.get(str(i.product_id), 0.0)) * i.quantity for i in self.items),
            start=to_money(0),
        )
        self.total_price = float(to_money(total))


@delivery.repository(part_of=Cart)
class CartRepository:
    def for_customer(self, customer_id):
        """The customer's cart, or None if they have none."""
        carts = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return carts[0] if carts else None

    def remove(self, cart) -> None:
        """Delete a consumed cart within the current unit of work."""
        self._dao.delete(cart)
