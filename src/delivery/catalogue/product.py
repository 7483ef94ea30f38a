"""Product aggregate — the slice of the catalog the order pipeline touches.

Only price and stock matter here. Catalog administration (taxonomy, media,
search) lives outside the order core.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Integer, String

from delivery.catalogue.events import StockReserved, StockRestored
from delivery.domain import delivery
from delivery.errors import InsufficientStock


@delivery.aggregate
class Product:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)

    def reserve(self, quantity, reference=None):
        """Take ``quantity`` units out of stock. Stock never goes negative."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if quantity > self.stock:
            raise InsufficientStock(f"Insufficient stock for {self.name}: {self.stock} left, {quantity} requested")

        self.stock -= quantity
        self.raise_(
            StockReserved(
                product_id=str(self.id),
                quantity=quantity,
                remaining_stock=self.stock,
                reference=reference,
                reserved_at=datetime.now(UTC),
            )
        )

    def restore(self, quantity, reference=None):
        """Return ``quantity`` units to stock (order cancelled or payment failed)."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        self.stock += quantity
        self.raise_(
            StockRestored(
                product_id=str(self.id),
                quantity=quantity,
                new_stock=self.stock,
                reference=reference,
                restored_at=datetime.now(UTC),
            )
        )
