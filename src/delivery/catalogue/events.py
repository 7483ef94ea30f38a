"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from delivery.domain import delivery


@delivery.event(part_of="Product")
class StockReserved:
    """Stock was taken out of the catalog to fill an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining_stock = Integer(required=True)
    reference = String(max_length=255)
    reserved_at = DateTime(required=True)


@delivery.event(part_of="Product")
class StockRestored:
    """Stock previously reserved for an order was put back."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_stock = Integer(required=True)
    reference = String(max_length=255)
    restored_at = DateTime(required=True)
