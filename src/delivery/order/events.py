"""Domain events for the Order aggregate.

Every event is a versioned, immutable fact. They are persisted to the
event store when the unit of work that raised them commits.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from delivery.domain import delivery


@delivery.event(part_of="Order")
class OrderPlaced:
    """A cart was converted into a priced, routed order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    fulfillment_center_id = Identifier(required=True)
    status = String(required=True, max_length=30)
    payment_method = String(required=True, max_length=50)
    items = Text(required=True)  # JSON: list of {product_id, quantity, unit_price}
    final_amount = Float(required=True)
    promo_code = String(max_length=50)
    placed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    from_status = String(required=True, max_length=30)
    to_status = String(required=True, max_length=30)
    changed_by_role = String(required=True, max_length=30)
    changed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class DeliveryPartnerAssigned:
    __version__ = 1

    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)
    assigned_at = DateTime(required=True)


@delivery.event(part_of="Order")
class DeliveryPartnerReleased:
    """The partner handed the order back; it is ready for another pickup."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)
    released_at = DateTime(required=True)


@delivery.event(part_of="Order")
class PaymentIntentCreated:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String(required=True, max_length=255)
    amount = Float(required=True)
    currency = String(required=True, max_length=3)
    created_at = DateTime(required=True)


@delivery.event(part_of="Order")
class PaymentConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String(max_length=255)
    confirmed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class PaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String(max_length=255)
    reason = String(max_length=500)
    failed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    cancelled_by = String(required=True, max_length=30)
    reason = String(max_length=500)
    cancelled_at = DateTime(required=True)


@delivery.event(part_of="Order")
class RefundRequired:
    """The provider holds money for an order that ended without being delivered."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String(max_length=255)
    status = String(required=True, max_length=30)
    amount = Float(required=True)
    flagged_at = DateTime(required=True)
