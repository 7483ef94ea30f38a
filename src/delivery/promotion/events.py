"""Domain events for the PromoCode aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from delivery.domain import delivery


@delivery.event(part_of="PromoCode")
class PromoCodeRedeemed:
    """A customer placed an order using the code."""

    __version__ = 1

    promo_code_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    customer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    usage_count = Integer(required=True)
    redeemed_at = DateTime(required=True)
