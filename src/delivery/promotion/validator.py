"""Promotion validator — is this code usable by this customer on this cart?

Checks run in a fixed order and stop at the first failure:

1. the code exists and has not expired (``InvalidOrExpiredPromo``)
2. the customer's own usage is below the cap (``UsageLimitReached``)
3. the product subtotal reaches the code's minimum (``BelowMinimumOrder``)

Validation never records usage. The caller does that once the order it
prices is actually placed.
"""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

from delivery.errors import BelowMinimumOrder, InvalidOrExpiredPromo, UsageLimitReached
from delivery.pricing.charges import ChargeBreakdown
from delivery.pricing.money import to_money
from delivery.promotion.promo_code import PromoCode
from delivery.utils.logging import get_logger

logger = get_logger(__name__)


def validate_and_scope(code: str, charges: ChargeBreakdown, customer_id, now: datetime | None = None):
    """Return ``(promo, charges_with_discount)`` or raise the first failing check."""
    promo = current_domain.repository_for(PromoCode).find_by_code(code) if code else None
    if promo is None or promo.is_expired(now or datetime.now(UTC)):
        raise InvalidOrExpiredPromo()

    if promo.usage_for(customer_id) >= promo.usage_limit:
        logger.info("Promo code usage limit reached", code=promo.code, customer_id=str(customer_id))
        raise UsageLimitReached()

    if charges.product_subtotal < to_money(promo.min_order_value):
        raise BelowMinimumOrder(
            f"Cart total does not meet the minimum order value of {promo.min_order_value:.2f} for this promo code"
        )

    base = charges.component(promo.applies_to)
    return promo, charges.with_discount(promo.discount_on(base), promo.applies_to)
