"""PromoCode aggregate — a redeemable discount on one charge component.

Codes are administered outside the order core. The pipeline reads them,
checks them and records one use per order placed with them. Usage is
capped per customer: the ledger keeps one redemption row per customer.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from delivery.domain import delivery
from delivery.pricing.money import to_money
from delivery.promotion.events import PromoCodeRedeemed


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FLAT = "flat"


class AppliesTo(Enum):
    PRODUCT = "product"
    SERVICE = "service"
    DELIVERY = "delivery"


def normalize_code(code: str) -> str:
    return code.strip().upper()


@delivery.entity(part_of="PromoCode")
class Redemption:
    customer_id = Identifier(required=True)
    count = Integer(default=0, min_value=0)


@delivery.aggregate
class PromoCode:
    code = String(required=True, max_length=50)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True, min_value=0.0)
    min_order_value = Float(default=0.0, min_value=0.0)
    expires_at = DateTime(required=True)
    usage_limit = Integer(default=1, min_value=0)
    applies_to = String(required=True, choices=AppliesTo)
    redemptions = HasMany(Redemption)

    @classmethod
    def create(cls, code, discount_type, discount_value, expires_at, applies_to, min_order_value=0.0, usage_limit=1):
        return cls(
            code=normalize_code(code),
            discount_type=discount_type,
            discount_value=discount_value,
            min_order_value=min_order_value,
            expires_at=expires_at,
            usage_limit=usage_limit,
            applies_to=applies_to,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return now >= expires_at

    def usage_for(self, customer_id) -> int:
        return sum(r.count for r in self.redemptions if str(r.customer_id) == str(customer_id))

    def discount_on(self, base) -> Decimal:
        """Discount this code grants on ``base``, never more than ``base``."""
        base = to_money(base)
        if self.discount_type == DiscountType.PERCENTAGE.value:
            amount = base * Decimal(str(self.discount_value)) / Decimal(100)
        else:
            amount = Decimal(str(self.discount_value))
        return min(to_money(amount), base)

    def record_usage(self, customer_id, order_id):
        redemption = next(
            (r for r in self.redemptions if str(r.customer_id) == str(customer_id)),
            None,
        )
        if redemption is None:
            redemption = Redemption(customer_id=customer_id, count=1)
            self.add_redemptions(redemption)
        else:
            redemption.count += 1

        self.raise_(
            PromoCodeRedeemed(
                promo_code_id=str(self.id),
                code=self.code,
                customer_id=str(customer_id),
                order_id=str(order_id),
                usage_count=self.usage_for(customer_id),
                redeemed_at=datetime.now(UTC),
            )
        )


@delivery.repository(part_of=PromoCode)
class PromoCodeRepository:
    def find_by_code(self, code: str):
        matches = self._dao.query.filter(code=normalize_code(code)).all().items
        return matches[0] if matches else None
