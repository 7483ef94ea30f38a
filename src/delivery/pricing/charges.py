"""Pricing engine — the charge breakdown of a cart delivered to a point.

Every component is computed fresh from current product prices and the
delivery distance. Identical inputs always produce identical outputs: all
arithmetic happens in ``Decimal`` and each component is rounded to cents
before it is combined with another.
"""

from dataclasses import dataclass, replace
from decimal import Decimal

from delivery import config
from delivery.geo.locator import GeoPoint, distance_km
from delivery.pricing.money import to_money

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class ChargeBreakdown:
    product_subtotal: Decimal
    delivery_fee: Decimal
    service_fee: Decimal
    distance_km: float = 0.0
    discount: Decimal = ZERO
    scoped_property: str | None = None
    tip: Decimal = ZERO

    @property
    def original_amount(self) -> Decimal:
        return to_money(self.product_subtotal + self.delivery_fee + self.service_fee)

    @property
    def final_amount(self) -> Decimal:
        # The tip is added after the discount and is never discounted itself.
        return to_money(self.original_amount - self.discount + self.tip)

    def component(self, scoped_property: str) -> Decimal:
        """The charge a promotion scoped to ``scoped_property`` discounts."""
        return {
            "product": self.product_subtotal,
            "delivery": self.delivery_fee,
            "service": self.service_fee,
        }[scoped_property]

    def with_discount(self, amount, scoped_property: str) -> "ChargeBreakdown":
        capped = min(to_money(amount), self.component(scoped_property))
        return replace(self, discount=max(capped, ZERO), scoped_property=scoped_property)

    def with_tip(self, tip) -> "ChargeBreakdown":
        return replace(self, tip=to_money(tip or 0))

    def as_dict(self) -> dict:
        return {
            "product_subtotal": float(self.product_subtotal),
            "delivery_fee": float(self.delivery_fee),
            "service_fee": float(self.service_fee),
            "distance_km": self.distance_km,
            "discount": {
                "amount": float(self.discount),
                "scoped_property": self.scoped_property,
            },
            "tip": float(self.tip),
            "original_amount": float(self.original_amount),
            "final_amount": float(self.final_amount),
        }


def product_subtotal(lines) -> Decimal:
    """Sum of ``quantity × unit_price`` over ``lines`` of ``{unit_price, quantity}``."""
    total = ZERO
    for line in lines:
        total += to_money(line["unit_price"]) * int(line["quantity"])
    return to_money(total)


def delivery_fee(km: float) -> Decimal:
    return to_money(Decimal(str(config.BASE_DELIVERY_FEE)) + Decimal(str(km)) * Decimal(str(config.PER_KM_RATE)))


def service_fee(km: float) -> Decimal:
    fee = Decimal(str(config.BASE_SERVICE_FEE))
    if km > config.LONG_DISTANCE_THRESHOLD_KM:
        fee += Decimal(str(config.LONG_DISTANCE_SURCHARGE))
    return to_money(fee)


def price(lines, delivery_point: GeoPoint, center_point: GeoPoint) -> ChargeBreakdown:
    """Price ``lines`` for delivery from ``center_point`` to ``delivery_point``."""
    km = distance_km(delivery_point, center_point)
    return ChargeBreakdown(
        product_subtotal=product_subtotal(lines),
        delivery_fee=delivery_fee(km),
        service_fee=service_fee(km),
        distance_km=km,
    )
