"""Money arithmetic: ``Decimal`` rounded half-up to cents."""

from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    if not isinstance(value, Decimal):
        # str() first so 0.1 stays 0.1 rather than its binary expansion
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_minor_units(value) -> int:
    """Amount in cents, as payment providers expect it."""
    return int(to_money(value) * 100)
