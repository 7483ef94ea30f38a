"""Tests for promo code discounts and the validation order."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from delivery.errors import BelowMinimumOrder, InvalidOrExpiredPromo, UsageLimitReached
from delivery.pricing.charges import ChargeBreakdown
from delivery.promotion.events import PromoCodeRedeemed
from delivery.promotion.promo_code import PromoCode
from delivery.promotion.validator import validate_and_scope
from protean import current_domain


@pytest.fixture()
def charges():
    return ChargeBreakdown(
        product_subtotal=Decimal("20.00"),
        delivery_fee=Decimal("11.00"),
        service_fee=Decimal("3.50"),
        distance_km=12.0,
    )


class TestPromoCode:
    def test_code_is_normalized(self):
        promo = PromoCode.create(
            code="  save10 ",
            discount_type="percentage",
            discount_value=10,
            applies_to="product",
            expires_at=datetime.now(UTC) + timedelta(days=1),
        )
        assert promo.code == "SAVE10"

    def test_percentage_discount(self, make_promo):
        promo = make_promo(discount_type="percentage", discount_value=15)
        assert promo.discount_on(Decimal("20.00")) == Decimal("3.00")

    def test_flat_discount_never_exceeds_base(self, make_promo):
        promo = make_promo(discount_type="flat", discount_value=5)
        assert promo.discount_on(Decimal("3.50")) == Decimal("3.50")

    def test_naive_expiry_is_treated_as_utc(self, make_promo):
        promo = make_promo()
        promo.expires_at = datetime(2020, 1, 1)
        assert promo.is_expired()

    def test_record_usage_counts_per_customer(self, make_promo):
        promo = make_promo(usage_limit=3)
        promo.record_usage("cust-1", "order-1")
        promo.record_usage("cust-1", "order-2")
        promo.record_usage("cust-2", "order-3")

        assert promo.usage_for("cust-1") == 2
        assert promo.usage_for("cust-2") == 1
        assert len(promo.redemptions) == 2
        assert isinstance(promo._events[-1], PromoCodeRedeemed)


class TestValidateAndScope:
    def test_applies_to_product_subtotal(self, make_promo, charges):
        make_promo()

        promo, discounted = validate_and_scope("save10", charges, "cust-1")

        assert promo.code == "SAVE10"
        assert discounted.discount == Decimal("2.00")
        assert discounted.scoped_property == "product"
        assert discounted.final_amount == Decimal("32.50")

    def test_scoped_to_delivery_fee(self, make_promo, charges):
        make_promo(code="FREESHIP", discount_type="percentage", discount_value=100, applies_to="delivery")

        _, discounted = validate_and_scope("FREESHIP", charges, "cust-1")

        assert discounted.discount == Decimal("11.00")
        assert discounted.final_amount == Decimal("23.50")

    def test_unknown_code(self, charges):
        with pytest.raises(InvalidOrExpiredPromo):
            validate_and_scope("NOPE", charges, "cust-1")

    def test_expired_code(self, make_promo, charges):
        make_promo(expires_at=datetime.now(UTC) - timedelta(minutes=1))

        with pytest.raises(InvalidOrExpiredPromo):
            validate_and_scope("SAVE10", charges, "cust-1")

    def test_usage_limit_reached(self, make_promo, charges):
        promo = make_promo(usage_limit=1)
        promo.record_usage("cust-1", "order-1")
        current_domain.repository_for(PromoCode).add(promo)

        with pytest.raises(UsageLimitReached):
            validate_and_scope("SAVE10", charges, "cust-1")

    def test_usage_limit_is_per_customer(self, make_promo, charges):
        promo = make_promo(usage_limit=1)
        promo.record_usage("cust-1", "order-1")
        current_domain.repository_for(PromoCode).add(promo)

        _, discounted = validate_and_scope("SAVE10", charges, "cust-2")
        assert discounted.discount == Decimal("2.00")

    def test_below_minimum_order(self, make_promo, charges):
        make_promo(min_order_value=25.0)

        with pytest.raises(BelowMinimumOrder) as exc:
            validate_and_scope("SAVE10", charges, "cust-1")
        assert "25.00" in exc.value.message

    def test_minimum_is_inclusive(self, make_promo, charges):
        make_promo(min_order_value=20.0)

        _, discounted = validate_and_scope("SAVE10", charges, "cust-1")
        assert discounted.discount == Decimal("2.00")

    def test_expiry_is_checked_before_usage(self, make_promo, charges):
        promo = make_promo(expires_at=datetime.now(UTC) - timedelta(days=1), usage_limit=1)
        promo.record_usage("cust-1", "order-1")
        current_domain.repository_for(PromoCode).add(promo)

        with pytest.raises(InvalidOrExpiredPromo):
            validate_and_scope("SAVE10", charges, "cust-1")

    def test_usage_is_checked_before_minimum(self, make_promo, charges):
        promo = make_promo(min_order_value=100.0, usage_limit=1)
        promo.record_usage("cust-1", "order-1")
        current_domain.repository_for(PromoCode).add(promo)

        with pytest.raises(UsageLimitReached):
            validate_and_scope("SAVE10", charges, "cust-1")

    def test_validation_records_no_usage(self, make_promo, charges):
        make_promo()
        validate_and_scope("SAVE10", charges, "cust-1")

        stored = current_domain.repository_for(PromoCode).find_by_code("SAVE10")
        assert stored.usage_for("cust-1") == 0
