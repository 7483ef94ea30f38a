"""Order aggregate — an immutable, priced and routed snapshot of a cart.

Once placed, the customer, order number, items, delivery address, origin
fulfillment center and charges never change. What moves is the status,
driven by the transition table in ``delivery.order.transitions``, plus the
payment fields and the delivery-partner binding.

``status_history`` is append-only. Each record carries a sequence number,
and the latest record always names the current status.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from delivery import config
from delivery.domain import delivery
from delivery.errors import TransitionRejected
from delivery.order.events import (
    DeliveryPartnerAssigned,
    DeliveryPartnerReleased,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    PaymentConfirmed,
    PaymentFailed,
    PaymentIntentCreated,
    RefundRequired,
)
from delivery.order.transitions import TERMINAL_STATES, Actor, Effect, OrderStatus, can_transition


class PaymentMethod(Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    CREDIT_CARD_ON_DELIVERY = "credit_card_on_delivery"
    CREDIT_CARD = "credit_card"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@delivery.value_object(part_of="Order")
class DeliveryAddress:
    """Where the order goes, copied from the customer's default address at checkout."""

    address_details = String(required=True, max_length=500)
    floor = String(max_length=20)
    apartment = String(max_length=20)
    phone_number = String(max_length=30)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)


@delivery.value_object(part_of="Order")
class OrderCharges:
    """The charge breakdown locked in when the order was placed."""

    product_subtotal = Float(required=True, min_value=0.0)
    delivery_fee = Float(required=True, min_value=0.0)
    service_fee = Float(required=True, min_value=0.0)
    distance_km = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    discount_scope = String(max_length=20)
    tip_amount = Float(default=0.0, min_value=0.0)
    original_amount = Float(required=True, min_value=0.0)
    final_amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="usd")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@delivery.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)


@delivery.entity(part_of="Order")
class StatusRecord:
    status = String(required=True, choices=OrderStatus)
    changed_at = DateTime(required=True)
    sequence = Integer(required=True, min_value=1)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@delivery.aggregate
class Order:
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    customer_email = String(max_length=254)
    items = HasMany(OrderItem)
    delivery_address = ValueObject(DeliveryAddress)
    fulfillment_center_id = Identifier(required=True)
    charges = ValueObject(OrderCharges)
    promo_code = String(max_length=50)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_intent_id = String(max_length=255)
    refund_due = Boolean(default=False)
    status = String(choices=OrderStatus, default=OrderStatus.AWAITING_PAYMENT.value)
    status_history = HasMany(StatusRecord)
    delivery_partner_id = Identifier()
    delivery_time_range = String(max_length=20)
    order_notes = Text()
    delivered_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def latest_history_entry_matches_status(self):
        if not self.status_history:
            return
        latest = max(self.status_history, key=lambda record: record.sequence)
        if latest.status != self.status:
            raise ValidationError({"status_history": ["Latest history entry must match the current status"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        order_number,
        lines,
        delivery_address,
        fulfillment_center_id,
        charges,
        payment_method,
        delivery_time_range,
        customer_email=None,
        promo_code=None,
        order_notes=None,
        placed_at=None,
    ):
        """Create an order from priced ``lines`` of ``{product_id, name, quantity, unit_price}``.

        ``charges`` is a ``ChargeBreakdown``. Orders paid by card online start
        in ``awaiting-payment``; every other payment method starts ``pending``.
        """
        now = placed_at or datetime.now(UTC)
        initial = (
            OrderStatus.AWAITING_PAYMENT
            if payment_method == PaymentMethod.CREDIT_CARD.value
            else OrderStatus.PENDING
        )

        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            customer_email=customer_email,
            delivery_address=DeliveryAddress(**delivery_address),
            fulfillment_center_id=fulfillment_center_id,
            charges=OrderCharges(
                product_subtotal=float(charges.product_subtotal),
                delivery_fee=float(charges.delivery_fee),
                service_fee=float(charges.service_fee),
                distance_km=charges.distance_km,
                discount=float(charges.discount),
                discount_scope=charges.scoped_property,
                tip_amount=float(charges.tip),
                original_amount=float(charges.original_amount),
                final_amount=float(charges.final_amount),
                currency=config.CURRENCY,
            ),
            promo_code=promo_code,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            status=initial.value,
            delivery_time_range=delivery_time_range,
            order_notes=order_notes,
            created_at=now,
            updated_at=now,
        )

        with atomic_change(order):
            for line in lines:
                order.add_items(
                    OrderItem(
                        product_id=line["product_id"],
                        name=line.get("name"),
                        quantity=line["quantity"],
                        unit_price=float(line["unit_price"]),
                    )
                )
            order.add_status_history(StatusRecord(status=initial.value, changed_at=now, sequence=1))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                fulfillment_center_id=str(fulfillment_center_id),
                status=initial.value,
                payment_method=payment_method,
                items=json.dumps(order.line_items(with_prices=True)),
                final_amount=float(charges.final_amount),
                promo_code=promo_code,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATES

    def history(self) -> list:
        return sorted(self.status_history, key=lambda record: record.sequence)

    def line_items(self, with_prices=False) -> list[dict]:
        rows = []
        for item in self.items:
            row = {"product_id": str(item.product_id), "quantity": item.quantity}
            if with_prices:
                row["unit_price"] = item.unit_price
            rows.append(row)
        return rows

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def transition_to(self, requested, role, actor_id=None, reason=None):
        """Apply one transition, or raise ``TransitionRejected`` leaving the order untouched.

        Returns the accepted verdict so the caller can carry out the effects
        that reach beyond this aggregate (stock and cart restoration).
        """
        requested = OrderStatus(requested)
        role = Actor(role)
        verdict = can_transition(self.status, requested, role)
        if not verdict.allowed:
            raise TransitionRejected(verdict.reason)

        self._check_partner(verdict.effects, requested, role, actor_id)

        now = datetime.now(UTC)
        previous = self.status
        released_partner = None

        with atomic_change(self):
            self.status = requested.value
            self.add_status_history(
                StatusRecord(
                    status=requested.value,
                    changed_at=now,
                    sequence=len(self.status_history) + 1,
                )
            )

            if Effect.BIND_PARTNER in verdict.effects and not self.delivery_partner_id:
                self.delivery_partner_id = actor_id
            if Effect.RELEASE_PARTNER in verdict.effects:
                released_partner = self.delivery_partner_id
                self.delivery_partner_id = None
            if Effect.STAMP_DELIVERED in verdict.effects:
                self.delivered_at = now
            self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                from_status=previous,
                to_status=requested.value,
                changed_by_role=role.value,
                changed_at=now,
            )
        )
        if Effect.BIND_PARTNER in verdict.effects:
            self.raise_(
                DeliveryPartnerAssigned(
                    order_id=str(self.id),
                    delivery_partner_id=str(self.delivery_partner_id),
                    assigned_at=now,
                )
            )
        if released_partner:
            self.raise_(
                DeliveryPartnerReleased(
                    order_id=str(self.id),
                    delivery_partner_id=str(released_partner),
                    released_at=now,
                )
            )
        if requested == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    customer_id=str(self.customer_id),
                    cancelled_by=role.value,
                    reason=reason,
                    cancelled_at=now,
                )
            )
        return verdict

    def _check_partner(self, effects, requested, role, actor_id):
        if role != Actor.DELIVERY_PARTNER:
            return
        bound = str(self.delivery_partner_id) if self.delivery_partner_id else None

        if Effect.BIND_PARTNER in effects:
            if actor_id is None:
                raise TransitionRejected("A delivery partner must identify themselves to pick up an order")
            if bound and bound != str(actor_id):
                raise TransitionRejected("Order is already assigned to another delivery partner")
        elif bound and bound != str(actor_id):
            raise TransitionRejected(f"Only the assigned delivery partner can move this order to {requested.value}")

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment_intent(self, intent_id, amount, currency):
        self.payment_intent_id = intent_id
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PaymentIntentCreated(
                order_id=str(self.id),
                payment_intent_id=intent_id,
                amount=amount,
                currency=currency,
                created_at=self.updated_at,
            )
        )

    def mark_paid(self) -> bool:
        """Record a successful payment. Returns False when it was already recorded."""
        if self.is_paid:
            return False

        self.payment_status = PaymentStatus.PAID.value
        if self.status == OrderStatus.AWAITING_PAYMENT.value:
            self.transition_to(OrderStatus.PENDING, Actor.SYSTEM)

        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                payment_intent_id=self.payment_intent_id,
                confirmed_at=datetime.now(UTC),
            )
        )
        return True

    def mark_payment_failed(self, reason=None):
        """Record a failed payment. Returns the transition verdict, or None if nothing changed."""
        if self.payment_status == PaymentStatus.FAILED.value or self.is_paid:
            return None

        self.payment_status = PaymentStatus.FAILED.value
        verdict = None
        if self.status == OrderStatus.AWAITING_PAYMENT.value:
            verdict = self.transition_to(OrderStatus.FAILED, Actor.SYSTEM, reason=reason)

        self.raise_(
            PaymentFailed(
                order_id=str(self.id),
                payment_intent_id=self.payment_intent_id,
                reason=reason,
                failed_at=datetime.now(UTC),
            )
        )
        return verdict

    def flag_refund(self) -> bool:
        """Record that money collected for this order must go back to the customer.

        Returns False when the refund was already flagged.
        """
        if self.refund_due:
            return False

        self.refund_due = True
        self.updated_at = datetime.now(UTC)
        self.raise_(
            RefundRequired(
                order_id=str(self.id),
                payment_intent_id=self.payment_intent_id,
                status=self.status,
                amount=self.charges.final_amount,
                flagged_at=self.updated_at,
            )
        )
        return True

    def mark_payment_cancelled(self, role=Actor.SYSTEM, reason=None):
        """Cancel the order together with its payment.

        Returns the transition verdict, or None if the order was already
        cancelled by an earlier notification.
        """
        if self.status == OrderStatus.CANCELLED.value:
            return None

        verdict = self.transition_to(OrderStatus.CANCELLED, role, reason=reason)
        if not self.is_paid:
            self.payment_status = PaymentStatus.CANCELLED.value
        return verdict


@delivery.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number: str):
        matches = self._dao.query.filter(order_number=order_number).all().items
        return matches[0] if matches else None

    def find_by_intent(self, intent_id: str):
        matches = self._dao.query.filter(payment_intent_id=intent_id).all().items
        return matches[0] if matches else None

    def for_customer(self, customer_id) -> list:
        orders = self._dao.query.filter(customer_id=str(customer_id)).limit(None).all().items
        return sorted(orders, key=lambda order: order.created_at, reverse=True)
