"""Order state machine — an explicit transition table.

    awaiting-payment → pending → confirmed → ready-for-delivery
        → out-for-delivery → delivered

``cancelled`` and ``failed`` branch off every non-terminal state, and a
delivery partner can hand an order back (out-for-delivery →
ready-for-delivery). ``delivered``, ``cancelled`` and ``failed`` are
terminal.

Each row of ``TRANSITIONS`` is keyed by ``(current, requested, role)`` and
lists the side effects an accepted transition carries. Anything without a
row is rejected.
"""

from dataclasses import dataclass, field
from enum import Enum


class OrderStatus(Enum):
    AWAITING_PAYMENT = "awaiting-payment"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    READY_FOR_DELIVERY = "ready-for-delivery"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"


class Actor(Enum):
    CUSTOMER = "customer"
    DELIVERY_PARTNER = "delivery-partner"
    ADMIN = "admin"
    SYSTEM = "system"  # payment provider callbacks


class Effect(Enum):
    BIND_PARTNER = "bind-partner"
    RELEASE_PARTNER = "release-partner"
    STAMP_DELIVERED = "stamp-delivered"
    RESTORE_STOCK = "restore-stock"
    RESTORE_CART = "restore-cart"


TERMINAL_STATES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.FAILED})
ACTIVE_STATES = frozenset(set(OrderStatus) - TERMINAL_STATES)

_UNWIND = frozenset({Effect.RESTORE_STOCK, Effect.RESTORE_CART})

# States a customer may still cancel from: nothing has been picked yet.
_CUSTOMER_CANCELLABLE = (OrderStatus.AWAITING_PAYMENT, OrderStatus.PENDING, OrderStatus.CONFIRMED)

TRANSITIONS: dict[tuple[OrderStatus, OrderStatus, Actor], frozenset[Effect]] = {
    # Payment provider
    (OrderStatus.AWAITING_PAYMENT, OrderStatus.PENDING, Actor.SYSTEM): frozenset(),
    (OrderStatus.AWAITING_PAYMENT, OrderStatus.FAILED, Actor.SYSTEM): _UNWIND,
    (OrderStatus.AWAITING_PAYMENT, OrderStatus.CANCELLED, Actor.SYSTEM): _UNWIND,
    # Operations
    (OrderStatus.PENDING, OrderStatus.CONFIRMED, Actor.ADMIN): frozenset(),
    (OrderStatus.CONFIRMED, OrderStatus.READY_FOR_DELIVERY, Actor.ADMIN): frozenset(),
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, Actor.ADMIN): frozenset({Effect.STAMP_DELIVERED}),
    # Delivery partners
    (OrderStatus.READY_FOR_DELIVERY, OrderStatus.OUT_FOR_DELIVERY, Actor.DELIVERY_PARTNER): frozenset(
        {Effect.BIND_PARTNER}
    ),
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.READY_FOR_DELIVERY, Actor.DELIVERY_PARTNER): frozenset(
        {Effect.RELEASE_PARTNER}
    ),
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, Actor.DELIVERY_PARTNER): frozenset(
        {Effect.STAMP_DELIVERED}
    ),
}
TRANSITIONS.update({(state, OrderStatus.CANCELLED, Actor.ADMIN): _UNWIND for state in ACTIVE_STATES})
TRANSITIONS.update({(state, OrderStatus.FAILED, Actor.ADMIN): _UNWIND for state in ACTIVE_STATES})
TRANSITIONS.update({(state, OrderStatus.CANCELLED, Actor.CUSTOMER): _UNWIND for state in _CUSTOMER_CANCELLABLE})


@dataclass(frozen=True)
class Verdict:
    allowed: bool
    reason: str | None = None
    effects: frozenset = field(default_factory=frozenset)


def can_transition(current, requested, role) -> Verdict:
    """Look up ``(current, requested, role)``. Pure: touches no state."""
    current, requested, role = OrderStatus(current), OrderStatus(requested), Actor(role)

    if current in TERMINAL_STATES:
        return Verdict(False, f"Order is already {current.value}; its status can no longer change")

    effects = TRANSITIONS.get((current, requested, role))
    if effects is not None:
        return Verdict(True, effects=effects)

    if requested == OrderStatus.OUT_FOR_DELIVERY and role != Actor.DELIVERY_PARTNER:
        reason = "Only a delivery partner can take an order out for delivery"
    elif requested == OrderStatus.READY_FOR_DELIVERY and role == Actor.DELIVERY_PARTNER:
        reason = "A delivery partner can only hand back an order that is out for delivery"
    else:
        reason = f"A {role.value} cannot move an order from {current.value} to {requested.value}"
    return Verdict(False, reason)
