"""BDD tests for the order state machine."""

from delivery.errors import TransitionRejected
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/order_state_machine.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the {role} moves the order to "{status}"'))
def _(order, outcome, role, status):
    try:
        outcome["verdict"] = order.transition_to(status, role)
    except TransitionRejected as exc:
        outcome["rejection"] = exc


@when(parsers.cfparse('delivery partner "{partner}" moves the order to "{status}"'))
def _(order, outcome, partner, status):
    try:
        outcome["verdict"] = order.transition_to(status, "delivery-partner", actor_id=partner)
    except TransitionRejected as exc:
        outcome["rejection"] = exc


@when("the payment succeeds")
def _(order):
    order.record_payment_intent("pi_bdd", 34.5, "usd")
    assert order.mark_paid()


@when(parsers.cfparse('the payment fails with "{reason}"'))
def _(order, outcome, reason):
    outcome["verdict"] = order.mark_payment_failed(reason=reason)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is assigned to "{partner}"'))
def _(order, partner):
    assert str(order.delivery_partner_id) == partner


@then("the order has no delivery partner")
def _(order):
    assert order.delivery_partner_id is None
