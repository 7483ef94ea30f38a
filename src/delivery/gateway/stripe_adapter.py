"""Stripe payment gateway adapter.

Uses the stripe-python SDK. Amounts cross the boundary in minor units
(cents) and come back converted to major units. Every SDK error is
re-raised as GatewayError so callers never depend on stripe types.
"""

import stripe

from delivery.gateway.port import (
    GatewayError,
    InvalidSignature,
    PaymentGateway,
    PaymentIntent,
    ProviderEvent,
)
from delivery.pricing.money import to_minor_units


def _to_intent(obj) -> PaymentIntent:
    return PaymentIntent(
        id=obj["id"],
        status=obj["status"],
        amount=obj["amount"] / 100,
        currency=obj["currency"],
        client_secret=obj.get("client_secret"),
        metadata=dict(obj.get("metadata") or {}),
    )


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str, webhook_secret: str) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_intent(self, amount: float, currency: str, metadata: dict) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount),
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            raise GatewayError(str(exc)) from exc
        return _to_intent(intent)

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        except stripe.StripeError as exc:
            raise GatewayError(str(exc)) from exc
        return _to_intent(intent)

    def cancel_intent(self, intent_id: str) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.cancel(intent_id, api_key=self.api_key)
        except stripe.StripeError as exc:
            raise GatewayError(str(exc)) from exc
        return _to_intent(intent)

    def construct_event(self, payload: bytes | str, signature: str) -> ProviderEvent:
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise InvalidSignature(str(exc)) from exc

        obj = event["data"]["object"]
        last_error = obj.get("last_payment_error") or {}
        return ProviderEvent(
            id=event["id"],
            type=event["type"],
            intent_id=obj.get("id"),
            failure_message=last_error.get("message"),
        )
