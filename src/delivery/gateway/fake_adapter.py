"""Configurable fake payment gateway for development and testing.

Simulates a provider without any external calls. Intents live in memory,
their status can be driven from tests with ``set_status``, and every call
is recorded in ``calls``. Webhook payloads are plain JSON; the only valid
signature is ``test-signature``.
"""

import json
from uuid import uuid4

from delivery.gateway.port import (
    GatewayError,
    InvalidSignature,
    PaymentGateway,
    PaymentIntent,
    ProviderEvent,
)

TEST_SIGNATURE = "test-signature"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Provider unavailable"
        self.auto_confirm: bool = False
        self.intents: dict[str, PaymentIntent] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Provider unavailable",
        auto_confirm: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime.

        ``auto_confirm`` makes new intents report ``succeeded`` straight away,
        as if the customer completed the card flow instantly.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.auto_confirm = auto_confirm

    def _fail_if_configured(self):
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

    def create_intent(self, amount: float, currency: str, metadata: dict) -> PaymentIntent:
        self.calls.append({"method": "create_intent", "amount": amount, "currency": currency, "metadata": metadata})
        self._fail_if_configured()

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        intent = PaymentIntent(
            id=intent_id,
            status="succeeded" if self.auto_confirm else "requires_payment_method",
            amount=amount,
            currency=currency,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        return intent

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        self.calls.append({"method": "retrieve_intent", "intent_id": intent_id})
        self._fail_if_configured()
        try:
            return self.intents[intent_id]
        except KeyError:
            raise GatewayError(f"No such payment_intent: '{intent_id}'") from None

    def cancel_intent(self, intent_id: str) -> PaymentIntent:
        self.calls.append({"method": "cancel_intent", "intent_id": intent_id})
        self._fail_if_configured()
        intent = self.retrieve_intent(intent_id)
        if intent.status == "succeeded":
            raise GatewayError("You cannot cancel this PaymentIntent because it has a status of succeeded.")
        return self.set_status(intent_id, "canceled")

    def set_status(self, intent_id: str, status: str) -> PaymentIntent:
        """Move an intent to ``status`` as the provider would after customer action."""
        current = self.intents[intent_id]
        updated = PaymentIntent(
            id=current.id,
            status=status,
            amount=current.amount,
            currency=current.currency,
            client_secret=current.client_secret,
            metadata=current.metadata,
        )
        self.intents[intent_id] = updated
        return updated

    def construct_event(self, payload: bytes | str, signature: str) -> ProviderEvent:
        if signature != TEST_SIGNATURE:
            raise InvalidSignature("No signatures found matching the expected signature for payload")

        body = json.loads(payload)
        obj = body.get("data", {}).get("object", {})
        return ProviderEvent(
            id=body.get("id") or f"evt_fake_{uuid4().hex[:12]}",
            type=body["type"],
            intent_id=obj.get("id"),
            failure_message=(obj.get("last_payment_error") or {}).get("message"),
        )
