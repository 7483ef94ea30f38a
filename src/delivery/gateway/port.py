"""Payment gateway port (abstract interface).

Defines the contract every payment provider adapter implements. The order
core only ever talks to this interface, so FakeGateway (dev/test) and
StripeGateway (production) are interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class GatewayError(Exception):
    """The provider rejected a call or could not be reached.

    The message carries the raw provider detail; it is logged, never shown
    to a customer.
    """


class InvalidSignature(Exception):
    """A webhook payload failed signature verification."""


@dataclass(frozen=True)
class PaymentIntent:
    """A provider-side attempt to collect one order's payment."""

    id: str
    status: str
    amount: float
    currency: str
    client_secret: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def is_open(self) -> bool:
        return self.status not in ("succeeded", "canceled")


@dataclass(frozen=True)
class ProviderEvent:
    """A verified webhook notification about a payment intent."""

    id: str
    type: str
    intent_id: str | None
    failure_message: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_intent(self, amount: float, currency: str, metadata: dict) -> PaymentIntent:
        """Create an intent for ``amount`` (major units) tagged with ``metadata``."""
        ...

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        ...

    @abstractmethod
    def cancel_intent(self, intent_id: str) -> PaymentIntent:
        ...

    @abstractmethod
    def construct_event(self, payload: bytes | str, signature: str) -> ProviderEvent:
        """Verify ``signature`` over ``payload`` and parse it.

        Raises InvalidSignature when verification fails.
        """
        ...
