"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- StripeGateway when STRIPE_SECRET_KEY is set
- FakeGateway otherwise, for development and testing
"""

import os

from delivery.gateway.fake_adapter import FakeGateway
from delivery.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway."""
    global _current_gateway
    if _current_gateway is None:
        api_key = os.environ.get("STRIPE_SECRET_KEY")
        if api_key:
            from delivery.gateway.stripe_adapter import StripeGateway

            _current_gateway = StripeGateway(api_key, os.environ.get("STRIPE_WEBHOOK_SECRET", ""))
        else:
            _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
