"""Delivery bounded context — the order fulfillment pipeline.

Turns a customer's cart into a priced, geographically-routed order, keeps
stock, promotions and payment state consistent, and drives the order through
its role-gated status lifecycle to delivery or cancellation.
"""

from protean.domain import Domain

from delivery.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

delivery = Domain(name="delivery")

# A unit of work that loses an optimistic-concurrency race is reported, not re-run
delivery.config.setdefault("server", {}).setdefault("version_retry", {})["enabled"] = False
