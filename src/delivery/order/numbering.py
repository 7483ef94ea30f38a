"""Order numbers and delivery time windows."""

import secrets
from datetime import datetime, timedelta

from protean.utils.globals import current_domain

from delivery import config
from delivery.utils.logging import get_logger

logger = get_logger(__name__)


def _random_digits(width: int) -> str:
    return f"{secrets.randbelow(10**width):0{width}d}"


def generate_order_number(draw=_random_digits) -> str:
    """A prefixed random number no existing order carries.

    Draws again on collision, as many times as it takes.
    """
    from delivery.order.order import Order

    repo = current_domain.repository_for(Order)
    while True:
        candidate = f"{config.ORDER_NUMBER_PREFIX}{draw(config.ORDER_NUMBER_DIGITS)}"
        if repo.find_by_number(candidate) is None:
            return candidate
        logger.info("Order number collision, drawing again", order_number=candidate)


def delivery_window(km: float, placed_at: datetime) -> str:
    """``"HH:MM - HH:MM"`` starting when a courier at average speed would arrive."""
    start = placed_at + timedelta(hours=km / config.AVERAGE_SPEED_KMH)
    end = start + timedelta(minutes=config.DELIVERY_WINDOW_MINUTES)
    return f"{start:%H:%M} - {end:%H:%M}"
