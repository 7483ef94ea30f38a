"""Tunable constants for pricing, routing and order numbering.

Every value can be overridden with an environment variable of the same name.
Values are read once, at import time.
"""

import os


def _float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


def _int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


# Fees
BASE_DELIVERY_FEE = _float("BASE_DELIVERY_FEE", 5.0)
PER_KM_RATE = _float("PER_KM_RATE", 0.5)
BASE_SERVICE_FEE = _float("BASE_SERVICE_FEE", 1.5)
LONG_DISTANCE_SURCHARGE = _float("LONG_DISTANCE_SURCHARGE", 2.0)
LONG_DISTANCE_THRESHOLD_KM = _float("LONG_DISTANCE_THRESHOLD_KM", 10.0)

# Routing
MAX_FULFILLMENT_RADIUS_KM = _float("MAX_FULFILLMENT_RADIUS_KM", 100.0)
AVERAGE_SPEED_KMH = _float("AVERAGE_SPEED_KMH", 30.0)
DELIVERY_WINDOW_MINUTES = _int("DELIVERY_WINDOW_MINUTES", 20)

# Orders
MIN_REORDER_AMOUNT = _float("MIN_REORDER_AMOUNT", 15.0)
ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "QD")
ORDER_NUMBER_DIGITS = _int("ORDER_NUMBER_DIGITS", 8)
CURRENCY = os.environ.get("CURRENCY", "usd")

# Caching
CACHE_TTL_SECONDS = _int("CACHE_TTL_SECONDS", 300)
