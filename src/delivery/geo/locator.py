"""Great-circle distance and nearest fulfillment center lookup."""

import math
from dataclasses import dataclass

from delivery import config
from delivery.errors import NoFulfillmentCenterAvailable

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 coordinate pair, in degrees."""

    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine distance between two points, rounded to the metre."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    c = 2 * math.asin(min(1.0, math.sqrt(h)))
    return round(EARTH_RADIUS_KM * c, 3)


def nearest_center(point: GeoPoint, max_radius_km: float | None = None):
    """Return the closest active fulfillment center within ``max_radius_km``.

    Raises NoFulfillmentCenterAvailable when nothing qualifies. There is no
    fallback to a farther center.
    """
    from protean.utils.globals import current_domain

    from delivery.geo.center import FulfillmentCenter

    radius = config.MAX_FULFILLMENT_RADIUS_KM if max_radius_km is None else max_radius_km
    match = current_domain.repository_for(FulfillmentCenter).nearest_within(point, radius)
    if match is None:
        raise NoFulfillmentCenterAvailable()
    return match
