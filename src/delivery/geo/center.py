"""FulfillmentCenter aggregate — a physical origin from which orders are dispatched.

Centers are administered outside the order core; the pipeline only reads
them, to route each order to the closest one.
"""

from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Float, String

from delivery.domain import delivery
from delivery.geo.locator import GeoPoint, distance_km


@delivery.aggregate
class FulfillmentCenter:
    name = String(required=True, max_length=255)
    address_details = String(max_length=500)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)
    is_active = Boolean(default=True)
    created_at = DateTime(default=lambda: datetime.now(UTC))

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


@delivery.repository(part_of=FulfillmentCenter)
class FulfillmentCenterRepository:
    def nearest_within(self, point: GeoPoint, max_radius_km: float):
        """Closest active center to ``point`` no farther than ``max_radius_km``, or None.

        Ties on distance are broken by center id so the answer is stable.
        """
        centers = self._dao.query.filter(is_active=True).limit(None).all().items

        candidates = []
        for center in centers:
            km = distance_km(point, center.point)
            if km <= max_radius_km:
                candidates.append((km, str(center.id), center))

        if not candidates:
            return None

        candidates.sort(key=lambda candidate: (candidate[0], candidate[1]))
        return candidates[0][2]
