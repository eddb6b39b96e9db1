"""
Great-circle distance and the travel surcharge beyond the free service radius.
"""

import math
from decimal import Decimal

from .exceptions import InvalidInputError
from .models import Coordinates, DistanceQuote, as_decimal

EARTH_RADIUS_KM = 6371.0


def haversine_km(origin: Coordinates, destination: Coordinates) -> float:
    """Return the great-circle distance between two points in kilometers."""
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(destination.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(destination.longitude - origin.longitude)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def surcharge_for_distance(distance_km: float, radius_km, per_km_rate) -> Decimal:
    """
    Charge for every started kilometer-rate unit beyond the free radius.

    Returns 0 inside the radius, otherwise ceil((distance - radius) * rate).
    """
    radius = as_decimal(radius_km)
    rate = as_decimal(per_km_rate)
    if radius < 0:
        raise InvalidInputError(f"Radius must not be negative, got {radius}")
    if rate < 0:
        raise InvalidInputError(f"Per-km rate must not be negative, got {rate}")
    if distance_km < 0:
        raise InvalidInputError(f"Distance must not be negative, got {distance_km}")

    distance = as_decimal(distance_km)
    if distance <= radius:
        return Decimal("0")
    return Decimal(math.ceil((distance - radius) * rate))


class DistanceSurchargeCalculator:
    """
    Quotes the surcharge for a service address given its coordinates.

    Geocoding happens elsewhere; this class never performs I/O.
    """

    def quote(
        self,
        origin: Coordinates,
        destination: Coordinates,
        radius_km,
        per_km_rate,
        origin_address_text: str = "",
    ) -> DistanceQuote:
        for point in (origin, destination):
            if not isinstance(point, Coordinates):
                raise InvalidInputError(f"Expected Coordinates, got {point!r}")

        distance = haversine_km(origin, destination)
        surcharge = surcharge_for_distance(distance, radius_km, per_km_rate)

        return DistanceQuote(
            origin_address_text=origin_address_text,
            distance_km=distance,
            within_free_radius=as_decimal(distance) <= as_decimal(radius_km),
            surcharge=surcharge,
        )
