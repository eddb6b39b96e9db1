"""
Application service for checking a service address against the free radius.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Protocol

from ..config import LocationConfig
from ..domain.distance import DistanceSurchargeCalculator
from ..domain.exceptions import InvalidInputError
from ..domain.models import Coordinates, DistanceQuote

logger = logging.getLogger(__name__)


class GeocoderProtocol(Protocol):
    """Protocol describing the geocoding behaviour needed by the service."""

    def geocode(self, address: str) -> Coordinates:
        """Return coordinates for an address or raise."""


class LocationService:
    """
    Geocodes an address and quotes the travel surcharge from the base location.

    Geocoder errors propagate unchanged; a failed lookup never turns into a
    made-up distance.
    """

    def __init__(
        self,
        geocoder: GeocoderProtocol,
        base_coordinates: Coordinates,
        radius_km: Decimal,
        per_km_rate: Decimal,
        calculator: DistanceSurchargeCalculator | None = None,
    ) -> None:
        self._geocoder = geocoder
        self.base_coordinates = base_coordinates
        self.radius_km = radius_km
        self.per_km_rate = per_km_rate
        self._calculator = calculator or DistanceSurchargeCalculator()

    @classmethod
    def from_config(cls, geocoder: GeocoderProtocol, config: LocationConfig) -> "LocationService":
        return cls(
            geocoder=geocoder,
            base_coordinates=config.base_coordinates(),
            radius_km=config.free_radius_km,
            per_km_rate=config.per_km_rate,
        )

    def check_address(self, address: str) -> DistanceQuote:
        """
        Quote the surcharge for a free-text address.

        Raises:
            InvalidInputError: If the address is blank
            NotFoundError: If the geocoder cannot locate the address
            UpstreamUnavailableError: If the geocoder is unreachable or unconfigured
        """
        address = (address or "").strip()
        if not address:
            raise InvalidInputError("Please enter an address")

        destination = self._geocoder.geocode(address)
        quote = self.quote_coordinates(destination, address_text=address)

        logger.info(
            "Address %r is %.1f km from base, surcharge %s",
            address,
            quote.distance_km,
            quote.surcharge,
        )
        return quote

    def quote_coordinates(self, destination: Coordinates, address_text: str = "") -> DistanceQuote:
        """Quote the surcharge for already-known coordinates."""
        return self._calculator.quote(
            self.base_coordinates,
            destination,
            self.radius_km,
            self.per_km_rate,
            origin_address_text=address_text,
        )
