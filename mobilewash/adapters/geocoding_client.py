"""
Geocoding client turning free-text addresses into coordinates.
"""

import logging
from typing import Any, Dict

import requests

from ..domain.exceptions import NotFoundError, UpstreamUnavailableError
from ..domain.models import Coordinates

logger = logging.getLogger(__name__)


class GoogleGeocodingClient:
    """
    Client for the Google Maps Geocoding API.

    Only the first result is used.
    """

    GEOCODE_ENDPOINT = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(self, api_key: str, timeout: float = 10):
        """
        Initialize the geocoding client.

        Args:
            api_key: Google Maps API key
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.timeout = timeout

    def geocode(self, address: str) -> Coordinates:
        """
        Resolve an address to coordinates.

        Raises:
            NotFoundError: If the provider knows no such address
            UpstreamUnavailableError: If the provider cannot be reached or refuses
        """
        try:
            response = requests.get(
                self.GEOCODE_ENDPOINT,
                params={"address": address, "key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.RequestException as e:
            raise UpstreamUnavailableError(f"Failed to reach geocoding provider: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailableError(f"Geocoding provider returned invalid JSON: {e}") from e

        return self._parse_geocode_response(data, address)

    def _parse_geocode_response(self, data: Dict[str, Any], address: str) -> Coordinates:
        """
        Parse the geocode API response into coordinates.

        Response format:
        {
            "status": "OK",
            "results": [
                {"geometry": {"location": {"lat": -26.53, "lng": 31.09}}}
            ]
        }
        """
        status = data.get("status", "")

        if status == "ZERO_RESULTS":
            raise NotFoundError(f"Address could not be located: {address}")

        if status != "OK" or not data.get("results"):
            logger.warning("Geocoding failed for %r with status %s", address, status)
            raise UpstreamUnavailableError(
                f"Geocoding provider answered with status {status or 'UNKNOWN'}"
            )

        try:
            location = data["results"][0]["geometry"]["location"]
            return Coordinates(latitude=float(location["lat"]), longitude=float(location["lng"]))
        except (KeyError, TypeError, IndexError) as e:
            raise UpstreamUnavailableError(f"Unexpected geocoding response shape: {e}") from e


class UnconfiguredGeocoder:
    """
    Placeholder used when no geocoding API key is configured.

    Every lookup fails explicitly instead of inventing a distance.
    """

    def geocode(self, address: str) -> Coordinates:
        raise UpstreamUnavailableError(
            "No geocoding provider configured; set location.geocoding_api_key"
        )


def build_geocoder(api_key: str):
    """Return a real client when a key is configured, otherwise the placeholder."""
    if api_key:
        return GoogleGeocodingClient(api_key=api_key)
    logger.info("No geocoding API key configured, address checks will fail")
    return UnconfiguredGeocoder()
