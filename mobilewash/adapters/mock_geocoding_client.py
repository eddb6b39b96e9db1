"""
Mock geocoder for testing without a mapping provider.
"""

import json
from pathlib import Path
from typing import Dict, Mapping

from ..domain.exceptions import NotFoundError
from ..domain.models import Coordinates
from .mock_record_store import DEFAULT_DATA_FILE


class MockGeocodingClient:
    """
    Resolves addresses from a fixed lookup table.

    Keys are matched case-insensitively after trimming whitespace.
    """

    def __init__(self, locations: Mapping[str, Coordinates]):
        self.locations: Dict[str, Coordinates] = {
            self._key(address): coordinates for address, coordinates in locations.items()
        }

    @classmethod
    def from_json(cls, data_file: Path = DEFAULT_DATA_FILE) -> "MockGeocodingClient":
        """Load the ``locations`` table from a JSON fixture file."""
        if not data_file.exists():
            return cls({})

        with open(data_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        return cls(
            {
                address: Coordinates(latitude=point["latitude"], longitude=point["longitude"])
                for address, point in data.get("locations", {}).items()
            }
        )

    def geocode(self, address: str) -> Coordinates:
        try:
            return self.locations[self._key(address)]
        except KeyError:
            raise NotFoundError(f"Address could not be located: {address}") from None

    @staticmethod
    def _key(address: str) -> str:
        return " ".join(address.lower().split())
