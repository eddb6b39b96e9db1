"""
Adapters layer - External integrations (record store, geocoding).
"""

from .geocoding_client import GoogleGeocodingClient, UnconfiguredGeocoder, build_geocoder
from .mock_geocoding_client import MockGeocodingClient
from .mock_record_store import MockRecordStore

__all__ = [
    "GoogleGeocodingClient",
    "MockGeocodingClient",
    "MockRecordStore",
    "UnconfiguredGeocoder",
    "build_geocoder",
]
