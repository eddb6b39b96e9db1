"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import AvailabilityService, IntervalSourceProtocol
from .booking import BookingService, BookingStoreProtocol
from .invoicing import InvoiceRecordStoreProtocol, InvoiceService
from .location import GeocoderProtocol, LocationService
from .payments import PaymentRecordStoreProtocol, PaymentService

__all__ = [
    "AvailabilityService",
    "BookingService",
    "BookingStoreProtocol",
    "GeocoderProtocol",
    "IntervalSourceProtocol",
    "InvoiceRecordStoreProtocol",
    "InvoiceService",
    "LocationService",
    "PaymentRecordStoreProtocol",
    "PaymentService",
]
