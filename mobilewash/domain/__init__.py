"""
Domain layer - Pure business logic without external dependencies.
"""

from .distance import DistanceSurchargeCalculator, haversine_km
from .exceptions import (
    InvalidInputError,
    MobileWashError,
    NotFoundError,
    UpstreamUnavailableError,
)
from .invoice_calculator import InvoiceCalculator, InvoiceNumberGenerator
from .models import BookingInterval, Invoice, OperatingHours, TimeSlot
from .slot_calculator import SlotCalculator

__all__ = [
    "BookingInterval",
    "DistanceSurchargeCalculator",
    "Invoice",
    "InvoiceCalculator",
    "InvoiceNumberGenerator",
    "InvalidInputError",
    "MobileWashError",
    "NotFoundError",
    "OperatingHours",
    "SlotCalculator",
    "TimeSlot",
    "UpstreamUnavailableError",
    "haversine_km",
]
