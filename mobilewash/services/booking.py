"""
Application service for creating bookings from catalogue selections.

Prices and durations come from the configured service catalogue for the
booking's vehicle type; the travel surcharge comes from the location
service. The requested start is checked against the day's bookings before
the record is committed, and the store keeps its own same-start check.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Callable, List, Optional, Protocol, Sequence

from ..config import AppConfig
from ..domain.exceptions import InvalidInputError
from ..domain.models import (
    BookedService,
    BookingInterval,
    BookingRecord,
    BookingStatus,
    Customer,
    VehicleType,
)
from ..domain.slot_calculator import SlotCalculator
from .location import LocationService

logger = logging.getLogger(__name__)


class BookingStoreProtocol(Protocol):
    """Protocol describing the store behaviour needed to commit bookings."""

    def get_intervals(self, day: date) -> List[BookingInterval]:
        """Return occupied ranges on a calendar day."""

    def add_booking(self, booking: BookingRecord) -> BookingRecord:
        """Commit a booking, rejecting a second live booking at the same start."""


def _new_booking_id() -> str:
    return f"bk-{uuid.uuid4().hex[:10]}"


class BookingService:
    """
    Prices, checks and commits new bookings.
    """

    def __init__(
        self,
        record_store: BookingStoreProtocol,
        slot_calculator: SlotCalculator,
        config: AppConfig,
        location_service: LocationService,
        id_factory: Callable[[], str] = _new_booking_id,
    ) -> None:
        self._record_store = record_store
        self._slot_calculator = slot_calculator
        self._config = config
        self._location_service = location_service
        self._id_factory = id_factory

    def price_services(
        self,
        service_ids: Sequence[str],
        vehicle_type: VehicleType,
    ) -> List[BookedService]:
        """
        Turn catalogue ids or names into priced services for a vehicle type.

        Raises:
            InvalidInputError: If no service is given or an identifier is unknown
        """
        try:
            offerings = self._config.resolve_services(service_ids)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc

        return [
            BookedService(
                name=offering.name,
                price=offering.price_for(vehicle_type),
                duration_minutes=offering.duration_minutes,
            )
            for offering in offerings
        ]

    def create_booking(
        self,
        day: date,
        clock_time: str,
        vehicle_type,
        vehicle_count: int,
        service_ids: Sequence[str],
        customer: Customer,
        address: Optional[str] = None,
    ) -> BookingRecord:
        """
        Create a confirmed booking.

        Steps:
        1. Resolve and price the services for the vehicle type
        2. Check the requested start against the day's bookings
        3. Quote the travel surcharge when an address is given
        4. Commit the booking through the store

        Without an address no surcharge is charged and the location stays empty.

        Raises:
            InvalidInputError: For an unknown vehicle type or service, a vehicle
                count below one, or a start time that is not available
            NotFoundError: If the address cannot be located
            UpstreamUnavailableError: If the geocoder is unreachable or unconfigured
        """
        try:
            vehicle_type = VehicleType(
                vehicle_type.upper() if isinstance(vehicle_type, str) else vehicle_type
            )
        except ValueError as exc:
            raise InvalidInputError(f"Unknown vehicle type: {vehicle_type!r}") from exc

        if isinstance(vehicle_count, bool) or not isinstance(vehicle_count, int) or vehicle_count < 1:
            raise InvalidInputError(f"At least one vehicle is required, got {vehicle_count!r}")

        services = self.price_services(service_ids, vehicle_type)
        duration = sum(service.duration_minutes for service in services)

        intervals = self._record_store.get_intervals(day)
        if not self._slot_calculator.is_time_available(day, clock_time, duration, intervals):
            raise InvalidInputError(
                f"{clock_time} on {day.isoformat()[:10]} is not available for {duration} minutes"
            )

        service_charge = 0
        location = ""
        if address is not None:
            quote = self._location_service.check_address(address)
            service_charge = quote.surcharge
            location = quote.origin_address_text

        booking = BookingRecord(
            id=self._id_factory(),
            customer=customer,
            vehicle_type=vehicle_type,
            vehicle_count=vehicle_count,
            services=services,
            service_charge=service_charge,
            scheduled_start=self._slot_calculator.start_at(day, clock_time),
            location=location,
            status=BookingStatus.CONFIRMED,
        )
        self._record_store.add_booking(booking)

        logger.info(
            "Booked %s at %s for %s (%d min, surcharge %s)",
            booking.id,
            booking.scheduled_start,
            customer.email,
            duration,
            booking.service_charge,
        )
        return booking
