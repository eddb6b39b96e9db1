"""
Application service for answering "which times can I book on this day?".

The service fetches the day's existing bookings from an interval source and
delegates the grid calculation to the domain-level ``SlotCalculator``. The
interval source is described by a protocol so tests can pass a stub.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Protocol, Sequence

from ..config import AppConfig
from ..domain.exceptions import InvalidInputError
from ..domain.models import BookingInterval, TimeSlot
from ..domain.slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)


class IntervalSourceProtocol(Protocol):
    """Protocol describing the store behaviour needed by the service."""

    def get_intervals(self, day: date) -> List[BookingInterval]:
        """Return occupied ranges on a calendar day."""


class AvailabilityService:
    """
    Orchestrates interval retrieval and slot generation.
    """

    def __init__(
        self,
        interval_source: IntervalSourceProtocol,
        slot_calculator: SlotCalculator,
        config: Optional[AppConfig] = None,
    ) -> None:
        self._interval_source = interval_source
        self._slot_calculator = slot_calculator
        self._config = config

    def slots_for(
        self,
        day: date,
        *,
        duration_minutes: Optional[int] = None,
        service_ids: Sequence[str] = (),
    ) -> List[TimeSlot]:
        """
        Return the time grid for ``day``.

        The duration is taken from ``duration_minutes`` or, when omitted,
        summed from the catalogue entries named by ``service_ids``.
        """
        duration = self.resolve_duration(duration_minutes=duration_minutes, service_ids=service_ids)
        intervals = self._interval_source.get_intervals(day)
        logger.debug("Checking %d existing booking(s) on %s", len(intervals), day)

        return self._slot_calculator.generate_slots(day, duration, intervals)

    def is_time_available(
        self,
        day: date,
        clock_time: str,
        *,
        duration_minutes: Optional[int] = None,
        service_ids: Sequence[str] = (),
    ) -> bool:
        """Check one requested start time against the day's bookings."""
        duration = self.resolve_duration(duration_minutes=duration_minutes, service_ids=service_ids)
        return self._slot_calculator.is_time_available(
            day, clock_time, duration, self._interval_source.get_intervals(day)
        )

    def resolve_duration(
        self,
        *,
        duration_minutes: Optional[int] = None,
        service_ids: Sequence[str] = (),
    ) -> int:
        if duration_minutes is not None:
            return duration_minutes

        if not service_ids:
            raise InvalidInputError("Either a duration or at least one service is required")
        if self._config is None:
            raise InvalidInputError("No service catalogue configured to resolve durations")

        try:
            return self._config.total_duration_minutes(service_ids)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
