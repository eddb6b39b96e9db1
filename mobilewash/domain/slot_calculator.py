"""
Core business logic for generating a day's bookable time grid.

Pure domain logic: no store access, no I/O. Existing bookings are passed in
by the caller.
"""

from datetime import date
from typing import Iterable, List

import pendulum
from pendulum import DateTime

from .exceptions import InvalidInputError
from .models import BookingInterval, OperatingHours, TimeSlot, start_of_day

BLOCKED_REASON = "Blocked by existing booking"


class SlotCalculator:
    """
    Produces fixed-width appointment start slots for a day.

    Algorithm:
    1. Step from opening time to closing time (exclusive) in fixed increments
    2. For each step, form the candidate range [step, step + duration)
    3. Test the candidate against every existing booking interval
    4. Emit one TimeSlot per step, available or not

    The slot count for a day never depends on the bookings.
    """

    def __init__(self, operating_hours: OperatingHours):
        self.operating_hours = operating_hours

    def generate_slots(
        self,
        day: date,
        service_duration_minutes: int,
        existing_intervals: Iterable[BookingInterval] = (),
    ) -> List[TimeSlot]:
        """
        Build the time grid for ``day``.

        Args:
            day: Calendar day; time-of-day is ignored
            service_duration_minutes: Total duration of all selected services
            existing_intervals: Bookings already scheduled on that day

        Returns:
            Slots in ascending start order
        """
        self._validate_duration(service_duration_minutes)
        intervals = list(existing_intervals)
        opens, closes = self.operating_hours.window_for_day(day)

        slots: List[TimeSlot] = []
        current = opens

        # TODO: mark candidates ending after close_time once the booking form
        # stops accepting appointments that run past closing.
        while current < closes:
            candidate_end = current.add(minutes=service_duration_minutes)
            available = self._is_free(current, candidate_end, intervals)

            slots.append(
                TimeSlot(
                    clock_time=current.format("HH:mm"),
                    available=available,
                    unavailable_reason=None if available else BLOCKED_REASON,
                )
            )

            current = current.add(minutes=self.operating_hours.slot_interval_minutes)

        return slots

    def available_times(
        self,
        day: date,
        service_duration_minutes: int,
        existing_intervals: Iterable[BookingInterval] = (),
    ) -> List[str]:
        """Return only the clock times ("HH:MM") that can be booked."""
        return [
            slot.clock_time
            for slot in self.generate_slots(day, service_duration_minutes, existing_intervals)
            if slot.available
        ]

    def is_time_available(
        self,
        day: date,
        clock_time: str,
        service_duration_minutes: int,
        existing_intervals: Iterable[BookingInterval] = (),
    ) -> bool:
        """Check a single requested start time against existing bookings."""
        self._validate_duration(service_duration_minutes)
        start = self.start_at(day, clock_time)
        end = start.add(minutes=service_duration_minutes)
        return self._is_free(start, end, list(existing_intervals))

    def calculate_end_time(
        self,
        day: date,
        clock_time: str,
        service_duration_minutes: int,
    ) -> str:
        """Return the clock time at which an appointment starting at ``clock_time`` ends."""
        self._validate_duration(service_duration_minutes)
        start = self.start_at(day, clock_time)
        return start.add(minutes=service_duration_minutes).format("HH:mm")

    @staticmethod
    def _is_free(
        candidate_start: DateTime,
        candidate_end: DateTime,
        intervals: List[BookingInterval],
    ) -> bool:
        """
        Conflict test against existing bookings.

        A candidate is blocked when its start lies strictly inside a booking,
        its end lies strictly inside a booking, it strictly contains a
        booking, or it starts exactly when a booking starts. Candidates that
        share any other boundary with a booking are treated as free.
        """
        for booking in intervals:
            if (
                booking.start < candidate_start < booking.end
                or booking.start < candidate_end < booking.end
                or (candidate_start < booking.start and candidate_end > booking.end)
                or candidate_start == booking.start
            ):
                return False
        return True

    def start_at(self, day: date, clock_time: str) -> DateTime:
        """Combine a calendar day with an "HH:MM" start time in the business timezone."""
        try:
            parsed = pendulum.from_format(clock_time, "HH:mm")
        except ValueError as exc:
            raise InvalidInputError(
                f"Clock time must be formatted HH:MM, got {clock_time!r}"
            ) from exc

        midnight = start_of_day(day, self.operating_hours.timezone)
        return midnight.set(hour=parsed.hour, minute=parsed.minute)

    @staticmethod
    def _validate_duration(service_duration_minutes: int) -> None:
        if service_duration_minutes <= 0:
            raise InvalidInputError(
                f"Service duration must be positive, got {service_duration_minutes}"
            )
