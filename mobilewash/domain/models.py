"""
Domain models for slot, invoice and distance calculations.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidInputError


class VehicleType(str, Enum):
    """Vehicle categories that services are priced by."""
    SMALL = "SMALL"
    SUV = "SUV"


class InvoiceKind(str, Enum):
    """What an invoice bills for."""
    BOOKING = "booking"
    CONTRACT = "contract"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ContractStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class PaymentOutcome(str, Enum):
    """Outcome delivered by the payment gateway webhook."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def as_decimal(value) -> Decimal:
    """Convert an int, float, str or Decimal amount to Decimal."""
    if isinstance(value, Decimal):
        return value
    try:
        # str() keeps floats like 0.15 from turning into binary noise
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInputError(f"Not a valid amount: {value!r}") from exc


def start_of_day(day: date, timezone: str) -> DateTime:
    """
    Return midnight of the calendar day of ``day``.

    Pendulum values keep their own timezone; anything else is placed in
    ``timezone``. Time-of-day is ignored.
    """
    if isinstance(day, DateTime):
        return day.start_of("day")
    if isinstance(day, datetime):
        return pendulum.instance(day, tz=timezone).start_of("day")
    return pendulum.datetime(day.year, day.month, day.day, tz=timezone)


@dataclass(frozen=True)
class BookingInterval:
    """
    An already-committed appointment range.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime
    label: str = ""

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInputError(
                f"Start time {self.start} must be before end time {self.end}"
            )

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def __str__(self) -> str:
        label = f" ({self.label})" if self.label else ""
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}{label}"


@dataclass
class OperatingHours:
    """
    Daily window in which appointments may start.
    """
    open_time: time = time(8, 0)
    close_time: time = time(17, 0)
    slot_interval_minutes: int = 30
    timezone: str = "Africa/Johannesburg"

    def window_for_day(self, day: date) -> Tuple[DateTime, DateTime]:
        """Return the (open, close) datetimes for a calendar day."""
        midnight = start_of_day(day, self.timezone)
        opens = midnight.set(hour=self.open_time.hour, minute=self.open_time.minute)
        closes = midnight.set(hour=self.close_time.hour, minute=self.close_time.minute)
        return opens, closes


@dataclass(frozen=True)
class TimeSlot:
    """A candidate appointment start time and whether it can be booked."""
    clock_time: str  # HH:MM
    available: bool
    unavailable_reason: Optional[str] = None


@dataclass(frozen=True)
class InvoiceLineItem:
    """
    One billed line. ``line_total`` is always quantity x unit_rate.
    """
    description: str
    quantity: int
    unit_rate: Decimal

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise InvalidInputError(f"Quantity must be an integer, got {self.quantity!r}")
        if self.quantity < 0:
            raise InvalidInputError(f"Quantity must not be negative, got {self.quantity}")
        rate = as_decimal(self.unit_rate)
        if rate < 0:
            raise InvalidInputError(f"Unit rate must not be negative, got {rate}")
        object.__setattr__(self, "unit_rate", rate)

    @property
    def line_total(self) -> Decimal:
        return self.unit_rate * self.quantity


@dataclass(frozen=True)
class Customer:
    """Who an invoice is billed to."""
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None

    def display_name(self) -> str:
        return self.name or "Valued Customer"


@dataclass(frozen=True)
class PaymentDetails:
    """Bank details printed on every invoice."""
    bank_name: str
    account_name: str
    account_number: str


@dataclass(frozen=True)
class Invoice:
    """
    A generated demand for payment. Never amended; a new one is built per request.
    """
    invoice_number: str
    kind: InvoiceKind
    source_id: str
    issued_at: DateTime
    due_at: DateTime
    line_items: Tuple[InvoiceLineItem, ...]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    payment_reference: str
    customer: Customer
    payment_details: PaymentDetails

    @property
    def issue_date(self) -> date:
        return self.issued_at.date()

    @property
    def due_date(self) -> date:
        return self.due_at.date()


@dataclass
class BookedService:
    """A service attached to a booking, priced for the booking's vehicle type."""
    name: str
    price: Decimal
    duration_minutes: int = 30

    def __post_init__(self):
        self.price = as_decimal(self.price)
        if self.price < 0:
            raise InvalidInputError(f"Service price must not be negative, got {self.price}")
        if self.duration_minutes <= 0:
            raise InvalidInputError(
                f"Service duration must be positive, got {self.duration_minutes} for {self.name!r}"
            )


@dataclass
class BookingRecord:
    """A single scheduled appointment as held by the record store."""
    id: str
    customer: Customer
    vehicle_type: VehicleType
    vehicle_count: int
    services: List[BookedService] = field(default_factory=list)
    service_charge: Decimal = Decimal("0")
    scheduled_start: Optional[DateTime] = None
    location: str = ""
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    invoice_number: Optional[str] = None
    invoice_sent_at: Optional[DateTime] = None
    invoice_expires_at: Optional[DateTime] = None

    def __post_init__(self):
        self.service_charge = as_decimal(self.service_charge)
        self.vehicle_type = VehicleType(self.vehicle_type)
        if self.vehicle_count < 0:
            raise InvalidInputError(f"Vehicle count must not be negative, got {self.vehicle_count}")
        if self.service_charge < 0:
            raise InvalidInputError(f"Service charge must not be negative, got {self.service_charge}")

    def total_duration_minutes(self) -> int:
        return sum(service.duration_minutes for service in self.services)

    def to_interval(self) -> Optional[BookingInterval]:
        """The occupied range of this booking, or None if it is unscheduled."""
        if self.scheduled_start is None or not self.services:
            return None
        return BookingInterval(
            start=self.scheduled_start,
            end=self.scheduled_start.add(minutes=self.total_duration_minutes()),
            label=", ".join(service.name for service in self.services),
        )


@dataclass
class ContractRecord:
    """A prepaid multi-wash package."""
    id: str
    customer: Customer
    package_name: str
    total_washes: int
    total_price: Decimal
    status: ContractStatus = ContractStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    invoice_number: Optional[str] = None
    invoice_sent_at: Optional[DateTime] = None
    invoice_expires_at: Optional[DateTime] = None

    def __post_init__(self):
        self.total_price = as_decimal(self.total_price)


@dataclass
class PaymentRecord:
    """A payment attempt keyed by the gateway's payment identifier."""
    payment_id: str
    amount: Decimal
    currency: str = "ZAR"
    status: PaymentStatus = PaymentStatus.PENDING
    booking_id: Optional[str] = None
    contract_id: Optional[str] = None


@dataclass(frozen=True)
class Coordinates:
    """
    A latitude/longitude pair in decimal degrees.
    """
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise InvalidInputError(f"Latitude must be between -90 and 90, got {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise InvalidInputError(
                f"Longitude must be between -180 and 180, got {self.longitude}"
            )


@dataclass(frozen=True)
class DistanceQuote:
    """Result of an address check against the free service radius."""
    origin_address_text: str
    distance_km: float
    within_free_radius: bool
    surcharge: Decimal
