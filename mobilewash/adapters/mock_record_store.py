"""
In-memory record store for tests and demo mode.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.exceptions import InvalidInputError, NotFoundError
from ..domain.models import (
    BookedService,
    BookingInterval,
    BookingRecord,
    BookingStatus,
    ContractRecord,
    ContractStatus,
    Customer,
    InvoiceKind,
    PaymentRecord,
    PaymentStatus,
    as_decimal,
    start_of_day,
)

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_records.json"


class MockRecordStore:
    """
    Dictionary-backed stand-in for the relational store.

    Bookings are committed with a uniqueness check on their start time, the
    constraint a production store must also enforce since slot calculation
    itself does not reserve anything.
    """

    def __init__(
        self,
        bookings: Iterable[BookingRecord] = (),
        contracts: Iterable[ContractRecord] = (),
        timezone: str = "Africa/Johannesburg",
    ):
        self.timezone = timezone
        self._bookings: Dict[str, BookingRecord] = {}
        self._contracts: Dict[str, ContractRecord] = {}
        self._payments: Dict[str, PaymentRecord] = {}
        self.data_file: Optional[Path] = None
        self._passthrough: Dict[str, Any] = {}

        for booking in bookings:
            self.add_booking(booking)
        for contract in contracts:
            self.add_contract(contract)

    @classmethod
    def from_json(
        cls,
        data_file: Path = DEFAULT_DATA_FILE,
        timezone: str = "Africa/Johannesburg",
    ) -> "MockRecordStore":
        """
        Load bookings, contracts and payments from a JSON fixture file.

        Entries that cannot be parsed are skipped with a warning.
        """
        store = cls(timezone=timezone)
        store.data_file = data_file

        if not data_file.exists():
            logger.warning("Mock data file %s not found, starting empty", data_file)
            return store

        with open(data_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        store._passthrough = {
            key: value
            for key, value in data.items()
            if key not in ("bookings", "contracts", "payments")
        }

        for entry in data.get("bookings", []):
            try:
                store.add_booking(_parse_booking(entry, timezone))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping invalid booking entry %s: %s", entry.get("id"), e)

        for entry in data.get("contracts", []):
            try:
                store.add_contract(_parse_contract(entry, timezone))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping invalid contract entry %s: %s", entry.get("id"), e)

        for entry in data.get("payments", []):
            try:
                store.register_payment(_parse_payment(entry))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping invalid payment entry %s: %s", entry.get("payment_id"), e)

        return store

    def save_json(self, data_file: Optional[Path] = None) -> Path:
        """
        Write all records back to a JSON fixture file.

        Defaults to the file the store was loaded from. Top-level sections
        the store does not own (such as ``locations``) are written back
        unchanged.

        Raises:
            ValueError: If no target file is known
        """
        target = data_file or self.data_file
        if target is None:
            raise ValueError("No data file to save records to")

        data = dict(self._passthrough)
        data["bookings"] = [_dump_booking(b) for b in self._bookings.values()]
        data["contracts"] = [_dump_contract(c) for c in self._contracts.values()]
        data["payments"] = [_dump_payment(p) for p in self._payments.values()]

        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")

        logger.debug("Saved %d bookings and %d contracts to %s", len(self._bookings), len(self._contracts), target)
        return target

    def add_booking(self, booking: BookingRecord) -> BookingRecord:
        """
        Commit a booking.

        Raises:
            InvalidInputError: If another live booking starts at the same time
        """
        if booking.scheduled_start is not None:
            for existing in self._bookings.values():
                if (
                    existing.id != booking.id
                    and existing.status is not BookingStatus.CANCELLED
                    and existing.scheduled_start == booking.scheduled_start
                ):
                    raise InvalidInputError(
                        f"Slot {booking.scheduled_start} is already taken by booking {existing.id}"
                    )

        self._bookings[booking.id] = booking
        return booking

    def add_contract(self, contract: ContractRecord) -> ContractRecord:
        self._contracts[contract.id] = contract
        return contract

    def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        return self._bookings.get(booking_id)

    def get_contract(self, contract_id: str) -> Optional[ContractRecord]:
        return self._contracts.get(contract_id)

    def list_bookings(self) -> List[BookingRecord]:
        return list(self._bookings.values())

    def get_intervals(self, day: date) -> List[BookingInterval]:
        """Occupied ranges of all live bookings on a calendar day, in start order."""
        midnight = start_of_day(day, self.timezone)
        intervals: List[BookingInterval] = []

        for booking in self._bookings.values():
            if booking.status is BookingStatus.CANCELLED:
                continue
            interval = booking.to_interval()
            if interval is None:
                continue
            if interval.start.in_timezone(self.timezone).start_of("day") == midnight:
                intervals.append(interval)

        return sorted(intervals, key=lambda i: i.start)

    def record_invoice(
        self,
        kind: InvoiceKind,
        source_id: str,
        invoice_number: str,
        sent_at: DateTime,
        expires_at: DateTime,
    ) -> None:
        """Store invoice metadata on the booking or contract and mark it payment-pending."""
        record = self._require(kind, source_id)
        record.invoice_number = invoice_number
        record.invoice_sent_at = sent_at
        record.invoice_expires_at = expires_at
        record.payment_status = PaymentStatus.PENDING

    def register_payment(self, payment: PaymentRecord) -> PaymentRecord:
        self._payments[payment.payment_id] = payment
        return payment

    def get_payment(self, payment_id: str) -> Optional[PaymentRecord]:
        return self._payments.get(payment_id)

    def set_payment_status(self, payment_id: str, status: PaymentStatus) -> int:
        """Update the payment with this gateway id; returns the number of rows touched."""
        payment = self._payments.get(payment_id)
        if payment is None:
            return 0
        payment.status = status
        return 1

    def set_booking_status(self, booking_id: str, status: BookingStatus) -> None:
        booking = self._require(InvoiceKind.BOOKING, booking_id)
        booking.status = status

    def set_contract_status(self, contract_id: str, status: ContractStatus) -> None:
        contract = self._require(InvoiceKind.CONTRACT, contract_id)
        contract.status = status

    def _require(self, kind: InvoiceKind, source_id: str):
        if kind is InvoiceKind.BOOKING:
            record = self._bookings.get(source_id)
        else:
            record = self._contracts.get(source_id)
        if record is None:
            raise NotFoundError(f"{kind.value.capitalize()} not found: {source_id}")
        return record


def _parse_datetime(value: Optional[str], timezone: str) -> Optional[DateTime]:
    return pendulum.parse(value, tz=timezone) if value else None


def _format_datetime(value: Optional[DateTime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_customer(entry: Dict[str, Any]) -> Customer:
    return Customer(
        email=entry["email"],
        name=entry.get("name"),
        phone=entry.get("phone"),
    )


def _parse_booking(entry: Dict[str, Any], timezone: str) -> BookingRecord:
    return BookingRecord(
        id=entry["id"],
        customer=_parse_customer(entry["customer"]),
        vehicle_type=entry["vehicle_type"],
        vehicle_count=int(entry.get("vehicle_count", 1)),
        services=[
            BookedService(
                name=service["name"],
                price=service["price"],
                duration_minutes=int(service.get("duration_minutes", 30)),
            )
            for service in entry.get("services", [])
        ],
        service_charge=entry.get("service_charge", 0),
        scheduled_start=_parse_datetime(entry.get("scheduled_start"), timezone),
        location=entry.get("location", ""),
        status=BookingStatus(entry.get("status", BookingStatus.PENDING.value)),
        payment_status=PaymentStatus(entry.get("payment_status", PaymentStatus.PENDING.value)),
        invoice_number=entry.get("invoice_number"),
        invoice_sent_at=_parse_datetime(entry.get("invoice_sent_at"), timezone),
        invoice_expires_at=_parse_datetime(entry.get("invoice_expires_at"), timezone),
    )


def _parse_contract(entry: Dict[str, Any], timezone: str) -> ContractRecord:
    return ContractRecord(
        id=entry["id"],
        customer=_parse_customer(entry["customer"]),
        package_name=entry["package_name"],
        total_washes=int(entry["total_washes"]),
        total_price=entry["total_price"],
        status=ContractStatus(entry.get("status", ContractStatus.PENDING.value)),
        payment_status=PaymentStatus(entry.get("payment_status", PaymentStatus.PENDING.value)),
        invoice_number=entry.get("invoice_number"),
        invoice_sent_at=_parse_datetime(entry.get("invoice_sent_at"), timezone),
        invoice_expires_at=_parse_datetime(entry.get("invoice_expires_at"), timezone),
    )


def _parse_payment(entry: Dict[str, Any]) -> PaymentRecord:
    return PaymentRecord(
        payment_id=entry["payment_id"],
        amount=as_decimal(entry["amount"]),
        currency=entry.get("currency", "ZAR"),
        status=PaymentStatus(entry.get("status", PaymentStatus.PENDING.value)),
        booking_id=entry.get("booking_id"),
        contract_id=entry.get("contract_id"),
    )


def _dump_customer(customer: Customer) -> Dict[str, Any]:
    return {"name": customer.name, "email": customer.email, "phone": customer.phone}


def _dump_invoice_fields(record) -> Dict[str, Any]:
    return {
        "payment_status": record.payment_status.value,
        "invoice_number": record.invoice_number,
        "invoice_sent_at": _format_datetime(record.invoice_sent_at),
        "invoice_expires_at": _format_datetime(record.invoice_expires_at),
    }


def _dump_booking(booking: BookingRecord) -> Dict[str, Any]:
    return {
        "id": booking.id,
        "customer": _dump_customer(booking.customer),
        "vehicle_type": booking.vehicle_type.value,
        "vehicle_count": booking.vehicle_count,
        "services": [
            {"name": s.name, "price": str(s.price), "duration_minutes": s.duration_minutes}
            for s in booking.services
        ],
        "service_charge": str(booking.service_charge),
        "scheduled_start": _format_datetime(booking.scheduled_start),
        "location": booking.location,
        "status": booking.status.value,
        **_dump_invoice_fields(booking),
    }


def _dump_contract(contract: ContractRecord) -> Dict[str, Any]:
    return {
        "id": contract.id,
        "customer": _dump_customer(contract.customer),
        "package_name": contract.package_name,
        "total_washes": contract.total_washes,
        "total_price": str(contract.total_price),
        "status": contract.status.value,
        **_dump_invoice_fields(contract),
    }


def _dump_payment(payment: PaymentRecord) -> Dict[str, Any]:
    return {
        "payment_id": payment.payment_id,
        "amount": str(payment.amount),
        "currency": payment.currency,
        "status": payment.status.value,
        "booking_id": payment.booking_id,
        "contract_id": payment.contract_id,
    }
