"""
Invoice arithmetic: line items, tax, totals, numbering and expiry.
"""

import itertools
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, List, Optional, Union

import pendulum
from pendulum import DateTime

from .exceptions import InvalidInputError
from .models import (
    BookingRecord,
    ContractRecord,
    Invoice,
    InvoiceKind,
    InvoiceLineItem,
    PaymentDetails,
    as_decimal,
)

CENT = Decimal("0.01")
SERVICE_CHARGE_DESCRIPTION = "Mobile Service Charge (Distance)"

InvoiceSource = Union[BookingRecord, ContractRecord]


def round_money(amount: Decimal) -> Decimal:
    """Round an amount half-up to cents."""
    return as_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """Convert a major-unit amount (e.g. rand) to minor units (cents) for the gateway."""
    return int(round_money(amount) * 100)


class InvoiceNumberGenerator:
    """
    Produces invoice numbers of the form ``INV-<timestamp>-<sequence>``.

    The sequence never repeats within a process, so numbers are unique for
    the lifetime of the service even when two are issued in the same
    millisecond.
    """

    def __init__(self, clock: Optional[Callable[[], DateTime]] = None, start: int = 1):
        self._clock = clock or pendulum.now
        self._sequence = itertools.count(start)

    def next_number(self, moment: Optional[DateTime] = None) -> str:
        moment = moment or self._clock()
        stamp = str(int(moment.timestamp() * 1000))[-6:]
        return f"INV-{stamp}-{next(self._sequence):04d}"


class InvoiceCalculator:
    """
    Builds immutable invoices for bookings and contract packages.
    """

    def __init__(
        self,
        payment_details: PaymentDetails,
        tax_rate: Decimal = Decimal("0.15"),
        validity_hours: int = 24,
        number_generator: Optional[InvoiceNumberGenerator] = None,
        clock: Optional[Callable[[], DateTime]] = None,
    ):
        tax_rate = as_decimal(tax_rate)
        if not Decimal("0") <= tax_rate < Decimal("1"):
            raise InvalidInputError(f"Tax rate must be in [0, 1), got {tax_rate}")
        if validity_hours <= 0:
            raise InvalidInputError(f"Validity window must be positive, got {validity_hours}")

        self.payment_details = payment_details
        self.tax_rate = tax_rate
        self.validity_hours = validity_hours
        self._clock = clock or pendulum.now
        self._numbers = number_generator or InvoiceNumberGenerator(clock=self._clock)

    def build_invoice(self, source: InvoiceSource, kind: InvoiceKind) -> Invoice:
        """
        Build a fresh invoice for a booking or a contract.

        Raises:
            InvalidInputError: If ``kind`` does not describe ``source``
        """
        kind = self._coerce_kind(kind)

        if kind is InvoiceKind.BOOKING and isinstance(source, BookingRecord):
            items = self.booking_line_items(source)
        elif kind is InvoiceKind.CONTRACT and isinstance(source, ContractRecord):
            items = self.contract_line_items(source)
        else:
            raise InvalidInputError(
                f"Invoice kind '{kind.value}' does not match source {type(source).__name__}"
            )

        items = [item for item in items if item.quantity > 0]
        subtotal = sum((item.line_total for item in items), Decimal("0"))
        tax_amount = round_money(subtotal * self.tax_rate)
        total = round_money(subtotal + tax_amount)

        issued_at = self._clock()
        invoice_number = self._numbers.next_number(issued_at)

        return Invoice(
            invoice_number=invoice_number,
            kind=kind,
            source_id=source.id,
            issued_at=issued_at,
            due_at=issued_at.add(hours=self.validity_hours),
            line_items=tuple(items),
            subtotal=round_money(subtotal),
            tax_rate=self.tax_rate,
            tax_amount=tax_amount,
            total=total,
            payment_reference=invoice_number,
            customer=source.customer,
            payment_details=self.payment_details,
        )

    @staticmethod
    def booking_line_items(booking: BookingRecord) -> List[InvoiceLineItem]:
        """One line per service for every vehicle, plus the distance surcharge."""
        items = [
            InvoiceLineItem(
                description=f"{service.name} ({booking.vehicle_type.value})",
                quantity=booking.vehicle_count,
                unit_rate=service.price,
            )
            for service in booking.services
        ]

        if booking.service_charge > 0:
            items.append(
                InvoiceLineItem(
                    description=SERVICE_CHARGE_DESCRIPTION,
                    quantity=1,
                    unit_rate=booking.service_charge,
                )
            )

        return items

    @staticmethod
    def contract_line_items(contract: ContractRecord) -> List[InvoiceLineItem]:
        return [
            InvoiceLineItem(
                description=f"{contract.package_name} Package ({contract.total_washes} washes)",
                quantity=1,
                unit_rate=contract.total_price,
            )
        ]

    @staticmethod
    def _coerce_kind(kind) -> InvoiceKind:
        try:
            return InvoiceKind(kind)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown invoice kind: {kind!r}") from exc
