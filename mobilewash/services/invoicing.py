"""
Application service that resolves bookings/contracts and issues invoices.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Tuple

from pendulum import DateTime

from ..domain.exceptions import InvalidInputError, NotFoundError
from ..domain.invoice_calculator import InvoiceCalculator, InvoiceSource
from ..domain.models import BookingRecord, ContractRecord, Invoice, InvoiceKind

logger = logging.getLogger(__name__)


class InvoiceRecordStoreProtocol(Protocol):
    """Protocol describing the store behaviour needed for invoicing."""

    def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        """Return a booking or None."""

    def get_contract(self, contract_id: str) -> Optional[ContractRecord]:
        """Return a contract or None."""

    def record_invoice(
        self,
        kind: InvoiceKind,
        source_id: str,
        invoice_number: str,
        sent_at: DateTime,
        expires_at: DateTime,
    ) -> None:
        """Persist invoice metadata on the billed record."""


class InvoiceService:
    """
    Builds invoices from stored records and writes the invoice metadata back.
    """

    def __init__(
        self,
        record_store: InvoiceRecordStoreProtocol,
        invoice_calculator: InvoiceCalculator,
    ) -> None:
        self._record_store = record_store
        self._invoice_calculator = invoice_calculator

    def build_invoice(
        self,
        kind,
        *,
        booking_id: Optional[str] = None,
        contract_id: Optional[str] = None,
    ) -> Invoice:
        """
        Build a fresh invoice without touching the store.

        Raises:
            InvalidInputError: If no id is given or the id does not fit ``kind``
            NotFoundError: If the referenced record does not exist
        """
        kind, source = self._resolve_source(kind, booking_id=booking_id, contract_id=contract_id)
        return self._invoice_calculator.build_invoice(source, kind)

    def issue_invoice(
        self,
        kind,
        *,
        booking_id: Optional[str] = None,
        contract_id: Optional[str] = None,
    ) -> Invoice:
        """Build an invoice and mark the billed record as awaiting payment."""
        invoice = self.build_invoice(kind, booking_id=booking_id, contract_id=contract_id)

        self._record_store.record_invoice(
            invoice.kind,
            invoice.source_id,
            invoice.invoice_number,
            invoice.issued_at,
            invoice.due_at,
        )
        logger.info(
            "Issued invoice %s for %s %s, total %s, due %s",
            invoice.invoice_number,
            invoice.kind.value,
            invoice.source_id,
            invoice.total,
            invoice.due_at.to_iso8601_string(),
        )
        return invoice

    def _resolve_source(
        self,
        kind,
        *,
        booking_id: Optional[str],
        contract_id: Optional[str],
    ) -> Tuple[InvoiceKind, InvoiceSource]:
        if not booking_id and not contract_id:
            raise InvalidInputError("Either a booking id or a contract id is required")

        try:
            kind = InvoiceKind(kind)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown invoice kind: {kind!r}") from exc

        if kind is InvoiceKind.BOOKING:
            if not booking_id:
                raise InvalidInputError("A booking invoice needs a booking id")
            booking = self._record_store.get_booking(booking_id)
            if booking is None:
                raise NotFoundError(f"Booking not found: {booking_id}")
            return kind, booking

        if not contract_id:
            raise InvalidInputError("A contract invoice needs a contract id")
        contract = self._record_store.get_contract(contract_id)
        if contract is None:
            raise NotFoundError(f"Contract not found: {contract_id}")
        return kind, contract
