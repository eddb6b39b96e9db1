"""
Application service applying payment-gateway outcomes to stored records.

The gateway itself (intent creation, webhook signature checks) lives in the
surrounding application; this service only receives the verified outcome.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Protocol

from ..domain.exceptions import InvalidInputError, NotFoundError
from ..domain.invoice_calculator import to_minor_units
from ..domain.models import (
    BookingRecord,
    BookingStatus,
    ContractRecord,
    ContractStatus,
    PaymentOutcome,
    PaymentRecord,
    PaymentStatus,
    as_decimal,
)

logger = logging.getLogger(__name__)


class PaymentRecordStoreProtocol(Protocol):
    """Protocol describing the store behaviour needed for payment tracking."""

    def register_payment(self, payment: PaymentRecord) -> PaymentRecord:
        """Persist a new payment attempt."""

    def set_payment_status(self, payment_id: str, status: PaymentStatus) -> int:
        """Update a payment by gateway id, returning the number of rows touched."""

    def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        """Look up a booking by id."""

    def get_contract(self, contract_id: str) -> Optional[ContractRecord]:
        """Look up a contract by id."""

    def set_booking_status(self, booking_id: str, status: BookingStatus) -> None:
        """Transition a booking."""

    def set_contract_status(self, contract_id: str, status: ContractStatus) -> None:
        """Transition a contract."""


class PaymentService:
    """
    Tracks payment attempts and applies webhook outcomes.
    """

    def __init__(self, record_store: PaymentRecordStoreProtocol, currency: str = "ZAR") -> None:
        self._record_store = record_store
        self.currency = currency

    def register_payment(
        self,
        payment_id: str,
        amount,
        *,
        booking_id: Optional[str] = None,
        contract_id: Optional[str] = None,
    ) -> PaymentRecord:
        """
        Record a pending payment created at the gateway.

        Raises:
            InvalidInputError: If the payment has no id, no target or a non-positive amount
        """
        if not payment_id:
            raise InvalidInputError("A gateway payment id is required")
        if not booking_id and not contract_id:
            raise InvalidInputError("Either a booking id or a contract id is required")

        amount = as_decimal(amount)
        if amount <= 0:
            raise InvalidInputError(f"Payment amount must be positive, got {amount}")

        return self._record_store.register_payment(
            PaymentRecord(
                payment_id=payment_id,
                amount=amount,
                currency=self.currency,
                booking_id=booking_id,
                contract_id=contract_id,
            )
        )

    def gateway_amount(self, amount: Decimal) -> int:
        """Amount as the gateway expects it, in minor currency units."""
        return to_minor_units(amount)

    def apply_outcome(
        self,
        payment_id: str,
        outcome,
        *,
        booking_id: Optional[str] = None,
        contract_id: Optional[str] = None,
    ) -> PaymentStatus:
        """
        Apply a webhook outcome.

        A success completes the payment, confirms the booking and activates
        the contract named in the event; a failure only marks the payment.
        The booking and contract are looked up before anything changes, so an
        unknown id leaves the payment untouched.

        Raises:
            InvalidInputError: If the outcome is not recognised
            NotFoundError: If the named booking or contract does not exist
        """
        try:
            outcome = PaymentOutcome(outcome)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown payment outcome: {outcome!r}") from exc

        if outcome is PaymentOutcome.FAILED:
            self._record_store.set_payment_status(payment_id, PaymentStatus.FAILED)
            logger.warning("Payment failed: %s", payment_id)
            return PaymentStatus.FAILED

        if booking_id and self._record_store.get_booking(booking_id) is None:
            raise NotFoundError(f"Booking not found: {booking_id}")
        if contract_id and self._record_store.get_contract(contract_id) is None:
            raise NotFoundError(f"Contract not found: {contract_id}")

        updated = self._record_store.set_payment_status(payment_id, PaymentStatus.COMPLETED)
        if not updated:
            logger.warning("Payment %s succeeded but no payment record matched", payment_id)

        if booking_id:
            self._record_store.set_booking_status(booking_id, BookingStatus.CONFIRMED)
        if contract_id:
            self._record_store.set_contract_status(contract_id, ContractStatus.ACTIVE)

        logger.info("Payment succeeded: %s", payment_id)
        return PaymentStatus.COMPLETED
