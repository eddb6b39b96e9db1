"""
Tests for the service layer orchestration.
"""

from decimal import Decimal
from typing import Dict, List

import pendulum
import pytest

from mobilewash.adapters.mock_geocoding_client import MockGeocodingClient
from mobilewash.adapters.mock_record_store import MockRecordStore
from mobilewash.config import AppConfig
from mobilewash.domain.exceptions import (
    InvalidInputError,
    NotFoundError,
    UpstreamUnavailableError,
)
from mobilewash.domain.invoice_calculator import InvoiceCalculator
from mobilewash.domain.models import (
    BookedService,
    BookingInterval,
    BookingRecord,
    BookingStatus,
    ContractRecord,
    ContractStatus,
    Coordinates,
    Customer,
    InvoiceKind,
    OperatingHours,
    PaymentStatus,
    VehicleType,
)
from mobilewash.domain.slot_calculator import SlotCalculator
from mobilewash.services.availability import AvailabilityService
from mobilewash.services.booking import BookingService
from mobilewash.services.invoicing import InvoiceService
from mobilewash.services.location import LocationService
from mobilewash.services.payments import PaymentService

TZ = "Africa/Johannesburg"
DANOON = Coordinates(latitude=-26.5375, longitude=31.0989)


class StubIntervalSource:
    """Minimal stub matching IntervalSourceProtocol."""

    def __init__(self, intervals: List[BookingInterval]):
        self._intervals = intervals
        self.calls: List[str] = []

    def get_intervals(self, day):
        self.calls.append(day.isoformat()[:10])
        return self._intervals


class FailingGeocoder:
    def geocode(self, address):
        raise UpstreamUnavailableError("provider down")


def _store() -> MockRecordStore:
    return MockRecordStore(
        bookings=[
            BookingRecord(
                id="bk-1",
                customer=Customer(email="thandi@example.com", name="Thandi"),
                vehicle_type=VehicleType.SMALL,
                vehicle_count=1,
                services=[BookedService(name="Standard Full Package", price=250, duration_minutes=60)],
                scheduled_start=pendulum.parse("2025-11-24 09:00", tz=TZ),
            ),
        ],
        contracts=[
            ContractRecord(
                id="ct-1",
                customer=Customer(email="lerato@example.com"),
                package_name="Monthly Fleet",
                total_washes=8,
                total_price=Decimal("1000"),
            ),
        ],
        timezone=TZ,
    )


def _invoice_service(store) -> InvoiceService:
    calculator = InvoiceCalculator(
        payment_details=AppConfig().invoicing.payment_details(),
        clock=lambda: pendulum.parse("2025-11-24 10:00", tz=TZ),
    )
    return InvoiceService(record_store=store, invoice_calculator=calculator)


class TestAvailabilityService:
    """Tests for AvailabilityService."""

    def test_uses_store_intervals(self):
        source = StubIntervalSource(
            [
                BookingInterval(
                    start=pendulum.parse("2025-11-24 13:00", tz=TZ),
                    end=pendulum.parse("2025-11-24 15:00", tz=TZ),
                )
            ]
        )
        service = AvailabilityService(source, SlotCalculator(OperatingHours(timezone=TZ)))

        slots = service.slots_for(pendulum.parse("2025-11-24", tz=TZ), duration_minutes=60)

        assert source.calls == ["2025-11-24"]
        by_time = {s.clock_time: s for s in slots}
        assert not by_time["13:30"].available
        assert by_time["15:00"].available

    def test_duration_from_catalogue(self):
        """Standard Full (60) + Exterior (30) needs 90 minutes."""
        config = AppConfig()
        service = AvailabilityService(
            _store(), SlotCalculator(config.operating_hours()), config=config
        )

        assert service.resolve_duration(service_ids=["standard-full", "Exterior Wash"]) == 90

        slots = service.slots_for(
            pendulum.parse("2025-11-24", tz=TZ),
            service_ids=["standard-full", "exterior-basic"],
        )
        by_time = {s.clock_time: s for s in slots}
        assert not by_time["08:00"].available  # 08:00-09:30 runs into the 09:00 booking
        assert by_time["10:00"].available

    def test_unknown_service_is_invalid_input(self):
        config = AppConfig()
        service = AvailabilityService(_store(), SlotCalculator(config.operating_hours()), config=config)

        with pytest.raises(InvalidInputError, match="Unknown service"):
            service.resolve_duration(service_ids=["car-polish"])

    def test_duration_or_services_required(self):
        service = AvailabilityService(_store(), SlotCalculator(OperatingHours(timezone=TZ)))

        with pytest.raises(InvalidInputError):
            service.slots_for(pendulum.parse("2025-11-24", tz=TZ))

    def test_is_time_available(self):
        service = AvailabilityService(_store(), SlotCalculator(OperatingHours(timezone=TZ)))
        day = pendulum.parse("2025-11-24", tz=TZ)

        assert not service.is_time_available(day, "09:30", duration_minutes=30)
        assert service.is_time_available(day, "10:00", duration_minutes=30)


class TestInvoiceService:
    """Tests for InvoiceService."""

    def test_build_booking_invoice(self):
        invoice = _invoice_service(_store()).build_invoice("booking", booking_id="bk-1")

        assert invoice.source_id == "bk-1"
        assert invoice.subtotal == Decimal("250.00")
        assert invoice.total == Decimal("287.50")

    def test_build_does_not_touch_store(self):
        store = _store()

        _invoice_service(store).build_invoice(InvoiceKind.BOOKING, booking_id="bk-1")

        assert store.get_booking("bk-1").invoice_number is None

    def test_issue_records_metadata(self):
        store = _store()

        invoice = _invoice_service(store).issue_invoice(InvoiceKind.CONTRACT, contract_id="ct-1")

        contract = store.get_contract("ct-1")
        assert contract.invoice_number == invoice.invoice_number
        assert contract.invoice_sent_at == invoice.issued_at
        assert contract.invoice_expires_at == invoice.due_at
        assert contract.payment_status is PaymentStatus.PENDING

    def test_unknown_booking_is_not_found(self):
        with pytest.raises(NotFoundError, match="Booking not found"):
            _invoice_service(_store()).build_invoice(InvoiceKind.BOOKING, booking_id="bk-404")

    def test_unknown_contract_is_not_found(self):
        with pytest.raises(NotFoundError, match="Contract not found"):
            _invoice_service(_store()).build_invoice(InvoiceKind.CONTRACT, contract_id="ct-404")

    def test_missing_ids_is_invalid_input(self):
        with pytest.raises(InvalidInputError, match="required"):
            _invoice_service(_store()).build_invoice(InvoiceKind.BOOKING)

    def test_kind_mismatch_is_invalid_input(self):
        with pytest.raises(InvalidInputError, match="booking id"):
            _invoice_service(_store()).build_invoice(InvoiceKind.BOOKING, contract_id="ct-1")

    def test_unknown_kind_is_invalid_input(self):
        with pytest.raises(InvalidInputError, match="Unknown invoice kind"):
            _invoice_service(_store()).build_invoice("subscription", booking_id="bk-1")


class TestBookingService:
    """Tests for BookingService."""

    KOMATIPOORT = Coordinates(latitude=-25.4332, longitude=31.9548)

    def _location(self, geocoder=None) -> LocationService:
        geocoder = geocoder or MockGeocodingClient({"Komatipoort": self.KOMATIPOORT})
        return LocationService.from_config(geocoder, AppConfig().location)

    def _service(self, store, geocoder=None) -> BookingService:
        config = AppConfig()
        return BookingService(
            record_store=store,
            slot_calculator=SlotCalculator(config.operating_hours()),
            config=config,
            location_service=self._location(geocoder),
            id_factory=lambda: "bk-new",
        )

    def test_prices_services_for_vehicle_type(self):
        services = self._service(_store()).price_services(
            ["standard-full", "exterior-basic"], VehicleType.SUV
        )

        assert [(s.name, s.price, s.duration_minutes) for s in services] == [
            ("Standard Full Package", Decimal("300"), 60),
            ("Exterior Wash", Decimal("150"), 30),
        ]

    def test_creates_confirmed_booking(self):
        store = _store()
        day = pendulum.parse("2025-11-24", tz=TZ)

        booking = self._service(store).create_booking(
            day, "11:00", "small", 2, ["standard-full"], Customer(email="new@example.com")
        )

        assert booking.id == "bk-new"
        assert booking.status is BookingStatus.CONFIRMED
        assert booking.vehicle_type is VehicleType.SMALL
        assert booking.service_charge == 0
        assert booking.location == ""
        assert booking.scheduled_start == pendulum.parse("2025-11-24 11:00", tz=TZ)
        assert store.get_booking("bk-new") is booking
        assert [i.start.format("HH:mm") for i in store.get_intervals(day)] == ["09:00", "11:00"]

    def test_surcharge_taken_from_address(self):
        store = _store()
        expected = self._location().check_address("Komatipoort").surcharge

        booking = self._service(store).create_booking(
            pendulum.parse("2025-11-24", tz=TZ),
            "12:00",
            VehicleType.SUV,
            1,
            ["exterior-basic"],
            Customer(email="far@example.com"),
            address="Komatipoort",
        )

        assert expected > 0
        assert booking.service_charge == expected
        assert booking.location == "Komatipoort"

    def test_booking_is_invoiced_from_catalogue_prices(self):
        """2 x Standard Full for a small car: 500 + 15% = 575."""
        store = _store()
        self._service(store).create_booking(
            pendulum.parse("2025-11-24", tz=TZ), "11:00", "SMALL", 2, ["standard-full"],
            Customer(email="new@example.com"),
        )

        invoice = _invoice_service(store).build_invoice(InvoiceKind.BOOKING, booking_id="bk-new")

        assert invoice.subtotal == Decimal("500")
        assert invoice.total == Decimal("575.00")

    def test_blocked_start_rejected(self):
        """bk-1 occupies 09:00-10:00."""
        store = _store()

        with pytest.raises(InvalidInputError, match="not available"):
            self._service(store).create_booking(
                pendulum.parse("2025-11-24", tz=TZ), "09:30", "SMALL", 1, ["standard-full"],
                Customer(email="late@example.com"),
            )

        assert store.get_booking("bk-new") is None

    @pytest.mark.parametrize(
        "vehicle_type, vehicle_count, service_ids, message",
        [
            ("TRUCK", 1, ["standard-full"], "vehicle type"),
            ("SMALL", 0, ["standard-full"], "At least one vehicle"),
            ("SMALL", 1, ["wax"], "wax"),
            ("SMALL", 1, [], "No services"),
        ],
    )
    def test_invalid_requests_rejected(self, vehicle_type, vehicle_count, service_ids, message):
        with pytest.raises(InvalidInputError, match=message):
            self._service(_store()).create_booking(
                pendulum.parse("2025-11-24", tz=TZ), "11:00", vehicle_type, vehicle_count,
                service_ids, Customer(email="x@example.com"),
            )

    def test_geocoder_failure_commits_nothing(self):
        store = _store()

        with pytest.raises(UpstreamUnavailableError):
            self._service(store, geocoder=FailingGeocoder()).create_booking(
                pendulum.parse("2025-11-24", tz=TZ), "11:00", "SMALL", 1, ["exterior-basic"],
                Customer(email="x@example.com"), address="Komatipoort",
            )

        assert store.get_booking("bk-new") is None

    def test_store_rejects_same_start(self):
        """An unscheduled-looking record without services still holds its start time in the store."""
        store = _store()
        store.add_booking(
            BookingRecord(
                id="bk-empty",
                customer=Customer(email="empty@example.com"),
                vehicle_type=VehicleType.SMALL,
                vehicle_count=1,
                scheduled_start=pendulum.parse("2025-11-24 11:00", tz=TZ),
            )
        )

        with pytest.raises(InvalidInputError, match="already taken"):
            self._service(store).create_booking(
                pendulum.parse("2025-11-24", tz=TZ), "11:00", "SMALL", 1, ["exterior-basic"],
                Customer(email="x@example.com"),
            )

class TestLocationService:
    """Tests for LocationService."""

    def _service(self, geocoder) -> LocationService:
        return LocationService(
            geocoder=geocoder,
            base_coordinates=DANOON,
            radius_km=Decimal("20"),
            per_km_rate=Decimal("20"),
        )

    def test_address_at_base_is_free(self):
        geocoder = MockGeocodingClient({"12 Church Street, Danoon": DANOON})

        quote = self._service(geocoder).check_address("  12 church street,  danoon ")

        assert quote.within_free_radius
        assert quote.surcharge == 0
        assert quote.origin_address_text == "12 church street,  danoon"

    def test_far_address_is_charged(self):
        geocoder = MockGeocodingClient(
            {"Komatipoort": Coordinates(latitude=-25.4332, longitude=31.9548)}
        )

        quote = self._service(geocoder).check_address("Komatipoort")

        assert not quote.within_free_radius
        assert quote.distance_km > 100
        assert quote.surcharge > 0

    def test_blank_address_rejected(self):
        with pytest.raises(InvalidInputError, match="address"):
            self._service(MockGeocodingClient({})).check_address("   ")

    def test_unknown_address_not_found(self):
        with pytest.raises(NotFoundError):
            self._service(MockGeocodingClient({})).check_address("Nowhere 1")

    def test_upstream_failure_propagates(self):
        with pytest.raises(UpstreamUnavailableError):
            self._service(FailingGeocoder()).check_address("Komatipoort")

    def test_from_config(self):
        service = LocationService.from_config(MockGeocodingClient({}), AppConfig().location)

        assert service.base_coordinates == DANOON
        assert service.radius_km == Decimal("20")


class TestPaymentService:
    """Tests for PaymentService."""

    def test_success_confirms_booking(self):
        store = _store()
        payments = PaymentService(store)
        payments.register_payment("pi_123", Decimal("287.50"), booking_id="bk-1")

        status = payments.apply_outcome("pi_123", "succeeded", booking_id="bk-1")

        assert status is PaymentStatus.COMPLETED
        assert store.get_payment("pi_123").status is PaymentStatus.COMPLETED
        assert store.get_booking("bk-1").status is BookingStatus.CONFIRMED

    def test_success_activates_contract(self):
        store = _store()
        payments = PaymentService(store)
        payments.register_payment("pi_456", 1150, contract_id="ct-1")

        payments.apply_outcome("pi_456", "succeeded", contract_id="ct-1")

        assert store.get_contract("ct-1").status is ContractStatus.ACTIVE

    def test_failure_only_marks_payment(self):
        store = _store()
        payments = PaymentService(store)
        payments.register_payment("pi_789", 100, booking_id="bk-1")

        status = payments.apply_outcome("pi_789", "failed", booking_id="bk-1")

        assert status is PaymentStatus.FAILED
        assert store.get_payment("pi_789").status is PaymentStatus.FAILED
        assert store.get_booking("bk-1").status is BookingStatus.PENDING

    def test_unknown_outcome_rejected(self):
        with pytest.raises(InvalidInputError):
            PaymentService(_store()).apply_outcome("pi_1", "refunded")

    def test_success_for_missing_booking_leaves_payment_pending(self):
        store = _store()
        payments = PaymentService(store)
        payments.register_payment("pi_1", 100, booking_id="bk-404")

        with pytest.raises(NotFoundError, match="bk-404"):
            payments.apply_outcome("pi_1", "succeeded", booking_id="bk-404")

        assert store.get_payment("pi_1").status is PaymentStatus.PENDING

    def test_success_for_missing_contract_leaves_booking_untouched(self):
        store = _store()

        with pytest.raises(NotFoundError, match="ct-404"):
            PaymentService(store).apply_outcome(
                "pi_2", "succeeded", booking_id="bk-1", contract_id="ct-404"
            )

        assert store.get_booking("bk-1").status is BookingStatus.PENDING

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"payment_id": "", "amount": 10, "booking_id": "bk-1"},
            {"payment_id": "pi_1", "amount": 10},
            {"payment_id": "pi_1", "amount": 0, "booking_id": "bk-1"},
        ],
    )
    def test_register_payment_validation(self, kwargs):
        with pytest.raises(InvalidInputError):
            PaymentService(_store()).register_payment(**kwargs)

    def test_gateway_amount_in_cents(self):
        assert PaymentService(_store()).gateway_amount(Decimal("287.50")) == 28750
