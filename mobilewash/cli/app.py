"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..adapters.geocoding_client import build_geocoder
from ..adapters.mock_geocoding_client import MockGeocodingClient
from ..adapters.mock_record_store import DEFAULT_DATA_FILE, MockRecordStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import MobileWashError
from ..domain.invoice_calculator import InvoiceCalculator
from ..domain.models import Customer, InvoiceKind
from ..domain.slot_calculator import SlotCalculator
from ..services.availability import AvailabilityService
from ..services.booking import BookingService
from ..services.invoicing import InvoiceService
from ..services.location import LocationService

app = typer.Typer(
    name="mobilewash",
    help="Slot availability, invoices and distance quotes for a mobile car-wash service",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
DataOption = Annotated[
    Path,
    typer.Option("--data", help="JSON file with bookings and contracts."),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """
    Load the explicit config file, or the default one if present.

    Without any config file the built-in defaults are used.
    """
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()


def _fail(message) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(message))}")
    raise typer.Exit(1)


@app.command()
def slots(
    day: Annotated[str, typer.Argument(help="Day to check (YYYY-MM-DD)")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Appointment duration in minutes")] = None,
    service: Annotated[Optional[List[str]], typer.Option("--service", "-s", help="Service id or name; repeat for several. Each service counts once.")] = None,
    only_available: Annotated[bool, typer.Option("--available", help="Only list bookable times.")] = False,
    config_file: ConfigOption = None,
    data_file: DataOption = DEFAULT_DATA_FILE,
):
    """
    Show the bookable time grid for a day.

    Examples:

        mobilewash slots 2025-11-24 --duration 60

        mobilewash slots 2025-11-24 -s standard-full -s exterior-basic
    """
    try:
        config = _load_config(config_file)
        tz = config.business.timezone

        try:
            target_day = pendulum.from_format(day, "YYYY-MM-DD", tz=tz)
        except ValueError as e:
            _fail(f"Invalid date {day!r}: {e}")

        store = MockRecordStore.from_json(data_file, timezone=tz)
        service_layer = AvailabilityService(
            interval_source=store,
            slot_calculator=SlotCalculator(config.operating_hours()),
            config=config,
        )
        grid = service_layer.slots_for(
            target_day,
            duration_minutes=duration,
            service_ids=service or (),
        )

    except (FileNotFoundError, ValueError, MobileWashError) as e:
        _fail(e)

    table = Table(
        title=f"Slots on {target_day.format('DD.MM.YYYY')}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Time", style="bold")
    table.add_column("Status")

    for slot in grid:
        if only_available and not slot.available:
            continue
        status = "[green]available[/green]" if slot.available else f"[red]{slot.unavailable_reason}[/red]"
        table.add_row(slot.clock_time, status)

    console.print()
    console.print(table)
    free = sum(1 for slot in grid if slot.available)
    console.print(f"\n[bold green]✓ {free} of {len(grid)} slots available[/bold green]\n")


@app.command()
def quote(
    address: Annotated[str, typer.Argument(help="Service address")],
    mock: Annotated[bool, typer.Option("--mock", help="Use the address table from the mock data file.")] = False,
    config_file: ConfigOption = None,
    data_file: DataOption = DEFAULT_DATA_FILE,
):
    """
    Quote the travel surcharge for a service address.
    """
    try:
        config = _load_config(config_file)

        if mock:
            console.print("[yellow]⚠  MOCK MODE: using fixture addresses[/yellow]")
            geocoder = MockGeocodingClient.from_json(data_file)
        else:
            geocoder = build_geocoder(config.location.geocoding_api_key)

        result = LocationService.from_config(geocoder, config.location).check_address(address)

    except (FileNotFoundError, ValueError, MobileWashError) as e:
        _fail(e)

    console.print(f"\n[bold]Distance from {config.location.base_name}:[/bold] {result.distance_km:.1f} km")
    if result.within_free_radius:
        console.print("[green]✓ Within the service area, no additional charges.[/green]\n")
    else:
        console.print(
            f"[yellow]Service charge: {config.business.currency} {result.surcharge}[/yellow] "
            f"({config.location.per_km_rate} per km beyond {config.location.free_radius_km} km)\n"
        )


@app.command()
def book(
    day: Annotated[str, typer.Argument(help="Day of the appointment (YYYY-MM-DD)")],
    clock_time: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    email: Annotated[str, typer.Option("--email", "-e", help="Customer email")],
    service: Annotated[List[str], typer.Option("--service", "-s", help="Service id or name; repeat for several. Each service counts once.")],
    vehicle_type: Annotated[str, typer.Option("--vehicle", help="SMALL or SUV")] = "SMALL",
    vehicle_count: Annotated[int, typer.Option("--cars", help="Number of vehicles")] = 1,
    name: Annotated[Optional[str], typer.Option("--name", help="Customer name")] = None,
    address: Annotated[Optional[str], typer.Option("--address", "-a", help="Service address; adds the distance surcharge")] = None,
    mock: Annotated[bool, typer.Option("--mock", help="Use the address table from the mock data file.")] = False,
    config_file: ConfigOption = None,
    data_file: DataOption = DEFAULT_DATA_FILE,
):
    """
    Book an appointment and save it to the --data file.

    Example:

        mobilewash book 2025-11-24 11:00 -e a@example.com -s standard-full --data records.json
    """
    try:
        if data_file == DEFAULT_DATA_FILE:
            _fail("book writes to the records file; pass --data with your own copy")

        config = _load_config(config_file)
        tz = config.business.timezone

        try:
            target_day = pendulum.from_format(day, "YYYY-MM-DD", tz=tz)
        except ValueError as e:
            _fail(f"Invalid date {day!r}: {e}")

        if mock:
            geocoder = MockGeocodingClient.from_json(data_file)
        else:
            geocoder = build_geocoder(config.location.geocoding_api_key)

        store = MockRecordStore.from_json(data_file, timezone=tz)
        booking_service = BookingService(
            record_store=store,
            slot_calculator=SlotCalculator(config.operating_hours()),
            config=config,
            location_service=LocationService.from_config(geocoder, config.location),
        )
        booking = booking_service.create_booking(
            target_day,
            clock_time,
            vehicle_type,
            vehicle_count,
            service,
            Customer(email=email, name=name),
            address=address,
        )
        store.save_json(data_file)

    except (OSError, ValueError, MobileWashError) as e:
        _fail(e)

    interval = booking.to_interval()
    console.print(f"\n[bold green]✓ Booked {booking.id}[/bold green] {escape(str(interval))}")
    if booking.service_charge:
        console.print(f"Service charge: {config.business.currency} {booking.service_charge}")
    console.print()


@app.command()
def invoice(
    kind: Annotated[InvoiceKind, typer.Argument(help="booking or contract")],
    record_id: Annotated[str, typer.Argument(help="Booking or contract id")],
    issue: Annotated[bool, typer.Option("--issue", help="Record the invoice on the booking/contract and save the --data file.")] = False,
    config_file: ConfigOption = None,
    data_file: DataOption = DEFAULT_DATA_FILE,
):
    """
    Build an invoice for a booking or contract.
    """
    try:
        config = _load_config(config_file)
        tz = config.business.timezone

        store = MockRecordStore.from_json(data_file, timezone=tz)
        calculator = InvoiceCalculator(
            payment_details=config.invoicing.payment_details(),
            tax_rate=config.invoicing.tax_rate,
            validity_hours=config.invoicing.validity_hours,
            clock=lambda: pendulum.now(tz),
        )
        invoice_service = InvoiceService(record_store=store, invoice_calculator=calculator)

        ids = {"booking_id": record_id} if kind is InvoiceKind.BOOKING else {"contract_id": record_id}
        if issue:
            if data_file == DEFAULT_DATA_FILE:
                _fail("--issue writes to the records file; pass --data with your own copy")
            result = invoice_service.issue_invoice(kind, **ids)
            store.save_json(data_file)
        else:
            result = invoice_service.build_invoice(kind, **ids)

    except (OSError, ValueError, MobileWashError) as e:
        _fail(e)

    currency = config.business.currency
    table = Table(
        title=f"Invoice {result.invoice_number}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Description")
    table.add_column("Qty", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Total", justify="right", style="bold")

    for item in result.line_items:
        table.add_row(item.description, str(item.quantity), f"{item.unit_rate:.2f}", f"{item.line_total:.2f}")

    console.print()
    console.print(f"[bold]Billed to:[/bold] {result.customer.display_name()} <{result.customer.email}>")
    console.print(table)
    console.print(f"Subtotal: {currency} {result.subtotal:.2f}")
    console.print(f"Tax ({result.tax_rate * 100:.0f}% VAT): {currency} {result.tax_amount:.2f}")
    console.print(f"[bold]Total Amount Due: {currency} {result.total:.2f}[/bold]")
    console.print(f"Due: {result.due_at.format('DD.MM.YYYY HH:mm')}  Reference: {result.payment_reference}\n")


@app.command()
def services(config_file: ConfigOption = None):
    """
    List the configured service catalogue.
    """
    try:
        config = _load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    table = Table(
        title="Services",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Id", style="bold yellow")
    table.add_column("Name")
    table.add_column("Minutes", justify="right")
    table.add_column("Prices", style="dim")

    for offering in config.services:
        prices = ", ".join(f"{vehicle.value} {price}" for vehicle, price in offering.prices.items())
        table.add_row(offering.id, offering.name, str(offering.duration_minutes), prices)

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]mobilewash[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
