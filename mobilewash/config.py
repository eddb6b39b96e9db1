"""
Configuration management using Pydantic models loaded from YAML.
"""

from datetime import time
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Sequence

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import Coordinates, OperatingHours, PaymentDetails, VehicleType


class BusinessConfig(BaseModel):
    """Who we are and which clock we run on."""
    name: str = "K2025 Mobile Carwash"
    timezone: str = "Africa/Johannesburg"
    currency: str = "ZAR"


class ScheduleConfig(BaseModel):
    """Daily booking window and slot granularity."""
    open_hour: int = 8
    open_minute: int = 0
    close_hour: int = 17
    close_minute: int = 0
    slot_interval_minutes: int = 30

    @field_validator("open_hour", "close_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @field_validator("open_minute", "close_minute")
    @classmethod
    def validate_minute(cls, v: int) -> int:
        if not 0 <= v <= 59:
            raise ValueError(f"Minute must be between 0 and 59, got {v}")
        return v

    @field_validator("slot_interval_minutes")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        """Ensure the slot grid has a positive step."""
        if value <= 0:
            raise ValueError("slot_interval_minutes must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_hours_order(self) -> "ScheduleConfig":
        """Ensure the configured window opens before it closes."""
        if self.get_close_time() <= self.get_open_time():
            raise ValueError("close time must be later than open time")
        return self

    def get_open_time(self) -> time:
        return time(hour=self.open_hour, minute=self.open_minute)

    def get_close_time(self) -> time:
        return time(hour=self.close_hour, minute=self.close_minute)


class InvoicingConfig(BaseModel):
    """Tax, invoice validity and the bank details printed on invoices."""
    tax_rate: Decimal = Decimal("0.15")
    validity_hours: int = 24
    bank_name: str = "Standard Bank"
    account_name: str = "K2025 Mobile Carwash"
    account_number: str = "1234567890"

    @field_validator("tax_rate")
    @classmethod
    def validate_tax_rate(cls, value: Decimal) -> Decimal:
        if not Decimal("0") <= value < Decimal("1"):
            raise ValueError(f"tax_rate must be between 0 and 1, got {value}")
        return value

    @field_validator("validity_hours")
    @classmethod
    def validate_validity(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("validity_hours must be greater than zero")
        return value

    def payment_details(self) -> PaymentDetails:
        return PaymentDetails(
            bank_name=self.bank_name,
            account_name=self.account_name,
            account_number=self.account_number,
        )


class LocationConfig(BaseModel):
    """Base location and distance surcharge settings."""
    base_name: str = "Danoon"
    base_latitude: float = -26.5375
    base_longitude: float = 31.0989
    free_radius_km: Decimal = Decimal("20")
    per_km_rate: Decimal = Decimal("20")
    geocoding_api_key: str = ""  # Empty: no geocoding provider configured

    @field_validator("base_latitude")
    @classmethod
    def validate_latitude(cls, v: float) -> float:
        if not -90.0 <= v <= 90.0:
            raise ValueError(f"Latitude must be between -90 and 90, got {v}")
        return v

    @field_validator("base_longitude")
    @classmethod
    def validate_longitude(cls, v: float) -> float:
        if not -180.0 <= v <= 180.0:
            raise ValueError(f"Longitude must be between -180 and 180, got {v}")
        return v

    @field_validator("free_radius_km", "per_km_rate")
    @classmethod
    def validate_non_negative(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError(f"Value must not be negative, got {value}")
        return value

    def base_coordinates(self) -> Coordinates:
        return Coordinates(latitude=self.base_latitude, longitude=self.base_longitude)


class ServiceOffering(BaseModel):
    """A service from the catalogue with its duration and per-vehicle prices."""
    id: str
    name: str
    duration_minutes: int = 30
    prices: Dict[VehicleType, Decimal] = Field(default_factory=dict)

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    def price_for(self, vehicle_type: VehicleType) -> Decimal:
        """Price for a vehicle type; unpriced combinations cost nothing."""
        return self.prices.get(VehicleType(vehicle_type), Decimal("0"))


def _default_services() -> List[ServiceOffering]:
    return [
        ServiceOffering(
            id="exterior-basic", name="Exterior Wash", duration_minutes=30,
            prices={VehicleType.SMALL: Decimal("120"), VehicleType.SUV: Decimal("150")},
        ),
        ServiceOffering(
            id="interior-basic", name="Interior Wash", duration_minutes=25,
            prices={VehicleType.SMALL: Decimal("100"), VehicleType.SUV: Decimal("120")},
        ),
        ServiceOffering(
            id="standard-full", name="Standard Full Package", duration_minutes=60,
            prices={VehicleType.SMALL: Decimal("250"), VehicleType.SUV: Decimal("300")},
        ),
        ServiceOffering(
            id="premium-detail", name="Premium Detail", duration_minutes=120,
            prices={VehicleType.SMALL: Decimal("500"), VehicleType.SUV: Decimal("600")},
        ),
    ]


class AppConfig(BaseModel):
    """Application configuration."""
    business: BusinessConfig = Field(default_factory=BusinessConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    invoicing: InvoicingConfig = Field(default_factory=InvoicingConfig)
    location: LocationConfig = Field(default_factory=LocationConfig)
    services: List[ServiceOffering] = Field(default_factory=_default_services)

    @field_validator("services")
    @classmethod
    def validate_services(cls, value: List[ServiceOffering]) -> List[ServiceOffering]:
        """Ensure service ids are unique."""
        seen: set[str] = set()
        for service in value:
            key = service.id.lower()
            if key in seen:
                raise ValueError(f"Duplicate service id detected: {service.id}")
            seen.add(key)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def operating_hours(self) -> OperatingHours:
        return OperatingHours(
            open_time=self.schedule.get_open_time(),
            close_time=self.schedule.get_close_time(),
            slot_interval_minutes=self.schedule.slot_interval_minutes,
            timezone=self.business.timezone,
        )

    def find_service(self, identifier: str) -> ServiceOffering | None:
        """Find a service by id or by name, case-insensitively."""
        for service in self.services:
            if identifier.lower() in (service.id.lower(), service.name.lower()):
                return service
        return None

    def resolve_services(self, identifiers: Sequence[str]) -> List[ServiceOffering]:
        """
        Resolve multiple service identifiers, ensuring uniqueness.

        Raises:
            ValueError: If nothing was requested or an identifier is unknown
        """
        if not identifiers:
            raise ValueError("No services provided.")

        resolved: List[ServiceOffering] = []
        unknown: List[str] = []

        for identifier in identifiers:
            service = self.find_service(identifier)
            if service is None:
                unknown.append(identifier)
                continue
            if service not in resolved:
                resolved.append(service)

        if unknown:
            missing = ", ".join(sorted(set(unknown)))
            raise ValueError(
                f"Unknown service identifier(s): {missing}. "
                "Ensure they exist in the configured catalogue."
            )

        return resolved

    def total_duration_minutes(self, identifiers: Sequence[str]) -> int:
        """Sum the durations of the requested services."""
        return sum(service.duration_minutes for service in self.resolve_services(identifiers))


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of mobilewash/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
