"""
Tests for configuration loading and validation.
"""

from datetime import time
from decimal import Decimal

import pytest
from pydantic import ValidationError

from mobilewash.config import AppConfig, ScheduleConfig
from mobilewash.domain.models import VehicleType


class TestAppConfig:
    """Tests for AppConfig."""

    def test_defaults(self):
        config = AppConfig()

        hours = config.operating_hours()
        assert hours.open_time == time(8, 0)
        assert hours.close_time == time(17, 0)
        assert hours.slot_interval_minutes == 30
        assert config.invoicing.tax_rate == Decimal("0.15")
        assert config.invoicing.validity_hours == 24
        assert config.location.free_radius_km == Decimal("20")

    def test_load_from_yaml(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            "business:\n"
            "  timezone: Europe/Berlin\n"
            "schedule:\n"
            "  open_hour: 7\n"
            "  close_hour: 12\n"
            "invoicing:\n"
            "  tax_rate: '0.10'\n"
            "services:\n"
            "  - id: quick\n"
            "    name: Quick Rinse\n"
            "    duration_minutes: 15\n"
            "    prices: {SMALL: 50}\n",
            encoding="utf-8",
        )

        config = AppConfig.load_from_yaml(config_path)

        assert config.business.timezone == "Europe/Berlin"
        assert config.operating_hours().open_time == time(7, 0)
        assert config.invoicing.tax_rate == Decimal("0.10")
        assert config.find_service("QUICK").price_for(VehicleType.SMALL) == Decimal("50")
        assert config.find_service("quick rinse").price_for(VehicleType.SUV) == Decimal("0")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("schedule: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(config_path)

    def test_non_mapping_root(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(config_path)

    def test_duplicate_service_ids_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate service id"):
            AppConfig(services=[{"id": "a", "name": "A"}, {"id": "A", "name": "Other"}])

    def test_resolve_services(self):
        config = AppConfig()

        resolved = config.resolve_services(["standard-full", "Standard Full Package", "exterior-basic"])

        assert [s.id for s in resolved] == ["standard-full", "exterior-basic"]
        assert config.total_duration_minutes(["premium-detail", "interior-basic"]) == 145

    def test_repeated_service_counts_once(self):
        config = AppConfig()

        assert config.total_duration_minutes(["exterior-basic", "exterior-basic"]) == 30

    def test_resolve_unknown_services(self):
        with pytest.raises(ValueError, match="car-polish, wax"):
            AppConfig().resolve_services(["wax", "standard-full", "car-polish"])


class TestScheduleConfig:
    """Tests for ScheduleConfig validation."""

    def test_close_before_open_rejected(self):
        with pytest.raises(ValidationError, match="close time must be later"):
            ScheduleConfig(open_hour=17, close_hour=8)

    def test_hour_range(self):
        with pytest.raises(ValidationError, match="Hour must be between"):
            ScheduleConfig(close_hour=24)

    def test_interval_positive(self):
        with pytest.raises(ValidationError, match="greater than zero"):
            ScheduleConfig(slot_interval_minutes=0)

    def test_negative_tax_rejected(self):
        with pytest.raises(ValidationError):
            AppConfig(invoicing={"tax_rate": "-0.1"})
