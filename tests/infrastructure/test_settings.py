"""Tests for application settings."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from healthvault.domain.health_record import VitalSigns
from healthvault.infrastructure.settings import Settings, settings


class TestSettingsDefaults:
    """Test default settings values."""

    def test_defaults(self):
        """Test the documented defaults."""
        assert settings.encryption_algorithm == "AES-256-GCM"
        assert settings.default_mint_price_eth == "0.01"
        assert settings.completion_cooldown_seconds == 2.0
        assert settings.max_identifier == 1_000_000
        assert settings.log_level == "INFO"
        assert settings.log_json is False

    def test_default_vitals(self):
        """Test the fixed vitals attached to derived records."""
        assert settings.vital_defaults == VitalSigns(
            weight=70.0, height=170.0, blood_pressure=120, heart_rate=72, temperature=36.6,
        )

    def test_settings_are_frozen(self):
        """Test that settings cannot be mutated after construction."""
        with pytest.raises(PydanticValidationError):
            settings.log_level = "DEBUG"


class TestSettingsValidation:
    """Test settings validation rules."""

    def test_log_level_is_normalized(self):
        """Test that log levels are upper-cased."""
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        """Test that unknown log levels are refused."""
        with pytest.raises(PydanticValidationError):
            Settings(log_level="VERBOSE")

    @pytest.mark.parametrize("price", ["abc", "-0.01", "NaN", "Infinity"])
    def test_invalid_mint_price_rejected(self, price):
        """Test that mint prices must be finite non-negative decimals."""
        with pytest.raises(PydanticValidationError):
            Settings(default_mint_price_eth=price)

    def test_zero_mint_price_allowed(self):
        """Test that a free mint is a valid configuration."""
        assert Settings(default_mint_price_eth="0").default_mint_price_eth == "0"

    def test_contract_address_format(self):
        """Test that the contract address must be a 20-byte hex address."""
        with pytest.raises(PydanticValidationError):
            Settings(contract_address="0x1234")

    def test_negative_cooldown_rejected(self):
        """Test that the cooldown cannot be negative."""
        with pytest.raises(PydanticValidationError):
            Settings(completion_cooldown_seconds=-1)

    def test_non_positive_vitals_rejected(self):
        """Test that vitals must be positive."""
        with pytest.raises(PydanticValidationError):
            Settings(vital_defaults={"weight": 0})

    def test_float_vitals_are_rounded(self):
        """Test that float vitals keep two decimal places."""
        vitals = VitalSigns(weight=70.123456789012345, temperature=36.6049)

        assert vitals.weight == 70.12
        assert vitals.temperature == 36.6
        assert Settings(vital_defaults={"height": 170.987654321}).vital_defaults.height == 170.99

    def test_vitals_rounding_to_zero_rejected(self):
        """Test that a vital which rounds to zero is refused."""
        with pytest.raises(PydanticValidationError):
            VitalSigns(weight=0.001)

    def test_custom_vitals(self):
        """Test that vitals can be overridden from a mapping."""
        custom = Settings(vital_defaults={"weight": 82.5, "heart_rate": 60})

        assert custom.vital_defaults.weight == 82.5
        assert custom.vital_defaults.heart_rate == 60
        assert custom.vital_defaults.height == 170.0
