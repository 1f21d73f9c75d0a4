"""Application Settings and Configuration.

This module provides application-wide settings with defaults for the
encryption label, the vitals attached to derived records, the ledger
simulator and the submission workflow.

Security Impact:
    - No key material is configurable here; keys are generated in memory
    - Settings are validated by Pydantic before use
    - Nothing is read from the environment; callers construct Settings explicitly
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from healthvault.domain.health_record import VitalSigns

# Application metadata
APP_NAME = "HealthSafe-Vault"
APP_VERSION = "1.0.0"


class Settings(BaseModel):
    """Application settings.

    Parameters:
        app_name: Application name, used in log output
        encryption_algorithm: Label written into each encrypted record's metadata
        vital_defaults: Vitals attached to every derived record
        default_mint_price_eth: Mint price passed to the ledger, as a decimal string
        completion_cooldown_seconds: Time the workflow stays COMPLETE before returning to IDLE
        contract_address: Address reported by the simulated ledger
        max_identifier: Exclusive upper bound for simulated record/NFT ids
        log_level: Logging level name
        log_json: Emit JSON log lines instead of human-readable ones
    """

    model_config = ConfigDict(frozen=True)

    app_name: str = APP_NAME
    encryption_algorithm: str = Field("AES-256-GCM", min_length=1)
    vital_defaults: VitalSigns = Field(default_factory=VitalSigns)
    default_mint_price_eth: str = "0.01"
    completion_cooldown_seconds: float = Field(2.0, ge=0)
    contract_address: str = Field(
        "0x742d35Cc6C4B23A2b4761329e3E8F13a4b2e4A2c",
        pattern=r"^0x[0-9a-fA-F]{40}$",
    )
    max_identifier: int = Field(1_000_000, ge=2)
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("default_mint_price_eth")
    @classmethod
    def validate_mint_price(cls, v: str) -> str:
        """Mint price must be a finite, non-negative decimal."""
        try:
            price = Decimal(v)
        except ArithmeticError as e:
            raise ValueError(f"Mint price must be a decimal string. Got: {v}") from e
        if not price.is_finite() or price < 0:
            raise ValueError(f"Mint price must be finite and non-negative. Got: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level name."""
        levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in levels:
            raise ValueError(f"Unsupported log level: {v}. Supported: {levels}")
        return v.upper()


# Global settings instance
settings = Settings()
