"""Domain layer for HealthSafe Vault.

This module contains the health record models, validation rules and the
submission workflow. Domain code depends on Pydantic and the standard
library only; encryption and the ledger are reached through ports.
"""

from .health_record import (
    HealthRecord,
    DerivedHealthRecord,
    VitalSigns,
    EncryptionMetadata,
    EncryptedRecord,
    LedgerRecordHandle,
    NFTHandle,
)

__all__ = [
    "HealthRecord",
    "DerivedHealthRecord",
    "VitalSigns",
    "EncryptionMetadata",
    "EncryptedRecord",
    "LedgerRecordHandle",
    "NFTHandle",
]
