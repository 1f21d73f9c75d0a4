"""Health Record Schema Definitions.

This module defines the domain models that flow through the submission
workflow: the raw form input, the validated and derived record that gets
encrypted, the encryption envelope, and the handles and rows produced by
the ledger.

Security Impact:
    - DerivedHealthRecord is the only shape that is ever encrypted
    - Canonical serialization is deterministic so integrity hashes are stable
    - All models are frozen; a submission's artifacts never change after creation

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Python attributes are snake_case; wire/JSON form uses camelCase aliases
    - Both spellings are accepted on input so form payloads validate directly
"""

import json
from datetime import date
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from healthvault.domain.enums import BloodType, RecordType

# Decimal places kept for float vitals
VITAL_DECIMALS = 2


class HealthRecord(BaseModel):
    """Health attributes as submitted by the caller, before any business rules.

    The model only enforces types. Length limits, required fields and enum
    membership are checked by HealthDataValidator so that every problem can
    be reported at once.

    Parameters:
        patient_name: Patient display name (PHI)
        record_type: One of the RecordType values, as free text
        date_of_birth: ISO date string or date
        blood_type: One of the BloodType values, as free text
        medical_history: Free-text history (PHI)
        emergency_contact: Contact name and number (PHI)
        is_encrypted: Whether the caller asked for encryption (always true in practice)
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    patient_name: str = Field("", description="Patient name (PHI)")
    record_type: str = Field("", description="Record category")
    date_of_birth: Optional[Union[date, str]] = Field(None, description="Date of birth (PHI)")
    blood_type: str = Field("", description="Blood type, e.g. 'AB-'")
    medical_history: str = Field("", description="Medical history (PHI)")
    emergency_contact: str = Field("", description="Emergency contact (PHI)")
    is_encrypted: bool = Field(True, description="Encrypt before submission")

    @field_validator(
        "patient_name", "record_type", "blood_type", "medical_history", "emergency_contact",
        mode="before",
    )
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Form widgets send null for untouched text inputs."""
        return "" if v is None else v


class VitalSigns(BaseModel):
    """Numeric vitals attached to every derived record.

    There are no input fields for these yet, so every record carries the
    same fixed values.

    Float vitals are rounded to VITAL_DECIMALS places. All seven vitals
    (with age and score) must fit the ledger's 64-byte input proof as
    comma-joined decimal text, so long float reprs are not kept.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    weight: float = Field(70.0, gt=0, description="Weight in kg")
    height: float = Field(170.0, gt=0, description="Height in cm")
    blood_pressure: int = Field(120, gt=0, description="Systolic pressure in mmHg")
    heart_rate: int = Field(72, gt=0, description="Resting heart rate in bpm")
    temperature: float = Field(36.6, gt=0, description="Body temperature in degrees C")

    @field_validator("weight", "height", "temperature")
    @classmethod
    def round_measurement(cls, v: float) -> float:
        rounded = round(v, VITAL_DECIMALS)
        if rounded <= 0:
            raise ValueError(f"Vital sign rounds to {rounded}; must stay positive")
        return rounded


class DerivedHealthRecord(BaseModel):
    """A validated HealthRecord plus computed fields. This is what gets encrypted.

    Parameters:
        age: Calendar age in whole years at validation time
        weight, height, blood_pressure, heart_rate, temperature: Vitals
        health_score: Derived score, always within [0, 100]
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    patient_name: str
    record_type: RecordType
    date_of_birth: date
    blood_type: BloodType
    medical_history: str
    emergency_contact: str
    is_encrypted: bool = True
    age: int = Field(..., ge=0, le=150)
    weight: float
    height: float
    blood_pressure: int
    heart_rate: int
    temperature: float
    health_score: int = Field(..., ge=0, le=100)

    def to_canonical_json(self) -> bytes:
        """Serialize to the canonical byte form used for encryption and hashing.

        Returns:
            UTF-8 JSON with camelCase keys, sorted keys and no whitespace
        """
        payload = self.model_dump(mode="json", by_alias=True)
        return json.dumps(
            payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")

    def vital_values(self) -> dict[str, Union[int, float]]:
        """Numeric fields submitted to the ledger, in submission order."""
        return {
            "age": self.age,
            "weight": self.weight,
            "height": self.height,
            "bloodPressure": self.blood_pressure,
            "heartRate": self.heart_rate,
            "temperature": self.temperature,
            "healthScore": self.health_score,
        }


class EncryptionMetadata(BaseModel):
    """Metadata stored alongside an encrypted payload."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timestamp: int = Field(..., description="Encryption time, epoch milliseconds")
    data_hash: str = Field(
        ...,
        pattern=r"^[0-9a-f]{64}$",
        description="Hex SHA-256 of the canonical plaintext",
    )
    encryption_type: str = Field(..., description="Cipher label, e.g. AES-256-GCM")


class EncryptedRecord(BaseModel):
    """Opaque ciphertext (base64 of nonce || ciphertext || tag) plus metadata."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    encrypted_data: str
    metadata: EncryptionMetadata


class LedgerRecordHandle(BaseModel):
    """Returned by the ledger when a health record is created."""

    model_config = ConfigDict(frozen=True)

    record_id: int
    transaction_hash: str


class NFTHandle(BaseModel):
    """Returned by the ledger when a medical NFT is minted."""

    model_config = ConfigDict(frozen=True)

    nft_id: int
    transaction_hash: str


class HealthRecordEntry(BaseModel):
    """A health record row as held by the ledger."""

    model_config = ConfigDict(frozen=True)

    record_id: int
    encrypted_values: dict[str, str] = Field(..., description="Field name -> encoded value")
    input_proof: str
    diagnosis: str = ""
    treatment: str = ""
    medication: str = ""
    patient: str
    doctor: Optional[str] = None
    is_active: bool = True
    is_verified: bool = False
    timestamp: int = Field(..., description="Creation time, epoch seconds")
    transaction_hash: str


class MedicalNFTEntry(BaseModel):
    """A minted NFT row as held by the ledger."""

    model_config = ConfigDict(frozen=True)

    nft_id: int
    health_record_id: int
    encrypted_mint_price: str
    input_proof: str
    metadata_hash: str
    owner: str
    creator: str
    is_minted: bool = True
    is_transferable: bool = False
    mint_time: int = Field(..., description="Mint time, epoch seconds")
    transaction_hash: str


class LedgerEvent(BaseModel):
    """Event emitted by a ledger write."""

    model_config = ConfigDict(frozen=True)

    event: Literal["HealthRecordCreated", "MedicalNFTMinted"]
    record_id: int
    nft_id: Optional[int] = None
    account: str = Field(..., description="Patient (record) or owner (NFT) address")
    transaction_hash: str
