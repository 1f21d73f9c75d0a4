"""Domain Ports - Abstract Contracts for Encryption and Ledger Access.

This module defines the Port interfaces (abstract contracts) that Adapters must implement.
Following Hexagonal Architecture, the Domain Core defines what it needs, not how it's provided.

Security Impact:
    - Ports only ever receive validated DerivedHealthRecord objects
    - Encryption and ledger failures are typed so they are never mistaken for success
    - Integrity checks are predicates and never leak decryption errors

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - The encryption service and the ledger simulator implement these ports
    - The workflow orchestrator depends on ports only, so either side can be swapped
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar, Union

from healthvault.domain.enums import ValidationCode
from healthvault.domain.health_record import (
    DerivedHealthRecord,
    EncryptedRecord,
    HealthRecordEntry,
    LedgerRecordHandle,
    MedicalNFTEntry,
    NFTHandle,
)

# Type variable for Result generic
T = TypeVar('T')


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class HealthVaultError(Exception):
    """Base exception for all errors raised by the core."""

    kind = "HealthVaultError"


class ValidationError(HealthVaultError):
    """One violated validation rule.

    Validators collect these into a list rather than raising them, so the
    caller can show every problem at once.

    Attributes:
        code: The rule that was violated
        field: Name of the offending input field (camelCase, as on the form)
    """

    kind = "ValidationError"

    def __init__(self, message: str, code: ValidationCode, field: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.field = field

    def __repr__(self) -> str:
        return f"ValidationError({self.code.value!r}, field={self.field!r})"


class EncryptionError(HealthVaultError):
    """Raised when a record cannot be serialized or encrypted."""

    kind = "EncryptionError"


class DecryptionError(HealthVaultError):
    """Raised when a blob cannot be decoded, authenticated or parsed."""

    kind = "DecryptionError"


class LedgerError(HealthVaultError):
    """Base exception for ledger write failures."""

    kind = "LedgerError"


class SubmissionFailedError(LedgerError):
    """The ledger refused the submission (no identity, unencodable value, ...)."""

    kind = "SubmissionFailed"


class UnknownRecordError(LedgerError):
    """A mint referenced a record id this ledger never issued.

    Attributes:
        record_id: The unknown identifier
    """

    kind = "UnknownRecord"

    def __init__(self, message: str, record_id: Optional[int] = None):
        super().__init__(message)
        self.record_id = record_id


class MissingIdentityError(HealthVaultError):
    """No active identity (wallet/account) was supplied for a submission."""

    kind = "MissingIdentity"


class WorkflowBusyError(HealthVaultError):
    """A submission is already running on this orchestrator."""

    kind = "WorkflowBusy"


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a validation or ledger write.

    Validation and ledger writes report through this type so the workflow
    can turn a failure into a stage event without exception plumbing.

    Attributes:
        success: True if the operation succeeded
        value: The produced object (derived record, ledger handle) on success
        error: Human-readable message on failure
        error_type: Error kind (ValidationError, SubmissionFailed, UnknownRecord, ...)
        error_details: Context for the failure: ``errors``/``codes`` from the
            validator, ``record_id`` from the ledger

    Example:
        ```python
        result = ledger.create_health_record(derived, address)
        if result.is_success():
            record_id = result.value.record_id
        else:
            log_error(result.error_type, result.error)
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        return cls(success=True, value=value)

    @classmethod
    def failure_result(
        cls,
        error: Union[str, HealthVaultError],
        error_type: Optional[str] = None,
        **details: Any,
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message, or a HealthVaultError whose ``kind`` becomes the error type
            error_type: Explicit error kind; required when error is a plain message
            **details: Failure context stored in error_details

        Returns:
            Result: Failure result with error information
        """
        if isinstance(error, HealthVaultError):
            return cls(success=False, error=str(error), error_type=error_type or error.kind, error_details=details)
        if error_type is None:
            raise ValueError("error_type is required for a plain error message")
        return cls(success=False, error=error, error_type=error_type, error_details=details)

    @property
    def error_codes(self) -> tuple[str, ...]:
        """Validation codes of a failed validation; empty otherwise."""
        return tuple(self.error_details.get("codes", ()))

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Ports
# ============================================================================

class EncryptionPort(ABC):
    """Authenticated encryption of derived health records."""

    @abstractmethod
    def encrypt(self, record: DerivedHealthRecord) -> EncryptedRecord:
        """Encrypt a record and compute its metadata.

        Raises:
            EncryptionError: If serialization or the cipher fails
        """
        pass

    @abstractmethod
    def decrypt(self, encrypted_data: str) -> DerivedHealthRecord:
        """Reverse of encrypt.

        Raises:
            DecryptionError: If the blob is malformed, tampered with or unparseable
        """
        pass

    @abstractmethod
    def verify_integrity(self, encrypted_data: str, expected_hash: str) -> bool:
        """Return whether the authenticated plaintext hashes to expected_hash.

        Never raises.
        """
        pass


class LedgerPort(ABC):
    """Two-phase ledger write: create a health record, then mint an NFT over it."""

    @abstractmethod
    def create_health_record(
        self,
        record: DerivedHealthRecord,
        patient_address: Optional[str],
        *,
        diagnosis: str = "",
        treatment: str = "",
        medication: str = "",
    ) -> Result[LedgerRecordHandle]:
        """Submit a record's vitals. Fails with SubmissionFailed without an address."""
        pass

    @abstractmethod
    def mint_medical_nft(
        self,
        record_id: int,
        mint_price_eth: Union[str, float, int],
        metadata_hash: str,
    ) -> Result[NFTHandle]:
        """Mint an NFT over a previously created record. Fails with UnknownRecord otherwise."""
        pass

    @abstractmethod
    def get_health_record(self, record_id: int) -> Optional[HealthRecordEntry]:
        """Look up a created record, or None."""
        pass

    @abstractmethod
    def get_medical_nft(self, nft_id: int) -> Optional[MedicalNFTEntry]:
        """Look up a minted NFT, or None."""
        pass
