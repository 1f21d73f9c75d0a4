"""Submission Workflow - Validate, Encrypt, Record, Mint.

This module sequences a single health record submission through its
stages and reports each transition to the caller as an event stream:

    Encrypting -> RecordingOnLedger -> Minting -> Complete

Any failure in the first three stages ends the submission with a Failed
event; the orchestrator then discards the submission's artifacts and
returns to idle.

Security Impact:
    - Nothing reaches the ledger unless validation and encryption succeeded
    - The NFT references the encrypted payload's hash, never its plaintext
    - Events and logs carry ids, hashes and error codes only, no PHI

Architecture:
    - Depends on ports only (EncryptionPort, LedgerPort) plus the validator
    - One submission at a time per orchestrator, guarded by a lock
    - Stages are strictly sequential; callers observe but cannot reorder them
    - Abandoning the event stream mid-stage performs no ledger rollback
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from threading import Lock
from typing import Any, Callable, Iterator, Mapping, Optional, Union

from healthvault.domain.enums import WorkflowStage
from healthvault.domain.health_record import EncryptedRecord, HealthRecord
from healthvault.domain.ports import (
    EncryptionError,
    EncryptionPort,
    LedgerPort,
    MissingIdentityError,
    WorkflowBusyError,
)
from healthvault.domain.services import HealthDataValidator

logger = logging.getLogger(__name__)

DEFAULT_MINT_PRICE_ETH = "0.01"
DEFAULT_COOLDOWN_SECONDS = 2.0


# ============================================================================
# Stage Events
# ============================================================================

@dataclass(frozen=True)
class StageChanged:
    """The workflow entered a new stage."""
    submission_id: str
    stage: WorkflowStage


@dataclass(frozen=True)
class Succeeded:
    """The record was created and the NFT minted."""
    submission_id: str
    record_id: int
    nft_id: int
    encrypted_record: EncryptedRecord
    record_transaction_hash: str
    nft_transaction_hash: str


@dataclass(frozen=True)
class Failed:
    """The submission ended without minting.

    Attributes:
        stage: Stage the failure happened in (IDLE for precondition failures)
        error_kind: ValidationError, EncryptionError, SubmissionFailed, UnknownRecord, MissingIdentity
        message: Human-readable error
        errors: Individual validation codes, empty for other kinds
    """
    submission_id: str
    stage: WorkflowStage
    error_kind: str
    message: str
    errors: tuple[str, ...] = field(default_factory=tuple)


StageEvent = Union[StageChanged, Succeeded, Failed]


@dataclass(frozen=True)
class CompletedSubmission:
    """Artifacts of the most recent successful submission."""
    submission_id: str
    record_id: int
    nft_id: int
    encrypted_record: EncryptedRecord


class WorkflowOrchestrator:
    """Runs health record submissions through validation, encryption and the ledger.

    Example Usage:
        ```python
        orchestrator = WorkflowOrchestrator(validator, encryption_service, ledger)
        for event in orchestrator.submit(form_data, identity="0xabc..."):
            if isinstance(event, StageChanged):
                show_progress(event.stage)
            elif isinstance(event, Succeeded):
                show_nft(event.nft_id)
            elif isinstance(event, Failed):
                show_error(event.stage, event.message)
        ```
    """

    def __init__(
        self,
        validator: HealthDataValidator,
        encryption: EncryptionPort,
        ledger: LedgerPort,
        mint_price_eth: Union[str, float, Decimal] = DEFAULT_MINT_PRICE_ETH,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the orchestrator.

        Parameters:
            validator: Validates and derives records
            encryption: Encrypts derived records
            ledger: Receives the record and mint writes
            mint_price_eth: Price passed to every mint
            cooldown_seconds: Time spent in COMPLETE before returning to IDLE
            sleep: Sleep function used for the cooldown
        """
        if cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be non-negative")
        self.validator = validator
        self.encryption = encryption
        self.ledger = ledger
        self.mint_price_eth = mint_price_eth
        self.cooldown_seconds = cooldown_seconds
        self._sleep = sleep
        self._lock = Lock()
        self._stage = WorkflowStage.IDLE
        self.last_completed: Optional[CompletedSubmission] = None

    @property
    def stage(self) -> WorkflowStage:
        """Current stage."""
        return self._stage

    def _enter(self, submission_id: str, stage: WorkflowStage) -> StageChanged:
        self._stage = stage
        logger.info(
            f"Submission {submission_id} entered stage {stage.value}",
            extra={"submission_id": submission_id, "stage": stage.value},
        )
        return StageChanged(submission_id=submission_id, stage=stage)

    def _fail(
        self,
        submission_id: str,
        error_kind: str,
        message: str,
        errors: tuple[str, ...] = (),
    ) -> Failed:
        failed_stage = self._stage
        self._stage = WorkflowStage.FAILED
        logger.warning(
            f"Submission {submission_id} failed in stage {failed_stage.value}: {error_kind}",
            extra={"submission_id": submission_id, "stage": failed_stage.value},
        )
        return Failed(
            submission_id=submission_id,
            stage=failed_stage,
            error_kind=error_kind,
            message=message,
            errors=errors,
        )

    def submit(
        self,
        record: Union[HealthRecord, Mapping[str, Any]],
        identity: Optional[str],
    ) -> Iterator[StageEvent]:
        """Run one submission, yielding its stage events in order.

        The work happens as the returned iterator is consumed. Closing the
        iterator early abandons the submission and returns the orchestrator
        to IDLE; ledger writes already made are kept.

        Parameters:
            record: HealthRecord or raw form data
            identity: Connected account address; required

        Yields:
            StageChanged for each stage, then Succeeded or Failed

        Raises:
            WorkflowBusyError: If another submission is running on this orchestrator
        """
        submission_id = str(uuid.uuid4())
        if not self._lock.acquire(blocking=False):
            raise WorkflowBusyError("A submission is already in progress")
        try:
            yield from self._run(submission_id, record, identity)
        finally:
            self._stage = WorkflowStage.IDLE
            self._lock.release()

    def _run(
        self,
        submission_id: str,
        record: Union[HealthRecord, Mapping[str, Any]],
        identity: Optional[str],
    ) -> Iterator[StageEvent]:
        self.last_completed = None

        if not isinstance(identity, str) or not identity.strip():
            error = MissingIdentityError("Please connect your wallet first")
            yield self._fail(submission_id, error.kind, str(error))
            return

        # Encrypting: validation then encryption
        yield self._enter(submission_id, WorkflowStage.ENCRYPTING)
        validation = self.validator.validate(record)
        if validation.is_failure():
            codes = validation.error_codes
            yield self._fail(submission_id, validation.error_type, validation.error, codes)
            return
        derived = validation.value

        try:
            encrypted = self.encryption.encrypt(derived)
        except EncryptionError as e:
            yield self._fail(submission_id, e.kind, str(e))
            return

        # RecordingOnLedger
        yield self._enter(submission_id, WorkflowStage.RECORDING_ON_LEDGER)
        created = self.ledger.create_health_record(derived, identity)
        if created.is_failure():
            yield self._fail(submission_id, created.error_type, created.error)
            return
        record_handle = created.value

        # Minting
        yield self._enter(submission_id, WorkflowStage.MINTING)
        minted = self.ledger.mint_medical_nft(
            record_handle.record_id,
            self.mint_price_eth,
            encrypted.metadata.data_hash,
        )
        if minted.is_failure():
            yield self._fail(submission_id, minted.error_type, minted.error)
            return
        nft_handle = minted.value

        # Complete
        self.last_completed = CompletedSubmission(
            submission_id=submission_id,
            record_id=record_handle.record_id,
            nft_id=nft_handle.nft_id,
            encrypted_record=encrypted,
        )
        yield self._enter(submission_id, WorkflowStage.COMPLETE)
        yield Succeeded(
            submission_id=submission_id,
            record_id=record_handle.record_id,
            nft_id=nft_handle.nft_id,
            encrypted_record=encrypted,
            record_transaction_hash=record_handle.transaction_hash,
            nft_transaction_hash=nft_handle.transaction_hash,
        )

        if self.cooldown_seconds:
            self._sleep(self.cooldown_seconds)
        logger.debug(f"Submission {submission_id} cooldown elapsed; returning to idle")
