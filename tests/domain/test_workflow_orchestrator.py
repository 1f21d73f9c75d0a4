"""Unit tests for WorkflowOrchestrator."""

import random
from datetime import date

import pytest

from healthvault.adapters.ledger.encoding import decode_value
from healthvault.adapters.ledger.simulated_ledger import LedgerSubmissionSimulator
from healthvault.domain.enums import WorkflowStage
from healthvault.domain.ports import (
    EncryptionError,
    EncryptionPort,
    Result,
    SubmissionFailedError,
    UnknownRecordError,
    WorkflowBusyError,
)
from healthvault.domain.services import HealthDataValidator
from healthvault.domain.workflow import Failed, StageChanged, Succeeded, WorkflowOrchestrator
from healthvault.infrastructure.encryption import EncryptionService

IDENTITY = "0x2222222222222222222222222222222222222222"


@pytest.fixture
def form():
    return {
        "patientName": "Jane Doe",
        "recordType": "general",
        "dateOfBirth": "1990-01-01",
        "bloodType": "AB-",
        "medicalHistory": "no known conditions, annual checkup only",
        "emergencyContact": "John Doe, 555-1234",
    }


@pytest.fixture
def validator():
    return HealthDataValidator(clock=lambda: date(2024, 6, 1))


@pytest.fixture
def encryption():
    return EncryptionService()


@pytest.fixture
def ledger():
    return LedgerSubmissionSimulator(rng=random.Random(7))


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def orchestrator(validator, encryption, ledger, sleeps):
    return WorkflowOrchestrator(validator, encryption, ledger, cooldown_seconds=2.0, sleep=sleeps.append)


class FailingEncryption(EncryptionPort):
    """Encryption port whose encrypt always fails."""

    def encrypt(self, record):
        raise EncryptionError("Failed to encrypt health data")

    def decrypt(self, encrypted_data):
        raise NotImplementedError

    def verify_integrity(self, encrypted_data, expected_hash):
        return False


class RefusingLedger(LedgerSubmissionSimulator):
    """Ledger that refuses record creation."""

    def create_health_record(self, record, patient_address, **kwargs):
        return Result.failure_result(SubmissionFailedError("execution reverted"))


class ForgetfulLedger(LedgerSubmissionSimulator):
    """Ledger that creates records but never finds them when minting."""

    def mint_medical_nft(self, record_id, mint_price_eth, metadata_hash):
        return Result.failure_result(
            UnknownRecordError(f"Health record {record_id} does not exist", record_id=record_id)
        )


def stages(events):
    return [e.stage for e in events if isinstance(e, StageChanged)]


class TestSuccessfulSubmission:
    """Test suite for the happy path."""

    def test_stage_order_and_outcome(self, orchestrator, ledger, form):
        """Test that stages run in order and end with Succeeded."""
        events = list(orchestrator.submit(form, IDENTITY))

        assert stages(events) == [
            WorkflowStage.ENCRYPTING,
            WorkflowStage.RECORDING_ON_LEDGER,
            WorkflowStage.MINTING,
            WorkflowStage.COMPLETE,
        ]
        succeeded = events[-1]
        assert isinstance(succeeded, Succeeded)
        assert succeeded.record_id != succeeded.nft_id
        assert ledger.get_health_record(succeeded.record_id).patient == IDENTITY
        assert ledger.get_medical_nft(succeeded.nft_id).health_record_id == succeeded.record_id
        assert len({e.submission_id for e in events}) == 1

    def test_nft_references_encryption_hash(self, orchestrator, ledger, encryption, form):
        """Test that the minted NFT carries the encrypted payload's data hash."""
        succeeded = list(orchestrator.submit(form, IDENTITY))[-1]
        encrypted = succeeded.encrypted_record

        assert ledger.get_medical_nft(succeeded.nft_id).metadata_hash == encrypted.metadata.data_hash
        assert encryption.verify_integrity(encrypted.encrypted_data, encrypted.metadata.data_hash)
        assert encryption.decrypt(encrypted.encrypted_data).health_score == 100

    def test_mint_price_is_passed(self, validator, encryption, ledger, form):
        """Test that the configured mint price reaches the ledger."""
        orchestrator = WorkflowOrchestrator(
            validator, encryption, ledger, mint_price_eth="0.25", cooldown_seconds=0,
        )
        succeeded = list(orchestrator.submit(form, IDENTITY))[-1]

        assert decode_value(ledger.get_medical_nft(succeeded.nft_id).encrypted_mint_price) == "0.25"

    def test_stage_is_observable_during_iteration(self, orchestrator, form):
        """Test that the orchestrator's stage tracks each emitted event."""
        for event in orchestrator.submit(form, IDENTITY):
            if isinstance(event, StageChanged):
                assert orchestrator.stage is event.stage
            elif isinstance(event, Succeeded):
                assert orchestrator.stage is WorkflowStage.COMPLETE

        assert orchestrator.stage is WorkflowStage.IDLE

    def test_cooldown_then_idle(self, orchestrator, sleeps, form):
        """Test that the orchestrator cools down before returning to idle."""
        events = list(orchestrator.submit(form, IDENTITY))

        assert sleeps == [2.0]
        assert orchestrator.stage is WorkflowStage.IDLE
        assert orchestrator.last_completed.record_id == events[-1].record_id
        assert orchestrator.last_completed.nft_id == events[-1].nft_id

    def test_zero_cooldown_does_not_sleep(self, validator, encryption, ledger, sleeps, form):
        """Test that a zero cooldown skips the sleep call."""
        orchestrator = WorkflowOrchestrator(validator, encryption, ledger, cooldown_seconds=0, sleep=sleeps.append)
        list(orchestrator.submit(form, IDENTITY))
        assert sleeps == []

    def test_sequential_submissions_are_independent(self, orchestrator, ledger, form):
        """Test that a second submission creates new ledger entries."""
        first = list(orchestrator.submit(form, IDENTITY))[-1]
        second = list(orchestrator.submit(form, IDENTITY))[-1]

        assert first.record_id != second.record_id
        assert first.nft_id != second.nft_id
        assert first.submission_id != second.submission_id
        assert first.encrypted_record.encrypted_data != second.encrypted_record.encrypted_data
        assert len(ledger.events) == 4


class TestFailedSubmission:
    """Test suite for failure transitions."""

    def test_missing_identity(self, orchestrator, ledger, form):
        """Test that a missing identity fails before any stage."""
        for identity in (None, "", "  ", 12345, b"0xabc"):
            events = list(orchestrator.submit(form, identity))

            assert len(events) == 1
            failed = events[0]
            assert isinstance(failed, Failed)
            assert failed.stage is WorkflowStage.IDLE
            assert failed.error_kind == "MissingIdentity"
        assert ledger.events == []

    def test_validation_failure(self, orchestrator, ledger, sleeps, form):
        """Test that validation errors fail the Encrypting stage with all codes."""
        events = list(orchestrator.submit({**form, "medicalHistory": "short", "patientName": ""}, IDENTITY))

        assert stages(events) == [WorkflowStage.ENCRYPTING]
        failed = events[-1]
        assert isinstance(failed, Failed)
        assert failed.stage is WorkflowStage.ENCRYPTING
        assert failed.error_kind == "ValidationError"
        assert failed.errors == ("name too short", "history too short")
        assert "Medical history" in failed.message
        assert ledger.events == []
        assert sleeps == []
        assert orchestrator.stage is WorkflowStage.IDLE

    def test_encryption_failure(self, validator, ledger, form):
        """Test that encryption errors fail the Encrypting stage."""
        orchestrator = WorkflowOrchestrator(validator, FailingEncryption(), ledger, cooldown_seconds=0)

        events = list(orchestrator.submit(form, IDENTITY))

        failed = events[-1]
        assert failed.stage is WorkflowStage.ENCRYPTING
        assert failed.error_kind == "EncryptionError"
        assert failed.message == "Failed to encrypt health data"
        assert ledger.events == []

    def test_record_creation_failure(self, validator, encryption, form):
        """Test that a refused record fails the RecordingOnLedger stage."""
        orchestrator = WorkflowOrchestrator(validator, encryption, RefusingLedger(), cooldown_seconds=0)

        events = list(orchestrator.submit(form, IDENTITY))

        assert stages(events) == [WorkflowStage.ENCRYPTING, WorkflowStage.RECORDING_ON_LEDGER]
        failed = events[-1]
        assert failed.stage is WorkflowStage.RECORDING_ON_LEDGER
        assert failed.error_kind == "SubmissionFailed"
        assert failed.message == "execution reverted"

    def test_mint_failure(self, validator, encryption, form):
        """Test that a failed mint fails the Minting stage."""
        ledger = ForgetfulLedger(rng=random.Random(3))
        orchestrator = WorkflowOrchestrator(validator, encryption, ledger, cooldown_seconds=0)

        events = list(orchestrator.submit(form, IDENTITY))

        assert stages(events)[-1] is WorkflowStage.MINTING
        failed = events[-1]
        assert failed.stage is WorkflowStage.MINTING
        assert failed.error_kind == "UnknownRecord"
        assert orchestrator.last_completed is None

    def test_failed_stage_visible_until_stream_ends(self, orchestrator, form):
        """Test that FAILED is observable on the Failed event, then resets to IDLE."""
        stream = orchestrator.submit({**form, "bloodType": ""}, IDENTITY)
        for event in stream:
            if isinstance(event, Failed):
                assert orchestrator.stage is WorkflowStage.FAILED

        assert orchestrator.stage is WorkflowStage.IDLE

    def test_failure_discards_previous_completion(self, orchestrator, form):
        """Test that a failed submission clears the previous outcome."""
        list(orchestrator.submit(form, IDENTITY))
        assert orchestrator.last_completed is not None

        list(orchestrator.submit({**form, "dateOfBirth": ""}, IDENTITY))

        assert orchestrator.last_completed is None


class TestConcurrencyAndAbandonment:
    """Test suite for single-workflow enforcement and abandonment."""

    def test_concurrent_submission_is_refused(self, orchestrator, form):
        """Test that a second submission cannot start while one is running."""
        first = orchestrator.submit(form, IDENTITY)
        assert next(first).stage is WorkflowStage.ENCRYPTING

        with pytest.raises(WorkflowBusyError):
            next(orchestrator.submit(form, IDENTITY))

        first.close()
        assert isinstance(list(orchestrator.submit(form, IDENTITY))[-1], Succeeded)

    def test_unstarted_stream_does_not_hold_the_workflow(self, orchestrator, form):
        """Test that creating a stream without iterating it claims nothing."""
        orchestrator.submit(form, IDENTITY)
        assert isinstance(list(orchestrator.submit(form, IDENTITY))[-1], Succeeded)

    def test_abandonment_keeps_ledger_writes(self, orchestrator, ledger, form):
        """Test that abandoning mid-workflow resets state but does not roll back the ledger."""
        stream = orchestrator.submit(form, IDENTITY)
        for event in stream:
            if isinstance(event, StageChanged) and event.stage is WorkflowStage.MINTING:
                break
        stream.close()

        assert orchestrator.stage is WorkflowStage.IDLE
        assert [e.event for e in ledger.events] == ["HealthRecordCreated"]
        assert ledger.get_health_record(ledger.events[0].record_id) is not None

    def test_negative_cooldown_rejected(self, validator, encryption, ledger):
        """Test constructor validation."""
        with pytest.raises(ValueError):
            WorkflowOrchestrator(validator, encryption, ledger, cooldown_seconds=-1)
