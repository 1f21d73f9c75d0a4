"""End-to-End Example: Health Record from Form to Medical NFT.

This example demonstrates the complete submission flow:
1. Form data -> Validation -> Derived record (age, health score, vitals)
2. Derived record -> AES-256-GCM encryption -> Encrypted payload + data hash
3. Vitals -> Encoded values -> Simulated ledger record
4. Record id + data hash -> Medical NFT

It also shows how a submission fails when validation rejects the form.
"""

import random
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from healthvault.adapters.ledger import LedgerSubmissionSimulator
from healthvault.adapters.ledger.encoding import decode_value
from healthvault.domain.workflow import Failed, StageChanged, Succeeded
from healthvault.infrastructure.settings import Settings
from healthvault.main import create_workflow, get_encryption_service

PATIENT_ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def sample_form() -> dict:
    """Form data as submitted by the health profile form."""
    return {
        "patientName": "Jane Doe",
        "recordType": "general",
        "dateOfBirth": "1990-01-01",
        "bloodType": "AB-",
        "medicalHistory": "Seasonal allergies; no chronic conditions. Annual checkup only.",
        "emergencyContact": "John Doe, +1 555-123-4567",
        "isEncrypted": True,
    }


def demonstrate_successful_submission(ledger: LedgerSubmissionSimulator):
    print("\n" + "=" * 70)
    print("Submission Flow: Form -> Encryption -> Ledger -> NFT")
    print("=" * 70)

    workflow = create_workflow(Settings(completion_cooldown_seconds=0), ledger=ledger)

    succeeded = None
    for event in workflow.submit(sample_form(), PATIENT_ADDRESS):
        if isinstance(event, StageChanged):
            print(f"  → Stage: {event.stage.value}")
        elif isinstance(event, Succeeded):
            succeeded = event
        elif isinstance(event, Failed):
            print(f"  FAILED in {event.stage.value}: {event.message}")
            return

    encrypted = succeeded.encrypted_record
    print(f"\nSUCCESS: Record {succeeded.record_id} created (tx={succeeded.record_transaction_hash[:18]}...)")
    print(f"SUCCESS: NFT {succeeded.nft_id} minted (tx={succeeded.nft_transaction_hash[:18]}...)")
    print(f"  Algorithm: {encrypted.metadata.encryption_type}")
    print(f"  Data hash: {encrypted.metadata.data_hash}")
    print(f"  Ciphertext: {encrypted.encrypted_data[:40]}... ({len(encrypted.encrypted_data)} chars)")

    # What the ledger holds: encoded vitals only
    entry = ledger.get_health_record(succeeded.record_id)
    print("\n  Ledger record values:")
    for name, encoded in entry.encrypted_values.items():
        print(f"    {name}: {encoded[:14]}...{encoded[-8:]} (decodes to {decode_value(encoded)})")

    # Only the process key can recover the record
    service = get_encryption_service()
    derived = service.decrypt(encrypted.encrypted_data)
    print(f"\n  Decrypted: age={derived.age}, health score={derived.health_score}")
    print(f"  Integrity verified: {service.verify_integrity(encrypted.encrypted_data, encrypted.metadata.data_hash)}")


def demonstrate_rejected_submission(ledger: LedgerSubmissionSimulator):
    print("\n" + "=" * 70)
    print("Rejected Flow: Invalid form never reaches the ledger")
    print("=" * 70)

    workflow = create_workflow(Settings(completion_cooldown_seconds=0), ledger=ledger)
    form = {**sample_form(), "patientName": "J", "medicalHistory": "none"}

    events_before = len(ledger.events)
    for event in workflow.submit(form, PATIENT_ADDRESS):
        if isinstance(event, Failed):
            print(f"  FAILED in {event.stage.value}: {event.error_kind}")
            for code in event.errors:
                print(f"    - {code}")

    print(f"\n  Ledger writes during rejected submission: {len(ledger.events) - events_before}")


def main():
    """Run end-to-end flow demonstration."""
    print("=" * 70)
    print("HealthSafe Vault: End-to-End Submission Demonstration")
    print("=" * 70)

    ledger = LedgerSubmissionSimulator(rng=random.Random(2024))

    demonstrate_successful_submission(ledger)
    demonstrate_rejected_submission(ledger)

    print("\n" + "=" * 70)
    print("Summary")
    print("=" * 70)
    print(f"\nLedger events: {[e.event for e in ledger.events]}")
    print("SUCCESS: Only encoded vitals and hashes reached the ledger")
    print("(The encryption key lives in memory and is gone when this process exits)")


if __name__ == "__main__":
    main()
