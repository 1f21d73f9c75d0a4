"""Simulated ledger for health record and medical NFT submissions.

This adapter models the two ledger writes a real deployment would send as
on-chain transactions: creating a health record from a patient's vitals,
then minting a medical NFT that references the record and the encrypted
payload's metadata hash. Everything is kept in memory.

Security Impact:
    - Only encoded vitals and proofs are stored; no names, history or contacts
    - A submission without a connected identity is refused
    - NFTs can only be minted over records this ledger issued

Architecture:
    - Adapter implementing LedgerPort
    - Randomness (ids, transaction hashes) comes from an injectable random.Random
    - Ids are unique within one simulator instance; collisions are redrawn
    - No rollback: created records and NFTs persist even if the caller abandons the workflow
"""

import logging
import math
import random
import time
from decimal import Decimal, InvalidOperation
from threading import Lock
from typing import Callable, Optional, Union

from healthvault.adapters.ledger.encoding import (
    build_input_proof,
    encode_value,
    generate_transaction_hash,
)
from healthvault.domain.health_record import (
    DerivedHealthRecord,
    HealthRecordEntry,
    LedgerEvent,
    LedgerRecordHandle,
    MedicalNFTEntry,
    NFTHandle,
)
from healthvault.domain.ports import (
    LedgerPort,
    Result,
    SubmissionFailedError,
    UnknownRecordError,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTRACT_ADDRESS = "0x742d35Cc6C4B23A2b4761329e3E8F13a4b2e4A2c"
DEFAULT_MAX_IDENTIFIER = 1_000_000


class LedgerSubmissionSimulator(LedgerPort):
    """In-memory stand-in for the health vault contract.

    Example Usage:
        ```python
        ledger = LedgerSubmissionSimulator(rng=random.Random(7))
        created = ledger.create_health_record(derived, "0xabc...")
        minted = ledger.mint_medical_nft(created.value.record_id, "0.01", data_hash)
        ```
    """

    def __init__(
        self,
        contract_address: str = DEFAULT_CONTRACT_ADDRESS,
        rng: Optional[random.Random] = None,
        max_identifier: int = DEFAULT_MAX_IDENTIFIER,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the simulator.

        Parameters:
            contract_address: Address reported for the simulated contract
            rng: Source of ids and transaction hashes (a fresh unseeded Random if None)
            max_identifier: Exclusive upper bound for record and NFT ids
            clock: Returns epoch seconds; used for row timestamps
        """
        if max_identifier < 2:
            raise ValueError("max_identifier must be at least 2")
        self.contract_address = contract_address
        self._rng = rng or random.Random()
        self._max_identifier = max_identifier
        self._clock = clock
        self._lock = Lock()
        self._records: dict[int, HealthRecordEntry] = {}
        self._nfts: dict[int, MedicalNFTEntry] = {}
        self._events: list[LedgerEvent] = []

    def _assign_identifier(self) -> int:
        """Draw an id unused by any record or NFT. Caller holds the lock."""
        if len(self._records) + len(self._nfts) >= self._max_identifier - 1:
            raise SubmissionFailedError("Ledger identifier space exhausted")
        while True:
            candidate = self._rng.randrange(1, self._max_identifier)
            if candidate not in self._records and candidate not in self._nfts:
                return candidate

    def create_health_record(
        self,
        record: DerivedHealthRecord,
        patient_address: Optional[str],
        *,
        diagnosis: str = "",
        treatment: str = "",
        medication: str = "",
    ) -> Result[LedgerRecordHandle]:
        """Submit a record's vitals as encoded values with an input proof.

        Parameters:
            record: Validated record whose vitals are submitted
            patient_address: Connected identity that will own the record
            diagnosis, treatment, medication: Optional plain-text annotations

        Returns:
            Result with a LedgerRecordHandle, or a SubmissionFailed failure
        """
        if not isinstance(patient_address, str) or not patient_address.strip():
            logger.warning("Health record submission refused: no connected identity")
            return Result.failure_result(
                SubmissionFailedError("Wallet not connected: a patient address is required")
            )

        values = record.vital_values()
        try:
            encrypted_values = {name: encode_value(value) for name, value in values.items()}
            input_proof = build_input_proof(values.values())
        except ValueError as e:
            logger.error(f"Failed to encode health record values: {e}")
            return Result.failure_result(SubmissionFailedError(f"Failed to encode values: {e}"))

        with self._lock:
            try:
                record_id = self._assign_identifier()
            except SubmissionFailedError as e:
                return Result.failure_result(e)
            transaction_hash = generate_transaction_hash(self._rng)
            entry = HealthRecordEntry(
                record_id=record_id,
                encrypted_values=encrypted_values,
                input_proof=input_proof,
                diagnosis=diagnosis,
                treatment=treatment,
                medication=medication,
                patient=patient_address,
                timestamp=int(self._clock()),
                transaction_hash=transaction_hash,
            )
            self._records[record_id] = entry
            self._events.append(LedgerEvent(
                event="HealthRecordCreated",
                record_id=record_id,
                account=patient_address,
                transaction_hash=transaction_hash,
            ))

        logger.info(f"Health record {record_id} created (tx={transaction_hash[:10]}...)")
        return Result.success_result(
            LedgerRecordHandle(record_id=record_id, transaction_hash=transaction_hash)
        )

    def mint_medical_nft(
        self,
        record_id: int,
        mint_price_eth: Union[str, float, int, Decimal],
        metadata_hash: str,
    ) -> Result[NFTHandle]:
        """Mint a medical NFT over a record created by this ledger.

        Parameters:
            record_id: Id returned by create_health_record
            mint_price_eth: Mint price in ETH (number or decimal string)
            metadata_hash: Hash of the encrypted payload's plaintext

        Returns:
            Result with an NFTHandle, or an UnknownRecord / SubmissionFailed failure
        """
        try:
            price = Decimal(str(mint_price_eth).strip())
        except (InvalidOperation, ValueError):
            price = None
        if price is None or not price.is_finite() or price < 0:
            logger.warning("NFT mint refused: invalid mint price")
            return Result.failure_result(
                SubmissionFailedError(f"Invalid mint price: {mint_price_eth!r}"),
                record_id=record_id,
            )
        if not isinstance(metadata_hash, str) or not metadata_hash.strip():
            return Result.failure_result(
                SubmissionFailedError("A metadata hash is required to mint"),
                record_id=record_id,
            )

        price_value = float(price)
        if not math.isfinite(price_value):
            return Result.failure_result(
                SubmissionFailedError(f"Invalid mint price: {mint_price_eth!r}"),
                record_id=record_id,
            )
        try:
            encrypted_price = encode_value(price_value)
            input_proof = build_input_proof([price_value])
        except ValueError as e:
            return Result.failure_result(
                SubmissionFailedError(f"Failed to encode mint price: {e}"),
                record_id=record_id,
            )

        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                logger.warning(f"NFT mint refused: unknown record {record_id}")
                return Result.failure_result(
                    UnknownRecordError(f"Health record {record_id} does not exist", record_id=record_id),
                    record_id=record_id,
                )
            try:
                nft_id = self._assign_identifier()
            except SubmissionFailedError as e:
                return Result.failure_result(e, record_id=record_id)
            transaction_hash = generate_transaction_hash(self._rng)
            entry = MedicalNFTEntry(
                nft_id=nft_id,
                health_record_id=record_id,
                encrypted_mint_price=encrypted_price,
                input_proof=input_proof,
                metadata_hash=metadata_hash,
                owner=record.patient,
                creator=record.patient,
                mint_time=int(self._clock()),
                transaction_hash=transaction_hash,
            )
            self._nfts[nft_id] = entry
            self._events.append(LedgerEvent(
                event="MedicalNFTMinted",
                record_id=record_id,
                nft_id=nft_id,
                account=record.patient,
                transaction_hash=transaction_hash,
            ))

        logger.info(f"Medical NFT {nft_id} minted for record {record_id} (tx={transaction_hash[:10]}...)")
        return Result.success_result(NFTHandle(nft_id=nft_id, transaction_hash=transaction_hash))

    def get_health_record(self, record_id: int) -> Optional[HealthRecordEntry]:
        with self._lock:
            return self._records.get(record_id)

    def get_medical_nft(self, nft_id: int) -> Optional[MedicalNFTEntry]:
        with self._lock:
            return self._nfts.get(nft_id)

    @property
    def events(self) -> list[LedgerEvent]:
        """Copy of the event log, oldest first."""
        with self._lock:
            return list(self._events)
