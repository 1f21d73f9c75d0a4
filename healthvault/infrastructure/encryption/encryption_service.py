"""Encryption service for derived health records.

This service provides authenticated encryption/decryption of health records
before they are anchored on the ledger, plus the content hash used as the
NFT metadata hash.

Security Impact:
    - Uses AES-256-GCM (256-bit key, 96-bit nonce, 128-bit tag)
    - A fresh random nonce per call; nonces are never derived from content
    - Tampered ciphertext fails tag authentication and is never parsed
    - Key material and plaintext are never logged

Architecture:
    - Infrastructure layer component implementing EncryptionPort
    - One instance per process, created by the composition root (healthvault.main)
    - Keys live in memory only; nothing survives a restart
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import os
import time
import uuid
from typing import Callable, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import ValidationError as PydanticValidationError

from healthvault.domain.health_record import DerivedHealthRecord, EncryptedRecord, EncryptionMetadata
from healthvault.domain.ports import DecryptionError, EncryptionError, EncryptionPort

logger = logging.getLogger(__name__)

KEY_SIZE = 32  # 256-bit key
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit authentication tag
DEFAULT_ALGORITHM_LABEL = "AES-256-GCM"


class EncryptionService(EncryptionPort):
    """Service for encrypting/decrypting derived health records.

    Blob layout is base64(nonce || ciphertext || tag). The metadata hash is
    computed over the canonical plaintext, so it can be recomputed after a
    successful decrypt to check integrity.

    Example Usage:
        ```python
        service = EncryptionService()
        encrypted = service.encrypt(derived)
        assert service.verify_integrity(encrypted.encrypted_data, encrypted.metadata.data_hash)
        assert service.decrypt(encrypted.encrypted_data) == derived
        ```
    """

    def __init__(
        self,
        key: Optional[bytes] = None,
        key_id: Optional[str] = None,
        algorithm_label: str = DEFAULT_ALGORITHM_LABEL,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize encryption service.

        Parameters:
            key: 32-byte key (a random one is generated if None)
            key_id: Identifier for the key, for logs and rotation tracking
            algorithm_label: Label written into each record's metadata
            clock: Returns epoch seconds; used for metadata timestamps

        Raises:
            ValueError: If key is not 32 bytes
        """
        if key is None:
            key = AESGCM.generate_key(bit_length=KEY_SIZE * 8)
        elif len(key) != KEY_SIZE:
            raise ValueError(f"Invalid encryption key length: expected {KEY_SIZE} bytes, got {len(key)}")

        self._cipher = AESGCM(key)
        self.key_id = key_id or uuid.uuid4().hex[:12]
        self.algorithm_label = algorithm_label
        self._clock = clock
        logger.debug(f"EncryptionService initialized with key_id: {self.key_id}")

    @staticmethod
    def hash_record(record: DerivedHealthRecord) -> str:
        """Hex SHA-256 of the record's canonical serialization."""
        return hashlib.sha256(record.to_canonical_json()).hexdigest()

    def encrypt(self, record: DerivedHealthRecord) -> EncryptedRecord:
        """Encrypt a derived record and compute its metadata.

        Parameters:
            record: Validated record to encrypt

        Returns:
            EncryptedRecord with base64 blob, timestamp, data hash and algorithm label

        Raises:
            EncryptionError: If serialization or the cipher call fails
        """
        try:
            plaintext = record.to_canonical_json()
        except (TypeError, ValueError, AttributeError) as e:
            logger.error(f"Failed to serialize record for encryption: {type(e).__name__}")
            raise EncryptionError("Failed to serialize health record") from e

        nonce = os.urandom(NONCE_SIZE)
        try:
            ciphertext = self._cipher.encrypt(nonce, plaintext, None)
        except (TypeError, ValueError, OverflowError) as e:
            logger.error(f"Failed to encrypt record: {type(e).__name__}")
            raise EncryptionError("Failed to encrypt health data") from e

        encrypted_data = base64.b64encode(nonce + ciphertext).decode("ascii")
        metadata = EncryptionMetadata(
            timestamp=int(self._clock() * 1000),
            data_hash=hashlib.sha256(plaintext).hexdigest(),
            encryption_type=self.algorithm_label,
        )
        logger.debug(f"Encrypted record (key_id={self.key_id}, hash={metadata.data_hash[:12]})")
        return EncryptedRecord(encrypted_data=encrypted_data, metadata=metadata)

    def decrypt(self, encrypted_data: str) -> DerivedHealthRecord:
        """Decrypt and authenticate a blob produced by encrypt.

        Parameters:
            encrypted_data: base64(nonce || ciphertext || tag)

        Returns:
            The original DerivedHealthRecord

        Raises:
            DecryptionError: On bad base64, a blob too short to hold nonce and tag,
                tag failure, or plaintext that is not a DerivedHealthRecord
        """
        try:
            combined = base64.b64decode(encrypted_data, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise DecryptionError("Encrypted data is not valid base64") from e

        if len(combined) < NONCE_SIZE + TAG_SIZE:
            raise DecryptionError(
                f"Encrypted data too short: {len(combined)} bytes, need at least {NONCE_SIZE + TAG_SIZE}"
            )

        nonce, ciphertext = combined[:NONCE_SIZE], combined[NONCE_SIZE:]
        try:
            plaintext = self._cipher.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            logger.warning(f"Authentication tag check failed (key_id={self.key_id})")
            raise DecryptionError("Failed to decrypt health data: authentication failed") from e

        try:
            payload = json.loads(plaintext.decode("utf-8"))
            return DerivedHealthRecord.model_validate(payload)
        except (UnicodeDecodeError, json.JSONDecodeError, PydanticValidationError) as e:
            logger.error(f"Decrypted payload is not a health record: {type(e).__name__}")
            raise DecryptionError("Decrypted data is not a valid health record") from e

    def verify_integrity(self, encrypted_data: str, expected_hash: str) -> bool:
        """Check that a blob decrypts and its plaintext hashes to expected_hash.

        Parameters:
            encrypted_data: Blob produced by encrypt
            expected_hash: Hex SHA-256 from the record's metadata

        Returns:
            True only if decryption succeeds and the hashes match; never raises
        """
        try:
            record = self.decrypt(encrypted_data)
        except DecryptionError:
            return False

        if not isinstance(expected_hash, str):
            return False
        actual_hash = self.hash_record(record)
        return hmac.compare_digest(actual_hash.encode("ascii"), expected_hash.lower().encode("utf-8"))

    def get_key_id(self) -> str:
        """Get the current encryption key ID."""
        return self.key_id
