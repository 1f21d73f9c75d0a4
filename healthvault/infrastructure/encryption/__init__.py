"""Encryption infrastructure.

Authenticated symmetric encryption for derived health records.
"""

from .encryption_service import EncryptionService

__all__ = ["EncryptionService"]
