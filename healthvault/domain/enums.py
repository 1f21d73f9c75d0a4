"""Domain Enumerations.

Closed value sets used by the health record models, the validator and the
submission workflow.
"""

from enum import Enum
from typing import Optional


class RecordType(str, Enum):
    """Category of a submitted health record."""
    GENERAL = "general"
    VACCINATION = "vaccination"
    LAB_RESULTS = "lab-results"
    PRESCRIPTION = "prescription"
    ALLERGIES = "allergies"
    EMERGENCY = "emergency"

    @classmethod
    def parse(cls, value: str) -> Optional["RecordType"]:
        """Return the matching record type, or None if the value is unknown."""
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None


class BloodType(str, Enum):
    """ABO/Rh blood group, stored lowercase."""
    A_POSITIVE = "a+"
    A_NEGATIVE = "a-"
    B_POSITIVE = "b+"
    B_NEGATIVE = "b-"
    AB_POSITIVE = "ab+"
    AB_NEGATIVE = "ab-"
    O_POSITIVE = "o+"
    O_NEGATIVE = "o-"

    @classmethod
    def parse(cls, value: str) -> Optional["BloodType"]:
        """Case-insensitive lookup. Accepts the Unicode minus sign (U+2212)."""
        normalized = value.strip().lower().replace("−", "-")
        for member in cls:
            if member.value == normalized:
                return member
        return None

    @property
    def is_rare(self) -> bool:
        return self in RARE_BLOOD_TYPES


RARE_BLOOD_TYPES = frozenset({BloodType.AB_NEGATIVE, BloodType.B_NEGATIVE})


class ValidationCode(str, Enum):
    """Named validation rules. Each violated rule yields one ValidationError."""
    NAME_TOO_SHORT = "name too short"
    RECORD_TYPE_REQUIRED = "record type required"
    INVALID_RECORD_TYPE = "invalid record type"
    DOB_REQUIRED = "dob required"
    INVALID_DOB = "invalid dob"
    BLOOD_TYPE_REQUIRED = "blood type required"
    INVALID_BLOOD_TYPE = "invalid blood type"
    HISTORY_TOO_SHORT = "history too short"
    CONTACT_REQUIRED = "contact required"
    MALFORMED_INPUT = "malformed input"


class WorkflowStage(str, Enum):
    """Stages of the submission workflow.

    The happy path is IDLE -> ENCRYPTING -> RECORDING_ON_LEDGER -> MINTING
    -> COMPLETE -> IDLE. FAILED is reachable from the three working stages
    and always falls back to IDLE.
    """
    IDLE = "idle"
    ENCRYPTING = "encrypting"
    RECORDING_ON_LEDGER = "recording_on_ledger"
    MINTING = "minting"
    COMPLETE = "complete"
    FAILED = "failed"
