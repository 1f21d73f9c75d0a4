"""Domain Services - Health Record Validation and Derivation.

This module turns a raw HealthRecord into a DerivedHealthRecord: it checks
every business rule, computes the patient's calendar age and the derived
health score, and attaches the vital signs.

Security Impact:
    - Only records that pass every rule are ever handed to encryption
    - Validation errors name the rule and field, never echo PHI values
    - Age bounds reject impossible dates of birth before they reach the ledger

Architecture:
    - Pure domain logic with no infrastructure dependencies
    - Reports through the Result type; all violations are collected, never short-circuited
    - A mistyped field is reported on its own; the remaining fields are still checked
    - The clock is injected so "today" can be pinned in tests
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from healthvault.domain.enums import BloodType, RecordType, ValidationCode
from healthvault.domain.health_record import DerivedHealthRecord, HealthRecord, VitalSigns
from healthvault.domain.ports import Result, ValidationError

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_HISTORY_LENGTH = 10
MIN_CONTACT_LENGTH = 5
MAX_AGE = 150

# Health score weights
BASE_HEALTH_SCORE = 100
COMPLEX_HISTORY_LENGTH = 500
COMPLEX_HISTORY_PENALTY = 10
RARE_BLOOD_TYPE_BONUS = 5
AGE_PENALTIES = ((65, 15), (50, 10), (30, 5))  # (older than, penalty), highest first

# Input key (camelCase alias or snake_case name) -> HealthRecord field name
_FIELD_NAMES = {
    key: name
    for name, info in HealthRecord.model_fields.items()
    for key in (name, info.alias or name)
}


def calculate_age(date_of_birth: date, today: date) -> int:
    """Calendar age in whole years.

    One year is taken off if today's month/day falls before the birthday
    within the current year. Negative for dates of birth in the future.
    """
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def generate_health_score(medical_history: str, age: int, blood_type: Optional[BloodType]) -> int:
    """Derive the 0-100 health score.

    Starts at 100, loses points for a long medical history and for the
    patient's age bracket (only the highest matching bracket applies), gains
    points for a rare blood type, and is clamped to [0, 100].
    """
    score = BASE_HEALTH_SCORE

    if len(medical_history) > COMPLEX_HISTORY_LENGTH:
        score -= COMPLEX_HISTORY_PENALTY

    for threshold, penalty in AGE_PENALTIES:
        if age > threshold:
            score -= penalty
            break

    if blood_type is not None and blood_type.is_rare:
        score += RARE_BLOOD_TYPE_BONUS

    return max(0, min(100, score))


def parse_date_of_birth(value: Union[date, str, None]) -> Optional[date]:
    """Parse a date of birth, returning None if it is not a valid date.

    Accepts a date, a datetime, an ISO-8601 date string, or an ISO-8601
    date-time string (the time part is dropped). Anything else, including
    a valid date followed by other text, yields None.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    # fromisoformat only learned the "Z" suffix in 3.11
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def coerce_health_record(data: Any) -> tuple[Optional[HealthRecord], dict[str, str]]:
    """Build a HealthRecord from raw form data, isolating mistyped fields.

    Fields that fail type coercion are dropped (so they take their
    defaults) and reported back, keyed by field name, with the input key
    the caller used.

    Returns:
        (record, malformed) where record is None if the input is not a
        mapping at all
    """
    if not isinstance(data, Mapping):
        return None, {}
    try:
        return HealthRecord.model_validate(data), {}
    except PydanticValidationError as e:
        failing = {
            _FIELD_NAMES.get(str(err["loc"][0]))
            for err in e.errors()
            if err.get("loc")
        }

    if None in failing or not failing:
        return None, {}
    malformed = {}
    cleaned = {}
    for key, value in data.items():
        name = _FIELD_NAMES.get(key)
        if name in failing:
            malformed[name] = key
        else:
            cleaned[key] = value
    try:
        return HealthRecord.model_validate(cleaned), malformed
    except PydanticValidationError:
        return None, {}


class HealthDataValidator:
    """Validates health records and derives age, health score and vitals.

    Example Usage:
        ```python
        validator = HealthDataValidator()
        result = validator.validate({"patientName": "Jane Doe", ...})
        if result.is_success():
            derived = result.value
        else:
            for error in result.error_details["errors"]:
                show(error.field, str(error))
        ```
    """

    def __init__(
        self,
        vital_defaults: Optional[VitalSigns] = None,
        clock: Callable[[], date] = date.today,
    ):
        """Initialize the validator.

        Parameters:
            vital_defaults: Vitals attached to every derived record (defaults if None)
            clock: Returns today's date; injected for deterministic ages
        """
        self.vital_defaults = vital_defaults or VitalSigns()
        self._clock = clock

    def validate(self, record: Union[HealthRecord, Mapping[str, Any]]) -> Result[DerivedHealthRecord]:
        """Validate a record and derive its computed fields.

        Parameters:
            record: A HealthRecord, or raw form data (camelCase or snake_case keys)

        Returns:
            Result carrying a DerivedHealthRecord, or a failure whose
            error_details["errors"] lists every violated rule
        """
        malformed: dict[str, str] = {}
        if not isinstance(record, HealthRecord):
            record, malformed = coerce_health_record(record)
            if record is None:
                logger.info("Rejected health record input that is not a field mapping")
                return self._failure([
                    ValidationError("Malformed input: expected a mapping of form fields",
                                    ValidationCode.MALFORMED_INPUT)
                ])
            if malformed:
                logger.info(f"Health record input has mistyped fields: {sorted(malformed.values())}")

        today = self._clock()
        errors: list[ValidationError] = []

        def check(name: str) -> bool:
            """Report a mistyped field in place of its rule; True if the rule should run."""
            if name in malformed:
                errors.append(ValidationError(
                    f"Malformed input in field {malformed[name]}",
                    ValidationCode.MALFORMED_INPUT,
                    field=malformed[name],
                ))
                return False
            return True

        if check("patient_name") and len(record.patient_name) < MIN_NAME_LENGTH:
            errors.append(ValidationError(
                f"Patient name must be at least {MIN_NAME_LENGTH} characters",
                ValidationCode.NAME_TOO_SHORT,
                field="patientName",
            ))

        record_type = None
        if not check("record_type"):
            pass
        elif not record.record_type.strip():
            errors.append(ValidationError(
                "Please select a record type",
                ValidationCode.RECORD_TYPE_REQUIRED,
                field="recordType",
            ))
        else:
            record_type = RecordType.parse(record.record_type)
            if record_type is None:
                errors.append(ValidationError(
                    "Unknown record type",
                    ValidationCode.INVALID_RECORD_TYPE,
                    field="recordType",
                ))

        dob = None
        age = 0
        if check("date_of_birth"):
            dob_missing = record.date_of_birth is None or (
                isinstance(record.date_of_birth, str) and not record.date_of_birth.strip()
            )
            if dob_missing:
                errors.append(ValidationError(
                    "Date of birth is required",
                    ValidationCode.DOB_REQUIRED,
                    field="dateOfBirth",
                ))
            else:
                dob = parse_date_of_birth(record.date_of_birth)
                if dob is not None:
                    age = calculate_age(dob, today)
                if dob is None or age < 0 or age > MAX_AGE:
                    errors.append(ValidationError(
                        "Invalid date of birth",
                        ValidationCode.INVALID_DOB,
                        field="dateOfBirth",
                    ))

        blood_type = None
        if not check("blood_type"):
            pass
        elif not record.blood_type.strip():
            errors.append(ValidationError(
                "Blood type is required",
                ValidationCode.BLOOD_TYPE_REQUIRED,
                field="bloodType",
            ))
        else:
            blood_type = BloodType.parse(record.blood_type)
            if blood_type is None:
                errors.append(ValidationError(
                    "Unknown blood type",
                    ValidationCode.INVALID_BLOOD_TYPE,
                    field="bloodType",
                ))

        if check("medical_history") and len(record.medical_history) < MIN_HISTORY_LENGTH:
            errors.append(ValidationError(
                f"Medical history must be at least {MIN_HISTORY_LENGTH} characters",
                ValidationCode.HISTORY_TOO_SHORT,
                field="medicalHistory",
            ))

        if check("emergency_contact") and len(record.emergency_contact) < MIN_CONTACT_LENGTH:
            errors.append(ValidationError(
                "Emergency contact information is required",
                ValidationCode.CONTACT_REQUIRED,
                field="emergencyContact",
            ))

        check("is_encrypted")

        if errors:
            logger.info(f"Health record failed validation: {[e.code.value for e in errors]}")
            return self._failure(errors)

        vitals = self.vital_defaults
        derived = DerivedHealthRecord(
            patient_name=record.patient_name,
            record_type=record_type,
            date_of_birth=dob,
            blood_type=blood_type,
            medical_history=record.medical_history,
            emergency_contact=record.emergency_contact,
            is_encrypted=record.is_encrypted,
            age=age,
            weight=vitals.weight,
            height=vitals.height,
            blood_pressure=vitals.blood_pressure,
            heart_rate=vitals.heart_rate,
            temperature=vitals.temperature,
            health_score=generate_health_score(record.medical_history, age, blood_type),
        )
        logger.debug(f"Derived health record (age={derived.age}, score={derived.health_score})")
        return Result.success_result(derived)

    @staticmethod
    def _failure(errors: list[ValidationError]) -> Result[DerivedHealthRecord]:
        return Result.failure_result(
            "; ".join(str(e) for e in errors),
            error_type=ValidationError.kind,
            errors=errors,
            codes=[e.code.value for e in errors],
        )
