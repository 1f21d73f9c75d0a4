"""Unit tests for the Result type."""

import pytest

from healthvault.domain.enums import ValidationCode
from healthvault.domain.ports import (
    Result,
    SubmissionFailedError,
    UnknownRecordError,
    ValidationError,
)


class TestResult:
    """Test suite for Result construction."""

    def test_success_result(self):
        """Test that a success carries its value and no error context."""
        result = Result.success_result(42)

        assert result.is_success()
        assert not result.is_failure()
        assert result.value == 42
        assert result.error is None
        assert result.error_type is None
        assert result.error_details == {}
        assert result.error_codes == ()

    def test_failure_from_error_takes_its_kind(self):
        """Test that an error's kind becomes the error type and keywords become details."""
        result = Result.failure_result(SubmissionFailedError("execution reverted"), record_id=5)

        assert result.is_failure()
        assert result.error == "execution reverted"
        assert result.error_type == "SubmissionFailed"
        assert result.error_details == {"record_id": 5}

    def test_explicit_error_type_wins(self):
        """Test that an explicit kind overrides the error's own kind."""
        result = Result.failure_result(UnknownRecordError("no such record"), error_type="SubmissionFailed")
        assert result.error_type == "SubmissionFailed"

    def test_plain_message_needs_error_type(self):
        """Test that a bare message without a kind is refused."""
        with pytest.raises(ValueError):
            Result.failure_result("something went wrong")

        result = Result.failure_result("something went wrong", error_type="ValidationError")
        assert result.error_type == "ValidationError"

    def test_error_codes(self):
        """Test that validation codes are exposed as a tuple."""
        errors = [ValidationError("Too short", ValidationCode.NAME_TOO_SHORT, field="patientName")]
        result = Result.failure_result(
            "Too short",
            error_type=ValidationError.kind,
            errors=errors,
            codes=[e.code.value for e in errors],
        )

        assert result.error_codes == ("name too short",)
        assert result.error_details["errors"] is errors

    def test_details_are_not_shared(self):
        """Test that separate results get separate detail dicts."""
        first = Result.success_result(1)
        second = Result.success_result(2)

        assert first.error_details is not second.error_details
