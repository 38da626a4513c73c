"""Tests for request validation and error types."""

import pytest

from importflow.domain.entities import Confirmations, DuplicateHandling, ImportFailure
from importflow.domain.errors import (
    DependencyError,
    InvalidTransitionError,
    RowFormatError,
    ValidationError,
)
from importflow.domain.validation import (
    parse_duplicate_handling,
    validate_confirmations,
    validate_import_request,
)


def test_valid_request_passes():
    validate_import_request("acct-1", "jan.csv", "csv", "TEXT/CSV")


def test_account_id_cannot_contain_slash():
    with pytest.raises(ValidationError):
        validate_import_request("acct/1", "jan.csv", "CSV", "text/csv")


def test_confirmations_from_mapping():
    result = validate_confirmations(
        {"account_verified": True, "date_range_verified": True, "samples_reviewed": True}
    )

    assert result == Confirmations(True, True, True)


def test_missing_confirmation_is_named():
    with pytest.raises(ValidationError) as excinfo:
        validate_confirmations({"account_verified": True, "samples_reviewed": True})

    assert str(excinfo.value) == "Missing confirmation: date_range_verified"


def test_false_confirmation():
    with pytest.raises(ValidationError) as excinfo:
        validate_confirmations(Confirmations(True, True, False))

    assert str(excinfo.value) == "All confirmations must be accepted"


@pytest.mark.parametrize("value", ["SKIP", DuplicateHandling.REPLACE, "MARK_DUPLICATE"])
def test_known_strategies(value):
    assert parse_duplicate_handling(value) in set(DuplicateHandling)


@pytest.mark.parametrize("value", [None, "", "skip", "IGNORE"])
def test_unknown_strategies(value):
    with pytest.raises(ValidationError):
        parse_duplicate_handling(value)


def test_error_to_dict():
    error = RowFormatError("Invalid amount at line 3: abc", 3, "abc")

    assert error.to_dict() == {"code": "ROW_FORMAT_ERROR", "message": "Invalid amount at line 3: abc"}
    assert isinstance(error, ValueError)


def test_failure_from_domain_error():
    failure = ImportFailure.from_exception(InvalidTransitionError("no"))

    assert failure == ImportFailure(message="no", code="INVALID_TRANSITION")


def test_failure_from_unexpected_error():
    failure = ImportFailure.from_exception(ZeroDivisionError("division by zero"))

    assert failure.code == "INTERNAL_ERROR"
    assert "division" not in failure.message


def test_dependency_error_code():
    assert DependencyError("x").code == "DEPENDENCY_ERROR"
