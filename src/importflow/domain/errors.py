"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. Each category carries a stable
    ``code`` that is safe to show at a human-facing boundary.
    """

    code = "DOMAIN_ERROR"

    def to_dict(self) -> dict[str, str]:
        """Return the error as a ``{code, message}`` mapping."""
        return {"code": self.code, "message": str(self)}


class SchemaError(DomainError):
    """Uploaded file is missing required columns or rows."""

    code = "SCHEMA_ERROR"


class RowFormatError(DomainError):
    """A specific row of an uploaded file is malformed."""

    code = "ROW_FORMAT_ERROR"

    def __init__(self, message: str, line_number: int, raw_value: Optional[str] = None):
        super().__init__(message)
        self.line_number = line_number
        self.raw_value = raw_value


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""

    code = "VALIDATION_ERROR"


class InvalidTransitionError(ValidationError):
    """Requested import status change would break the state machine."""

    code = "INVALID_TRANSITION"


class AuthorizationError(DomainError):
    """Caller does not own the requested import."""

    code = "AUTHORIZATION_ERROR"


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""

    code = "NOT_FOUND"


class ConflictError(DomainError):
    """Domain conflict, such as a ledger key that is already taken."""

    code = "CONFLICT"


class DependencyError(DomainError):
    """A collaborator (blob store, ledger, invoker) call failed."""

    code = "DEPENDENCY_ERROR"


def import_not_found(account_id: str, upload_id: str) -> str:
    """Return message for missing import record."""
    return f"Import {upload_id} not found for account {account_id}"


def import_not_owned(upload_id: str) -> str:
    """Return message when the caller does not own an import."""
    return f"Not authorized to access import {upload_id}"


def missing_required_field(field: str) -> str:
    """Return message for a missing header column or request field."""
    return f"Missing required field: {field}"


def column_count_mismatch(line_number: int, expected: int, actual: int) -> str:
    """Return message for a row whose width differs from the header."""
    return (
        f"Invalid CSV format at line {line_number}: "
        f"expected {expected} values but got {actual}"
    )


def invalid_amount(line_number: int, raw_value: str) -> str:
    """Return message for an unparseable amount."""
    return f"Invalid amount at line {line_number}: {raw_value}"


def invalid_date(line_number: int, raw_value: str) -> str:
    """Return message for an unparseable date."""
    return f"Invalid date at line {line_number}: {raw_value}"


def invalid_transition(upload_id: str, current: str, target: str) -> str:
    """Return message for a rejected status change."""
    return f"Import {upload_id} cannot move from {current} to {target}"


def duplicate_ledger_key(unique_id: str, account_id: str) -> str:
    """Return message for a ledger entry that already exists."""
    return f"Transaction with unique_id '{unique_id}' already exists for account {account_id}"
