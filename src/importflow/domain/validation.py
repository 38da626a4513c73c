"""Validation of caller-supplied import requests."""

from typing import Any, Mapping

from importflow.domain.entities import Confirmations, DuplicateHandling
from importflow.domain.errors import ValidationError, missing_required_field

# Only delimited text is parsed; other statement formats are rejected up front
ALLOWED_FILE_TYPES = frozenset({"CSV"})
ALLOWED_CONTENT_TYPES = frozenset({"text/csv", "text/plain", "application/vnd.ms-excel"})

REQUIRED_CONFIRMATIONS = ("account_verified", "date_range_verified", "samples_reviewed")


def validate_import_request(
    account_id: str, file_name: str, file_type: str, content_type: str
) -> None:
    """Check the metadata supplied when an import is initiated.

    Raises:
        ValidationError: If a field is missing or not supported
    """
    fields = {
        "account_id": account_id,
        "file_name": file_name,
        "file_type": file_type,
        "content_type": content_type,
    }
    for name, value in fields.items():
        if not value or not str(value).strip():
            raise ValidationError(missing_required_field(name))

    if "/" in file_name or "\\" in file_name:
        raise ValidationError(f"File name must not contain path separators: '{file_name}'")
    if "/" in account_id:
        raise ValidationError(f"Invalid account ID: '{account_id}'")

    if file_type.upper() not in ALLOWED_FILE_TYPES:
        raise ValidationError(f"Unsupported file type: {file_type}")

    if content_type.lower() not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(f"Unsupported content type: {content_type}")


def validate_confirmations(confirmations: Confirmations | Mapping[str, Any] | None) -> Confirmations:
    """Check that the user gave every acknowledgement.

    Each flag must be exactly ``True``; truthy strings or numbers do not count.

    Raises:
        ValidationError: If a confirmation is missing or not accepted
    """
    if confirmations is None:
        raise ValidationError("Missing confirmations")
    if isinstance(confirmations, Confirmations):
        values = {name: getattr(confirmations, name) for name in REQUIRED_CONFIRMATIONS}
    else:
        values = {name: confirmations.get(name) for name in REQUIRED_CONFIRMATIONS}

    for name, value in values.items():
        if not isinstance(value, bool):
            raise ValidationError(f"Missing confirmation: {name}")
        if value is not True:
            raise ValidationError("All confirmations must be accepted")

    return Confirmations(**values)


def parse_duplicate_handling(value: DuplicateHandling | str | None) -> DuplicateHandling:
    """Resolve a duplicate-handling strategy.

    Raises:
        ValidationError: If the value is not one of the supported strategies
    """
    if isinstance(value, DuplicateHandling):
        return value
    try:
        return DuplicateHandling(value)
    except ValueError:
        raise ValidationError(f"Invalid duplicate handling strategy: {value}")
