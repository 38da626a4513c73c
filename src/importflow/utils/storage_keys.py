"""Blob key layout for uploaded statement files."""

from dataclasses import dataclass
from datetime import datetime
from urllib.parse import unquote_plus


@dataclass(frozen=True)
class StorageKeyParts:
    """Identifiers encoded in a raw file's blob key."""

    user_id: str
    account_id: str
    upload_id: str
    file_name: str


def build_storage_key(
    user_id: str, account_id: str, upload_id: str, file_name: str, when: datetime
) -> str:
    """Build the blob key for a raw upload.

    Layout: ``{user_id}/{account_id}/{YYYY}/{MM}/original/{upload_id}_{file_name}``
    """
    return f"{user_id}/{account_id}/{when.year:04d}/{when.month:02d}/original/{upload_id}_{file_name}"


def parse_storage_key(key: str) -> StorageKeyParts:
    """Recover identifiers from a blob key.

    Storage notifications may deliver the key URL-encoded, so it is decoded
    first.

    Raises:
        ValueError: If the key does not follow the upload layout
    """
    parts = unquote_plus(key).split("/")
    if len(parts) != 6 or parts[4] != "original":
        raise ValueError(f"Unrecognized upload key: '{key}'")

    upload_id, sep, file_name = parts[5].partition("_")
    if not sep or not upload_id or not parts[0] or not parts[1]:
        raise ValueError(f"Unrecognized upload key: '{key}'")

    return StorageKeyParts(
        user_id=parts[0],
        account_id=parts[1],
        upload_id=upload_id,
        file_name=file_name,
    )
