"""Configuration settings for the import pipeline."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from importflow.domain.errors import ValidationError

DEFAULT_UPLOAD_TTL = 300
DEFAULT_REFERENCE_WINDOW_DAYS = 30
DEFAULT_IMPORT_BUCKET = "importflow-imports"


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from ``IMPORTFLOW_*`` environment variables."""

    database_path: Optional[str] = None
    blob_root: str = str(Path.home() / ".importflow" / "blobs")
    import_bucket: str = DEFAULT_IMPORT_BUCKET
    upload_url_ttl: int = DEFAULT_UPLOAD_TTL
    reference_window_days: int = DEFAULT_REFERENCE_WINDOW_DAYS
    signing_secret: str = "dev-secret"
    log_level: str = "INFO"


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{raw}'")
    if value < 0:
        raise ValidationError(f"{name} must not be negative, got {value}")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from environment variables.

    Args:
        environ: Mapping to read from; defaults to ``os.environ``

    Raises:
        ValidationError: If a numeric variable is not a non-negative integer
    """
    if environ is None:
        environ = os.environ
    defaults = Settings()

    return Settings(
        database_path=environ.get("IMPORTFLOW_DB_PATH") or None,
        blob_root=environ.get("IMPORTFLOW_BLOB_ROOT") or defaults.blob_root,
        import_bucket=environ.get("IMPORTFLOW_IMPORT_BUCKET") or defaults.import_bucket,
        upload_url_ttl=_int_setting(environ, "IMPORTFLOW_UPLOAD_TTL", DEFAULT_UPLOAD_TTL),
        reference_window_days=_int_setting(
            environ, "IMPORTFLOW_REFERENCE_WINDOW_DAYS", DEFAULT_REFERENCE_WINDOW_DAYS
        ),
        signing_secret=environ.get("IMPORTFLOW_SIGNING_SECRET") or defaults.signing_secret,
        log_level=(environ.get("IMPORTFLOW_LOG_LEVEL") or defaults.log_level).upper(),
    )
