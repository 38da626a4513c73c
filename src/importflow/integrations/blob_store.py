"""Blob storage for raw statement files.

The pipeline only relies on the :class:`BlobStore` interface. The local
implementation keeps files on disk and hands out HMAC-signed, time-boxed upload
URLs so the initiate/upload/notify flow can run without a cloud provider.
"""

import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Callable
from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit

from importflow.domain.errors import AuthorizationError, DependencyError, ValidationError
from importflow.utils.date_parser import utc_now

logger = logging.getLogger(__name__)

URL_SCHEME = "local"


class BlobStore(ABC):
    """Interface of the store holding uploaded files."""

    bucket: str

    @abstractmethod
    def put_with_signed_url(self, key: str, content_type: str, ttl: int) -> str:
        """Return a URL the client can write ``key`` to for ``ttl`` seconds."""
        pass

    @abstractmethod
    def get_content(self, bucket: str, key: str) -> bytes:
        """Read a stored file."""
        pass

    @abstractmethod
    def delete(self, bucket: str, key: str) -> None:
        """Delete a stored file."""
        pass


class LocalBlobStore(BlobStore):
    """Filesystem-backed blob store."""

    def __init__(
        self,
        root: str | Path,
        bucket: str,
        secret: str,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize local blob store.

        Args:
            root: Directory holding one subdirectory per bucket
            bucket: Bucket uploads are written to
            secret: Key used to sign upload URLs
            clock: Source of the current time, for URL expiry
        """
        self.root = Path(root)
        self.bucket = bucket
        self._secret = secret.encode("utf-8")
        self._clock = clock

    def _path(self, bucket: str, key: str) -> Path:
        base = (self.root / bucket).resolve()
        path = (base / key).resolve()
        if base not in path.parents:
            raise ValidationError(f"Invalid blob key: '{key}'")
        return path

    def _sign(self, bucket: str, key: str, content_type: str, expires: int) -> str:
        message = f"{bucket}\n{key}\n{content_type}\n{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def put_with_signed_url(self, key: str, content_type: str, ttl: int) -> str:
        """Return a signed upload URL for ``key`` in the upload bucket."""
        self._path(self.bucket, key)
        expires = int(self._clock().timestamp()) + ttl
        query = urlencode(
            {
                "content_type": content_type,
                "expires": expires,
                "signature": self._sign(self.bucket, key, content_type, expires),
            }
        )
        return f"{URL_SCHEME}://{self.bucket}/{quote(key)}?{query}"

    def upload(self, url: str, data: bytes) -> tuple[str, str]:
        """Write data through a signed upload URL.

        Returns:
            Tuple of (bucket, key) the data was written to

        Raises:
            ValidationError: If the URL is malformed or has expired
            AuthorizationError: If the signature does not match
        """
        parts = urlsplit(url)
        if parts.scheme != URL_SCHEME or not parts.netloc:
            raise ValidationError(f"Not a local upload URL: '{url}'")

        bucket = parts.netloc
        key = unquote(parts.path.lstrip("/"))
        params = {name: values[0] for name, values in parse_qs(parts.query).items()}
        try:
            content_type = params["content_type"]
            expires = int(params["expires"])
            signature = params["signature"]
        except (KeyError, ValueError):
            raise ValidationError("Upload URL is missing signature parameters")

        expected = self._sign(bucket, key, content_type, expires)
        if not hmac.compare_digest(expected, signature):
            raise AuthorizationError("Upload URL signature does not match")
        if self._clock().timestamp() > expires:
            raise ValidationError("Upload URL has expired")

        self.put_content(bucket, key, data)
        return bucket, key

    def put_content(self, bucket: str, key: str, data: bytes) -> None:
        """Write a file directly, bypassing URL signing."""
        path = self._path(bucket, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise DependencyError(f"Could not write blob {bucket}/{key}: {e.strerror}")
        logger.debug("Stored blob %s/%s (%d bytes)", bucket, key, len(data))

    def get_content(self, bucket: str, key: str) -> bytes:
        """Read a stored file."""
        path = self._path(bucket, key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise DependencyError(f"Could not read blob {bucket}/{key}: {e.strerror}")

    def delete(self, bucket: str, key: str) -> None:
        """Delete a stored file."""
        path = self._path(bucket, key)
        try:
            path.unlink()
        except OSError as e:
            raise DependencyError(f"Could not delete blob {bucket}/{key}: {e.strerror}")
