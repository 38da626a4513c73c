"""Import orchestration domain service.

Drives an import through its lifecycle:

1. ``initiate_import`` creates a PENDING record and a signed upload URL.
2. ``on_raw_file_arrived`` analyzes the uploaded file against the account's
   reference window and stores the snapshot (ANALYZED).
3. ``confirm_import`` records the user's decisions (PROCESSING) and hands the
   commit off to the invoker.
4. The commit stage (``importflow.domain.commit``) writes COMPLETED or FAILED.
"""

import base64
import binascii
import json
import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence
from uuid import uuid4

from importflow.config import Settings
from importflow.database.base import Database
from importflow.domain.commit import PROCESS_IMPORT, CommitRequest
from importflow.domain.entities import (
    Confirmations,
    DuplicateHandling,
    ImportPage,
    ImportRecord,
    ImportStatus,
    ProcessingOptions,
    Transaction,
    UploadTicket,
)
from importflow.domain.errors import (
    AuthorizationError,
    DependencyError,
    DomainError,
    InvalidTransitionError,
    ValidationError,
    import_not_owned,
    invalid_transition,
)
from importflow.domain.ledger import LedgerService
from importflow.domain.parser import parse_transactions
from importflow.domain.reconciliation import analyze_transactions
from importflow.domain.state_store import ImportStateStore
from importflow.domain.validation import (
    parse_duplicate_handling,
    validate_confirmations,
    validate_import_request,
)
from importflow.integrations.blob_store import BlobStore
from importflow.integrations.invoker import AsyncInvoker
from importflow.utils.date_parser import utc_now
from importflow.utils.storage_keys import build_storage_key, parse_storage_key

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

REASSIGNABLE_STATUSES = (
    ImportStatus.PENDING,
    ImportStatus.ANALYZED,
    ImportStatus.WRONG_ACCOUNT_DETECTED,
    ImportStatus.FAILED,
)

# Returns True when the parsed transactions belong to a different account
AccountMismatchCheck = Callable[[str, Sequence[Transaction]], bool]


def encode_page_token(record: ImportRecord) -> str:
    """Encode the cursor after ``record`` as an opaque token."""
    cursor = {"created_at": record.created_at.isoformat(), "upload_id": record.upload_id}
    return base64.urlsafe_b64encode(json.dumps(cursor).encode("utf-8")).decode("ascii")


def decode_page_token(token: str) -> tuple[datetime, str]:
    """Decode a token produced by :func:`encode_page_token`.

    Raises:
        ValidationError: If the token is malformed
    """
    try:
        cursor = json.loads(base64.urlsafe_b64decode(token.encode("ascii")))
        return datetime.fromisoformat(cursor["created_at"]), cursor["upload_id"]
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError):
        raise ValidationError("Invalid pagination token")


class ImportService:
    """Service orchestrating the import pipeline."""

    def __init__(
        self,
        db: Database,
        blob_store: BlobStore,
        invoker: AsyncInvoker,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
        account_mismatch: Optional[AccountMismatchCheck] = None,
    ):
        """Initialize import service.

        Args:
            db: Database instance
            blob_store: Store the raw uploads are written to
            invoker: Hands confirmed imports to the commit stage
            settings: Upload URL lifetime and reference window length
            clock: Source of the current time
            account_mismatch: Optional check run after analysis that flags files
                belonging to another account
        """
        self.settings = settings or Settings()
        self.blob_store = blob_store
        self.invoker = invoker
        self.clock = clock
        self.account_mismatch = account_mismatch
        self.state = ImportStateStore(db, clock)
        self.ledger = LedgerService(db)

    def _get_owned(self, user_id: str, account_id: str, upload_id: str) -> ImportRecord:
        record = self.state.get(account_id, upload_id)
        if record.user_id != user_id:
            raise AuthorizationError(import_not_owned(upload_id))
        return record

    def initiate_import(
        self,
        user_id: str,
        account_id: str,
        file_name: str,
        file_type: str,
        content_type: str,
    ) -> UploadTicket:
        """Create a PENDING import and a time-boxed upload URL for its file.

        Returns:
            Upload ticket with the upload ID, URL and URL lifetime in seconds

        Raises:
            ValidationError: If the request metadata is incomplete or unsupported
        """
        if not user_id:
            raise AuthorizationError("A user is required to start an import")
        validate_import_request(account_id, file_name, file_type, content_type)

        upload_id = str(uuid4())
        now = self.clock()
        file_key = build_storage_key(user_id, account_id, upload_id, file_name, now)

        self.state.create(
            ImportRecord(
                upload_id=upload_id,
                account_id=account_id,
                user_id=user_id,
                file_name=file_name,
                file_type=file_type.upper(),
                content_type=content_type.lower(),
                file_key=file_key,
                status=ImportStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
        )

        ttl = self.settings.upload_url_ttl
        upload_url = self.blob_store.put_with_signed_url(file_key, content_type, ttl)
        logger.info("Initiated import %s for account %s (%s)", upload_id, account_id, file_name)
        return UploadTicket(upload_id=upload_id, upload_url=upload_url, expires_in=ttl)

    def on_raw_file_arrived(self, bucket: str, key: str) -> ImportRecord:
        """Analyze an uploaded file once storage reports it has arrived.

        Repeated notifications for an import that has moved past PENDING are
        ignored.

        Returns:
            The import record after analysis

        Raises:
            ValidationError: If the key does not follow the upload layout
            NotFoundError: If no import matches the key
            DomainError: If analysis failed; the import is FAILED
        """
        try:
            parts = parse_storage_key(key)
        except ValueError as e:
            raise ValidationError(str(e))

        record = self.state.get(parts.account_id, parts.upload_id)
        if record.status is not ImportStatus.PENDING:
            logger.warning(
                "Import %s is already %s; ignoring file notification",
                record.upload_id,
                record.status.value,
            )
            return record

        return self._analyze(record, bucket, record.file_key)

    def _analyze(
        self, record: ImportRecord, bucket: str, key: str, retry: bool = False
    ) -> ImportRecord:
        account_id, upload_id = record.account_id, record.upload_id
        self.state.update(account_id, upload_id, ImportStatus.ANALYZING, retry=retry)
        logger.info("Analyzing import %s from %s/%s", upload_id, bucket, key)

        try:
            content = self.blob_store.get_content(bucket, key)
            transactions = parse_transactions(content, import_batch_id=upload_id)
            now = self.clock()
            existing = self.ledger.reference_window(
                account_id, now.date(), self.settings.reference_window_days
            )
            snapshot = analyze_transactions(transactions, existing, now=now)
            analyzed = self.state.update(
                account_id, upload_id, ImportStatus.ANALYZED, analysis=snapshot
            )
        except Exception as e:
            logger.error("Error analyzing import %s: %s", upload_id, e)
            self.state.mark_failed(account_id, upload_id, e)
            raise

        logger.info(
            "Import %s analyzed: %d transactions, %d new, %d potential duplicates",
            upload_id,
            snapshot.file_stats.transaction_count,
            snapshot.overlap_stats.new_transactions,
            snapshot.overlap_stats.potential_duplicates,
        )

        if self.account_mismatch is not None and self.account_mismatch(account_id, transactions):
            logger.warning("Import %s looks like it belongs to another account", upload_id)
            return self.state.update(account_id, upload_id, ImportStatus.WRONG_ACCOUNT_DETECTED)
        return analyzed

    def confirm_import(
        self,
        user_id: str,
        account_id: str,
        upload_id: str,
        confirmations: Confirmations | Mapping[str, Any] | None,
        duplicate_handling: DuplicateHandling | str | None,
    ) -> dict[str, str]:
        """Accept the user's review of an analyzed import and start the commit.

        Nothing is written unless every check passes.

        Returns:
            ``{"upload_id": ..., "status": "PROCESSING"}``

        Raises:
            NotFoundError: If the import does not exist
            AuthorizationError: If the caller does not own the import
            ValidationError: If a confirmation is missing or false, the
                strategy is unknown, or the import is not ANALYZED
            DependencyError: If the commit could not be handed off; the
                import is FAILED
        """
        record = self._get_owned(user_id, account_id, upload_id)
        validate_confirmations(confirmations)
        strategy = parse_duplicate_handling(duplicate_handling)

        if record.status is not ImportStatus.ANALYZED:
            raise InvalidTransitionError(
                invalid_transition(upload_id, record.status.value, ImportStatus.PROCESSING.value)
            )

        self.state.update(
            account_id,
            upload_id,
            ImportStatus.PROCESSING,
            processing_options=ProcessingOptions(duplicate_handling=strategy),
        )
        logger.info("Import %s confirmed with %s", upload_id, strategy.value)

        request = CommitRequest(account_id=account_id, upload_id=upload_id, duplicate_handling=strategy)
        try:
            self.invoker.invoke_fire_and_forget(PROCESS_IMPORT, request.to_payload())
        except Exception as e:
            error = e if isinstance(e, DomainError) else DependencyError(f"Could not start processing: {e}")
            self.state.mark_failed(account_id, upload_id, error)
            if error is e:
                raise
            raise error from e

        return {"upload_id": upload_id, "status": ImportStatus.PROCESSING.value}

    def get_import_status(self, account_id: str, upload_id: str) -> ImportRecord:
        """Get an import record.

        Raises:
            NotFoundError: If the import does not exist
        """
        return self.state.get(account_id, upload_id)

    def list_imports(
        self, user_id: str, limit: Optional[int] = None, next_token: Optional[str] = None
    ) -> ImportPage:
        """List a user's imports, newest first.

        Args:
            user_id: Owner of the imports
            limit: Page size, clamped to 1..100 (default 20)
            next_token: Token from the previous page

        Returns:
            Page of records with a token for the next page, if there may be one
        """
        page_size = DEFAULT_PAGE_SIZE if limit is None else min(max(limit, 1), MAX_PAGE_SIZE)
        after = decode_page_token(next_token) if next_token else None

        items = self.state.list_for_user(user_id, page_size, after=after)
        token = encode_page_token(items[-1]) if len(items) == page_size else None
        return ImportPage(items=items, next_token=token)

    def delete_import(self, user_id: str, account_id: str, upload_id: str) -> None:
        """Delete an import record and its raw file.

        The record is removed even if the file cannot be.

        Raises:
            NotFoundError: If the import does not exist
            AuthorizationError: If the caller does not own the import
        """
        record = self._get_owned(user_id, account_id, upload_id)
        self.state.delete(account_id, upload_id)

        try:
            self.blob_store.delete(self.blob_store.bucket, record.file_key)
        except DomainError as e:
            logger.warning("Failed to delete file of import %s: %s", upload_id, e)

        logger.info("Import %s deleted from account %s", upload_id, account_id)

    def reassign_import(
        self,
        user_id: str,
        upload_id: str,
        current_account_id: str,
        new_account_id: str,
    ) -> dict[str, str]:
        """Move an import to a different account.

        Only imports that have not started committing can be moved. The status
        is kept; a later commit checks duplicates against the new account's
        ledger.

        Raises:
            NotFoundError: If the import does not exist
            AuthorizationError: If the caller does not own the import
            ValidationError: If the target account is missing or the import
                is in a state that cannot be reassigned
        """
        if not new_account_id or "/" in new_account_id:
            raise ValidationError("Missing required parameter: new_account_id")
        if new_account_id == current_account_id:
            raise ValidationError(f"Import {upload_id} already belongs to account {new_account_id}")

        record = self._get_owned(user_id, current_account_id, upload_id)
        if record.status not in REASSIGNABLE_STATUSES:
            allowed = ", ".join(status.value for status in REASSIGNABLE_STATUSES)
            raise ValidationError(
                f"Cannot reassign import in {record.status.value} state. "
                f"Import must be in one of these states: {allowed}"
            )

        moved = self.state.reassign(current_account_id, upload_id, new_account_id)
        logger.info(
            "Reassigned import %s from account %s to %s (by %s)",
            upload_id,
            current_account_id,
            new_account_id,
            user_id,
        )
        return {
            "upload_id": upload_id,
            "account_id": new_account_id,
            "status": moved.status.value,
            "message": (
                f"Import successfully reassigned from account {current_account_id} "
                f"to account {new_account_id}"
            ),
        }

    def retry_import(self, user_id: str, account_id: str, upload_id: str) -> ImportRecord:
        """Re-run a failed import from its stored file.

        The import goes back through analysis and must be confirmed again.

        Raises:
            NotFoundError: If the import does not exist
            AuthorizationError: If the caller does not own the import
            InvalidTransitionError: If the import has not FAILED
            DomainError: If analysis failed again; the import is FAILED
        """
        record = self._get_owned(user_id, account_id, upload_id)
        if record.status is not ImportStatus.FAILED:
            raise InvalidTransitionError(
                f"Only failed imports can be retried; import {upload_id} is {record.status.value}"
            )
        logger.info("Retrying import %s", upload_id)
        return self._analyze(record, self.blob_store.bucket, record.file_key, retry=True)
