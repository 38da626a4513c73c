"""Import state store.

The single place import records are read and written. Every status change is
checked against the state machine before anything is persisted, so no caller
can move a record backwards.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from importflow.database.base import Database
from importflow.domain.entities import (
    AnalysisSnapshot,
    ImportFailure,
    ImportRecord,
    ImportStatus,
    ImportSummary,
    ProcessingOptions,
)
from importflow.domain.errors import (
    DomainError,
    NotFoundError,
    ValidationError,
    import_not_found,
)
from importflow.domain.state_machine import ensure_transition, is_terminal
from importflow.utils.date_parser import utc_now

logger = logging.getLogger(__name__)


class ImportStateStore:
    """Reads and writes import records on behalf of the pipeline stages."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utc_now):
        """Initialize import state store.

        Args:
            db: Database instance
            clock: Source of ``updated_at`` timestamps
        """
        self.db = db
        self.clock = clock

    def create(self, record: ImportRecord) -> ImportRecord:
        """Store a new record. It must start out PENDING."""
        if record.status is not ImportStatus.PENDING:
            raise ValidationError(f"New imports must be PENDING, not {record.status.value}")
        self.db.create_import(record)
        return record

    def get(self, account_id: str, upload_id: str) -> ImportRecord:
        """Get an import record.

        Raises:
            NotFoundError: If no record exists for the keys
        """
        record = self.db.get_import(account_id, upload_id)
        if record is None:
            raise NotFoundError(import_not_found(account_id, upload_id))
        return record

    def list_for_user(
        self, user_id: str, limit: int, after: Optional[tuple[datetime, str]] = None
    ) -> list[ImportRecord]:
        """List a user's records newest first, after an optional (created_at, upload_id) cursor."""
        return self.db.list_imports(user_id, limit, after=after)

    def update(
        self,
        account_id: str,
        upload_id: str,
        status: ImportStatus,
        analysis: Optional[AnalysisSnapshot] = None,
        processing_options: Optional[ProcessingOptions] = None,
        summary: Optional[ImportSummary] = None,
        error: Optional[ImportFailure] = None,
        retry: bool = False,
    ) -> ImportRecord:
        """Move a record to ``status``, attaching the given fields.

        Args:
            retry: Allow the explicit FAILED -> ANALYZING re-entry. Everything stored
                by the earlier attempt is cleared.

        Raises:
            NotFoundError: If no record exists for the keys
            InvalidTransitionError: If the state machine forbids the move
            ValidationError: If a required field for ``status`` is missing
        """
        current = self.get(account_id, upload_id)
        ensure_transition(upload_id, current.status, status, retry=retry)

        if status is ImportStatus.ANALYZED and analysis is None:
            raise ValidationError("Analyzed imports need an analysis snapshot")
        if status is ImportStatus.PROCESSING and processing_options is None:
            raise ValidationError("Processing imports need processing options")
        if status is ImportStatus.COMPLETED and summary is None:
            raise ValidationError("Completed imports need a summary")
        if status is ImportStatus.FAILED:
            if error is None:
                raise ValidationError("Failed imports need an error")
            if summary is None:
                summary = ImportSummary(transactions_added=0, duplicates_handled=0, errors=[error.message])

        record = self.db.update_import(
            account_id,
            upload_id,
            status=status,
            updated_at=self.clock(),
            analysis=analysis,
            processing_options=processing_options,
            summary=summary,
            error=error,
            clear_outcome=retry,
        )
        logger.info("Import %s: %s -> %s", upload_id, current.status.value, status.value)
        return record

    def reassign(self, account_id: str, upload_id: str, new_account_id: str) -> ImportRecord:
        """Move a record to another account without changing its status."""
        return self.db.reassign_import(account_id, upload_id, new_account_id, self.clock())

    def delete(self, account_id: str, upload_id: str) -> None:
        self.db.delete_import(account_id, upload_id)

    def mark_failed(
        self, account_id: str, upload_id: str, cause: BaseException
    ) -> Optional[ImportRecord]:
        """Record ``cause`` as the reason an import failed.

        Used from exception handlers that re-raise ``cause`` afterwards, so a
        failure to record it is logged rather than raised over the original.

        Returns:
            The failed record, the unchanged record if it was already
            terminal, or None if the failure could not be recorded
        """
        failure = ImportFailure.from_exception(cause)
        try:
            current = self.get(account_id, upload_id)
            if is_terminal(current.status):
                logger.warning(
                    "Import %s already %s; not recording failure %s",
                    upload_id,
                    current.status.value,
                    failure.code,
                )
                return current
            return self.update(account_id, upload_id, ImportStatus.FAILED, error=failure)
        except DomainError:
            logger.exception("Could not mark import %s as failed", upload_id)
            return None
