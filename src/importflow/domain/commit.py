"""Commit stage of an import.

Runs after the user confirmed an analyzed import. The raw file is read and
parsed again and the reference window is queried fresh from the ledger, so
duplicate detection reflects the ledger at commit time rather than the
snapshot the user reviewed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping, Sequence

from importflow.config import DEFAULT_REFERENCE_WINDOW_DAYS
from importflow.database.base import Database
from importflow.domain.entities import (
    DuplicateHandling,
    ImportRecord,
    ImportStatus,
    ImportSummary,
    Transaction,
)
from importflow.domain.errors import InvalidTransitionError, ValidationError, invalid_transition
from importflow.domain.ledger import LedgerService
from importflow.domain.parser import parse_transactions
from importflow.domain.reconciliation import find_match
from importflow.domain.state_machine import is_terminal
from importflow.domain.state_store import ImportStateStore
from importflow.domain.validation import parse_duplicate_handling
from importflow.integrations.blob_store import BlobStore
from importflow.utils.date_parser import utc_now

logger = logging.getLogger(__name__)

# Name the commit handler is registered under with the invoker
PROCESS_IMPORT = "process-import"


@dataclass(frozen=True)
class CommitRequest:
    """Message handed from confirmation to the commit stage."""

    account_id: str
    upload_id: str
    duplicate_handling: DuplicateHandling

    def to_payload(self) -> dict[str, str]:
        return {
            "account_id": self.account_id,
            "upload_id": self.upload_id,
            "duplicate_handling": self.duplicate_handling.value,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CommitRequest":
        """Decode an invoker payload.

        Raises:
            ValidationError: If a field is missing or the strategy is unknown
        """
        for name in ("account_id", "upload_id", "duplicate_handling"):
            if not payload.get(name):
                raise ValidationError(f"Commit request is missing '{name}'")
        return cls(
            account_id=payload["account_id"],
            upload_id=payload["upload_id"],
            duplicate_handling=parse_duplicate_handling(payload["duplicate_handling"]),
        )


@dataclass
class CommitTally:
    """Running outcome of a commit batch."""

    transactions_added: int = 0
    duplicates_handled: int = 0
    errors: list[str] = field(default_factory=list)

    def to_summary(self) -> ImportSummary:
        return ImportSummary(
            transactions_added=self.transactions_added,
            duplicates_handled=self.duplicates_handled,
            errors=list(self.errors),
        )


class CommitExecutor:
    """Applies a confirmed import to the ledger."""

    def __init__(
        self,
        db: Database,
        blob_store: BlobStore,
        reference_window_days: int = DEFAULT_REFERENCE_WINDOW_DAYS,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize commit executor.

        Args:
            db: Database instance
            blob_store: Store holding the raw uploads
            reference_window_days: Length of the trailing window of ledger
                transactions duplicates are detected against
            clock: Source of the current time
        """
        self.blob_store = blob_store
        self.reference_window_days = reference_window_days
        self.clock = clock
        self.state = ImportStateStore(db, clock)
        self.ledger = LedgerService(db)

    def handle(self, payload: Mapping[str, Any]) -> ImportRecord:
        """Entry point for the invoker.

        An undecodable payload fails the import it names, when it names one,
        so the record does not stay in PROCESSING.
        """
        try:
            request = CommitRequest.from_payload(payload)
        except ValidationError as e:
            account_id, upload_id = payload.get("account_id"), payload.get("upload_id")
            logger.error("Rejected commit request for import %s: %s", upload_id, e)
            if account_id and upload_id:
                self.state.mark_failed(account_id, upload_id, e)
            raise
        return self.process_import(
            request.account_id, request.upload_id, request.duplicate_handling
        )

    def process_import(
        self,
        account_id: str,
        upload_id: str,
        duplicate_handling: DuplicateHandling | str,
    ) -> ImportRecord:
        """Commit a confirmed import and write its terminal status.

        Safe to call again for the same upload: once the import is COMPLETED or
        FAILED further calls return the stored record untouched.

        Args:
            account_id: Account ID
            upload_id: Upload ID
            duplicate_handling: Strategy for transactions that match the ledger

        Returns:
            The import record in its terminal state

        Raises:
            NotFoundError: If the import does not exist
            InvalidTransitionError: If the import has not been confirmed
            DomainError: If the batch could not run; the import is FAILED
        """
        strategy = parse_duplicate_handling(duplicate_handling)
        record = self.state.get(account_id, upload_id)

        if is_terminal(record.status):
            logger.warning(
                "Import %s is already %s; ignoring repeated commit request",
                upload_id,
                record.status.value,
            )
            return record
        if record.status is not ImportStatus.PROCESSING:
            raise InvalidTransitionError(
                invalid_transition(upload_id, record.status.value, ImportStatus.COMPLETED.value)
            )

        logger.info("Processing import %s for account %s (%s)", upload_id, account_id, strategy.value)
        try:
            transactions = self._load_transactions(record)
            existing = self.ledger.reference_window(
                account_id, self.clock().date(), self.reference_window_days
            )
            tally = self.apply_strategy(account_id, transactions, existing, strategy)
            self.ledger.recompute_balance(account_id)
            completed = self.state.update(
                account_id, upload_id, ImportStatus.COMPLETED, summary=tally.to_summary()
            )
        except Exception as e:
            logger.error("Error processing import %s: %s", upload_id, e)
            self.state.mark_failed(account_id, upload_id, e)
            raise

        logger.info(
            "Import %s completed: %d added, %d duplicates handled, %d errors",
            upload_id,
            tally.transactions_added,
            tally.duplicates_handled,
            len(tally.errors),
        )
        return completed

    def _load_transactions(self, record: ImportRecord) -> list[Transaction]:
        content = self.blob_store.get_content(self.blob_store.bucket, record.file_key)
        return parse_transactions(content, import_batch_id=record.upload_id)

    def apply_strategy(
        self,
        account_id: str,
        transactions: Sequence[Transaction],
        existing: Sequence[Transaction],
        strategy: DuplicateHandling,
    ) -> CommitTally:
        """Write transactions to the ledger in file order.

        A transaction with no match in ``existing`` whose ledger key is already
        taken is handled as a duplicate of that entry. This covers identical
        rows repeated within the batch and rows committed before the reference
        window.

        A failure on one transaction is recorded in the tally and the batch
        moves on to the next one.
        """
        tally = CommitTally()
        for txn in transactions:
            try:
                match = find_match(txn, existing)
                if match is None:
                    match = self.ledger.find_entry(account_id, txn)
                if match is None:
                    self.ledger.create_transaction(account_id, txn)
                    tally.transactions_added += 1
                elif strategy is DuplicateHandling.SKIP:
                    tally.duplicates_handled += 1
                elif strategy is DuplicateHandling.REPLACE:
                    self.ledger.replace_transaction(account_id, txn, match)
                    tally.duplicates_handled += 1
                else:
                    self.ledger.flag_duplicate(account_id, txn)
                    tally.duplicates_handled += 1
            except Exception as e:
                logger.warning("Error processing transaction %s: %s", txn.id, e)
                tally.errors.append(
                    f"Failed to process transaction {txn.date.isoformat()} {txn.description}: {e}"
                )
        return tally
