"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional
from datetime import date, datetime

# Import entities directly to avoid circular import through domain/__init__.py
from importflow.domain.entities import (
    AccountBalance,
    AnalysisSnapshot,
    ImportFailure,
    ImportRecord,
    ImportStatus,
    ImportSummary,
    ProcessingOptions,
    Transaction,
)


class Database(ABC):
    """Abstract database interface for importflow.

    Covers the three stores the import pipeline talks to: import records, the
    transaction ledger and the account balance aggregate. Implementations must
    give read-after-write consistency for a single import record.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Import record operations
    @abstractmethod
    def create_import(self, record: ImportRecord) -> None:
        """Store a new import record."""
        pass

    @abstractmethod
    def get_import(self, account_id: str, upload_id: str) -> Optional[ImportRecord]:
        """Get import record by account and upload ID."""
        pass

    @abstractmethod
    def update_import(
        self,
        account_id: str,
        upload_id: str,
        status: ImportStatus,
        updated_at: datetime,
        analysis: Optional[AnalysisSnapshot] = None,
        processing_options: Optional[ProcessingOptions] = None,
        summary: Optional[ImportSummary] = None,
        error: Optional[ImportFailure] = None,
        clear_outcome: bool = False,
    ) -> ImportRecord:
        """Set status and updated_at, attaching whichever optional fields are given.

        Args:
            clear_outcome: If True, remove the stored analysis, processing
                options, summary and error before attaching the new fields

        Returns:
            The updated record
        """
        pass

    @abstractmethod
    def list_imports(
        self,
        user_id: str,
        limit: int,
        after: Optional[tuple[datetime, str]] = None,
    ) -> list[ImportRecord]:
        """List a user's imports, newest first.

        Args:
            user_id: Owner of the imports
            limit: Maximum number of records
            after: Optional ``(created_at, upload_id)`` of the last record of the
                previous page
        """
        pass

    @abstractmethod
    def delete_import(self, account_id: str, upload_id: str) -> None:
        """Delete an import record."""
        pass

    @abstractmethod
    def reassign_import(
        self, account_id: str, upload_id: str, new_account_id: str, updated_at: datetime
    ) -> ImportRecord:
        """Move an import record to another account."""
        pass

    # Ledger operations
    @abstractmethod
    def create_transaction(self, account_id: str, transaction: Transaction) -> str:
        """Write a new ledger entry. Returns its unique_id.

        Raises ConflictError if the ledger key is already taken.
        """
        pass

    @abstractmethod
    def put_or_replace_transaction(self, account_id: str, transaction: Transaction) -> str:
        """Write a ledger entry, overwriting the entry with the same key. Returns its unique_id."""
        pass

    @abstractmethod
    def get_transaction(
        self, account_id: str, txn_date: date, unique_id: str
    ) -> Optional[Transaction]:
        """Get the ledger entry stored under a key."""
        pass

    @abstractmethod
    def list_transactions_since(self, account_id: str, since: date) -> list[Transaction]:
        """List ledger entries dated on or after ``since``, in date then insertion order."""
        pass

    @abstractmethod
    def list_transactions(self, account_id: str) -> list[Transaction]:
        """List all ledger entries of an account, in date then insertion order."""
        pass

    # Account aggregate operations
    @abstractmethod
    def recompute_balance(self, account_id: str) -> AccountBalance:
        """Recalculate and store the account's balance from its ledger."""
        pass

    @abstractmethod
    def get_account_balance(self, account_id: str) -> Optional[AccountBalance]:
        """Get the stored balance of an account."""
        pass
