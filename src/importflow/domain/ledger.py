"""Ledger domain service."""

import hashlib
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional

from importflow.database.base import Database
from importflow.domain.entities import AccountBalance, Transaction
from importflow.utils.amount_parser import normalize_amount
from importflow.utils.date_parser import window_start


class LedgerService:
    """Service for reading and writing an account's committed transactions."""

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    @staticmethod
    def generate_unique_id(
        txn_date: date, description: str, amount: Decimal, is_duplicate: bool = False
    ) -> str:
        """Generate the content hash that, with account and date, keys a ledger entry.

        Identical rows hash identically, so re-submitting a row addresses the
        same entry. Entries written as flagged duplicates hash separately from
        the entry they duplicate.

        Args:
            txn_date: Transaction date
            description: Transaction description
            amount: Transaction amount

        Returns:
            Hex digest
        """
        parts = [txn_date.isoformat(), description.strip(), normalize_amount(amount)]
        if is_duplicate:
            parts.append("duplicate")
        return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()[:32]

    def reference_window(self, account_id: str, today: date, days: int) -> list[Transaction]:
        """Get the existing transactions new imports are compared against.

        Args:
            account_id: Account ID
            today: Last day of the window
            days: Window length in days

        Returns:
            Ledger transactions in date then insertion order
        """
        return self.db.list_transactions_since(account_id, window_start(today, days))

    def _keyed(self, account_id: str, transaction: Transaction, is_duplicate: bool) -> Transaction:
        return replace(
            transaction,
            account_id=account_id,
            is_duplicate=is_duplicate,
            unique_id=self.generate_unique_id(
                transaction.date, transaction.description, transaction.amount, is_duplicate
            ),
        )

    def find_entry(self, account_id: str, transaction: Transaction) -> Optional[Transaction]:
        """Get the ledger entry an identical row was already committed as, if any."""
        unique_id = self.generate_unique_id(
            transaction.date, transaction.description, transaction.amount
        )
        return self.db.get_transaction(account_id, transaction.date, unique_id)

    def create_transaction(
        self, account_id: str, transaction: Transaction, is_duplicate: bool = False
    ) -> Transaction:
        """Write a transaction as a new ledger entry.

        Args:
            account_id: Account ID
            transaction: Parsed transaction
            is_duplicate: Flag the entry as a suspected duplicate

        Returns:
            The stored transaction, with its ledger identity

        Raises:
            ConflictError: If an entry with the same key already exists
        """
        stored = self._keyed(account_id, transaction, is_duplicate)
        self.db.create_transaction(account_id, stored)
        return stored

    def flag_duplicate(self, account_id: str, transaction: Transaction) -> Transaction:
        """Write a transaction as a flagged duplicate entry.

        Flagged copies of identical rows share one key, so flagging the same
        row again overwrites the earlier flagged entry.
        """
        stored = self._keyed(account_id, transaction, is_duplicate=True)
        self.db.put_or_replace_transaction(account_id, stored)
        return stored

    def replace_transaction(
        self, account_id: str, transaction: Transaction, existing: Transaction
    ) -> Transaction:
        """Overwrite an existing ledger entry with a transaction's values.

        The entry keeps its ledger key; everything else comes from
        ``transaction``.
        """
        if existing.unique_id is None:
            raise ValueError(f"Transaction {existing.id} has no ledger identity to replace")
        stored = replace(
            transaction,
            account_id=account_id,
            is_duplicate=False,
            unique_id=existing.unique_id,
        )
        self.db.put_or_replace_transaction(account_id, stored)
        return stored

    def list_transactions(self, account_id: str) -> list[Transaction]:
        return self.db.list_transactions(account_id)

    def recompute_balance(self, account_id: str) -> AccountBalance:
        return self.db.recompute_balance(account_id)

    def get_balance(self, account_id: str) -> Optional[AccountBalance]:
        return self.db.get_account_balance(account_id)
