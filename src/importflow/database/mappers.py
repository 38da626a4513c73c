"""Mapper functions to convert between domain models and stored representations.

Import records keep their analysis snapshot, processing options, summary and
error as JSON documents, so this module also holds the document codecs. Dates
are written as ISO strings and amounts as decimal strings so nothing is lost to
floating point.
"""

from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Any, Optional

from importflow.domain import entities as domain
from importflow.database.models import (
    AccountBalance as ORMAccountBalance,
    ImportRecord as ORMImportRecord,
    LedgerTransaction as ORMLedgerTransaction,
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _encode_bound(value: date) -> str:
    return value.isoformat()


def _decode_bound(value: str) -> date:
    # Range bounds are instants when the file had no transactions
    if "T" in value:
        return datetime.fromisoformat(value)
    return date.fromisoformat(value)


def transaction_to_document(txn: domain.Transaction) -> dict[str, Any]:
    """Convert a Transaction entity to a JSON-compatible document."""
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "description": txn.description,
        "amount": str(txn.amount),
        "import_batch_id": txn.import_batch_id,
        "created_at": txn.created_at.isoformat(),
        "is_duplicate": txn.is_duplicate,
        "unique_id": txn.unique_id,
        "account_id": txn.account_id,
    }


def transaction_from_document(doc: dict[str, Any]) -> domain.Transaction:
    """Convert a stored document back to a Transaction entity."""
    return domain.Transaction(
        id=doc["id"],
        date=date.fromisoformat(doc["date"]),
        description=doc["description"],
        amount=Decimal(doc["amount"]),
        import_batch_id=doc["import_batch_id"],
        created_at=datetime.fromisoformat(doc["created_at"]),
        is_duplicate=doc.get("is_duplicate", False),
        unique_id=doc.get("unique_id"),
        account_id=doc.get("account_id"),
    )


def date_range_to_document(date_range: domain.DateRange) -> dict[str, str]:
    return {"start": _encode_bound(date_range.start), "end": _encode_bound(date_range.end)}


def date_range_from_document(doc: dict[str, str]) -> domain.DateRange:
    return domain.DateRange(start=_decode_bound(doc["start"]), end=_decode_bound(doc["end"]))


def snapshot_to_document(snapshot: domain.AnalysisSnapshot) -> dict[str, Any]:
    """Convert an AnalysisSnapshot to a JSON-compatible document."""
    samples = snapshot.sample_transactions
    return {
        "created_at": snapshot.created_at.isoformat(),
        "file_stats": {
            "transaction_count": snapshot.file_stats.transaction_count,
            "date_range": date_range_to_document(snapshot.file_stats.date_range),
        },
        "overlap_stats": {
            "existing_transactions": snapshot.overlap_stats.existing_transactions,
            "new_transactions": snapshot.overlap_stats.new_transactions,
            "potential_duplicates": snapshot.overlap_stats.potential_duplicates,
            "overlap_period": date_range_to_document(snapshot.overlap_stats.overlap_period),
        },
        "sample_transactions": {
            "new": [transaction_to_document(txn) for txn in samples.new],
            "existing": [transaction_to_document(txn) for txn in samples.existing],
            "duplicates": [
                {
                    "new": transaction_to_document(match.new),
                    "existing": transaction_to_document(match.existing),
                    "similarity": match.similarity,
                }
                for match in samples.duplicates
            ],
        },
    }


def snapshot_from_document(doc: dict[str, Any]) -> domain.AnalysisSnapshot:
    """Convert a stored document back to an AnalysisSnapshot."""
    file_stats = doc["file_stats"]
    overlap = doc["overlap_stats"]
    samples = doc["sample_transactions"]
    return domain.AnalysisSnapshot(
        created_at=datetime.fromisoformat(doc["created_at"]),
        file_stats=domain.FileStats(
            transaction_count=file_stats["transaction_count"],
            date_range=date_range_from_document(file_stats["date_range"]),
        ),
        overlap_stats=domain.OverlapStats(
            existing_transactions=overlap["existing_transactions"],
            new_transactions=overlap["new_transactions"],
            potential_duplicates=overlap["potential_duplicates"],
            overlap_period=date_range_from_document(overlap["overlap_period"]),
        ),
        sample_transactions=domain.SampleTransactions(
            new=[transaction_from_document(d) for d in samples["new"]],
            existing=[transaction_from_document(d) for d in samples["existing"]],
            duplicates=[
                domain.DuplicateMatch(
                    new=transaction_from_document(d["new"]),
                    existing=transaction_from_document(d["existing"]),
                    similarity=d["similarity"],
                )
                for d in samples["duplicates"]
            ],
        ),
    )


def summary_to_document(summary: domain.ImportSummary) -> dict[str, Any]:
    return {
        "transactions_added": summary.transactions_added,
        "duplicates_handled": summary.duplicates_handled,
        "errors": list(summary.errors),
    }


def summary_from_document(doc: dict[str, Any]) -> domain.ImportSummary:
    return domain.ImportSummary(
        transactions_added=doc["transactions_added"],
        duplicates_handled=doc["duplicates_handled"],
        errors=list(doc.get("errors", [])),
    )


def import_record_to_domain(orm_record: ORMImportRecord) -> domain.ImportRecord:
    """Convert SQLAlchemy ImportRecord model to domain ImportRecord entity."""
    return domain.ImportRecord(
        upload_id=orm_record.upload_id,
        account_id=orm_record.account_id,
        user_id=orm_record.user_id,
        file_name=orm_record.file_name,
        file_type=orm_record.file_type,
        content_type=orm_record.content_type,
        file_key=orm_record.file_key,
        status=domain.ImportStatus(orm_record.status),
        created_at=as_utc(orm_record.created_at),
        updated_at=as_utc(orm_record.updated_at),
        analysis=snapshot_from_document(orm_record.analysis) if orm_record.analysis else None,
        processing_options=(
            domain.ProcessingOptions(
                duplicate_handling=domain.DuplicateHandling(
                    orm_record.processing_options["duplicate_handling"]
                )
            )
            if orm_record.processing_options
            else None
        ),
        summary=summary_from_document(orm_record.summary) if orm_record.summary else None,
        error=domain.ImportFailure(**orm_record.error) if orm_record.error else None,
    )


def ledger_transaction_to_domain(orm_txn: ORMLedgerTransaction) -> domain.Transaction:
    """Convert SQLAlchemy LedgerTransaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_txn.transaction_id,
        date=orm_txn.date,
        description=orm_txn.description,
        amount=orm_txn.amount,
        import_batch_id=orm_txn.import_batch_id,
        created_at=as_utc(orm_txn.created_at),
        is_duplicate=orm_txn.is_duplicate,
        unique_id=orm_txn.unique_id,
        account_id=orm_txn.account_id,
    )


def account_balance_to_domain(orm_balance: ORMAccountBalance) -> domain.AccountBalance:
    """Convert SQLAlchemy AccountBalance model to domain AccountBalance entity."""
    return domain.AccountBalance(
        account_id=orm_balance.account_id,
        balance=orm_balance.balance,
        transaction_count=orm_balance.transaction_count,
        last_transaction_date=orm_balance.last_transaction_date,
        updated_at=as_utc(orm_balance.updated_at),
    )
