"""Domain model entities for importflow.

These are pure data classes representing the import pipeline's business
concepts, independent of the database schema. The SQLAlchemy models and the
JSON documents stored alongside them are converted to and from these classes
by ``importflow.database.mappers``.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, Any

from importflow.domain.errors import DomainError


class ImportStatus(str, Enum):
    """Lifecycle states of an import."""

    PENDING = "PENDING"
    ANALYZING = "ANALYZING"
    ANALYZED = "ANALYZED"
    WRONG_ACCOUNT_DETECTED = "WRONG_ACCOUNT_DETECTED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class DuplicateHandling(str, Enum):
    """User's policy for transactions that overlap existing ledger entries."""

    SKIP = "SKIP"
    REPLACE = "REPLACE"
    MARK_DUPLICATE = "MARK_DUPLICATE"


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity.

    ``unique_id`` and ``account_id`` stay None until the transaction has been
    written to an account's ledger.
    """

    id: str
    date: date
    description: str
    amount: Decimal
    import_batch_id: str
    created_at: datetime
    is_duplicate: bool = False
    unique_id: Optional[str] = None
    account_id: Optional[str] = None


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of transaction dates.

    Both bounds are instants rather than days when the range was computed over
    zero transactions.
    """

    start: date
    end: date


@dataclass(frozen=True)
class FileStats:
    """What the parser found in the uploaded file."""

    transaction_count: int
    date_range: DateRange


@dataclass(frozen=True)
class OverlapStats:
    """How the uploaded file overlaps the reference window."""

    existing_transactions: int
    new_transactions: int
    potential_duplicates: int
    overlap_period: DateRange


@dataclass(frozen=True)
class DuplicateMatch:
    """A candidate paired with the first existing transaction it matched."""

    new: Transaction
    existing: Transaction
    similarity: float


@dataclass(frozen=True)
class SampleTransactions:
    """Small samples shown to the user during review."""

    new: list[Transaction] = field(default_factory=list)
    existing: list[Transaction] = field(default_factory=list)
    duplicates: list[DuplicateMatch] = field(default_factory=list)


@dataclass(frozen=True)
class AnalysisSnapshot:
    """Frozen result of reconciling a parsed file against the reference window."""

    created_at: datetime
    file_stats: FileStats
    overlap_stats: OverlapStats
    sample_transactions: SampleTransactions


@dataclass(frozen=True)
class ProcessingOptions:
    """Options chosen by the user at confirmation time."""

    duplicate_handling: DuplicateHandling


@dataclass(frozen=True)
class ImportSummary:
    """Outcome counts written when an import reaches a terminal state."""

    transactions_added: int
    duplicates_handled: int
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ImportFailure:
    """Error recorded on a failed import."""

    message: str
    code: str

    @classmethod
    def from_exception(cls, error: BaseException) -> "ImportFailure":
        """Build a failure from an exception without leaking internal detail."""
        if isinstance(error, DomainError):
            return cls(message=str(error), code=error.code)
        return cls(message="Unexpected error while processing import", code="INTERNAL_ERROR")


@dataclass(frozen=True)
class Confirmations:
    """The three acknowledgements a user gives before an import is processed."""

    account_verified: bool
    date_range_verified: bool
    samples_reviewed: bool


@dataclass(frozen=True)
class ImportRecord:
    """Aggregate root of the import pipeline."""

    upload_id: str
    account_id: str
    user_id: str
    file_name: str
    file_type: str
    content_type: str
    file_key: str
    status: ImportStatus
    created_at: datetime
    updated_at: datetime
    analysis: Optional[AnalysisSnapshot] = None
    processing_options: Optional[ProcessingOptions] = None
    summary: Optional[ImportSummary] = None
    error: Optional[ImportFailure] = None


@dataclass(frozen=True)
class ImportPage:
    """One page of a user's imports."""

    items: list[ImportRecord]
    next_token: Optional[str] = None


@dataclass(frozen=True)
class UploadTicket:
    """Returned from initiating an import."""

    upload_id: str
    upload_url: str
    expires_in: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "upload_id": self.upload_id,
            "upload_url": self.upload_url,
            "expires_in": self.expires_in,
        }


@dataclass(frozen=True)
class AccountBalance:
    """Aggregate balance of an account's ledger."""

    account_id: str
    balance: Decimal
    transaction_count: int
    last_transaction_date: Optional[date]
    updated_at: datetime
