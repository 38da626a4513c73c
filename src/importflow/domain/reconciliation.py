"""Reconciliation of parsed transactions against an account's ledger.

Everything here is a pure function of its inputs: the same candidates and the
same reference window, in the same order, always produce the same
classification.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, UTC
from typing import Iterable, Optional, Sequence

from importflow.domain.entities import (
    AnalysisSnapshot,
    DateRange,
    DuplicateMatch,
    FileStats,
    OverlapStats,
    SampleTransactions,
    Transaction,
)
from importflow.utils.date_parser import utc_now

SAMPLE_SIZE = 5

# Tolerance between the two transactions' day timestamps. Dates carry no time
# of day, so with the exact date check this only ever admits the same day.
DUPLICATE_WINDOW = timedelta(days=1)


@dataclass(frozen=True)
class DuplicateReport:
    """Candidates split into unique transactions and duplicate matches."""

    unique: list[Transaction] = field(default_factory=list)
    duplicates: list[DuplicateMatch] = field(default_factory=list)


def _day_timestamp(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=UTC)


def is_potential_duplicate(candidate: Transaction, existing: Transaction) -> bool:
    """Return True if two transactions look like the same ledger event."""
    return (
        candidate.date == existing.date
        and candidate.amount == existing.amount
        and abs(_day_timestamp(candidate.date) - _day_timestamp(existing.date)) < DUPLICATE_WINDOW
    )


def calculate_similarity(candidate: Transaction, existing: Transaction) -> float:
    """Score how alike two transactions are, from 0.0 to 1.0.

    Informational only; classification uses :func:`is_potential_duplicate`.
    """
    score = 0.0
    if candidate.date == existing.date:
        score += 0.4
    if candidate.amount == existing.amount:
        score += 0.4
    if candidate.description.lower() == existing.description.lower():
        score += 0.2
    return round(score, 2)


def find_match(candidate: Transaction, existing: Sequence[Transaction]) -> Optional[Transaction]:
    """Return the first existing transaction the candidate duplicates."""
    for existing_txn in existing:
        if is_potential_duplicate(candidate, existing_txn):
            return existing_txn
    return None


def find_duplicates(
    candidates: Iterable[Transaction], existing: Sequence[Transaction]
) -> DuplicateReport:
    """Classify each candidate as unique or as a duplicate of an existing transaction.

    A candidate is paired with the first matching existing transaction in the
    reference set's iteration order; no search for a better match is made.
    """
    report = DuplicateReport()
    for candidate in candidates:
        match = find_match(candidate, existing)
        if match is None:
            report.unique.append(candidate)
        else:
            report.duplicates.append(
                DuplicateMatch(
                    new=candidate,
                    existing=match,
                    similarity=calculate_similarity(candidate, match),
                )
            )
    return report


def calculate_date_range(transactions: Sequence[Transaction], now: datetime) -> DateRange:
    """Return the earliest and latest transaction dates.

    With no transactions both bounds are ``now``.
    """
    if not transactions:
        return DateRange(start=now, end=now)
    dates = [txn.date for txn in transactions]
    return DateRange(start=min(dates), end=max(dates))


def select_samples(
    report: DuplicateReport, existing: Sequence[Transaction], size: int = SAMPLE_SIZE
) -> SampleTransactions:
    """Take the first ``size`` items of each group, in encounter order."""
    return SampleTransactions(
        new=list(report.unique[:size]),
        existing=list(existing[:size]),
        duplicates=list(report.duplicates[:size]),
    )


def analyze_transactions(
    candidates: Sequence[Transaction],
    existing: Sequence[Transaction],
    now: Optional[datetime] = None,
) -> AnalysisSnapshot:
    """Reconcile candidates against the reference window and snapshot the result.

    Args:
        candidates: Parsed transactions from the uploaded file
        existing: Reference window of ledger transactions, in query order
        now: Snapshot instant; defaults to the current UTC time

    Returns:
        Analysis snapshot
    """
    now = now or utc_now()
    report = find_duplicates(candidates, existing)
    date_range = calculate_date_range(candidates, now)

    return AnalysisSnapshot(
        created_at=now,
        file_stats=FileStats(transaction_count=len(candidates), date_range=date_range),
        overlap_stats=OverlapStats(
            existing_transactions=len(existing),
            new_transactions=len(report.unique),
            potential_duplicates=len(report.duplicates),
            overlap_period=date_range,
        ),
        sample_transactions=select_samples(report, existing),
    )
