"""Text rendering of import records for the CLI."""

import click

from importflow.domain.entities import (
    AnalysisSnapshot,
    DateRange,
    ImportRecord,
    ImportSummary,
    Transaction,
)
from importflow.utils.date_parser import format_range_bound


def format_range(date_range: DateRange) -> str:
    return f"{format_range_bound(date_range.start)} to {format_range_bound(date_range.end)}"


def format_transaction(txn: Transaction) -> str:
    return f"{txn.date.isoformat()} | {txn.amount:>12} | {txn.description}"


def echo_analysis(snapshot: AnalysisSnapshot) -> None:
    """Show what the user is asked to review before confirming."""
    file_stats = snapshot.file_stats
    overlap = snapshot.overlap_stats
    samples = snapshot.sample_transactions

    click.echo("\nAnalysis:")
    click.echo(f"  Transactions in file: {file_stats.transaction_count}")
    click.echo(f"  Date range: {format_range(file_stats.date_range)}")
    click.echo(f"  Existing transactions compared: {overlap.existing_transactions}")
    click.echo(f"  New transactions: {overlap.new_transactions}")
    click.echo(f"  Potential duplicates: {overlap.potential_duplicates}")

    if samples.new:
        click.echo("\n  Sample new transactions:")
        for txn in samples.new:
            click.echo(f"    {format_transaction(txn)}")
    if samples.duplicates:
        click.echo("\n  Sample duplicates (similarity):")
        for match in samples.duplicates:
            click.echo(f"    {format_transaction(match.new)} ({match.similarity:.2f})")


def echo_summary(summary: ImportSummary) -> None:
    click.echo("\nResult:")
    click.echo(f"  Added: {summary.transactions_added} transactions")
    click.echo(f"  Duplicates handled: {summary.duplicates_handled}")
    if summary.errors:
        click.echo(f"  Errors: {len(summary.errors)}")
        for error in summary.errors:
            click.echo(f"    {error}", err=True)


def echo_record(record: ImportRecord) -> None:
    """Show an import record with whatever outcome it carries."""
    click.echo(f"Import {record.upload_id}")
    click.echo(f"  Account: {record.account_id}")
    click.echo(f"  File: {record.file_name} ({record.file_type})")
    click.echo(f"  Status: {record.status.value}")
    click.echo(f"  Updated: {record.updated_at.isoformat(timespec='seconds')}")
    if record.processing_options is not None:
        click.echo(f"  Duplicate handling: {record.processing_options.duplicate_handling.value}")
    if record.error is not None:
        click.echo(f"  Error: {record.error.message} [{record.error.code}]")
    if record.analysis is not None:
        echo_analysis(record.analysis)
    if record.summary is not None:
        echo_summary(record.summary)
