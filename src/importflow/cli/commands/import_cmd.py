"""Import lifecycle commands."""

from pathlib import Path

import click

from importflow.cli.error_handling import handle_domain_error
from importflow.cli.rendering import echo_record
from importflow.domain.entities import Confirmations, DuplicateHandling
from importflow.domain.errors import DomainError

STRATEGIES = [strategy.value for strategy in DuplicateHandling]


@click.command("initiate")
@click.argument("account_id")
@click.argument("file_name")
@click.option("--user", "user_id", required=True, help="User starting the import")
@click.option("--file-type", default="CSV", show_default=True, help="Statement file type")
@click.option("--content-type", default="text/csv", show_default=True, help="MIME type of the file")
@click.pass_context
def initiate(ctx, account_id: str, file_name: str, user_id: str, file_type: str, content_type: str):
    """Start an import and get a signed upload URL.

    Examples:
        importflow initiate checking-1 january.csv --user alice
    """
    service = ctx.obj["app"].service
    try:
        ticket = service.initiate_import(
            user_id=user_id,
            account_id=account_id,
            file_name=file_name,
            file_type=file_type,
            content_type=content_type,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Upload ID: {ticket.upload_id}")
    click.echo(f"Upload URL: {ticket.upload_url}")
    click.echo(f"Expires in: {ticket.expires_in} seconds")


@click.command("upload")
@click.argument("upload_url")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def upload(ctx, upload_url: str, statement_file: str):
    """Upload a statement file through a signed URL and analyze it.

    UPLOAD_URL is the URL printed by 'initiate'.
    """
    app = ctx.obj["app"]
    data = Path(statement_file).read_bytes()
    try:
        bucket, key = app.blob_store.upload(upload_url, data)
        record = app.service.on_raw_file_arrived(bucket, key)
    except DomainError as e:
        handle_domain_error(ctx, e)

    echo_record(record)


@click.command("status")
@click.argument("account_id")
@click.argument("upload_id")
@click.pass_context
def status(ctx, account_id: str, upload_id: str):
    """Show an import's status, analysis and result."""
    service = ctx.obj["app"].service
    try:
        record = service.get_import_status(account_id, upload_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    echo_record(record)


@click.command("list")
@click.option("--user", "user_id", required=True, help="Owner of the imports")
@click.option("--limit", type=int, default=20, show_default=True, help="Imports per page (max 100)")
@click.option("--next-token", help="Token printed at the end of the previous page")
@click.pass_context
def list_imports(ctx, user_id: str, limit: int, next_token: str | None):
    """List a user's imports, newest first."""
    service = ctx.obj["app"].service
    try:
        page = service.list_imports(user_id, limit=limit, next_token=next_token)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not page.items:
        click.echo("No imports found.")
        return

    click.echo("\nImports:")
    click.echo("-" * 100)
    for record in page.items:
        click.echo(
            f"{record.upload_id} | {record.account_id:15s} | {record.status.value:22s} | "
            f"{record.created_at.isoformat(timespec='seconds')} | {record.file_name}"
        )
    if page.next_token:
        click.echo(f"\nNext token: {page.next_token}")


@click.command("confirm")
@click.argument("account_id")
@click.argument("upload_id")
@click.option("--user", "user_id", required=True, help="Owner of the import")
@click.option(
    "--duplicate-handling",
    type=click.Choice(STRATEGIES, case_sensitive=False),
    required=True,
    help="What to do with transactions that match the ledger",
)
@click.option("--account-verified", is_flag=True, help="The file belongs to this account")
@click.option("--date-range-verified", is_flag=True, help="The date range is the expected one")
@click.option("--samples-reviewed", is_flag=True, help="The sample transactions were reviewed")
@click.pass_context
def confirm(
    ctx,
    account_id: str,
    upload_id: str,
    user_id: str,
    duplicate_handling: str,
    account_verified: bool,
    date_range_verified: bool,
    samples_reviewed: bool,
):
    """Confirm an analyzed import and commit it to the ledger.

    All three confirmation flags are required.

    Examples:
        importflow confirm checking-1 UPLOAD_ID --user alice --duplicate-handling SKIP \\
            --account-verified --date-range-verified --samples-reviewed
    """
    app = ctx.obj["app"]
    confirmations = Confirmations(
        account_verified=account_verified,
        date_range_verified=date_range_verified,
        samples_reviewed=samples_reviewed,
    )
    try:
        app.service.confirm_import(
            user_id,
            account_id,
            upload_id,
            confirmations,
            duplicate_handling.upper(),
        )
        record = app.service.get_import_status(account_id, upload_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    echo_record(record)


@click.command("retry")
@click.argument("account_id")
@click.argument("upload_id")
@click.option("--user", "user_id", required=True, help="Owner of the import")
@click.pass_context
def retry(ctx, account_id: str, upload_id: str, user_id: str):
    """Analyze a failed import again from its stored file."""
    service = ctx.obj["app"].service
    try:
        record = service.retry_import(user_id, account_id, upload_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    echo_record(record)


@click.command("reassign")
@click.argument("upload_id")
@click.argument("current_account_id")
@click.argument("new_account_id")
@click.option("--user", "user_id", required=True, help="Owner of the import")
@click.pass_context
def reassign(ctx, upload_id: str, current_account_id: str, new_account_id: str, user_id: str):
    """Move an import that has not been committed to another account."""
    service = ctx.obj["app"].service
    try:
        result = service.reassign_import(user_id, upload_id, current_account_id, new_account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(result["message"])


@click.command("delete")
@click.argument("account_id")
@click.argument("upload_id")
@click.option("--user", "user_id", required=True, help="Owner of the import")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx, account_id: str, upload_id: str, user_id: str, yes: bool):
    """Delete an import and its uploaded file.

    Ledger transactions it already committed are kept.
    """
    service = ctx.obj["app"].service

    # Confirm deletion
    if not yes and not click.confirm(f"Are you sure you want to delete import {upload_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_import(user_id, account_id, upload_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Deleted import {upload_id}")


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(initiate)
    cli.add_command(upload)
    cli.add_command(status)
    cli.add_command(list_imports)
    cli.add_command(confirm)
    cli.add_command(retry)
    cli.add_command(reassign)
    cli.add_command(delete)
