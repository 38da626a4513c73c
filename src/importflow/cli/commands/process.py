"""Commit command."""

import click

from importflow.cli.error_handling import handle_domain_error
from importflow.cli.rendering import echo_record
from importflow.domain.entities import DuplicateHandling
from importflow.domain.errors import DomainError


@click.command("process")
@click.argument("account_id")
@click.argument("upload_id")
@click.option(
    "--duplicate-handling",
    type=click.Choice([strategy.value for strategy in DuplicateHandling], case_sensitive=False),
    help="Strategy to commit with (defaults to the one chosen at confirmation)",
)
@click.pass_context
def process(ctx, account_id: str, upload_id: str, duplicate_handling: str | None):
    """Run the commit stage for a confirmed import.

    Confirmation normally runs this automatically. Running it again on a
    finished import changes nothing.
    """
    app = ctx.obj["app"]
    try:
        if duplicate_handling is None:
            record = app.service.get_import_status(account_id, upload_id)
            if record.processing_options is None:
                click.echo(
                    f"Error: Import {upload_id} has not been confirmed; "
                    "pass --duplicate-handling",
                    err=True,
                )
                ctx.exit(1)
            strategy = record.processing_options.duplicate_handling
        else:
            strategy = duplicate_handling.upper()
        record = app.executor.process_import(account_id, upload_id, strategy)
    except DomainError as e:
        handle_domain_error(ctx, e)

    echo_record(record)


def register_commands(cli):
    """Register process command with main CLI."""
    cli.add_command(process)
