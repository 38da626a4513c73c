"""Main CLI entry point."""

from dataclasses import replace

import click

from importflow.bootstrap import create_app
from importflow.cli.error_handling import handle_domain_error
from importflow.config import load_settings
from importflow.domain.errors import ValidationError
from importflow.logging_config import setup_logging

# Import and register all commands at module level
from importflow.cli.commands import import_cmd, ledger, process

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides IMPORTFLOW_DB_PATH environment variable)",
    envvar="IMPORTFLOW_DB_PATH",
)
@click.option(
    "--blob-root",
    type=click.Path(file_okay=False),
    help="Directory uploaded files are stored under (overrides IMPORTFLOW_BLOB_ROOT)",
    envvar="IMPORTFLOW_BLOB_ROOT",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level (overrides IMPORTFLOW_LOG_LEVEL)",
    envvar="IMPORTFLOW_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, blob_root: str | None, log_level: str | None):
    """Importflow - Bank statement import pipeline.

    Upload a statement, review how it overlaps the account's ledger, then
    confirm how duplicates are handled before anything is written.
    """
    ctx.ensure_object(dict)

    # Build the pipeline only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings()
        except ValidationError as e:
            handle_domain_error(ctx, e)

        overrides = {}
        if db_path:
            overrides["database_path"] = db_path
        if blob_root:
            overrides["blob_root"] = blob_root
        if log_level:
            overrides["log_level"] = log_level.upper()
        settings = replace(settings, **overrides)

        setup_logging(settings.log_level)
        app = create_app(settings)
        ctx.call_on_close(app.close)
        ctx.obj["settings"] = settings
        ctx.obj["app"] = app
        ctx.obj["db"] = app.db


# Register all commands
import_cmd.register_commands(cli)
process.register_commands(cli)
ledger.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
