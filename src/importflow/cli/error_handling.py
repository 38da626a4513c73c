"""CLI error handling helpers."""

from typing import NoReturn

import click

from importflow.domain.errors import DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> NoReturn:
    """Render a domain error and exit with failure."""
    if isinstance(error, DomainError):
        click.echo(f"Error: {error} [{error.code}]", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
