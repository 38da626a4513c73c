"""Ledger viewing command."""

import click

from importflow.domain.errors import DomainError
from importflow.cli.error_handling import handle_domain_error


@click.command("ledger")
@click.argument("account_id")
@click.option("--verbose", "-v", is_flag=True, help="Show import batch and unique_id columns")
@click.pass_context
def ledger(ctx, account_id: str, verbose: bool):
    """Show an account's ledger transactions and balance."""
    service = ctx.obj["app"].ledger
    try:
        transactions = service.list_transactions(account_id)
        balance = service.get_balance(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not transactions:
        click.echo("No transactions found.")
    else:
        click.echo(f"\nLedger for {account_id}:")
        click.echo("-" * 100)
        for txn in transactions:
            flag = " [duplicate]" if txn.is_duplicate else ""
            line = f"{txn.date.isoformat()} | {txn.amount:>12} | {txn.description}{flag}"
            if verbose:
                line += f" | {txn.import_batch_id} | {txn.unique_id}"
            click.echo(line)
        click.echo("-" * 100)

    if balance is not None:
        last = balance.last_transaction_date.isoformat() if balance.last_transaction_date else "-"
        click.echo(
            f"Balance: {balance.balance} ({balance.transaction_count} transactions, last {last})"
        )


def register_commands(cli):
    """Register ledger command with main CLI."""
    cli.add_command(ledger)
