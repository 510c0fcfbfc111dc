"""CLI helpers for account resolution."""

import click

from budgetsync.bank.fio import FIO_BANK_ID
from budgetsync.domain.entities import AccountId


def parse_account(value: str) -> AccountId:
    """Parse "bankAccountId/bankId"; a bare account number is a Fio account.

    Raises:
        ValidationError: If the value is not a valid account id
    """
    value = value.strip()
    if "/" not in value:
        return AccountId(bank_id=FIO_BANK_ID, bank_account_id=value)
    return AccountId.from_string(value)


def resolve_account_or_exit(ctx: click.Context, account: str) -> AccountId:
    """Parse an account argument, or exit with a CLI error."""
    try:
        return parse_account(account)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
