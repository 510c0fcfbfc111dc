"""Import and import batch commands."""

from datetime import date

import click

from budgetsync.bank.fio import FioStatementSource
from budgetsync.cli.account_resolution import resolve_account_or_exit
from budgetsync.cli.date_filters import PERIODS, resolve_cli_date_range
from budgetsync.cli.error_handling import handle_domain_error
from budgetsync.domain.entities import ImportBatch, ImportBatchId, ImportStatus
from budgetsync.domain.errors import DomainError
from budgetsync.domain.transaction_import import TransactionImportService


def build_import_service(ctx) -> TransactionImportService:
    db = ctx.obj["db"]
    source = ctx.obj.get("bank_source")
    if source is None:
        statements_dir = ctx.obj.get("statements_dir")
        if not statements_dir:
            click.echo(
                "Error: No statements directory configured. "
                "Use --statements-dir or set BUDGETSYNC_STATEMENTS_DIR.",
                err=True,
            )
            ctx.exit(1)
        source = FioStatementSource(statements_dir, ctx.obj.get("max_date_range_days"))
    return TransactionImportService(db.transactions, db.import_batches, source)


def print_batch(batch: ImportBatch) -> None:
    click.echo(f"Batch: {batch.id}")
    click.echo(f"  Account: {batch.account_id}")
    click.echo(f"  Range: {batch.start_date} to {batch.end_date}")
    click.echo(f"  Status: {batch.status.value}")
    click.echo(f"  Transactions: {batch.transaction_count}")
    if batch.error_message:
        click.echo(f"  Message: {batch.error_message}")
    if batch.completion_time_seconds is not None:
        click.echo(f"  Duration: {batch.completion_time_seconds}s")


@click.command("import")
@click.argument("account")
@click.option("--from", "start_date", help="First day to import (e.g. 2025-03-01, 'last month')")
@click.option("--to", "end_date", help="Last day to import (default: today)")
@click.option("--period", type=click.Choice(PERIODS), help="Import a whole period instead of --from/--to")
@click.pass_context
def import_transactions(ctx, account: str, start_date: str | None, end_date: str | None, period: str | None):
    """Import transactions of ACCOUNT ("number/bankCode", or a Fio account number)."""
    account_id = resolve_account_or_exit(ctx, account)
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    service = build_import_service(ctx)

    try:
        batch = service.import_transactions(account_id, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    print_batch(batch)
    if batch.status is ImportStatus.FAILED:
        ctx.exit(1)


@click.command("batches")
@click.argument("account", required=False)
@click.option(
    "--status",
    type=click.Choice([s.value for s in ImportStatus], case_sensitive=False),
    help="Only show batches with this status",
)
@click.pass_context
def list_batches(ctx, account: str | None, status: str | None):
    """List import batches, newest first."""
    batch_store = ctx.obj["db"].import_batches

    if account:
        batches = batch_store.find_by_account_id(resolve_account_or_exit(ctx, account))
        if status:
            batches = [b for b in batches if b.status.value == status.lower()]
    elif status:
        batches = batch_store.find_by_status(ImportStatus(status.lower()))
    else:
        batches = batch_store.find_by_date_range(date.min, date.max)

    if not batches:
        click.echo("No import batches found.")
        return

    click.echo(f"{'Batch':<28} {'Status':<10} {'Range':<24} {'Count':>6}")
    for batch in batches:
        date_range = f"{batch.start_date} - {batch.end_date}"
        click.echo(f"{str(batch.id):<28} {batch.status.value:<10} {date_range:<24} {batch.transaction_count:>6}")


@click.group("batch")
def batch_group():
    """Inspect import batches."""
    pass


@batch_group.command("show")
@click.argument("batch_id")
@click.pass_context
def show_batch(ctx, batch_id: str):
    """Show one import batch."""
    db = ctx.obj["db"]
    try:
        batch = db.import_batches.find_by_id(ImportBatchId.from_string(batch_id))
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    if batch is None:
        click.echo(f"Error: Import batch not found with ID: {batch_id}", err=True)
        ctx.exit(1)
    print_batch(batch)


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_transactions)
    cli.add_command(list_batches)
    cli.add_command(batch_group, name="batch")
