"""Submission commands."""

import click

from budgetsync.cli.account_resolution import resolve_account_or_exit
from budgetsync.cli.error_handling import handle_domain_error
from budgetsync.domain.entities import ImportBatchId, TransactionId
from budgetsync.domain.errors import DomainError
from budgetsync.domain.submission import SubmissionService


def build_submission_service(ctx, require_port: bool = True) -> SubmissionService:
    db = ctx.obj["db"]
    port = ctx.obj.get("submission_port")
    if port is None and require_port:
        click.echo("Error: No budget service configured for submission.", err=True)
        ctx.exit(1)
    return SubmissionService(db.transactions, db.processing_states, port)


@click.command("submit")
@click.argument("batch_id")
@click.pass_context
def submit_batch(ctx, batch_id: str):
    """Submit the categorized transactions of an import batch."""
    service = build_submission_service(ctx)
    try:
        result = service.submit_batch(ImportBatchId.from_string(batch_id))
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Submitted: {result.submitted_count} transactions")
    if result.failed_count:
        click.echo(f"Not submitted: {result.failed_count}")
    for error in result.errors:
        click.echo(f"  {error.transaction_id}: {error.reason}")


@click.command("mark-duplicate")
@click.argument("transaction_id")
@click.pass_context
def mark_duplicate(ctx, transaction_id: str):
    """Exclude a transaction from categorization and submission."""
    service = build_submission_service(ctx, require_port=False)
    try:
        service.mark_duplicate(TransactionId.from_string(transaction_id))
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Marked {transaction_id} as duplicate")


@click.command("status")
@click.argument("account", required=False)
@click.pass_context
def submission_status(ctx, account: str | None):
    """Show how many transactions are at each processing stage."""
    account_id = resolve_account_or_exit(ctx, account) if account else None
    stats = build_submission_service(ctx, require_port=False).get_submission_statistics(account_id)

    click.echo(f"Total: {stats.total}")
    click.echo(f"  Imported: {stats.imported}")
    click.echo(f"  Categorized: {stats.categorized}")
    click.echo(f"  Submitted: {stats.submitted}")
    click.echo(f"  Duplicates: {stats.duplicate}")


def register_commands(cli):
    """Register submission commands with main CLI."""
    cli.add_command(submit_batch)
    cli.add_command(mark_duplicate)
    cli.add_command(submission_status)
