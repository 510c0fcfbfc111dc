"""Categorization commands."""

from decimal import Decimal, InvalidOperation

import click

from budgetsync.cli.account_resolution import resolve_account_or_exit
from budgetsync.cli.error_handling import handle_domain_error
from budgetsync.config import load_categorization_config
from budgetsync.domain.categorization import (
    CategorizationConfig,
    CategorizationService,
    RuleBasedCategorizer,
    TransactionFilter,
)
from budgetsync.domain.entities import ImportBatchId, TransactionId
from budgetsync.domain.errors import DomainError


def build_categorization_service(ctx) -> CategorizationService:
    db = ctx.obj["db"]
    rules_path = ctx.obj.get("rules_path")
    try:
        config = load_categorization_config(rules_path) if rules_path else CategorizationConfig()
    except DomainError as e:
        handle_domain_error(ctx, e)
    return CategorizationService(
        db.transactions,
        db.processing_states,
        db.categories,
        RuleBasedCategorizer(config),
    )


def _parse_amount(ctx, label: str, value: str | None) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        click.echo(f"Error: Invalid {label} amount '{value}'", err=True)
        ctx.exit(1)


@click.command("categorize")
@click.argument("batch_id")
@click.pass_context
def categorize_batch(ctx, batch_id: str):
    """Categorize every transaction of an import batch with the keyword rules."""
    service = build_categorization_service(ctx)
    try:
        result = service.categorize_batch(ImportBatchId.from_string(batch_id))
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Categorized: {result.categorized_count} transactions")
    if result.failed_count:
        click.echo(f"Skipped: {result.failed_count} (missing, duplicate or already categorized)")
    if result.average_confidence is not None:
        click.echo(f"Average confidence: {result.average_confidence.value:.1f}")
    for categorization in result.categorizations:
        click.echo(f"  {categorization.transaction_id}: {categorization.category.name}")


@click.command("set-category")
@click.argument("transaction_id")
@click.argument("category_id")
@click.option("--memo", help="Memo override")
@click.option("--payee", help="Payee name override")
@click.pass_context
def set_category(ctx, transaction_id: str, category_id: str, memo: str | None, payee: str | None):
    """Override the category of one transaction ("account/bank:externalId")."""
    service = build_categorization_service(ctx)
    try:
        state = service.update_category(
            TransactionId.from_string(transaction_id), category_id, memo=memo, payee_name=payee
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Transaction {transaction_id} categorized as '{state.effective_category}'")


@click.command("bulk-category")
@click.argument("category_id")
@click.option("--account", help="Only transactions of this account")
@click.option("--description", help="Description, message or comment contains this text")
@click.option("--counterparty", help="Counterparty name or account contains this text")
@click.option("--type", "transaction_type", help="Exact transaction type")
@click.option("--min-amount", help="Minimum amount")
@click.option("--max-amount", help="Maximum amount")
@click.option("--memo", help="Memo override")
@click.option("--payee", help="Payee name override")
@click.pass_context
def bulk_category(
    ctx,
    category_id: str,
    account: str | None,
    description: str | None,
    counterparty: str | None,
    transaction_type: str | None,
    min_amount: str | None,
    max_amount: str | None,
    memo: str | None,
    payee: str | None,
):
    """Set CATEGORY_ID on every transaction matching all given filters."""
    transaction_filter = TransactionFilter(
        source_account=resolve_account_or_exit(ctx, account) if account else None,
        description_contains=description,
        counterparty_contains=counterparty,
        transaction_type=transaction_type,
        min_amount=_parse_amount(ctx, "minimum", min_amount),
        max_amount=_parse_amount(ctx, "maximum", max_amount),
    )
    if transaction_filter == TransactionFilter():
        click.echo("Error: At least one filter option is required", err=True)
        ctx.exit(1)

    service = build_categorization_service(ctx)
    try:
        count = service.bulk_update_category(transaction_filter, category_id, memo=memo, payee_name=payee)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Updated {count} transactions to '{category_id}'")


def register_commands(cli):
    """Register categorization commands with main CLI."""
    cli.add_command(categorize_batch)
    cli.add_command(set_category)
    cli.add_command(bulk_category)
