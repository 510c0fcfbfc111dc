"""CLI helpers for date range resolution."""

from datetime import date

import click

from budgetsync.utils.date_parser import get_date_range, parse_date

PERIODS = ["this-month", "this-week", "last-month", "last-week"]


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
) -> tuple[date, date]:
    """Resolve an inclusive import range from --period or --from/--to.

    A missing --to means today.
    """
    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --from or --to.", err=True)
        ctx.exit(1)

    if period:
        return get_date_range(period)

    if not start_date:
        click.echo("Error: Either --from or --period is required.", err=True)
        ctx.exit(1)

    try:
        start = parse_date(start_date)
    except ValueError as e:
        click.echo(f"Error: Invalid start date: {e}", err=True)
        ctx.exit(1)

    end = date.today()
    if end_date:
        try:
            end = parse_date(end_date)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    return start, end
