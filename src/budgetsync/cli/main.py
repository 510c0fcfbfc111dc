"""Main CLI entry point."""

import logging

import click

from budgetsync.config import Settings
from budgetsync.database.factories import create_sqlite_database

# Import and register all commands at module level
from budgetsync.cli.commands import (
    categorize,
    category,
    import_cmd,
    init_categories,
    submit,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BUDGETSYNC_DB_PATH environment variable)",
)
@click.option(
    "--statements-dir",
    type=click.Path(file_okay=False),
    help="Directory with exported Fio JSON statements (overrides BUDGETSYNC_STATEMENTS_DIR)",
)
@click.option(
    "--rules",
    "rules_path",
    type=click.Path(dir_okay=False),
    help="YAML file with categorization rules (overrides BUDGETSYNC_RULES_PATH)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, db_path: str | None, statements_dir: str | None, rules_path: str | None, verbose: bool):
    """Budgetsync - Fio bank to YNAB transaction sync.

    Import bank statements, skip transactions that were already imported and
    categorize the rest with keyword rules.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = Settings.from_env()
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        db = create_sqlite_database(database_path=db_path or settings.database_path)
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)
        ctx.obj["db"] = db
        ctx.obj["statements_dir"] = statements_dir or settings.statements_dir
        ctx.obj["rules_path"] = rules_path or settings.rules_path
        ctx.obj["max_date_range_days"] = settings.max_date_range_days


# Register all commands
import_cmd.register_commands(cli)
categorize.register_commands(cli)
category.register_commands(cli)
init_categories.register_commands(cli)
submit.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
