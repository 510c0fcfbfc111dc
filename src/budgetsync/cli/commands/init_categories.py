"""Initialize default categories."""

import click

from budgetsync.domain.category import CategoryService


@click.command("init-categories")
@click.pass_context
def init_categories(ctx):
    """Create the default category tree; existing categories are kept."""
    service = CategoryService(ctx.obj["db"].categories)

    click.echo("Creating initial category tree...")
    created = service.init_default_categories()
    if created:
        click.echo(f"Created {created} categories.")
    else:
        click.echo("All default categories already exist.")


def register_commands(cli):
    """Register init-categories command with main CLI."""
    cli.add_command(init_categories)
