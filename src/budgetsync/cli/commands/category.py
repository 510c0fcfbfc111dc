"""Category management commands."""

import click

from budgetsync.cli.error_handling import handle_domain_error
from budgetsync.domain.category import CategoryService
from budgetsync.domain.errors import DomainError


def print_category_tree(nodes: list[dict], indent: int = 0) -> None:
    """Recursively print category tree."""
    for node in nodes:
        category = node["category"]
        prefix = "  " * indent
        inactive = "" if category.active else " [inactive]"
        click.echo(f"{prefix}{category.name} (ID: {category.id}){inactive}")
        print_category_tree(node["children"], indent + 1)


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List all categories in tree format."""
    service = CategoryService(ctx.obj["db"].categories)

    tree = service.get_category_tree()
    if not tree:
        click.echo("No categories found. Run 'init-categories' to create default categories.")
        return

    click.echo("\nCategories:")
    print_category_tree(tree)


@category_group.command("create")
@click.argument("name")
@click.option("--parent", help="Parent category path (e.g., 'Food & Dining')")
@click.pass_context
def create_category(ctx, name: str, parent: str | None):
    """Create a new category."""
    service = CategoryService(ctx.obj["db"].categories)

    try:
        category = service.create_category(name=name, parent_path=parent)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    parent_str = f" under '{parent}'" if parent else ""
    click.echo(f"Created category '{name}'{parent_str} (ID: {category.id})")


@category_group.command("delete")
@click.argument("category_id")
@click.pass_context
def delete_category(ctx, category_id: str):
    """Delete a category."""
    service = CategoryService(ctx.obj["db"].categories)
    try:
        service.delete_category(category_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted category '{category_id}'")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
