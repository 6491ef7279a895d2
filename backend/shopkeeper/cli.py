# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shopkeeper/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app wsgi <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app wsgi system init
#   Idempotent bootstrap: creates tables and seeds the default categories.
# - flask --app wsgi system seed-categories
#   Seed default categories only (no-op when categories exist).
# - flask --app wsgi system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Sales inspection:
# - flask --app wsgi sales list --status pending --client-id 3
#   List sales (newest first) with optional filters.
#
# Stock maintenance:
# - flask --app wsgi products restock 7 25 --reason "Supplier delivery"
#   Guarded stock adjustment (negative deltas refuse to go below zero).

import click
from flask.cli import with_appcontext

from .errors import ShopError
from .extensions import db
from .models import SALE_STATUSES
from .services import categories_service, products_service, sales_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables and seed default categories."""
    click.echo("START Initializing shopkeeper...")

    db.create_all()
    click.echo("PASS Schema ready")

    inserted = categories_service.ensure_default_categories()
    if inserted:
        click.echo(f"PASS Created {inserted} default categories")
    else:
        click.echo("PASS Categories already present")

    click.echo("DONE System initialized")


@system_group.command('seed-categories')
@with_appcontext
def seed_categories():
    """Seed default categories when none exist."""
    inserted = categories_service.ensure_default_categories()
    click.echo(f"PASS Seeded {inserted} categories")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'flask --app wsgi system init' to initialize.")


@click.group('sales')
def sales_group():
    """Sales inspection commands."""


@sales_group.command('list')
@click.option('--status', type=click.Choice(SALE_STATUSES), default=None, help='Filter by status')
@click.option('--client-id', type=int, default=None, help='Filter by client id')
@with_appcontext
def list_sales(status, client_id):
    """List sales, newest first."""
    result = sales_service.list_sales(client_id=client_id, status=status)
    if not result["items"]:
        click.echo("No sales found")
        return

    for sale in result["items"]:
        click.echo(
            f"#{sale['id']:<6} {sale['status']:<10} client={sale['clientId']:<6} "
            f"items={len(sale['items']):<3} total={sale['total']}  {sale['createdAt']}"
        )
    click.echo(f"{result['count']} sale(s)")


@click.group('products')
def products_group():
    """Product stock maintenance commands."""


@products_group.command('restock')
@click.argument('product_id', type=int)
@click.argument('delta', type=int)
@click.option('--reason', default=None, help='Free-text reason for the adjustment')
@with_appcontext
def restock(product_id, delta, reason):
    """Adjust PRODUCT_ID stock by DELTA units."""
    try:
        product = products_service.adjust_stock(product_id, delta, reason=reason)
    except ShopError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS {product.name}: stock is now {product.stock}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(products_group)
