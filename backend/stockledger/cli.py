# Overview: Flask CLI command groups for bootstrap and inventory file handling.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--business "Shop Name"] [--email shop@example.com]
#   Idempotent bootstrap: creates a business with its default category and supplier.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory files:
# - python -m flask inventory template plantilla.xlsx --business-id 1
#   Write an empty import template listing the business's category and supplier codes.
# - python -m flask inventory import productos.xlsx --business-id 1
#   Bulk-create products from a filled template and print per-row results.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Business, Category, Supplier
from .services.fallback_service import get_default_category, get_default_supplier
from .services.import_service import import_products, InventoryImportError
from .services.import_template import generate_inventory_template
from .validation import NotFoundError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--business', 'business_name', default='Default Business', help='Business name')
@click.option('--email', default=None, help='Business contact email')
@with_appcontext
def init_system(business_name, email):
    """
    Initialize a business with its essential category and supplier.

    Safe to run repeatedly: an existing business with the same name is reused.
    """
    click.echo("START Initializing business...")

    business = db.session.query(Business).filter_by(name=business_name).first()
    if not business:
        business = Business(name=business_name, email=email)
        db.session.add(business)
        db.session.commit()
        click.echo(f"PASS Created business: {business.name} (ID: {business.id})")
    else:
        click.echo(f"PASS Using existing business: {business.name} (ID: {business.id})")

    category = get_default_category(business.id)
    supplier = get_default_supplier(business.id)
    db.session.commit()
    click.echo(f"PASS Default category: {category.description} (code {category.code})")
    click.echo(f"PASS Default supplier: {supplier.name} (code {supplier.code})")


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

    click.echo("PASS Database reset complete")


@click.group('inventory')
def inventory_group():
    """Inventory template and bulk import commands."""


@inventory_group.command('template')
@click.argument('output', type=click.Path(dir_okay=False, writable=True))
@click.option('--business-id', type=int, required=True, help='Business ID')
@with_appcontext
def write_template(output, business_id):
    """Write an empty import template to OUTPUT."""
    if db.session.get(Business, business_id) is None:
        raise click.ClickException(f"Business {business_id} not found")

    categories = db.session.query(Category).filter_by(business_id=business_id).order_by(Category.code).all()
    suppliers = db.session.query(Supplier).filter_by(business_id=business_id).order_by(Supplier.code).all()
    with open(output, "wb") as fh:
        fh.write(generate_inventory_template(categories, suppliers))
    click.echo(f"PASS Template written to {output}")


@inventory_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--business-id', type=int, required=True, help='Business ID')
@with_appcontext
def import_file(path, business_id):
    """Bulk-create products from a filled template at PATH."""
    try:
        with open(path, "rb") as fh:
            result = import_products(fh, business_id)
    except (ValidationError, NotFoundError, InventoryImportError) as e:
        raise click.ClickException(str(e))

    for issue in result["errors"]:
        click.echo(f"FAIL Row {issue['row']['row_number']} ({issue['row']['code']}): {issue['message']}")
    for issue in result["warnings"]:
        click.echo(f"WARN  Row {issue['row']['row_number']} ({issue['row']['code']}): {issue['message']}")

    click.echo(
        f"DONE Created {result['created']} products "
        f"({len(result['successes'])} clean, {len(result['warnings'])} with defaults, "
        f"{len(result['errors'])} rejected)"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
