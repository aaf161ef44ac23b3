# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/fiscalpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (prefer `flask db upgrade` for managed databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Products:
# - python -m flask products create --sku P-001 --name "Widget" --price 10.00 --stock 5 [--kind DIGITAL]
#   Create a product with opening stock.
# - python -m flask products stock 3
#   Show the tracked quantity and recent stock movements of a product.
#
# Identity documents:
# - python -m flask identity check 1710034065
#   Report whether digits are a valid natural-person ID and/or tax-registration ID.
#
# Invoices:
# - python -m flask invoices verify-keys
#   Re-validate every stored access key; exits non-zero if any fails.

import sys

import click
from flask.cli import with_appcontext

from .errors import DomainError
from .extensions import db
from .services import invoice_service, products_service, stock_ledger
from .services.checksum import is_valid_natural_person_id, is_valid_tax_id
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete.")


@click.group('products')
def products_group():
    """Product master data commands."""


@products_group.command('create')
@click.option('--sku', required=True, help='Unique SKU')
@click.option('--name', required=True, help='Product name')
@click.option('--price', required=True, help='Unit price, e.g. 10.00')
@click.option('--stock', type=int, default=0, show_default=True, help='Opening stock (PHYSICAL only)')
@click.option('--kind', type=click.Choice(['PHYSICAL', 'DIGITAL'], case_sensitive=False), default='PHYSICAL', show_default=True)
@with_appcontext
def create_product_cli(sku, name, price, stock, kind):
    """
    Create a product.

    Example:
        flask products create --sku P-001 --name "Widget" --price 10.00 --stock 5
    """
    try:
        product = products_service.create_product(
            sku=sku,
            name=name,
            unit_price=price,
            stock_quantity=stock,
            kind=kind,
        )
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Error: {e}")
        sys.exit(1)

    click.echo(f"PASS Created product {product.id}: {product.sku} - {product.name}")
    click.echo(f"   Kind: {product.kind}")
    click.echo(f"   Price: {product.unit_price}")
    if product.tracks_inventory:
        click.echo(f"   Stock: {product.stock_quantity}")


@products_group.command('stock')
@click.argument('product_id', type=int)
@click.option('--limit', type=int, default=10, show_default=True, help='Movements to show')
@with_appcontext
def product_stock_cli(product_id, limit):
    """Show a product's quantity and its most recent stock movements."""
    try:
        quantity = stock_ledger.available(db.session, product_id)
        movements = stock_ledger.recent_movements(db.session, product_id, limit=limit)
    except DomainError as e:
        click.echo(f"FAIL {e}")
        sys.exit(1)

    if quantity is None:
        click.echo(f"Product {product_id} is not stock-tracked (DIGITAL).")
        return

    click.echo(f"Product {product_id}: {quantity} on hand")
    if not movements:
        click.echo("   No movements recorded.")
    for movement in movements:
        sale = f" sale {movement.sale_id}" if movement.sale_id else ""
        click.echo(f"   {movement.occurred_at:%Y-%m-%d %H:%M:%S}  {movement.quantity_delta:+d}  {movement.reason}{sale}")


@click.group('identity')
def identity_group():
    """Identity document checks."""


@identity_group.command('check')
@click.argument('digits')
def identity_check_cli(digits):
    """Report natural-person ID and tax-registration ID validity for DIGITS."""
    natural = is_valid_natural_person_id(digits)
    tax = is_valid_tax_id(digits)
    click.echo(f"natural-person ID: {'valid' if natural else 'invalid'}")
    click.echo(f"tax-registration ID: {'valid' if tax else 'invalid'}")
    if not (natural or tax):
        sys.exit(1)


@click.group('invoices')
def invoices_group():
    """Invoice maintenance commands."""


@invoices_group.command('verify-keys')
@with_appcontext
def verify_keys_cli():
    """Re-validate every stored access key. Exits 1 if any key fails."""
    corrupt = invoice_service.find_corrupt_access_keys()
    if not corrupt:
        click.echo("PASS All stored access keys verify.")
        return
    for invoice in corrupt:
        click.echo(f"FAIL Invoice {invoice.id} ({invoice.number}): {invoice.access_key}")
    click.echo(f"FAIL {len(corrupt)} access key(s) failed verification.")
    sys.exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(identity_group)
    app.cli.add_command(invoices_group)
