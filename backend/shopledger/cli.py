# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shops and suppliers:
# - python -m flask shops create --name "Downtown" --code "DT"
# - python -m flask shops list
# - python -m flask suppliers create --name "Parts Hub" --phone "0700000000"
#
# Stock inspection:
# - python -m flask stock show --name "iPhone 12 Screen"
#   Pool and per-shop quantities for one item name.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import InventoryItem, Shop, Supplier
from .services import stock_ledger


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database schema is up to date.")


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


@click.group('shops')
def shops_group():
    """Shop management commands."""


@shops_group.command('create')
@click.option('--name', required=True, help='Shop name (unique)')
@click.option('--code', help='Short code')
@with_appcontext
def create_shop_cli(name, code):
    """Create a shop."""
    existing = db.session.query(Shop).filter_by(name=name).first()
    if existing:
        click.echo(f"FAIL Shop '{name}' already exists (ID: {existing.id})")
        return

    shop = Shop(name=name, code=code, is_active=True)
    db.session.add(shop)
    db.session.commit()

    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id})")


@shops_group.command('list')
@with_appcontext
def list_shops():
    """List all shops."""
    shops = db.session.query(Shop).order_by(Shop.id).all()

    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<10} {'Active'}")
    click.echo("="*60)

    for shop in shops:
        active_str = "Yes" if shop.is_active else "No"
        click.echo(f"{shop.id:<5} {shop.name:<30} {shop.code or '-':<10} {active_str}")

    click.echo("="*60 + "\n")


@click.group('suppliers')
def suppliers_group():
    """Supplier management commands."""


@suppliers_group.command('create')
@click.option('--name', required=True, help='Supplier name (unique)')
@click.option('--phone', help='Contact phone')
@with_appcontext
def create_supplier_cli(name, phone):
    """Create a supplier."""
    existing = db.session.query(Supplier).filter_by(name=name).first()
    if existing:
        click.echo(f"FAIL Supplier '{name}' already exists (ID: {existing.id})")
        return

    supplier = Supplier(name=name, phone=phone, is_active=True)
    db.session.add(supplier)
    db.session.commit()

    click.echo(f"PASS Created supplier: {supplier.name} (ID: {supplier.id})")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('show')
@click.option('--name', required=True, help='Item name')
@with_appcontext
def show_stock(name):
    """Show pool and per-shop stock for an item name."""
    rows = (
        db.session.query(InventoryItem)
        .filter(InventoryItem.name == name)
        .order_by(InventoryItem.shop_id.is_(None).desc(), InventoryItem.shop_id)
        .all()
    )
    if not rows:
        click.echo(f"No inventory rows named '{name}'.")
        return

    click.echo(f"\n{name}")
    click.echo("-"*40)
    for item in rows:
        where = "pool" if item.is_pool else f"shop {item.shop_id}"
        flags = []
        if not item.is_active:
            flags.append("inactive")
        if item.pending_allocation:
            flags.append("awaiting allocation")
        suffix = f" ({', '.join(flags)})" if flags else ""
        click.echo(f"{where:<12} {item.stock:>6}{suffix}")
    click.echo("-"*40)
    click.echo(f"{'total':<12} {stock_ledger.get_total_stock(name):>6}\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(suppliers_group)
    app.cli.add_command(stock_group)
