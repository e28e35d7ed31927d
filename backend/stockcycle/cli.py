# Overview: Flask CLI command groups for bootstrap, inventory inspection and test data.

# backend/stockcycle/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory cycle:
# - python -m flask inventory start --responsible "Maria"
#   Open a new inventory (fails if one is already active).
# - python -m flask inventory status
#   Show the active inventory and its live progress.
# - python -m flask inventory refresh-progress 3
#   Recompute and store the progress snapshot of inventory 3.
#
# Counts:
# - python -m flask counts seed-test --category store --items 5 [--inventory-id 3] [--origin "Loja 01" ...]
#   Fill uncounted origins with random counts (all catalog origins when --origin is omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import InventoryError
from .reference_data import DEFAULT_REFERENCE
from .services import inventory_service, progress_service, test_data_service


def _fail(exc: InventoryError):
    db.session.rollback()
    raise click.ClickException(str(exc))


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask inventory start' to open a cycle.")


@click.group('inventory')
def inventory_group():
    """Inventory cycle commands."""


@inventory_group.command('start')
@click.option('--responsible', prompt=True, help='Person running the campaign')
@with_appcontext
def start_inventory(responsible):
    """Open a new inventory cycle."""
    try:
        inventory = inventory_service.start_inventory(responsible)
        db.session.commit()
    except InventoryError as e:
        _fail(e)
    click.echo(f"PASS Started inventory {inventory.code} (ID: {inventory.id})")


@inventory_group.command('status')
@with_appcontext
def inventory_status():
    """Show the active inventory and its progress."""
    inventory = inventory_service.get_active_inventory()
    if not inventory:
        click.echo("No active inventory.")
        return

    live = progress_service.get_live_progress(inventory.id)
    click.echo(f"{inventory.code} (ID: {inventory.id})")
    click.echo(f"  Responsible: {inventory.responsible}")
    click.echo(f"  Started:     {inventory.started_at:%Y-%m-%d %H:%M}")
    click.echo(f"  Stores:      {live['stores']}% (snapshot {inventory.progress_stores}%)")
    click.echo(f"  Sectors:     {live['sectors']}% (snapshot {inventory.progress_sectors}%)")
    click.echo(f"  Suppliers:   {live['suppliers']}% (snapshot {inventory.progress_suppliers}%)")


@inventory_group.command('refresh-progress')
@click.argument('inventory_id', type=int)
@with_appcontext
def refresh_progress(inventory_id):
    """Recompute and store the progress snapshot."""
    try:
        inventory = progress_service.refresh_progress(inventory_id)
        db.session.commit()
    except InventoryError as e:
        _fail(e)
    progress = inventory.progress
    click.echo(
        f"PASS {inventory.code}: stores {progress['stores']}%, "
        f"sectors {progress['sectors']}%, suppliers {progress['suppliers']}%"
    )


@click.group('counts')
def counts_group():
    """Count ledger commands."""


@counts_group.command('seed-test')
@click.option('--category', type=click.Choice(test_data_service.TEST_CATEGORIES), default='store', show_default=True)
@click.option('--items', 'items_per_origin', type=int, default=5, show_default=True, help='Asset types per origin (1-20)')
@click.option('--inventory-id', type=int, default=None, help='Defaults to the active inventory')
@click.option('--origin', 'origins', multiple=True, help='Origin to fill; repeat for several')
@with_appcontext
def seed_test_counts(category, items_per_origin, inventory_id, origins):
    """Generate random counts for origins without any."""
    if inventory_id is None:
        active = inventory_service.get_active_inventory()
        if not active:
            raise click.ClickException("No active inventory. Start one or pass --inventory-id.")
        inventory_id = active.id

    if not origins:
        if category == 'store':
            origins = DEFAULT_REFERENCE.all_stores
        else:
            origins = list(DEFAULT_REFERENCE.dc_sectors)

    try:
        result = test_data_service.generate_test_counts(
            inventory_id,
            category,
            list(origins),
            items_per_origin=items_per_origin,
        )
        db.session.commit()
    except InventoryError as e:
        _fail(e)

    click.echo(
        f"PASS Generated {result['generated']} count(s) across {result['origins_processed']} origin(s); "
        f"skipped {len(result['skipped'])} already counted"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(counts_group)
