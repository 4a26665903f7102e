# Overview: Flask CLI command groups for bootstrap, scheduled jobs, and audits.

# backend/inventory_erp/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--admin-email admin@inventory.local]
#   Create tables (if missing) and a default ADMIN user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --name "Ada" --email ada@example.com --password secret1 --role ADMIN
# - python -m flask users list
#
# Scheduled jobs (same work as GET /api/cron):
# - python -m flask jobs run-nightly
#   Supplier price sync, then low-stock alerts.
# - python -m flask jobs sync-suppliers [--product-id 3]
# - python -m flask jobs low-stock-alerts
#
# Stock audit:
# - python -m flask stock reconcile [--product-id 3]
#   Replay stock logs and report products whose quantity does not match.

import json

import click
from flask.cli import with_appcontext

from .errors import InventoryError
from .extensions import db
from .models import Product, User
from .models.auth import ROLE_ADMIN, ROLES
from .services import jobs_service, stock_ledger_service, sync_service
from .services.alert_service import check_and_alert
from .services.auth_service import create_user
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-name', default='Administrator', help='Default admin display name')
@click.option('--admin-email', default='admin@inventory.local', help='Default admin email')
@click.option('--admin-password', default='admin123', help='Default admin password')
@with_appcontext
def init_system(admin_name, admin_email, admin_password):
    """
    Create all tables and a default ADMIN user (idempotent).

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing inventory system...")
    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).filter_by(email=admin_email.lower()).first()
    if existing:
        click.echo(f"PASS Using existing admin: {existing.email} (ID: {existing.id})")
        return

    user = create_user(name=admin_name, email=admin_email, password=admin_password, role=ROLE_ADMIN)
    click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DANGER: Drop all tables and recreate schema."""
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), default='STAFF', show_default=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create a user. The only way to create ADMIN accounts."""
    try:
        user = create_user(name=name, email=email, password=password, role=role)
    except ValidationError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user: {user.email} with role '{user.role}' (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<30} {'Role':<8} {'Active'}")
    click.echo("=" * 80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<20} {user.email:<30} {user.role:<8} {active_str}")
    click.echo("=" * 80 + "\n")


@click.group('jobs')
def jobs_group():
    """Scheduled job commands (for cron / systemd timers)."""


@jobs_group.command('run-nightly')
@with_appcontext
def run_nightly_cli():
    """Supplier sync followed by low-stock alerts; prints the JSON summary."""
    summary = jobs_service.run_scheduled_job()
    click.echo(json.dumps(summary, indent=2))


@jobs_group.command('sync-suppliers')
@click.option('--product-id', type=int, help='Sync a single product')
@with_appcontext
def sync_suppliers_cli(product_id):
    """Sync cost prices from supplier APIs."""
    if product_id is not None:
        try:
            results = [sync_service.sync_product(product_id)]
        except InventoryError as e:
            raise click.ClickException(e.message)
    else:
        results = sync_service.sync_all()

    for r in results:
        if r.success:
            click.echo(f"PASS {r.sku}: {r.old_price_cents} -> {r.new_price_cents} {r.currency}")
        else:
            click.echo(f"FAIL {r.sku}: {r.error}")
    click.echo(f"{sum(1 for r in results if r.success)}/{len(results)} products synced")


@jobs_group.command('low-stock-alerts')
@with_appcontext
def low_stock_alerts_cli():
    """Notify every product below its minimum stock level."""
    results = check_and_alert()
    for r in results:
        click.echo(f"{'PASS' if r.success else 'FAIL'} {r.sku}" + (f": {r.error}" if r.error else ""))
    click.echo(f"{len(results)} low-stock products")


@click.group('stock')
def stock_group():
    """Stock ledger audits."""


@stock_group.command('reconcile')
@click.option('--product-id', type=int, help='Check a single product')
@with_appcontext
def reconcile_cli(product_id):
    """Replay stock logs and compare with stored quantities. Exit 1 on mismatch."""
    if product_id is not None:
        product_ids = [product_id]
    else:
        product_ids = [row[0] for row in db.session.query(Product.id).order_by(Product.id.asc())]

    mismatches = 0
    for pid in product_ids:
        try:
            report = stock_ledger_service.reconcile(pid)
        except InventoryError as e:
            raise click.ClickException(e.message)
        if report["consistent"]:
            click.echo(f"PASS {report['sku']}: {report['stock_qty']}")
        else:
            mismatches += 1
            click.echo(f"FAIL {report['sku']}: stored {report['stock_qty']}, replayed {report['replayed_qty']}")

    if mismatches:
        raise click.ClickException(f"{mismatches} product(s) out of balance")
    click.echo(f"PASS {len(product_ids)} products reconciled")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(jobs_group)
    app.cli.add_command(stock_group)
