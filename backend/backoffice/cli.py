# Overview: Flask CLI command groups for bootstrap, inspection, and ledger checks.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to backoffice (PowerShell: $env:FLASK_APP="backoffice").
# - Use: python -m flask <group> <command> [options]
#
# Setup:
# - python -m flask setup init-db
#   Create every table that does not exist yet.
# - python -m flask setup reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask setup seed
#   Idempotent: default business units plus a till and a bank safe.
#
# Safes:
# - python -m flask safes list
#   List safes with their opening and current balances.
#
# Ledger:
# - python -m flask ledger verify
#   Check current_balance - opening_balance == SUM(cash ledger) for every safe.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import BusinessUnit, CashSafe
from .services import business_unit_service, treasury_service


DEFAULT_UNITS = (
    ("Hardware Store", "RETAIL"),
    ("Scrapyard", "SCRAPYARD"),
    ("Paint Shop", "PAINT"),
    ("Panel Beating", "PANELBEATING"),
)

DEFAULT_SAFES = (
    ("Main Till", True),
    ("Bank Account", False),
)


@click.group('setup')
def setup_group():
    """Database bootstrap commands."""


@setup_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Tables created")


@setup_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the append-only ledgers.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    db.create_all()
    click.echo("PASS Schema recreated")


@setup_group.command('seed')
@with_appcontext
def seed():
    """Create the default business units and safes if missing."""
    for name, business_type in DEFAULT_UNITS:
        if db.session.query(BusinessUnit).filter_by(name=name).first():
            click.echo(f"SKIP Business unit exists: {name}")
            continue
        unit = business_unit_service.create_business_unit(name, business_type)
        click.echo(f"PASS Created business unit: {unit.name} ({unit.business_type}, ID: {unit.id})")

    for name, is_physical_cash in DEFAULT_SAFES:
        if db.session.query(CashSafe).filter_by(name=name).first():
            click.echo(f"SKIP Safe exists: {name}")
            continue
        safe = treasury_service.create_safe(name, opening_balance=0, is_physical_cash=is_physical_cash)
        click.echo(f"PASS Created safe: {safe.name} (ID: {safe.id})")


@click.group('safes')
def safes_group():
    """Safe inspection commands."""


@safes_group.command('list')
@with_appcontext
def list_safes():
    """List all safes."""
    safes = treasury_service.list_safes()
    if not safes:
        click.echo("No safes found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<5} {'Name':<30} {'Cash':<6} {'Opening':>14} {'Current':>14}")
    click.echo("="*72)
    for safe in safes:
        cash_str = "Yes" if safe.is_physical_cash else "No"
        click.echo(
            f"{safe.id:<5} {safe.name:<30} {cash_str:<6} "
            f"{str(safe.opening_balance):>14} {str(safe.current_balance):>14}"
        )
    click.echo("="*72 + "\n")


@click.group('ledger')
def ledger_group():
    """Ledger integrity commands."""


@ledger_group.command('verify')
@with_appcontext
def verify_ledger():
    """Check the cash conservation invariant for every safe."""
    failures = 0
    for safe in treasury_service.list_safes():
        gap = treasury_service.conservation_gap(safe)
        if gap == 0:
            click.echo(f"PASS {safe.name}: {safe.current_balance}")
        else:
            failures += 1
            click.echo(f"FAIL {safe.name}: balance {safe.current_balance} is off its ledger by {gap}")

    if failures:
        raise click.ClickException(f"{failures} safe(s) do not reconcile")
    click.echo("PASS All safes reconcile")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(setup_group)
    app.cli.add_command(safes_group)
    app.cli.add_command(ledger_group)
