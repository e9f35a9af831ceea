# Overview: Flask CLI command groups for bootstrap, catalog/employee setup and ledger checks.

# backend/fieldledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app fieldledger <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app fieldledger system init-db
#   Create any missing tables (idempotent).
# - flask --app fieldledger system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog and directory setup:
# - flask --app fieldledger products create --title "Water Filter" --base-price 1500 --lowest-price 1200 --stock 40
#   Create a product with opening stock (prices in minor units).
# - flask --app fieldledger employees create --name "Asha Rao" --phone 9876543210
#   Create a field employee.
#
# Ledger checks:
# - flask --app fieldledger ledger check
#   Run the reconciliation checks; exits non-zero when any check fails.

import click
from flask.cli import with_appcontext

from .errors import CustodyError
from .extensions import db
from .models import Employee, Product
from .services import employees_service, products_service, reconciliation_service
from .validation import validate_payload


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
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


@click.group('products')
def products_group():
    """Product catalog commands."""


@products_group.command('create')
@click.option('--title', prompt=True, help='Product title')
@click.option('--description', default=None, help='Description')
@click.option('--base-price', type=int, prompt=True, help='Base price (minor units)')
@click.option('--lowest-price', type=int, prompt=True, help='Lowest selling price (minor units)')
@click.option('--stock', type=int, default=0, show_default=True, help='Opening central stock')
@with_appcontext
def create_product_cli(title, description, base_price, lowest_price, stock):
    """Create a product with opening stock."""
    payload = {
        "title": title,
        "base_price_cents": base_price,
        "lowest_selling_price_cents": lowest_price,
        "stock_quantity": stock,
    }
    if description:
        payload["description"] = description

    try:
        patch = validate_payload(
            model=Product,
            payload=payload,
            policy=products_service.PRODUCT_CREATE_POLICY,
            partial=False,
        )
        product = products_service.create_product(patch, actor="cli")
    except CustodyError as e:
        raise click.ClickException(f"{e.kind}: {e.message}")

    click.echo(f"PASS Created product {product.title} (ID: {product.id}, stock: {product.stock_quantity})")


@click.group('employees')
def employees_group():
    """Employee directory commands."""


@employees_group.command('create')
@click.option('--name', 'full_name', prompt=True, help='Full name')
@click.option('--phone', 'phone_number', prompt=True, help='Phone number')
@click.option('--email', default=None, help='Email address')
@with_appcontext
def create_employee_cli(full_name, phone_number, email):
    """Create a field employee with empty custody."""
    payload = {"full_name": full_name, "phone_number": phone_number}
    if email:
        payload["email"] = email

    try:
        patch = validate_payload(
            model=Employee,
            payload=payload,
            policy=employees_service.EMPLOYEE_POLICY,
            partial=False,
        )
        employee = employees_service.create_employee(patch)
    except CustodyError as e:
        raise click.ClickException(f"{e.kind}: {e.message}")

    click.echo(f"PASS Created employee {employee.full_name} (ID: {employee.id})")


@click.group('ledger')
def ledger_group():
    """Custody ledger inspection commands."""


@ledger_group.command('check')
@click.option('--skip-events', is_flag=True, help='Only check state invariants, not the event log')
@with_appcontext
def check_ledger(skip_events):
    """Verify custody invariants and event-log consistency."""
    report = reconciliation_service.check_invariants(include_events=not skip_events)
    checked = report["checked"]
    click.echo(
        f"Checked {checked['products']} products, {checked['employees']} employees, "
        f"{checked['assignments']} assignments"
    )

    if report["ok"]:
        click.echo("PASS All checks passed.")
        return

    for violation in report["violations"]:
        fields = ", ".join(f"{k}={v}" for k, v in violation.items() if k != "check")
        click.echo(f"FAIL {violation['check']}: {fields}")
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(employees_group)
    app.cli.add_command(ledger_group)
