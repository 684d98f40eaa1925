# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo --business-id 1
#   Add a few demo products, a customer and a vendor to a business.
#
# Business (tenant) management:
# - python -m flask business list
#   List all businesses.
# - python -m flask business create --name "Sharma Stores" --code "SHARMA" --gstin 27ABCDE1234F1Z5
#   Create a new business. Its ID is the value clients send in X-Business-Id.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Business, Contact, Product, Transaction
from .models.contacts import CONTACT_TYPE_CUSTOMER, CONTACT_TYPE_VENDOR
from .validation import GSTIN_LENGTH


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

    click.echo("PASS Database reset complete. Run 'python -m flask business create' to add a business.")


DEMO_PRODUCTS = (
    # name, category, price, stock, min stock, hsn, cgst, sgst
    ("Basmati Rice 5kg", "Groceries", 650.00, 40, 10, "1006", 2.5, 2.5),
    ("Sunflower Oil 1L", "Groceries", 180.00, 60, 15, "1512", 2.5, 2.5),
    ("Steel Tumbler", "Kitchenware", 120.00, 25, 5, "7323", 6, 6),
    ("LED Bulb 9W", "Electricals", 99.00, 8, 10, "8539", 9, 9),
)


@system_group.command('seed-demo')
@click.option('--business-id', type=int, required=True, help='Business ID')
@with_appcontext
def seed_demo(business_id):
    """Add demo products and one customer/vendor to a business (idempotent by name)."""
    business = db.session.get(Business, business_id)
    if not business:
        click.echo(f"FAIL Business ID {business_id} not found")
        return

    created = 0
    for name, category, price, stock, min_stock, hsn, cgst, sgst in DEMO_PRODUCTS:
        exists = db.session.query(Product).filter_by(business_id=business.id, name=name).first()
        if exists:
            continue
        db.session.add(Product(
            business_id=business.id,
            name=name,
            category=category,
            price=price,
            stock=stock,
            min_stock_level=min_stock,
            hsn=hsn,
            cgst=cgst,
            sgst=sgst,
        ))
        created += 1

    for contact_type, name, phone in (
        (CONTACT_TYPE_CUSTOMER, "Walk-in Customer", "9000000001"),
        (CONTACT_TYPE_VENDOR, "Metro Wholesale", "9000000002"),
    ):
        exists = db.session.query(Contact).filter_by(business_id=business.id, name=name).first()
        if exists:
            continue
        db.session.add(Contact(business_id=business.id, type=contact_type, name=name, phone=phone, current_balance=0))
        created += 1

    db.session.commit()
    click.echo(f"PASS Seeded {created} record(s) into business '{business.name}' (ID: {business.id})")


@click.group('business')
def business_group():
    """Business (tenant) management commands."""


@business_group.command('list')
@with_appcontext
def list_businesses():
    """List all businesses."""
    businesses = db.session.query(Business).order_by(Business.id.asc()).all()

    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Products':<10} {'Transactions'}")
    click.echo("="*80)

    for business in businesses:
        product_count = db.session.query(Product).filter_by(business_id=business.id).count()
        tx_count = db.session.query(Transaction).filter_by(business_id=business.id).count()
        active_str = "Yes" if business.is_active else "No"

        click.echo(
            f"{business.id:<5} {business.name:<30} {business.code or '-':<15} "
            f"{active_str:<8} {product_count:<10} {tx_count}"
        )

    click.echo("="*80 + "\n")


@business_group.command('create')
@click.option('--name', required=True, help='Business name (printed on invoices)')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--gstin', default=None, help='GST identification number')
@click.option('--phone', default=None, help='Contact phone')
@click.option('--state', default=None, help='State (for the invoice header)')
@with_appcontext
def create_business_cli(name, code, gstin, phone, state):
    """Create a new business (tenant)."""
    existing = db.session.query(Business).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Business with code '{code}' already exists")
        return

    if gstin and len(gstin.strip()) != GSTIN_LENGTH:
        click.echo(f"FAIL GSTIN must be {GSTIN_LENGTH} characters")
        return

    business = Business(
        name=name,
        code=code,
        gstin=gstin.strip() if gstin else None,
        phone=phone,
        state=state,
        is_active=True,
    )
    db.session.add(business)
    db.session.commit()

    click.echo(f"PASS Created business: {business.name} (ID: {business.id}, Code: {business.code})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(business_group)
