# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/restopos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app restopos <group> <command> [options]
#
# System bootstrap:
# - python -m flask --app restopos system init
#   Create tables, default menu categories, and an owner account (idempotent).
#
# Users:
# - python -m flask --app restopos users create --username ana --password "Password123!" --role cashier
#
# Menu:
# - python -m flask --app restopos menu add-item --category Coffee --name Latte --price 4.50
#
# Discounts:
# - python -m flask --app restopos discounts create --name "Happy Hour" --type percentage --value 10
#
# Shifts:
# - python -m flask --app restopos shifts list [--user-id 3] [--open]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import CashierShift, User
from .models.auth import ROLE_OWNER, VALID_ROLES
from .models.discounts import VALID_DISCOUNT_TYPES
from .services import auth_service, discount_service, menu_service, shift_service
from .validation import ServiceError

DEFAULT_CATEGORIES = [
    ("Coffee", "Hot and iced coffee drinks"),
    ("Food", "Kitchen items"),
]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--owner-username', default='owner', help='Username for the owner account')
@click.option('--owner-password', default='Password123!', help='Password for the owner account')
@with_appcontext
def init_system(owner_username, owner_password):
    """
    Initialize RestoPOS: schema, default categories, and an owner account.

    SECURITY: Change the owner password immediately in production!
    """
    click.echo("START Initializing RestoPOS...")

    db.create_all()
    click.echo("PASS Tables created")

    for name, description in DEFAULT_CATEGORIES:
        menu_service.get_or_create_category(db.session, name, description)
    db.session.commit()
    click.echo(f"PASS Categories: {', '.join(name for name, _ in DEFAULT_CATEGORIES)}")

    if db.session.query(User).filter_by(username=owner_username).first():
        click.echo(f"WARN  User '{owner_username}' already exists, skipping...")
    else:
        try:
            auth_service.create_user(db.session, owner_username, owner_password, role=ROLE_OWNER, full_name="Owner")
            click.echo(f"PASS Created owner: {owner_username}")
        except ServiceError as e:
            click.echo(f"FAIL Failed to create owner '{owner_username}': {e.message}")

    click.echo("DONE RestoPOS initialized")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@click.option('--full-name', default=None, help='Display name')
@with_appcontext
def create_user_cli(username, password, role, full_name):
    """Create a staff account (password is hashed with bcrypt)."""
    try:
        user = auth_service.create_user(db.session, username, password, role=role, full_name=full_name)
        click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")
    except ServiceError as e:
        raise click.ClickException(e.message)


@click.group('menu')
def menu_group():
    """Menu catalog commands."""


@menu_group.command('add-item')
@click.option('--category', required=True, help='Category name (created if missing)')
@click.option('--name', required=True, help='Item name')
@click.option('--price', required=True, help='Price, e.g. 4.50')
@click.option('--description', default=None, help='Description')
@with_appcontext
def add_menu_item_cli(category, name, price, description):
    try:
        cat = menu_service.get_or_create_category(db.session, category)
        db.session.commit()
        item = menu_service.create_menu_item(db.session, {
            "category_id": cat.id,
            "item_name": name,
            "price": price,
            "description": description,
        })
        click.echo(f"PASS Created menu item: {item.item_name} (ID: {item.id}) at {item.price}")
    except ServiceError as e:
        raise click.ClickException(e.message)


@click.group('discounts')
def discounts_group():
    """Discount commands."""


@discounts_group.command('create')
@click.option('--name', required=True, help='Discount name')
@click.option('--type', 'discount_type', type=click.Choice(list(VALID_DISCOUNT_TYPES)), required=True)
@click.option('--value', required=True, help='Percent (0-100) or fixed amount')
@click.option('--min-amount', default=None, help='Minimum subtotal for the discount to apply')
@with_appcontext
def create_discount_cli(name, discount_type, value, min_amount):
    try:
        discount = discount_service.create_discount(db.session, {
            "discount_name": name,
            "discount_type": discount_type,
            "value": value,
            "min_amount_threshold": min_amount,
        })
        click.echo(f"PASS Created discount: {discount.discount_name} (ID: {discount.id})")
    except ServiceError as e:
        raise click.ClickException(e.message)


@click.group('shifts')
def shifts_group():
    """Cashier shift inspection commands."""


@shifts_group.command('list')
@click.option('--user-id', type=int, default=None, help='Filter by user ID')
@click.option('--open', 'open_only', is_flag=True, help='Only shifts that have not ended')
@with_appcontext
def list_shifts_cli(user_id, open_only):
    shifts: list[CashierShift] = shift_service.list_shifts(db.session, user_id=user_id, active_only=open_only)
    if not shifts:
        click.echo("No shifts found")
        return

    for shift in shifts:
        data = shift.to_dict()
        state = "OPEN" if shift.is_active else "CLOSED"
        click.echo(
            f"{shift.id:>5}  user={shift.user_id:<4} {state:<6} start={data['shift_start']}  "
            f"expected={data['expected_cash_balance']}  closing={data['closing_cash']}  "
            f"discrepancy={data['discrepancy']}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(menu_group)
    app.cli.add_command(discounts_group)
    app.cli.add_command(shifts_group)
