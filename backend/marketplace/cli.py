# Overview: Flask CLI command groups for bootstrap, moderation, and maintenance.

# backend/marketplace/cli.py
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
# Users:
# - python -m flask users create --name "Admin" --email admin@market.local --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
# - python -m flask users list [--role vendor]
#   List users with role and ban status.
# - python -m flask users ban admin@market.local
#   Ban a user and revoke all of their sessions.
#
# Coupons:
# - python -m flask coupons create --code WELCOME10 --type PERCENTAGE --value 1000
#   Create a coupon (value in basis points for PERCENTAGE, cents for FIXED_AMOUNT).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30
#   Delete expired and revoked sessions older than the window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import MarketplaceError
from .models import Role, User
from .services import coupon_service, session_service
from .services.auth_service import create_user, normalize_email
from .time_utils import utcnow


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

    click.echo("PASS Database reset complete.")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in Role]), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """
    Create a user. The only way to create an admin account.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(name, email, password, Role(role), is_verified=True)
        click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")
    except MarketplaceError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")


@users_group.command('list')
@click.option('--role', type=click.Choice([r.value for r in Role]), help='Filter by role')
@with_appcontext
def list_users(role):
    """List users with role and ban status."""
    q = db.session.query(User)
    if role:
        q = q.filter_by(role=role)
    users = q.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<6} {'Email':<36} {'Role':<8} {'Banned':<7}")
    click.echo("-" * 60)
    for user in users:
        click.echo(f"{user.id:<6} {user.email:<36} {user.role:<8} {'yes' if user.is_banned else 'no':<7}")


@users_group.command('ban')
@click.argument('email')
@with_appcontext
def ban_user_cli(email):
    """Ban a user by email and revoke every session."""
    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if not user:
        click.echo(f"FAIL User {email} not found")
        return

    user.is_banned = True
    user.banned_at = utcnow()
    count = session_service.revoke_all(user.id, reason="User banned (CLI)", commit=False)
    db.session.commit()
    click.echo(f"PASS Banned {user.email}; revoked {count} sessions")


# =============================================================================
# COUPONS
# =============================================================================

@click.group('coupons')
def coupons_group():
    """Coupon management commands."""


@coupons_group.command('create')
@click.option('--code', required=True, help='Coupon code (case-insensitive)')
@click.option('--type', 'discount_type', type=click.Choice(['PERCENTAGE', 'FIXED_AMOUNT']), required=True)
@click.option('--value', 'discount_value', type=int, required=True, help='Basis points or cents')
@click.option('--min-subtotal-cents', type=int, help='Minimum order subtotal')
@click.option('--expires-at', help='ISO-8601 expiry')
@with_appcontext
def create_coupon_cli(code, discount_type, discount_value, min_subtotal_cents, expires_at):
    try:
        coupon = coupon_service.create_coupon({
            "code": code,
            "discount_type": discount_type,
            "discount_value": discount_value,
            "min_subtotal_cents": min_subtotal_cents,
            "expires_at": expires_at,
        })
        click.echo(f"PASS Created coupon {coupon.code}")
    except MarketplaceError as e:
        click.echo(f"FAIL Failed to create coupon: {e.message}")


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Data retention commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired and revoked sessions issued before the window."""
    deleted = session_service.cleanup_sessions(older_than_days)
    click.echo(f"PASS Deleted {deleted} sessions")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(coupons_group)
    app.cli.add_command(maintenance_group)
