# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema:
# - python -m flask db upgrade
#   Apply Alembic migrations (deployment path).
# - python -m flask system init-db
#   DEV/TEST only: create any missing tables straight from the models.
#
# Bootstrap:
# - python -m flask system seed --admin-email admin@marketplace.local --admin-password "secret123"
#   Idempotent: creates the admin account and the sample categories if missing.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Ana" --email ana@example.com --password "secret123" [--admin]
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired or revoked session tokens older than the retention window.

import click
from flask.cli import with_appcontext

from .errors import AppError
from .extensions import db
from .models import Category, ROLE_ADMIN, ROLE_USER, User
from .services.auth_service import create_user
from .services import session_service


SAMPLE_CATEGORIES = (
    ("Vegetables", "Fresh vegetables from local growers", "carrot"),
    ("Fruits", "Seasonal fruit", "apple"),
    ("Dairy", "Milk, cheese and other dairy products", "cheese"),
    ("Bakery", "Bread, cakes and pastries", "bread"),
    ("Crafts", "Handmade goods", "scissors"),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """
    Create missing tables from the models.

    DEV/TEST only. Deployments own the schema through `flask db upgrade`.
    """
    db.create_all()
    click.echo("PASS Tables created (existing tables left untouched)")


@system_group.command('seed')
@click.option('--admin-name', default='Administrator', show_default=True)
@click.option('--admin-email', default='admin@marketplace.local', show_default=True)
@click.option('--admin-password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def seed(admin_name, admin_email, admin_password):
    """Create the admin account and sample categories. Safe to re-run."""
    admin = db.session.query(User).filter_by(email=admin_email.strip().lower()).first()
    if admin:
        click.echo(f"SKIP Admin {admin.email} already exists")
    else:
        try:
            admin = create_user(admin_name, admin_email, admin_password, role=ROLE_ADMIN)
        except AppError as e:
            click.echo(f"FAIL Could not create admin: {e.message}")
            raise SystemExit(1)
        click.echo(f"PASS Created admin {admin.email} (ID: {admin.id})")

    created = 0
    for name, description, icon in SAMPLE_CATEGORIES:
        if db.session.query(Category.id).filter_by(name=name).first():
            continue
        db.session.add(Category(name=name, description=description, icon=icon))
        created += 1
    db.session.commit()
    click.echo(f"PASS {created} categories created, {len(SAMPLE_CATEGORIES) - created} already present")


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
@click.option('--admin', 'is_admin', is_flag=True, help='Create an administrator')
@with_appcontext
def create_user_cli(name, email, password, is_admin):
    """
    Create a new user.

    This is the only way to create an admin; self-registration always
    produces a regular user.
    """
    role = ROLE_ADMIN if is_admin else ROLE_USER
    try:
        user = create_user(name, email, password, role=role)
    except AppError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Role':<8} {'Active'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<25} {user.email:<35} {user.role:<8} {active_str}")

    click.echo("="*90 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """
    Delete expired or revoked session tokens.

    Default retention: 30 days.
    """
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
