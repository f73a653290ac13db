# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/reportdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the admin user from ADMIN_* config.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username alice --password "Password123!" --role manager
#   Create a user (prompts if options are omitted).
#
# Role inspection:
# - python -m flask roles list
#   List system and custom roles with their granted capabilities.
# - python -m flask roles check Supervisor can_delete_reports
#   Check whether a role name resolves to a bag holding a capability.
#
# Reports:
# - python -m flask reports export backup.json
#   Write a backup document of all reports.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired and revoked sessions older than the retention window.

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import auth_service, permission_service, report_service, session_service
from .services.auth_service import PasswordValidationError
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize ReportDesk: create tables and ensure the admin account.

    The admin is taken from ADMIN_USERNAME / ADMIN_PASSWORD / ADMIN_EMAIL.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing ReportDesk...")

    db.create_all()
    click.echo("PASS Tables ready")

    config = current_app.config
    try:
        user, created = auth_service.ensure_admin_user(
            config["ADMIN_USERNAME"], config["ADMIN_PASSWORD"], config.get("ADMIN_EMAIL")
        )
    except (PasswordValidationError, ValidationError) as e:
        raise click.ClickException(f"Admin account not created: {e}")

    if created:
        click.echo(f"PASS Created admin user: {user.username}")
    else:
        click.echo(f"PASS Using existing admin user: {user.username} (role: {user.role})")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', default=None, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', default='employee', show_default=True, help='System or custom role name')
@with_appcontext
def create_user_cli(username, email, password, role):
    """Create a user."""
    try:
        user = auth_service.create_user(username, password, email=email, role=role)
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user {user.username} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.username).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {(user.email or '-'):<30} {active_str:<8} {user.role}")

    click.echo("="*90 + "\n")


@click.group('roles')
def roles_group():
    """Role inspection."""


@roles_group.command('list')
@with_appcontext
def list_roles_cli():
    """List system and custom roles with granted capabilities."""
    for role in permission_service.list_roles(include_user_counts=True):
        kind = "system" if role["is_system"] else "custom"
        granted = [code for code, allowed in role["permissions"].items() if allowed]
        click.echo(f"{role['name']:<20} {kind:<7} users={role['user_count']:<4} {', '.join(granted)}")


@roles_group.command('check')
@click.argument('role_name')
@click.argument('capability')
@with_appcontext
def check_role_cli(role_name, capability):
    """Check whether ROLE_NAME holds CAPABILITY."""
    resolved = permission_service.resolve_role(role_name)
    allowed = resolved.permissions.allows(capability)
    status = "ALLOWED" if allowed else "DENIED"
    click.echo(f"{status} {role_name} -> {capability} (resolved from {resolved.kind} role {resolved.name!r})")


@click.group('reports')
def reports_group():
    """Report data commands."""


@reports_group.command('export')
@click.argument('path', type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def export_reports_cli(path):
    """Write a backup document of all reports to PATH."""
    document = report_service.export_backup()
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(document, fh, indent=2)
    click.echo(f"PASS Exported {len(document['reports'])} reports to {path}")


@click.group('maintenance')
def maintenance_group():
    """Database maintenance."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', default=30, show_default=True, type=int)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired and revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} sessions")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(roles_group)
    app.cli.add_command(reports_group)
    app.cli.add_command(maintenance_group)
