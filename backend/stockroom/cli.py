# Overview: Flask CLI command groups for user bootstrap and maintenance.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema:
# - python -m flask db upgrade
#   Apply migrations (Flask-Migrate).
#
# Users:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username admin --name "Store Admin" --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance purge-transactions --days 90 [--yes]
#   Delete transaction log entries older than N days. Stock is not changed.
# - python -m flask maintenance cleanup-sessions
#   Delete expired/revoked session tokens older than 30 days.

import click
from flask.cli import with_appcontext

from .ledger.errors import LedgerError
from .models import ROLES, ROLE_USER
from .services import auth_service, maintenance_service


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    users = auth_service.list_users()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.name:<30} {user.role:<6} {status}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ROLES), default=ROLE_USER, show_default=True)
@with_appcontext
def create_user_cli(username, name, password, role):
    """Create a user account."""
    try:
        user = auth_service.create_user(username=username, name=name, password=password, role=role)
    except LedgerError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('purge-transactions')
@click.option('--days', type=int, required=True, help='Delete entries older than this many days')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def purge_transactions_cli(days, yes):
    """Delete transaction log entries older than --days days."""
    if not yes:
        click.confirm(f"WARN This permanently deletes transactions older than {days} days. Continue?", abort=True)
    try:
        deleted = maintenance_service.purge_transactions_older_than(days)
    except LedgerError as e:
        raise click.ClickException(str(e))
    click.echo(f"Deleted {deleted} transactions older than {days} days.")


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    deleted = maintenance_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired or revoked sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
