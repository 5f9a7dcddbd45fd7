# Overview: Flask CLI command groups for bootstrap, operator accounts, and maintenance.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# - flask --app wsgi db upgrade
#   Apply migrations (preferred way to create/upgrade the schema).
# - flask --app wsgi system init
#   Create any missing tables without migrations (dev convenience).
# - flask --app wsgi system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask --app wsgi users create --username cashier1 --password "secret123"
#   Create an operator account (prompts if options are omitted).
# - flask --app wsgi users list
# - flask --app wsgi users set-password cashier1
# - flask --app wsgi users deactivate cashier1
#   Disable an account and revoke its sessions.
# - flask --app wsgi maintenance cleanup-sessions
#   Delete expired and revoked session tokens.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import auth_service, session_service
from .services.auth_service import PasswordValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create missing tables."""
    db.create_all()
    users = db.session.query(User).count()
    click.echo(f"PASS Schema ready ({users} operator account(s))")
    if users == 0:
        click.echo("Create an operator with: flask users create")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        raise click.UsageError("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """Operator account commands."""


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user_cmd(username, password):
    """Create an operator account."""
    try:
        user = auth_service.create_user(username, password)
    except (PasswordValidationError, ValueError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.username} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users_cmd():
    """List operator accounts."""
    users = db.session.query(User).order_by(User.username.asc()).all()
    if not users:
        click.echo("No users")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<24} {status}")


@users_group.command('set-password')
@click.argument('username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def set_password_cmd(username, password):
    """Replace an operator's password."""
    try:
        auth_service.set_password(username, password)
    except (PasswordValidationError, ValueError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Password updated for {username}")


@users_group.command('deactivate')
@click.argument('username')
@with_appcontext
def deactivate_user_cmd(username):
    """Disable an operator account and revoke its sessions."""
    try:
        auth_service.deactivate_user(username)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Deactivated {username}")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cmd():
    """Delete expired and revoked session tokens."""
    removed = session_service.cleanup_sessions()
    click.echo(f"PASS Removed {removed} session token(s)")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
