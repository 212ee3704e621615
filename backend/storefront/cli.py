# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system check-config
#   Report settings that must not reach a non-development deployment.
#
# User inspection/bootstrap:
# - python -m flask users list [--role store_owner]
# - python -m flask users create-customer --email a@b.com --first-name Ada --last-name Lovelace
# - python -m flask users deactivate a@b.com
#
# Store inspection:
# - python -m flask stores list [--all]
#
# Audit trail:
# - python -m flask audit list [--user-id <id>] [--limit 50]

import sys

import click
from flask import current_app
from flask.cli import with_appcontext

from .config import insecure_settings
from .errors import ProvisioningError
from .extensions import db
from .models import AuditEvent, Store
from .models.auth import ROLES
from .services.audit_service import AuditLog, RequestProvenance
from .services.concurrency import atomic
from .services.registration_service import RegistrationService
from .services.user_directory import UserDirectory
from .validation import parse_customer_registration


CLI_PROVENANCE = RequestProvenance(ip_address="cli", user_agent="flask-cli")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, the audit trail included!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@system_group.command('check-config')
@with_appcontext
def check_config():
    """Exit non-zero when the configuration is unsafe for this APP_ENV."""
    problems = insecure_settings(current_app.config)
    if not problems:
        click.echo(f"PASS Configuration OK for APP_ENV={current_app.config['APP_ENV']}")
        return
    for problem in problems:
        click.echo(f"FAIL {problem}", err=True)
    sys.exit(1)


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--role', type=click.Choice(ROLES), help='Filter by role')
@click.option('--limit', type=int, default=100, show_default=True)
@with_appcontext
def list_users(role, limit):
    """List principals, newest first."""
    users = UserDirectory(db.session).list(role=role, limit=limit)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<38} {'Email':<32} {'Role':<12} {'Origin':<8} {'Active':<7} {'Complete'}")
    click.echo("="*110)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        complete_str = "Yes" if user.is_fully_registered else "No"
        click.echo(f"{user.id:<38} {user.email:<32} {user.role:<12} {user.origin:<8} {active_str:<7} {complete_str}")

    click.echo("="*110 + "\n")


@users_group.command('create-customer')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@with_appcontext
def create_customer_cli(email, password, first_name, last_name):
    """Create a local customer account."""
    service = RegistrationService(
        db.session,
        current_app.extensions["token_manager"],
        AuditLog(db.session, current_app.logger),
        password_rounds=current_app.config["BCRYPT_ROUNDS"],
        logger=current_app.logger,
    )
    try:
        data = parse_customer_registration({
            "email": email,
            "password": password,
            "firstName": first_name,
            "lastName": last_name,
        })
        result = service.register_customer(data, CLI_PROVENANCE)
    except ProvisioningError as exc:
        click.echo(f"FAIL {exc.message}", err=True)
        for error in getattr(exc, "errors", []):
            click.echo(f"  - {error['param']}: {error['msg']}", err=True)
        sys.exit(1)

    click.echo(f"PASS Created customer {result.user.email} (id={result.user.id})")


@users_group.command('deactivate')
@click.argument('email')
@with_appcontext
def deactivate_user(email):
    """Deactivate a principal; its tokens stop working immediately."""
    directory = UserDirectory(db.session)
    user = directory.find_by_email(email)
    if not user:
        click.echo(f"FAIL No user with email {email}", err=True)
        sys.exit(1)

    with atomic(db.session):
        user.is_active = False
    click.echo(f"PASS Deactivated {user.email}")


@click.group('stores')
def stores_group():
    """Store inspection commands."""


@stores_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include deactivated stores')
@with_appcontext
def list_stores(include_inactive):
    query = db.session.query(Store)
    if not include_inactive:
        query = query.filter(Store.is_active.is_(True))
    stores = query.order_by(Store.name.asc()).all()

    if not stores:
        click.echo("No stores found.")
        return

    for store in stores:
        pending = sum(1 for state in (store.document_verification_status or {}).values() if state == "pending")
        active_str = "active" if store.is_active else "inactive"
        click.echo(f"{store.id}  {store.slug:<30} owner={store.owner_id}  {active_str}  pending_docs={pending}")


@click.group('audit')
def audit_group():
    """Compliance audit trail inspection."""


@audit_group.command('list')
@click.option('--user-id', help='Only events about this principal')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def list_audit_events(user_id, limit):
    query = db.session.query(AuditEvent)
    if user_id:
        query = query.filter(AuditEvent.user_id == user_id)
    events = query.order_by(AuditEvent.id.desc()).limit(limit).all()

    if not events:
        click.echo("No audit events found.")
        return

    for event in events:
        consent = f" consent={event.consent_type}" if event.consent_type else ""
        click.echo(
            f"#{event.id} {event.event_type}{consent} user={event.user_id} "
            f"store={event.store_id} ip={event.ip_address}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(audit_group)
