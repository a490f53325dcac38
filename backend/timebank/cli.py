# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/timebank/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "timebank:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--admin-email admin@timebank.local] [--admin-password ...]
#   Idempotent bootstrap: creates tables, the company settings row and an admin account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--department Ops]
#   List employees with role, department and active status.
# - python -m flask users create --name "Ana" --email ana@corp.local --password "Password123" --role manager --department Ops
#   Create an employee (prompts if options are omitted).
#
# Settings:
# - python -m flask settings show
#   Print the company-wide overtime and hour-bank limits.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import DomainError
from .extensions import db
from .models import Employee, ROLES, ROLE_ADMIN
from .services.auth_service import create_employee
from .services.settings_service import get_or_create_settings


DEFAULT_ADMIN_PASSWORD = "Password123"
DEFAULT_SCHEDULE = {
    day: {"start_time": "09:00", "end_time": "18:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
}


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default=None, help='Bootstrap admin email (defaults to BOOTSTRAP_ADMIN_EMAIL)')
@click.option('--admin-password', default=DEFAULT_ADMIN_PASSWORD, help='Bootstrap admin password')
@with_appcontext
def init_system(admin_email, admin_password):
    """
    Initialize the system: tables, company settings and an admin account.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing timebank...")

    db.create_all()
    click.echo("PASS Tables ready")

    settings = get_or_create_settings()
    click.echo(
        f"PASS Company settings (overtime {settings.default_overtime_limit:g}h, "
        f"accumulation {settings.default_accumulation_limit:g}h, usage {settings.default_usage_limit:g}h)"
    )

    email = (admin_email or current_app.config.get("BOOTSTRAP_ADMIN_EMAIL")).strip().lower()
    existing = db.session.query(Employee).filter_by(email=email).first()
    if existing:
        click.echo(f"PASS Using existing admin: {existing.email} (ID: {existing.id})")
        return

    try:
        admin = create_employee(
            name="Administrator",
            email=email,
            password=admin_password,
            role=ROLE_ADMIN,
            work_schedule=DEFAULT_SCHEDULE,
            lunch_break_hours=1.0,
        )
    except DomainError as e:
        click.echo(f"FAIL Could not create admin: {e.message}")
        return
    click.echo(f"PASS Created admin: {admin.email} (ID: {admin.id})")
    click.echo("SECURITY Password securely hashed with bcrypt; change it after first login")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """Employee inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Full name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--department', default=None, help='Department')
@click.option('--lunch-break-hours', type=float, default=1.0, show_default=True)
@click.option('--late-tolerance', type=int, default=10, show_default=True)
@with_appcontext
def create_user_cli(name, email, password, role, department, lunch_break_hours, late_tolerance):
    """
    Create a new employee with the default Monday-Friday 09:00-18:00 schedule.

    Password must have 8+ characters with upper, lower and a digit.
    """
    try:
        employee = create_employee(
            name=name,
            email=email,
            password=password,
            role=role,
            department=department,
            work_schedule=DEFAULT_SCHEDULE,
            lunch_break_hours=lunch_break_hours,
            late_tolerance=late_tolerance,
        )
    except DomainError as e:
        click.echo(f"FAIL Failed to create employee: {e.message}")
        return

    click.echo(f"PASS Created employee: {employee.name} ({employee.email}) with role '{employee.role}'")
    click.echo(f"     Employee ID: {employee.id}")


@users_group.command('list')
@click.option('--department', default=None, help='Filter by department')
@with_appcontext
def list_users(department):
    """List all employees."""
    query = db.session.query(Employee)
    if department:
        query = query.filter(Employee.department == department)
    employees = query.order_by(Employee.id.asc()).all()

    if not employees:
        click.echo("No employees found")
        return

    for e in employees:
        status = "active" if e.is_active else "inactive"
        click.echo(f"{e.id:>4}  {e.email:<32} {e.role:<9} {(e.department or '-'):<16} {status}")


@click.group('settings')
def settings_group():
    """Company settings inspection."""


@settings_group.command('show')
@with_appcontext
def show_settings():
    settings = get_or_create_settings()
    for key, value in settings.to_dict().items():
        click.echo(f"{key:<28} {value}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(settings_group)
