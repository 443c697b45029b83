# Overview: Flask CLI command groups for bootstrap, reconciliation, reporting and payroll.

# backend/fuelrecon/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Reconciliation:
# - python -m flask recon shift 42
#   Reconcile a closed shift and print the recorded mismatch.
# - python -m flask recon list --station-id 1 [--unresolved]
#   List sales mismatches for a station, newest first.
#
# Reporting:
# - python -m flask reports generate --station-id 1 --type daily --date 2024-05-01
#   Generate (or regenerate) a financial report.
#
# Payroll:
# - python -m flask payroll salary --employee-id 7 --start 2024-05-01 --end 2024-06-01
#   Print the salary owed for shifts started in [start, end).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models.reports import REPORT_TYPES
from .services import reconciliation_service, report_service, salary_service
from .time_utils import parse_iso_date, parse_iso_datetime


def _echo_error(result):
    error = result.error
    click.echo(f"FAIL [{error.code}] {error.message}")
    if error.detail:
        click.echo(f"     {error.detail}")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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


@click.group('recon')
def recon_group():
    """Sales reconciliation commands."""


@recon_group.command('shift')
@click.argument('shift_id', type=int)
@with_appcontext
def reconcile_shift_cli(shift_id):
    """
    Reconcile a closed shift.

    Example:
        flask recon shift 42
    """
    result = reconciliation_service.calculate_sales_mismatch(shift_id)
    if not result.ok:
        _echo_error(result)
        raise SystemExit(1)

    mismatch = result.value
    tolerance = reconciliation_service.get_mismatch_tolerance()
    click.echo(f"PASS Shift {shift_id} reconciled (mismatch ID: {mismatch.id})")
    click.echo(f"     expected: {mismatch.expected_amount:.2f}")
    click.echo(f"     actual:   {mismatch.actual_amount:.2f}")
    click.echo(f"     mismatch: {mismatch.mismatch_amount:+.2f}")
    if mismatch.is_significant(tolerance):
        click.echo(f"WARN  Mismatch exceeds tolerance of {tolerance:.2f}")
    for warning in result.warnings:
        click.echo(f"WARN  [{warning.code}] {warning.message}")


@recon_group.command('list')
@click.option('--station-id', type=int, required=True, help='Station ID')
@click.option('--unresolved', is_flag=True, help='Only unresolved mismatches')
@with_appcontext
def list_mismatches_cli(station_id, unresolved):
    """
    List sales mismatches for a station.

    Example:
        flask recon list --station-id 1
        flask recon list --station-id 1 --unresolved
    """
    result = reconciliation_service.get_sales_mismatches(station_id, resolved=False if unresolved else None)
    if not result.ok:
        _echo_error(result)
        raise SystemExit(1)

    mismatches = result.value
    if not mismatches:
        click.echo("No mismatches found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<6} {'Shift':<8} {'Expected':>12} {'Actual':>12} {'Mismatch':>12} {'Status':<12} {'Resolved By'}")
    click.echo("="*90)

    for m in mismatches:
        click.echo(
            f"{m.id:<6} {m.shift_id:<8} {m.expected_amount:>12.2f} {m.actual_amount:>12.2f} "
            f"{m.mismatch_amount:>+12.2f} {m.status:<12} {m.resolved_by or '-'}"
        )

    click.echo("="*90)
    click.echo(f"Total: {len(mismatches)} mismatch(es)")


@click.group('reports')
def reports_group():
    """Financial reporting commands."""


@reports_group.command('generate')
@click.option('--station-id', type=int, required=True, help='Station ID')
@click.option('--type', 'report_type', type=click.Choice(REPORT_TYPES), required=True, help='Report type')
@click.option('--date', 'report_date', required=True, help='Report date (YYYY-MM-DD)')
@with_appcontext
def generate_report_cli(station_id, report_type, report_date):
    """
    Generate or regenerate a financial report.

    Example:
        flask reports generate --station-id 1 --type monthly --date 2024-05-01
    """
    try:
        parsed_date = parse_iso_date(report_date)
    except ValueError:
        raise click.BadParameter("must be YYYY-MM-DD", param_hint="--date")

    result = report_service.generate_financial_report(station_id, report_type, parsed_date)
    if not result.ok:
        _echo_error(result)
        raise SystemExit(1)

    report = result.value
    click.echo(f"PASS {report.report_type.title()} report for station {station_id} ({report.period_start} to {report.period_end}, end exclusive)")
    click.echo(f"     sales:    {report.sales_amount:.2f} ({report.transaction_count} transactions)")
    click.echo(f"     expenses: {report.expenses_amount:.2f} ({report.expense_count} expenses)")
    click.echo(f"     profit:   {report.profit_amount:.2f}")


@click.group('payroll')
def payroll_group():
    """Employee pay commands."""


@payroll_group.command('salary')
@click.option('--employee-id', type=int, required=True, help='Employee ID')
@click.option('--start', required=True, help='Period start (ISO-8601, inclusive)')
@click.option('--end', required=True, help='Period end (ISO-8601, exclusive)')
@click.option('--exclude-cancelled', is_flag=True, help='Leave cancelled shifts unpaid')
@with_appcontext
def salary_cli(employee_id, start, end, exclude_cancelled):
    """
    Print the salary owed for shifts started in [start, end).

    Example:
        flask payroll salary --employee-id 7 --start 2024-05-01 --end 2024-06-01
    """
    try:
        period_start = parse_iso_datetime(start)
        period_end = parse_iso_datetime(end)
    except ValueError:
        raise click.BadParameter("start and end must be ISO-8601 dates or datetimes")

    result = salary_service.calculate_employee_salary(
        employee_id, period_start, period_end, exclude_cancelled=exclude_cancelled,
    )
    if not result.ok:
        _echo_error(result)
        raise SystemExit(1)

    summary = result.value
    click.echo(f"PASS Employee {employee_id}: {summary['shift_count']} shift(s), {summary['total_hours']} hours")
    click.echo(f"     rate:   {summary['hourly_rate']:.2f}/h")
    click.echo(f"     salary: {summary['salary']:.2f}")
    if summary["open_shift_count"]:
        click.echo(f"WARN  {summary['open_shift_count']} shift(s) still open; hours counted up to now")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(recon_group)
    app.cli.add_command(reports_group)
    app.cli.add_command(payroll_group)
