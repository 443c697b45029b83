# Overview: Service-layer operations for financial reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import func

from ..errors import ConcurrencyError, ValidationError, station_not_found
from ..extensions import db
from ..models import Expense, FinancialReport, Station, Transaction
from ..models.reports import REPORT_DAILY, REPORT_MONTHLY, REPORT_TYPES, REPORT_WEEKLY, REPORT_YEARLY
from ..results import Err
from ..validation import to_money
from .activity_service import log_activity
from .concurrency import insert_unique, lock_for_update, run_with_retry
from .store import get_by_id, returns_result
"""
Financial Report Invariants

- Windows are half-open [period_start, period_end) derived from report_type:
  daily = the day, weekly = ISO week (Monday start), monthly = calendar
  month, yearly = calendar year.
- sales_amount and expenses_amount are independent sums; profit_amount is
  always their difference, never a third sum.
- One row per (station_id, report_type, report_date). Regenerating
  overwrites it; a concurrent insert that loses the unique-index race
  falls back to updating the winner's row.
"""


def _invalid_report_type(report_type) -> ValidationError:
    return ValidationError(
        f"report_type must be one of {', '.join(REPORT_TYPES)}",
        code="InvalidReportType",
        detail={"report_type": report_type},
    )


def report_window(report_type: str, report_date: date) -> tuple[date, date]:
    """Return the half-open [start, end) date window for a report."""
    if report_type == REPORT_DAILY:
        return report_date, report_date + timedelta(days=1)

    if report_type == REPORT_WEEKLY:
        start = report_date - timedelta(days=report_date.weekday())
        return start, start + timedelta(days=7)

    if report_type == REPORT_MONTHLY:
        start = report_date.replace(day=1)
        if start.month == 12:
            return start, date(start.year + 1, 1, 1)
        return start, date(start.year, start.month + 1, 1)

    if report_type == REPORT_YEARLY:
        start = date(report_date.year, 1, 1)
        return start, date(report_date.year + 1, 1, 1)

    raise _invalid_report_type(report_type)


def _as_datetime(value: date) -> datetime:
    return datetime.combine(value, time.min)


def sum_sales(station_id: int, start: date, end: date) -> tuple[Decimal, int]:
    total, count = db.session.query(
        func.coalesce(func.sum(Transaction.total_amount), 0),
        func.count(Transaction.id),
    ).filter(
        Transaction.station_id == station_id,
        Transaction.created_at >= _as_datetime(start),
        Transaction.created_at < _as_datetime(end),
    ).one()
    return to_money(total), int(count or 0)


def sum_expenses(station_id: int, start: date, end: date) -> tuple[Decimal, int]:
    total, count = db.session.query(
        func.coalesce(func.sum(Expense.amount), 0),
        func.count(Expense.id),
    ).filter(
        Expense.station_id == station_id,
        Expense.date >= start,
        Expense.date < end,
    ).one()
    return to_money(total), int(count or 0)


def _find_report(station_id: int, report_type: str, report_date: date) -> FinancialReport | None:
    return lock_for_update(
        db.session.query(FinancialReport).filter_by(
            station_id=station_id,
            report_type=report_type,
            report_date=report_date,
        )
    ).first()


@returns_result("generate_financial_report")
def generate_financial_report(station_id: int, report_type: str, report_date: date):
    """
    Aggregate a station's sales and expenses for one period and persist it.

    Returns:
        Ok(FinancialReport) or Err(InvalidReportType / StationNotFound /
        ValidationError / DependencyError)
    """
    if report_type not in REPORT_TYPES:
        return Err(_invalid_report_type(report_type))
    if not isinstance(report_date, date) or isinstance(report_date, datetime):
        return Err(ValidationError("report_date must be a calendar date", detail={"report_date": str(report_date)}))

    station = get_by_id(Station, station_id)
    if not station:
        return Err(station_not_found(station_id))

    period_start, period_end = report_window(report_type, report_date)

    def _op():
        sales_amount, transaction_count = sum_sales(station_id, period_start, period_end)
        expenses_amount, expense_count = sum_expenses(station_id, period_start, period_end)

        report = _find_report(station_id, report_type, report_date)
        created = report is None
        if created:
            report = FinancialReport(
                station_id=station_id,
                report_type=report_type,
                report_date=report_date,
                period_start=period_start,
                period_end=period_end,
            )
            report.apply_totals(sales_amount=sales_amount, expenses_amount=expenses_amount)
            report.transaction_count = transaction_count
            report.expense_count = expense_count
            if not insert_unique(report):
                # Lost the race: overwrite the row the other writer inserted
                created = False
                report = _find_report(station_id, report_type, report_date)
                if report is None:
                    raise ConcurrencyError(
                        "Financial report was modified concurrently, retry the operation",
                        code="ReportConflict",
                        detail={"station_id": station_id, "report_type": report_type},
                    )

        if not created:
            report.period_start = period_start
            report.period_end = period_end
            report.apply_totals(sales_amount=sales_amount, expenses_amount=expenses_amount)
            report.transaction_count = transaction_count
            report.expense_count = expense_count

        db.session.commit()
        return report, created

    report, created = run_with_retry(_op)

    log_activity(
        action="generate" if created else "regenerate",
        entity_type="financial_report",
        entity_id=report.id,
        station_id=station_id,
        details={
            "report_type": report_type,
            "report_date": report_date,
            "sales": report.sales_amount,
            "expenses": report.expenses_amount,
            "profit": report.profit_amount,
        },
    )
    return report


@returns_result("get_financial_reports")
def get_financial_reports(
    station_id: int,
    report_type: str | None = None,
    date_range: tuple[date, date] | None = None,
):
    """Persisted reports for a station, newest report_date first. date_range is inclusive."""
    if report_type is not None and report_type not in REPORT_TYPES:
        return Err(_invalid_report_type(report_type))

    station = get_by_id(Station, station_id)
    if not station:
        return Err(station_not_found(station_id))

    query = db.session.query(FinancialReport).filter(FinancialReport.station_id == station_id)
    if report_type:
        query = query.filter(FinancialReport.report_type == report_type)
    if date_range:
        start, end = date_range
        if start:
            query = query.filter(FinancialReport.report_date >= start)
        if end:
            query = query.filter(FinancialReport.report_date <= end)

    return query.order_by(FinancialReport.report_date.desc(), FinancialReport.id.desc()).all()


@returns_result("get_station_comparison")
def get_station_comparison(report_type: str, date_range: tuple[date, date] | None = None):
    """
    Per-station totals across persisted reports of one type.

    Stations without reports in range are listed with zero totals.
    """
    if report_type not in REPORT_TYPES:
        return Err(_invalid_report_type(report_type))

    query = db.session.query(
        FinancialReport.station_id.label("station_id"),
        func.count(FinancialReport.id).label("report_count"),
        func.coalesce(func.sum(FinancialReport.sales_amount), 0).label("sales_amount"),
        func.coalesce(func.sum(FinancialReport.expenses_amount), 0).label("expenses_amount"),
    ).filter(FinancialReport.report_type == report_type)

    if date_range:
        start, end = date_range
        if start:
            query = query.filter(FinancialReport.report_date >= start)
        if end:
            query = query.filter(FinancialReport.report_date <= end)

    totals = {row.station_id: row for row in query.group_by(FinancialReport.station_id).all()}

    rows = []
    for station in db.session.query(Station).order_by(Station.name.asc()).all():
        row = totals.get(station.id)
        sales = to_money(row.sales_amount if row else 0)
        expenses = to_money(row.expenses_amount if row else 0)
        rows.append({
            "station_id": station.id,
            "station_name": station.name,
            "report_count": int(row.report_count) if row else 0,
            "sales_amount": sales,
            "expenses_amount": expenses,
            "profit_amount": sales - expenses,
        })

    return {
        "report_type": report_type,
        "start": date_range[0] if date_range else None,
        "end": date_range[1] if date_range else None,
        "rows": rows,
    }
