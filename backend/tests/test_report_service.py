from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from fuelrecon.errors import ValidationError
from fuelrecon.models import ActivityLog, Expense, FinancialReport
from fuelrecon.services import concurrency, report_service
from fuelrecon.services.report_service import (
    generate_financial_report,
    get_financial_reports,
    get_station_comparison,
    report_window,
)


@pytest.fixture
def may_first_activity(db_session, station, make_shift):
    """1200.00 of sales and 300.00 of expenses on 2024-05-01, plus noise either side."""
    make_shift(start_time=datetime(2024, 5, 1, 6, 0), transactions=[Decimal("700.00"), Decimal("500.00")])
    make_shift(start_time=datetime(2024, 5, 2, 6, 0), transactions=[Decimal("999.00")])
    make_shift(start_time=datetime(2024, 4, 30, 6, 0), transactions=[Decimal("1.00")])

    db_session.add_all([
        Expense(station_id=station.id, amount=Decimal("300.00"), date=date(2024, 5, 1), expense_type="utilities"),
        Expense(station_id=station.id, amount=Decimal("50.00"), date=date(2024, 4, 30), expense_type="cleaning"),
    ])
    db_session.commit()


class TestReportWindow:
    def test_daily(self):
        assert report_window("daily", date(2024, 5, 1)) == (date(2024, 5, 1), date(2024, 5, 2))

    def test_weekly_starts_on_monday(self):
        # 2024-05-01 is a Wednesday
        assert report_window("weekly", date(2024, 5, 1)) == (date(2024, 4, 29), date(2024, 5, 6))

    def test_weekly_on_a_sunday(self):
        assert report_window("weekly", date(2024, 5, 5)) == (date(2024, 4, 29), date(2024, 5, 6))

    def test_monthly_rolls_into_next_year(self):
        assert report_window("monthly", date(2024, 12, 31)) == (date(2024, 12, 1), date(2025, 1, 1))

    def test_yearly(self):
        assert report_window("yearly", date(2024, 7, 4)) == (date(2024, 1, 1), date(2025, 1, 1))

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            report_window("fortnightly", date(2024, 5, 1))


class TestGenerateFinancialReport:
    def test_daily_report(self, db_session, station, may_first_activity):
        result = generate_financial_report(station.id, "daily", date(2024, 5, 1))

        assert result.ok
        report = result.value
        assert report.sales_amount == Decimal("1200.00")
        assert report.expenses_amount == Decimal("300.00")
        assert report.profit_amount == Decimal("900.00")
        assert report.transaction_count == 2
        assert report.expense_count == 1
        assert report.period_start == date(2024, 5, 1)
        assert report.period_end == date(2024, 5, 2)

    def test_monthly_report(self, db_session, station, may_first_activity):
        report = generate_financial_report(station.id, "monthly", date(2024, 5, 15)).value

        assert report.sales_amount == Decimal("2199.00")
        assert report.expenses_amount == Decimal("300.00")
        assert report.profit_amount == report.sales_amount - report.expenses_amount

    def test_regeneration_keeps_a_single_row(self, db_session, station, may_first_activity):
        first = generate_financial_report(station.id, "daily", date(2024, 5, 1)).value
        first_id = first.id
        second = generate_financial_report(station.id, "daily", date(2024, 5, 1)).value

        assert second.id == first_id
        assert second.sales_amount == Decimal("1200.00")
        assert second.profit_amount == Decimal("900.00")
        assert db_session.query(FinancialReport).count() == 1

    def test_regeneration_picks_up_new_data(self, db_session, station, may_first_activity):
        generate_financial_report(station.id, "daily", date(2024, 5, 1))
        db_session.add(Expense(station_id=station.id, amount=Decimal("100.00"), date=date(2024, 5, 1), expense_type="repairs"))
        db_session.commit()

        report = generate_financial_report(station.id, "daily", date(2024, 5, 1)).value

        assert report.expenses_amount == Decimal("400.00")
        assert report.profit_amount == Decimal("800.00")
        assert db_session.query(FinancialReport).count() == 1

    def test_empty_period_is_all_zero(self, db_session, station):
        report = generate_financial_report(station.id, "yearly", date(2019, 1, 1)).value

        assert report.sales_amount == Decimal("0.00")
        assert report.expenses_amount == Decimal("0.00")
        assert report.profit_amount == Decimal("0.00")

    def test_invalid_report_type(self, db_session, station):
        result = generate_financial_report(station.id, "hourly", date(2024, 5, 1))

        assert result.code == "InvalidReportType"
        assert result.kind == "validation"
        assert db_session.query(FinancialReport).count() == 0

    def test_unknown_station(self, db_session):
        result = generate_financial_report(5555, "daily", date(2024, 5, 1))

        assert result.code == "StationNotFound"


class TestConcurrentReportGeneration:
    """Two writers generating the same (station, type, date) converge on one row."""

    def test_lost_insert_race_updates_the_winning_row(self, db_session, station, may_first_activity, monkeypatch):
        winner = generate_financial_report(station.id, "daily", date(2024, 5, 1)).value
        winner_id = winner.id
        db_session.add(Expense(station_id=station.id, amount=Decimal("100.00"), date=date(2024, 5, 1), expense_type="repairs"))
        db_session.commit()

        # The first lookup misses the row the other writer just inserted
        real_find = report_service._find_report
        calls = []

        def _find_after_race(*args):
            calls.append(args)
            return None if len(calls) == 1 else real_find(*args)

        monkeypatch.setattr(report_service, "_find_report", _find_after_race)
        result = generate_financial_report(station.id, "daily", date(2024, 5, 1))

        assert result.ok
        assert len(calls) == 2
        assert result.value.id == winner_id
        db_session.expire_all()
        report = db_session.query(FinancialReport).one()
        assert report.expenses_amount == Decimal("400.00")
        assert report.profit_amount == Decimal("800.00")
        assert db_session.query(ActivityLog).filter_by(action="regenerate").count() == 1

    def test_vanished_winner_reports_conflict(self, db_session, station, may_first_activity, monkeypatch):
        generate_financial_report(station.id, "daily", date(2024, 5, 1))

        monkeypatch.setattr(report_service, "_find_report", lambda *args: None)
        result = generate_financial_report(station.id, "daily", date(2024, 5, 1))

        assert result.kind == "concurrency"
        assert result.code == "ReportConflict"
        assert db_session.query(FinancialReport).count() == 1

    def test_stale_commit_is_retried(self, db_session, station, may_first_activity, monkeypatch):
        session = db_session()
        real_commit = session.commit
        attempts = []

        def _stale_once():
            attempts.append(1)
            if len(attempts) == 1:
                raise StaleDataError("financial_reports row changed underneath us")
            return real_commit()

        monkeypatch.setattr(session, "commit", _stale_once)
        result = generate_financial_report(station.id, "daily", date(2024, 5, 1))

        assert result.ok
        # Failed attempt, retried report write, activity log entry
        assert len(attempts) == 3
        report = db_session.query(FinancialReport).one()
        assert report.sales_amount == Decimal("1200.00")
        assert report.profit_amount == Decimal("900.00")

    def test_persistent_lock_timeout_is_dependency_error(self, db_session, station, may_first_activity, monkeypatch):
        def _locked(*args):
            raise OperationalError("SELECT ... FOR UPDATE", {}, Exception("database is locked"))

        monkeypatch.setattr(report_service, "_find_report", _locked)
        monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)
        result = generate_financial_report(station.id, "daily", date(2024, 5, 1))

        assert result.kind == "dependency"
        assert db_session.query(FinancialReport).count() == 0


class TestFinancialReportQueries:
    def test_newest_first_and_filtered_by_type(self, db_session, station, may_first_activity):
        generate_financial_report(station.id, "daily", date(2024, 4, 30))
        generate_financial_report(station.id, "daily", date(2024, 5, 1))
        generate_financial_report(station.id, "monthly", date(2024, 5, 1))

        daily = get_financial_reports(station.id, report_type="daily").value
        everything = get_financial_reports(station.id).value
        ranged = get_financial_reports(station.id, date_range=(date(2024, 5, 1), date(2024, 5, 31))).value

        assert [r.report_date for r in daily] == [date(2024, 5, 1), date(2024, 4, 30)]
        assert len(everything) == 3
        assert {r.report_type for r in ranged} == {"daily", "monthly"}
        assert all(r.report_date >= date(2024, 5, 1) for r in ranged)

    def test_station_comparison(self, db_session, station, other_station, may_first_activity):
        generate_financial_report(station.id, "daily", date(2024, 4, 30))
        generate_financial_report(station.id, "daily", date(2024, 5, 1))

        comparison = get_station_comparison("daily").value
        rows = {row["station_id"]: row for row in comparison["rows"]}

        assert rows[station.id]["report_count"] == 2
        assert rows[station.id]["sales_amount"] == Decimal("1201.00")
        assert rows[station.id]["expenses_amount"] == Decimal("350.00")
        assert rows[station.id]["profit_amount"] == Decimal("851.00")
        assert rows[other_station.id]["report_count"] == 0
        assert rows[other_station.id]["sales_amount"] == Decimal("0.00")

    def test_station_comparison_rejects_unknown_type(self, db_session):
        assert get_station_comparison("hourly").code == "InvalidReportType"
