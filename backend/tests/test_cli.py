from datetime import date, datetime
from decimal import Decimal

from fuelrecon.models import Expense, FinancialReport, SalesMismatch
from fuelrecon.models.shifts import SHIFT_CANCELLED


class TestReconCommands:
    def test_reconcile_shift(self, app, db_session, reconcilable_shift):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["recon", "shift", str(reconcilable_shift.id)])

        assert result.exit_code == 0
        assert "mismatch: -4.00" in result.output
        assert db_session.query(SalesMismatch).count() == 1

    def test_reconcile_failure_exits_non_zero(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["recon", "shift", "999"])

        assert result.exit_code == 1
        assert "FAIL [ShiftNotFound]" in result.output

    def test_list(self, app, db_session, station, reconcilable_shift):
        runner = app.test_cli_runner()
        runner.invoke(args=["recon", "shift", str(reconcilable_shift.id)])

        result = runner.invoke(args=["recon", "list", "--station-id", str(station.id), "--unresolved"])

        assert result.exit_code == 0
        assert "Total: 1 mismatch(es)" in result.output


class TestReportAndPayrollCommands:
    def test_generate_report(self, app, db_session, station):
        db_session.add(Expense(station_id=station.id, amount=Decimal("40.00"), date=date(2024, 5, 3), expense_type="fees"))
        db_session.commit()
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "reports", "generate", "--station-id", str(station.id), "--type", "weekly", "--date", "2024-05-01",
        ])

        assert result.exit_code == 0
        assert "profit:   -40.00" in result.output
        assert db_session.query(FinancialReport).count() == 1

    def test_salary(self, app, db_session, employee, make_shift):
        make_shift(hours=8)
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "payroll", "salary", "--employee-id", str(employee.id), "--start", "2024-05-01", "--end", "2024-06-01",
        ])

        assert result.exit_code == 0
        assert "salary: 120.00" in result.output

    def test_salary_can_leave_cancelled_shifts_unpaid(self, app, db_session, employee, make_shift):
        make_shift(hours=8)
        make_shift(start_time=datetime(2024, 5, 2, 6, 0), hours=8, status=SHIFT_CANCELLED)
        runner = app.test_cli_runner()
        args = ["payroll", "salary", "--employee-id", str(employee.id), "--start", "2024-05-01", "--end", "2024-06-01"]

        everything = runner.invoke(args=args)
        worked_only = runner.invoke(args=args + ["--exclude-cancelled"])

        assert "salary: 240.00" in everything.output
        assert "salary: 120.00" in worked_only.output
