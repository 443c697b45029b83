from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import validates

from ..errors import ValidationError
from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z
from ..validation import format_money, to_money


REPORT_DAILY = "daily"
REPORT_WEEKLY = "weekly"
REPORT_MONTHLY = "monthly"
REPORT_YEARLY = "yearly"
REPORT_TYPES = (REPORT_DAILY, REPORT_WEEKLY, REPORT_MONTHLY, REPORT_YEARLY)


class FinancialReport(db.Model):
    """
    Persisted sales/expenses/profit rollup for a station over one period.

    KEY: (station_id, report_type, report_date) is unique. Regenerating a
    report overwrites the row for that key.

    INVARIANT: profit_amount = sales_amount - expenses_amount. The three
    figures are only written together through apply_totals().
    """
    __tablename__ = "financial_reports"
    __table_args__ = (
        db.UniqueConstraint("station_id", "report_type", "report_date", name="uq_financial_reports_key"),
        db.Index("ix_financial_reports_station_date", "station_id", "report_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    report_type = db.Column(db.String(16), nullable=False, index=True)
    report_date = db.Column(db.Date, nullable=False)

    # Derived window, half-open: [period_start, period_end)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)

    sales_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    expenses_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    profit_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    transaction_count = db.Column(db.Integer, nullable=False, default=0)
    expense_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    station = db.relationship("Station", backref=db.backref("financial_reports", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    @validates("report_type")
    def _validate_report_type(self, key, value):
        if value not in REPORT_TYPES:
            raise ValidationError(
                f"report_type must be one of {', '.join(REPORT_TYPES)}",
                code="InvalidReportType",
            )
        return value

    def apply_totals(self, *, sales_amount: Decimal, expenses_amount: Decimal) -> None:
        sales = to_money(sales_amount)
        expenses = to_money(expenses_amount)
        self.sales_amount = sales
        self.expenses_amount = expenses
        self.profit_amount = sales - expenses

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "report_type": self.report_type,
            "report_date": to_iso_date(self.report_date),
            "period_start": to_iso_date(self.period_start),
            "period_end": to_iso_date(self.period_end),
            "sales_amount": format_money(self.sales_amount),
            "expenses_amount": format_money(self.expenses_amount),
            "profit_amount": format_money(self.profit_amount),
            "transaction_count": self.transaction_count,
            "expense_count": self.expense_count,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
