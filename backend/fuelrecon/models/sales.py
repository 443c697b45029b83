from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z
from ..validation import format_money, require_non_blank, require_non_negative_amount


class Transaction(db.Model):
    """
    Posted sale at a station, attributed to the shift it happened in.

    IMMUTABLE: never updated after insert. Source of "actual" sales for
    reconciliation and of sales_amount for financial reports.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_station_created", "station_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, index=True)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)  # cash, card, mobile, credit, ...

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    station = db.relationship("Station", backref=db.backref("transactions", lazy=True))
    shift = db.relationship("Shift", backref=db.backref("transactions", lazy=True))

    @validates("total_amount")
    def _validate_total(self, key, value):
        return require_non_negative_amount(value, key)

    @validates("payment_method")
    def _validate_payment_method(self, key, value):
        return require_non_blank(value, key).lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "shift_id": self.shift_id,
            "total_amount": format_money(self.total_amount),
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
        }


class Expense(db.Model):
    """
    Station expense (wages paid out, utilities, maintenance, ...).

    IMMUTABLE: never updated after insert. `date` is the business date the
    expense belongs to.
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_station_date", "station_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    date = db.Column(db.Date, nullable=False)
    expense_type = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    station = db.relationship("Station", backref=db.backref("expenses", lazy=True))

    @validates("amount")
    def _validate_amount(self, key, value):
        return require_non_negative_amount(value, key)

    @validates("expense_type")
    def _validate_expense_type(self, key, value):
        return require_non_blank(value, key)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "amount": format_money(self.amount),
            "date": to_iso_date(self.date),
            "expense_type": self.expense_type,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
