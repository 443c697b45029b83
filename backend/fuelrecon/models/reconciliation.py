from __future__ import annotations

from decimal import Decimal

from ..errors import ValidationError
from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import format_money, to_money


class SalesMismatch(db.Model):
    """
    Signed difference between actual and expected sales for one shift.

    WHY: Meter movement times posted price says what the shift should have
    taken in; posted transactions say what it did. The difference is
    investigated and closed by a manager.

    LIFECYCLE:
    - Unresolved (is_resolved = False): initial
    - Resolved (is_resolved = True): terminal, no reopening

    INVARIANTS:
    - At most one mismatch per shift (unique index on shift_id)
    - mismatch_amount = actual_amount - expected_amount (set only by build())
    - resolution_note and resolved_by are set together
    """
    __tablename__ = "sales_mismatches"
    __table_args__ = (
        db.UniqueConstraint("shift_id", name="uq_sales_mismatches_shift"),
        db.Index("ix_sales_mismatches_resolved_created", "is_resolved", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False)

    expected_amount = db.Column(db.Numeric(12, 2), nullable=False)
    actual_amount = db.Column(db.Numeric(12, 2), nullable=False)
    mismatch_amount = db.Column(db.Numeric(12, 2), nullable=False)  # positive = surplus, negative = deficit

    is_resolved = db.Column(db.Boolean, nullable=False, default=False, index=True)
    resolution_note = db.Column(db.Text, nullable=True)
    resolved_by = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    shift = db.relationship("Shift", backref=db.backref("sales_mismatch", uselist=False, lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    @classmethod
    def build(cls, *, shift_id: int, expected_amount: Decimal, actual_amount: Decimal) -> "SalesMismatch":
        """Create an unresolved mismatch with the derived amount."""
        expected = to_money(expected_amount)
        actual = to_money(actual_amount)
        return cls(
            shift_id=shift_id,
            expected_amount=expected,
            actual_amount=actual,
            mismatch_amount=actual - expected,
            is_resolved=False,
        )

    def mark_resolved(self, *, resolver_id: str, note: str, at) -> None:
        if not resolver_id or not note:
            raise ValidationError("resolved_by and resolution_note are required together")
        self.is_resolved = True
        self.resolution_note = note
        self.resolved_by = resolver_id
        self.updated_at = at

    @property
    def status(self) -> str:
        return "RESOLVED" if self.is_resolved else "UNRESOLVED"

    def is_significant(self, tolerance: Decimal) -> bool:
        return abs(to_money(self.mismatch_amount)) > tolerance

    def to_dict(self, *, tolerance: Decimal | None = None) -> dict:
        data = {
            "id": self.id,
            "shift_id": self.shift_id,
            "expected_amount": format_money(self.expected_amount),
            "actual_amount": format_money(self.actual_amount),
            "mismatch_amount": format_money(self.mismatch_amount),
            "status": self.status,
            "is_resolved": self.is_resolved,
            "resolution_note": self.resolution_note,
            "resolved_by": self.resolved_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if tolerance is not None:
            data["is_significant"] = self.is_significant(tolerance)
        return data
