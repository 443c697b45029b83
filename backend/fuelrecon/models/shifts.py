from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import validates

from ..errors import ValidationError, invalid_meter_delta
from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import (
    format_money,
    format_reading,
    require_non_blank,
    require_non_negative_amount,
    to_decimal,
    to_reading,
)


SHIFT_ACTIVE = "active"
SHIFT_COMPLETED = "completed"
SHIFT_CANCELLED = "cancelled"
SHIFT_STATUSES = (SHIFT_ACTIVE, SHIFT_COMPLETED, SHIFT_CANCELLED)


class Shift(db.Model):
    """
    Canonical record of a work shift.

    WHY: The shift is the unit of accountability. Meter readings, sales
    transactions and worked hours all hang off it.

    LIFECYCLE:
    - active: started, end_time is NULL
    - completed: ended, end_time set (closing readings may still be missing)
    - cancelled: abandoned; never reconciled, end_time is the cancellation time

    Shifts are never deleted (archival only).
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_employee_status", "employee_id", "status"),
        db.Index("ix_shifts_station_start", "station_id", "start_time"),
        # One active shift per employee
        db.Index(
            "uq_shifts_employee_active",
            "employee_id",
            unique=True,
            postgresql_where=db.text("status = 'active'"),
            sqlite_where=db.text("status = 'active'"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    # Dispensers assigned to this shift (list of dispenser ids)
    dispenser_ids = db.Column(db.JSON, nullable=False, default=list)

    starting_cash = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    ending_cash = db.Column(db.Numeric(12, 2), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=SHIFT_ACTIVE, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    station = db.relationship("Station", backref=db.backref("shifts", lazy=True))
    employee = db.relationship("Employee", backref=db.backref("shifts", lazy=True))
    readings = db.relationship(
        "MeterReading",
        backref=db.backref("shift", lazy=True),
        lazy=True,
        order_by="MeterReading.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @validates("status")
    def _validate_status(self, key, value):
        if value not in SHIFT_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(SHIFT_STATUSES)}")
        return value

    @validates("starting_cash", "ending_cash")
    def _validate_cash(self, key, value):
        if value is None and key == "ending_cash":
            return None
        return require_non_negative_amount(value, key)

    @property
    def is_active(self) -> bool:
        return self.status == SHIFT_ACTIVE

    def open_readings(self) -> list["MeterReading"]:
        return [r for r in self.readings if r.end_reading is None]

    @property
    def is_closed(self) -> bool:
        """Ended, and every meter reading carries its closing value."""
        if self.status != SHIFT_COMPLETED or self.end_time is None:
            return False
        return not self.open_readings()

    def to_dict(self, *, include_readings: bool = True) -> dict:
        data = {
            "id": self.id,
            "station_id": self.station_id,
            "employee_id": self.employee_id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time) if self.end_time else None,
            "dispenser_ids": list(self.dispenser_ids or []),
            "starting_cash": format_money(self.starting_cash),
            "ending_cash": format_money(self.ending_cash),
            "status": self.status,
            "is_closed": self.is_closed,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_readings:
            data["meter_readings"] = [r.to_dict() for r in self.readings]
        return data


class MeterReading(db.Model):
    """
    Cumulative volume counter of one dispenser/fuel-type pair, captured at
    shift start and shift end.

    INVARIANT: end_reading >= start_reading once set. Enforced whenever
    either value is assigned, so a negative volume can never be built
    through the ORM. Rows written around the ORM are still re-checked by
    reconciliation.
    """
    __tablename__ = "meter_readings"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "dispenser_id", "fuel_type", name="uq_meter_readings_shift_dispenser_fuel"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, index=True)
    dispenser_id = db.Column(db.Integer, nullable=False, index=True)
    fuel_type = db.Column(db.String(32), nullable=False)

    start_reading = db.Column(db.Numeric(14, 3), nullable=False)
    end_reading = db.Column(db.Numeric(14, 3), nullable=True)  # Set at shift close

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @validates("fuel_type")
    def _normalize_fuel_type(self, key, value):
        return require_non_blank(value, key).lower()

    @validates("start_reading", "end_reading")
    def _validate_reading(self, key, value):
        if value is None:
            if key == "start_reading":
                raise ValidationError("start_reading is required")
            return None

        reading = to_reading(to_decimal(value, key))
        if reading < 0:
            raise ValidationError(f"{key} cannot be negative")

        start = reading if key == "start_reading" else self.start_reading
        end = reading if key == "end_reading" else self.end_reading
        if start is not None and end is not None and end < start:
            raise invalid_meter_delta(self.id, start, end)
        return reading

    @property
    def volume(self) -> Decimal | None:
        """Units dispensed during the shift, or None while the reading is open."""
        if self.end_reading is None:
            return None
        return to_reading(self.end_reading) - to_reading(self.start_reading)

    def to_dict(self) -> dict:
        volume = self.volume
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "dispenser_id": self.dispenser_id,
            "fuel_type": self.fuel_type,
            "start_reading": format_reading(self.start_reading),
            "end_reading": format_reading(self.end_reading),
            "volume": format_reading(volume) if volume is not None else None,
        }
