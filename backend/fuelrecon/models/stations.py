from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import format_money, require_non_blank


class Station(db.Model):
    """
    Fuel station.

    Maintained by the station management screens; this core only reads it
    to scope shifts, transactions, expenses, prices and reports.
    """
    __tablename__ = "stations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Station id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Employee(db.Model):
    """
    Employee profile.

    READ-ONLY here: hourly_rate feeds the salary calculator. A profile
    without an hourly_rate cannot be paid and is reported as not found.
    """
    __tablename__ = "employees"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=True, index=True)
    full_name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="attendant")

    hourly_rate = db.Column(db.Numeric(10, 2), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    station = db.relationship("Station", backref=db.backref("employees", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "full_name": self.full_name,
            "role": self.role,
            "hourly_rate": format_money(self.hourly_rate),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class FuelPrice(db.Model):
    """
    Current posted price per unit (litre) of a fuel type at a station.

    No historical versioning: reconciliation uses the price current at
    query time.
    """
    __tablename__ = "fuel_prices"
    __table_args__ = (
        db.UniqueConstraint("station_id", "fuel_type", name="uq_fuel_prices_station_fuel"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    fuel_type = db.Column(db.String(32), nullable=False)
    price_per_unit = db.Column(db.Numeric(10, 3), nullable=False)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    station = db.relationship("Station", backref=db.backref("fuel_prices", lazy=True))

    @validates("fuel_type")
    def _normalize_fuel_type(self, key, value):
        return require_non_blank(value, key).lower()

    def to_dict(self) -> dict:
        return {
            "station_id": self.station_id,
            "fuel_type": self.fuel_type,
            "price_per_unit": f"{self.price_per_unit:.3f}" if self.price_per_unit is not None else None,
            "updated_at": to_utc_z(self.updated_at),
        }
