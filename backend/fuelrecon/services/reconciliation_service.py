# Overview: Service-layer operations for sales reconciliation; encapsulates business logic and database work.

"""
Reconciliation Calculator

WHY: A closed shift's meter movement times the posted fuel price is what
the shift should have sold. Posted transactions are what it did sell. The
signed difference is recorded as a SalesMismatch for investigation.

RULES:
- Only closed shifts are reconciled (ended, every reading closed)
- A negative meter delta is a data-integrity failure, never clamped to 0
- A missing fuel price excludes that reading and is returned as a
  PriceUnavailable warning; partial reconciliation beats blocking
- At most one mismatch per shift. A second request fails with
  MismatchAlreadyExists; the unique index on shift_id settles races
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..errors import (
    ConcurrencyError,
    StateError,
    invalid_meter_delta,
    mismatch_not_found,
    shift_not_closed,
    shift_not_found,
    station_not_found,
)
from ..extensions import db
from ..models import FuelPrice, SalesMismatch, Shift, Station, Transaction
from ..models.shifts import SHIFT_CANCELLED
from ..results import Err, Ok, ServiceWarning
from ..validation import to_decimal, to_money, to_reading
from .activity_service import log_activity
from .concurrency import insert_unique
from .store import get_by_id, returns_result


@dataclass
class ExpectedSales:
    total: Decimal = Decimal("0")
    warnings: list[ServiceWarning] = field(default_factory=list)


def get_mismatch_tolerance() -> Decimal:
    return to_money(to_decimal(current_app.config.get("MISMATCH_TOLERANCE", "1.00"), "MISMATCH_TOLERANCE"))


def _price_lookup(station_id: int) -> dict[str, Decimal]:
    rows = db.session.query(FuelPrice.fuel_type, FuelPrice.price_per_unit).filter(
        FuelPrice.station_id == station_id,
    ).all()
    return {fuel_type: Decimal(str(price)) for fuel_type, price in rows}


def compute_expected_sales(shift: Shift) -> ExpectedSales | Err:
    """
    Sum volume x price over the shift's closed readings.

    Returns Err(InvalidMeterDelta) on the first reading whose end value is
    below its start value.
    """
    prices = _price_lookup(shift.station_id)
    expected = ExpectedSales()

    for reading in shift.readings:
        start = to_reading(reading.start_reading)
        end = to_reading(reading.end_reading)
        volume = end - start
        if volume < 0:
            return Err(invalid_meter_delta(reading.id, start, end))

        price = prices.get(reading.fuel_type)
        if price is None:
            expected.warnings.append(ServiceWarning(
                code="PriceUnavailable",
                message=f"No price for {reading.fuel_type} at station {shift.station_id}; reading excluded",
                detail={
                    "reading_id": reading.id,
                    "dispenser_id": reading.dispenser_id,
                    "fuel_type": reading.fuel_type,
                    "volume": f"{volume:.3f}",
                },
            ))
            continue

        expected.total += volume * price

    return expected


def compute_actual_sales(shift_id: int) -> Decimal:
    total = db.session.query(
        func.coalesce(func.sum(Transaction.total_amount), 0)
    ).filter(Transaction.shift_id == shift_id).scalar()
    return to_money(total)


def _existing_mismatch(shift_id: int) -> SalesMismatch | None:
    return db.session.query(SalesMismatch).filter_by(shift_id=shift_id).first()


def _already_exists(mismatch_id: int | None, shift_id: int, *, race: bool):
    detail = {"shift_id": shift_id, "mismatch_id": mismatch_id}
    if race:
        return ConcurrencyError(
            "Sales mismatch already exists for this shift",
            code="MismatchAlreadyExists",
            detail=detail,
        )
    return StateError(
        "Sales mismatch already exists for this shift",
        code="MismatchAlreadyExists",
        detail=detail,
    )


@returns_result("calculate_sales_mismatch")
def calculate_sales_mismatch(shift_id: int):
    """
    Reconcile a closed shift and record its SalesMismatch.

    Returns:
        Ok(SalesMismatch, warnings=(PriceUnavailable, ...)) or
        Err(ShiftNotFound / ShiftNotClosed / ShiftCancelled /
            InvalidMeterDelta / MismatchAlreadyExists / DependencyError)
    """
    shift = get_by_id(Shift, shift_id)
    if not shift:
        return Err(shift_not_found(shift_id))

    if shift.status == SHIFT_CANCELLED:
        return Err(StateError("Shift is cancelled", code="ShiftCancelled", detail={"shift_id": shift_id}))

    if not shift.is_closed:
        return Err(shift_not_closed(shift_id, [r.id for r in shift.open_readings()]))

    existing = _existing_mismatch(shift_id)
    if existing:
        return Err(_already_exists(existing.id, shift_id, race=False))

    expected = compute_expected_sales(shift)
    if isinstance(expected, Err):
        return expected

    actual_amount = compute_actual_sales(shift_id)

    mismatch = SalesMismatch.build(
        shift_id=shift_id,
        expected_amount=expected.total,
        actual_amount=actual_amount,
    )
    if not insert_unique(mismatch):
        db.session.rollback()
        winner = _existing_mismatch(shift_id)
        return Err(_already_exists(winner.id if winner else None, shift_id, race=True))

    db.session.commit()

    tolerance = get_mismatch_tolerance()
    current_app.logger.info(
        "Reconciled shift %s: expected=%s actual=%s mismatch=%s",
        shift_id,
        mismatch.expected_amount,
        mismatch.actual_amount,
        mismatch.mismatch_amount,
    )

    log_activity(
        action="detect",
        entity_type="sales_mismatch",
        entity_id=mismatch.id,
        station_id=shift.station_id,
        details={
            "shift_id": shift_id,
            "expected": mismatch.expected_amount,
            "actual": mismatch.actual_amount,
            "mismatch": mismatch.mismatch_amount,
            "significant": mismatch.is_significant(tolerance),
            "excluded_readings": [w.detail.get("reading_id") for w in expected.warnings],
        },
    )

    return Ok(mismatch, warnings=tuple(expected.warnings))


# =============================================================================
# QUERIES
# =============================================================================

@returns_result("get_sales_mismatches")
def get_sales_mismatches(station_id: int, resolved: bool | None = None):
    """Mismatches for a station's shifts, newest first, optionally by resolution state."""
    station = get_by_id(Station, station_id)
    if not station:
        return Err(station_not_found(station_id))

    query = db.session.query(SalesMismatch).join(Shift, SalesMismatch.shift_id == Shift.id).filter(
        Shift.station_id == station_id,
    )
    if resolved is not None:
        query = query.filter(SalesMismatch.is_resolved.is_(resolved))
    return query.order_by(SalesMismatch.created_at.desc(), SalesMismatch.id.desc()).all()


@returns_result("get_sales_mismatch")
def get_sales_mismatch(mismatch_id: int):
    mismatch = get_by_id(SalesMismatch, mismatch_id)
    if not mismatch:
        return Err(mismatch_not_found(mismatch_id))
    return mismatch
