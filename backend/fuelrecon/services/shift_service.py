"""
Shift Ledger and Meter Reading Store

WHY: Every reconciliation and every salary figure is derived from shifts
and the dispenser meter readings captured at their start and end.

DESIGN PRINCIPLES:
- One active shift per employee at a time (partial unique index)
- Shift start (shift + opening readings) is one unit of work
- Shift end (shift + closing readings) is one unit of work
- Closing readings never go below opening readings
- Shifts are never deleted; cancelled shifts are kept for audit
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app

from ..errors import (
    ConcurrencyError,
    NotFoundError,
    StateError,
    ValidationError,
    invalid_meter_delta,
    shift_not_found,
    station_not_found,
)
from ..extensions import db
from ..models import Employee, MeterReading, Shift, Station
from ..models.shifts import SHIFT_ACTIVE, SHIFT_CANCELLED, SHIFT_COMPLETED
from ..results import Err
from ..time_utils import utcnow
from ..validation import to_decimal, to_reading
from .activity_service import log_activity
from .concurrency import insert_unique, lock_for_update
from .store import get_by_id, returns_result


def _get_active_shift_for_employee(employee_id: int) -> Shift | None:
    return db.session.query(Shift).filter_by(employee_id=employee_id, status=SHIFT_ACTIVE).first()


def _require_reading_objects(meter_readings) -> list[dict]:
    if meter_readings is None:
        return []
    if not isinstance(meter_readings, (list, tuple)) or any(not isinstance(e, dict) for e in meter_readings):
        raise ValidationError("Each meter reading must be an object")
    return list(meter_readings)


def _normalize_dispenser_ids(dispenser_ids: Iterable | None) -> list[int]:
    if not dispenser_ids:
        raise ValidationError("At least one dispenser is required")
    normalized = []
    for raw in dispenser_ids:
        try:
            dispenser_id = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid dispenser id: {raw!r}")
        if dispenser_id not in normalized:
            normalized.append(dispenser_id)
    return normalized


# =============================================================================
# SHIFT LIFECYCLE
# =============================================================================

@returns_result("start_shift")
def start_shift(
    *,
    station_id: int,
    employee_id: int,
    dispenser_ids: Iterable,
    starting_cash,
    meter_readings: list[dict] | None = None,
    notes: str | None = None,
):
    """
    Start a shift with its opening meter readings.

    Args:
        station_id: Station the shift runs at
        employee_id: Attendant working the shift
        dispenser_ids: Dispensers assigned to the shift
        starting_cash: Cash in the till at start
        meter_readings: [{"dispenser_id", "fuel_type", "reading"}, ...]
        notes: Optional notes

    Returns:
        Ok(Shift) or Err(ValidationError / NotFoundError / StateError)
    """
    station = get_by_id(Station, station_id)
    if not station:
        return Err(station_not_found(station_id))

    employee = get_by_id(Employee, employee_id)
    if not employee:
        return Err(NotFoundError("Employee not found", code="EmployeeNotFound", detail={"employee_id": employee_id}))

    dispensers = _normalize_dispenser_ids(dispenser_ids)
    entries = _require_reading_objects(meter_readings)

    existing = _get_active_shift_for_employee(employee_id)
    if existing:
        return Err(StateError(
            f"Employee already has an active shift (shift {existing.id})",
            code="EmployeeHasActiveShift",
            detail={"shift_id": existing.id},
        ))

    shift = Shift(
        station_id=station_id,
        employee_id=employee_id,
        start_time=utcnow(),
        dispenser_ids=dispensers,
        starting_cash=starting_cash,
        status=SHIFT_ACTIVE,
        notes=notes,
    )
    if not insert_unique(shift):
        # Lost a concurrent start to the active-shift unique index
        return Err(ConcurrencyError(
            "Employee already has an active shift",
            code="EmployeeHasActiveShift",
            detail={"employee_id": employee_id},
        ))

    seen = set()
    for entry in entries:
        dispenser_id = entry.get("dispenser_id")
        try:
            dispenser_id = int(dispenser_id)
        except (TypeError, ValueError):
            return Err(ValidationError(f"Invalid dispenser id: {dispenser_id!r}"))
        if dispenser_id not in dispensers:
            return Err(ValidationError(
                f"Dispenser {dispenser_id} is not assigned to this shift",
                detail={"dispenser_id": dispenser_id},
            ))

        reading = MeterReading(
            shift_id=shift.id,
            dispenser_id=dispenser_id,
            fuel_type=entry.get("fuel_type"),
            start_reading=entry.get("reading"),
        )
        key = (reading.dispenser_id, reading.fuel_type)
        if key in seen:
            return Err(ValidationError(
                f"Duplicate reading for dispenser {dispenser_id} ({reading.fuel_type})",
            ))
        seen.add(key)
        db.session.add(reading)

    db.session.commit()

    log_activity(
        action="start",
        entity_type="shift",
        entity_id=shift.id,
        actor_id=employee_id,
        station_id=station_id,
        details={"dispenser_ids": dispensers, "starting_cash": shift.starting_cash},
    )
    return shift


def _apply_end_reading(reading: MeterReading, value) -> Err | None:
    end_value = to_reading(to_decimal(value, "reading"))
    if end_value < to_reading(reading.start_reading):
        return Err(invalid_meter_delta(reading.id, reading.start_reading, end_value))
    reading.end_reading = end_value
    return None


def _reconcile_if_closed(shift: Shift):
    """Shift-closing trigger: reconcile once every reading is in."""
    if not current_app.config.get("AUTO_RECONCILE_ON_SHIFT_END") or not shift.is_closed:
        return None
    from .reconciliation_service import calculate_sales_mismatch
    return calculate_sales_mismatch(shift.id)


@returns_result("end_shift")
def end_shift(
    *,
    shift_id: int,
    ending_cash,
    meter_readings: list[dict] | None = None,
    notes: str | None = None,
):
    """
    End an active shift and record its closing meter readings.

    Readings not supplied stay open; record_end_reading() fills them later.
    Nothing is written if any supplied reading is below its start value.

    When AUTO_RECONCILE_ON_SHIFT_END is enabled and every reading is
    closed, reconciliation runs once after the close commits.

    Returns:
        Ok({"shift": Shift, "reconciliation": Result | None})
    """
    if ending_cash is None:
        return Err(ValidationError("ending_cash is required"))

    shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id)).first()
    if not shift:
        return Err(shift_not_found(shift_id))

    if shift.status != SHIFT_ACTIVE:
        return Err(StateError(
            f"Shift is {shift.status}, only active shifts can be ended",
            code="ShiftNotActive",
            detail={"shift_id": shift_id, "status": shift.status},
        ))

    entries = _require_reading_objects(meter_readings)
    readings_by_id = {r.id: r for r in shift.readings}
    for entry in entries:
        try:
            reading = readings_by_id.get(int(entry.get("id")))
        except (TypeError, ValueError):
            reading = None
        if reading is None:
            return Err(ValidationError(
                f"Meter reading {entry.get('id')} does not belong to shift {shift_id}",
                detail={"reading_id": entry.get("id")},
            ))
        failure = _apply_end_reading(reading, entry.get("reading"))
        if failure:
            return failure

    shift.end_time = utcnow()
    shift.ending_cash = ending_cash
    shift.status = SHIFT_COMPLETED
    if notes:
        shift.notes = notes

    db.session.commit()

    log_activity(
        action="end",
        entity_type="shift",
        entity_id=shift.id,
        actor_id=shift.employee_id,
        station_id=shift.station_id,
        details={"ending_cash": shift.ending_cash, "open_readings": len(shift.open_readings())},
    )

    return {"shift": shift, "reconciliation": _reconcile_if_closed(shift)}


@returns_result("record_end_reading")
def record_end_reading(*, reading_id: int, reading):
    """
    Fill in a closing value that was missing when the shift ended.

    Returns:
        Ok({"reading": MeterReading, "reconciliation": Result | None})
    """
    meter_reading = get_by_id(MeterReading, reading_id)
    if not meter_reading:
        return Err(NotFoundError("Meter reading not found", detail={"reading_id": reading_id}))

    shift = meter_reading.shift
    if shift.status == SHIFT_CANCELLED:
        return Err(StateError("Shift is cancelled", code="ShiftCancelled", detail={"shift_id": shift.id}))
    if shift.status != SHIFT_COMPLETED:
        return Err(StateError(
            "Closing readings are recorded when the shift ends",
            code="ShiftNotCompleted",
            detail={"shift_id": shift.id},
        ))
    if meter_reading.end_reading is not None:
        return Err(StateError(
            "Closing reading already recorded",
            code="ReadingAlreadyClosed",
            detail={"reading_id": reading_id},
        ))
    if shift.sales_mismatch is not None:
        return Err(StateError("Shift already reconciled", code="MismatchAlreadyExists", detail={"shift_id": shift.id}))

    failure = _apply_end_reading(meter_reading, reading)
    if failure:
        return failure

    db.session.commit()
    return {"reading": meter_reading, "reconciliation": _reconcile_if_closed(shift)}


@returns_result("cancel_shift")
def cancel_shift(*, shift_id: int, reason: str | None = None):
    shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id)).first()
    if not shift:
        return Err(shift_not_found(shift_id))
    if shift.status != SHIFT_ACTIVE:
        return Err(StateError(
            f"Shift is {shift.status}, only active shifts can be cancelled",
            code="ShiftNotActive",
            detail={"shift_id": shift_id, "status": shift.status},
        ))

    shift.status = SHIFT_CANCELLED
    shift.end_time = utcnow()
    if reason:
        shift.notes = reason
    db.session.commit()

    log_activity(
        action="cancel",
        entity_type="shift",
        entity_id=shift.id,
        station_id=shift.station_id,
        details={"reason": reason},
    )
    return shift


# =============================================================================
# QUERIES
# =============================================================================

@returns_result("get_shift")
def get_shift(shift_id: int):
    shift = get_by_id(Shift, shift_id)
    if not shift:
        return Err(shift_not_found(shift_id))
    return shift


@returns_result("list_shifts")
def list_shifts(
    *,
    station_id: int,
    status: str | None = None,
    employee_id: int | None = None,
    limit: int = 500,
) -> list[Shift]:
    query = db.session.query(Shift).filter(Shift.station_id == station_id)
    if status:
        query = query.filter(Shift.status == status)
    if employee_id:
        query = query.filter(Shift.employee_id == employee_id)
    return query.order_by(Shift.start_time.desc()).limit(limit).all()
