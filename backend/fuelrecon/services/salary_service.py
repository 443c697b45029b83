# Overview: Service-layer operations for employee pay; derives salary from worked shift time.

"""
Salary Calculator

salary = (sum of worked hours over the period's shifts) x hourly_rate

- Period is half-open: shifts whose start_time is in [start, end)
- Every shift started in the period counts, cancelled ones included, up to
  the end_time it was closed or cancelled at. Callers that do not pay for
  cancelled shifts pass exclude_cancelled=True.
- A shift still in progress is measured up to `as_of` (default: now), so
  its pay grows until the shift ends. Payroll exports should only run
  once the period's shifts are closed.
- Flat rate: no overtime, no tiers
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..errors import ValidationError, employee_not_found
from ..extensions import db
from ..models import Employee, Shift
from ..models.shifts import SHIFT_CANCELLED
from ..results import Err
from ..time_utils import as_utc_naive, utcnow
from ..validation import to_money
from .store import get_by_id, returns_result


SECONDS_PER_HOUR = Decimal(3600)
HOURS_PLACES = Decimal("0.0001")


def worked_seconds(shift: Shift, as_of: datetime) -> int:
    end = shift.end_time or as_of
    seconds = int((as_utc_naive(end) - as_utc_naive(shift.start_time)).total_seconds())
    return max(seconds, 0)


@returns_result("calculate_employee_salary")
def calculate_employee_salary(
    employee_id: int,
    start: datetime,
    end: datetime,
    *,
    as_of: datetime | None = None,
    exclude_cancelled: bool = False,
):
    """
    Pay owed to an employee for the shifts started in [start, end).

    Returns:
        Ok({
            "employee_id", "period_start", "period_end",
            "hourly_rate", "total_hours", "salary",
            "shift_count", "open_shift_count",
        }) or Err(EmployeeNotFound / ValidationError / DependencyError)
    """
    if start is None or end is None:
        return Err(ValidationError("start and end are required"))
    if not all(isinstance(value, datetime) for value in (start, end, as_of or end)):
        return Err(ValidationError("start, end and as_of must be datetimes"))

    start = as_utc_naive(start)
    end = as_utc_naive(end)
    if start >= end:
        return Err(ValidationError("start must be before end"))

    employee = get_by_id(Employee, employee_id)
    if not employee or employee.hourly_rate is None:
        return Err(employee_not_found(employee_id))

    as_of = as_utc_naive(as_of) if as_of else utcnow()
    hourly_rate = Decimal(str(employee.hourly_rate))

    query = db.session.query(Shift).filter(
        Shift.employee_id == employee_id,
        Shift.start_time >= start,
        Shift.start_time < end,
    )
    if exclude_cancelled:
        query = query.filter(Shift.status != SHIFT_CANCELLED)
    shifts = query.order_by(Shift.start_time.asc()).all()

    total_seconds = sum(worked_seconds(shift, as_of) for shift in shifts)
    total_hours = Decimal(total_seconds) / SECONDS_PER_HOUR

    return {
        "employee_id": employee.id,
        "period_start": start,
        "period_end": end,
        "hourly_rate": to_money(hourly_rate),
        "total_hours": total_hours.quantize(HOURS_PLACES),
        "salary": to_money(total_hours * hourly_rate),
        "shift_count": len(shifts),
        "open_shift_count": sum(1 for shift in shifts if shift.end_time is None),
    }
