# Overview: Service-layer operations for posting sales and expenses; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date, datetime

from ..errors import StateError, ValidationError, shift_not_found, station_not_found
from ..extensions import db
from ..models import Expense, Shift, Station, Transaction
from ..results import Err
from .activity_service import log_activity
from .store import get_by_id, returns_result
"""
Posting Invariants

- Transactions and expenses are immutable once written.
- A transaction belongs to an active shift of the station it is posted at.
- Each post is one commit; the activity entry follows it.
"""


@returns_result("record_transaction")
def record_transaction(
    *,
    station_id: int,
    shift_id: int,
    total_amount,
    payment_method: str,
    created_at: datetime | None = None,
):
    station = get_by_id(Station, station_id)
    if not station:
        return Err(station_not_found(station_id))

    shift = get_by_id(Shift, shift_id)
    if not shift:
        return Err(shift_not_found(shift_id))

    if shift.station_id != station_id:
        return Err(ValidationError(
            "Shift does not belong to this station",
            detail={"shift_id": shift_id, "station_id": station_id},
        ))
    if not shift.is_active:
        return Err(StateError(
            f"Shift is {shift.status}, sales can only be posted to an active shift",
            code="ShiftNotActive",
            detail={"shift_id": shift_id, "status": shift.status},
        ))

    transaction = Transaction(
        station_id=station_id,
        shift_id=shift_id,
        total_amount=total_amount,
        payment_method=payment_method,
    )
    if created_at is not None:
        transaction.created_at = created_at
    db.session.add(transaction)
    db.session.commit()

    log_activity(
        action="create",
        entity_type="transaction",
        entity_id=transaction.id,
        actor_id=shift.employee_id,
        station_id=station_id,
        details={"shift_id": shift_id, "total_amount": transaction.total_amount},
    )
    return transaction


@returns_result("record_expense")
def record_expense(
    *,
    station_id: int,
    amount,
    date: date,
    expense_type: str,
    description: str | None = None,
    actor_id=None,
):
    station = get_by_id(Station, station_id)
    if not station:
        return Err(station_not_found(station_id))

    if date is None:
        return Err(ValidationError("date is required"))

    expense = Expense(
        station_id=station_id,
        amount=amount,
        date=date,
        expense_type=expense_type,
        description=description,
    )
    db.session.add(expense)
    db.session.commit()

    log_activity(
        action="create",
        entity_type="expense",
        entity_id=expense.id,
        actor_id=actor_id,
        station_id=station_id,
        details={"expense_type": expense.expense_type, "amount": expense.amount, "date": expense.date},
    )
    return expense


@returns_result("list_expenses")
def list_expenses(station_id: int, date_range: tuple[date, date] | None = None) -> list[Expense]:
    """Expenses for a station, newest date first. date_range is inclusive."""
    station = get_by_id(Station, station_id)
    if not station:
        return Err(station_not_found(station_id))

    query = db.session.query(Expense).filter(Expense.station_id == station_id)
    if date_range:
        start, end = date_range
        if start:
            query = query.filter(Expense.date >= start)
        if end:
            query = query.filter(Expense.date <= end)
    return query.order_by(Expense.date.desc(), Expense.id.desc()).all()
