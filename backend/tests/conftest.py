"""
Pytest fixtures for fuel station reconciliation tests.

Provides test database setup, station/employee/price/shift factories, and
the Flask test client.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fuelrecon import create_app
from fuelrecon.extensions import db
from fuelrecon.models import Employee, FuelPrice, MeterReading, Shift, Station, Transaction
from fuelrecon.models.shifts import SHIFT_ACTIVE, SHIFT_COMPLETED


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'MISMATCH_TOLERANCE': '1.00',
        'AUTO_RECONCILE_ON_SHIFT_END': True,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def station(db_session):
    """Create the main station."""
    station = Station(name="Station North", code="N1")
    db_session.add(station)
    db_session.commit()
    return station


@pytest.fixture(scope='function')
def other_station(db_session):
    """Create a second station."""
    station = Station(name="Station South", code="S1")
    db_session.add(station)
    db_session.commit()
    return station


@pytest.fixture(scope='function')
def employee(db_session, station):
    """Create an attendant paid 15.00/h."""
    employee = Employee(station_id=station.id, full_name="Ada Attendant", hourly_rate=Decimal("15.00"))
    db_session.add(employee)
    db_session.commit()
    return employee


@pytest.fixture(scope='function')
def prices(db_session, station):
    """Post petrol at 1.50 and diesel at 1.20."""
    rows = [
        FuelPrice(station_id=station.id, fuel_type="petrol", price_per_unit=Decimal("1.500")),
        FuelPrice(station_id=station.id, fuel_type="diesel", price_per_unit=Decimal("1.200")),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return {row.fuel_type: row for row in rows}


@pytest.fixture(scope='function')
def make_shift(db_session, station, employee):
    """
    Build a shift directly through the models.

    readings: [(dispenser_id, fuel_type, start, end_or_None), ...]
    transactions: [amount, ...]
    """
    def _make_shift(
        *,
        readings=(),
        transactions=(),
        status=SHIFT_COMPLETED,
        start_time=None,
        hours=8,
        employee_id=None,
    ):
        start_time = start_time or datetime(2024, 5, 1, 6, 0, 0)
        shift = Shift(
            station_id=station.id,
            employee_id=employee_id or employee.id,
            start_time=start_time,
            end_time=None if status == SHIFT_ACTIVE else start_time + timedelta(hours=hours),
            dispenser_ids=sorted({r[0] for r in readings}) or [1],
            starting_cash=Decimal("100.00"),
            ending_cash=None if status == SHIFT_ACTIVE else Decimal("195.00"),
            status=status,
        )
        db_session.add(shift)
        db_session.flush()

        for dispenser_id, fuel_type, start, end in readings:
            db_session.add(MeterReading(
                shift_id=shift.id,
                dispenser_id=dispenser_id,
                fuel_type=fuel_type,
                start_reading=start,
                end_reading=end,
            ))

        for amount in transactions:
            db_session.add(Transaction(
                station_id=station.id,
                shift_id=shift.id,
                total_amount=amount,
                payment_method="cash",
                created_at=start_time + timedelta(hours=1),
            ))

        db_session.commit()
        return shift

    return _make_shift


@pytest.fixture(scope='function')
def reconcilable_shift(make_shift, prices):
    """Petrol 1000 -> 1050, diesel 500 -> 520, one $95 sale."""
    return make_shift(
        readings=[
            (1, "petrol", Decimal("1000"), Decimal("1050")),
            (2, "diesel", Decimal("500"), Decimal("520")),
        ],
        transactions=[Decimal("95.00")],
    )
