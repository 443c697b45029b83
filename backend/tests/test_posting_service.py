from datetime import date, datetime
from decimal import Decimal

from fuelrecon.models import Transaction
from fuelrecon.models.shifts import SHIFT_ACTIVE
from fuelrecon.services.activity_service import list_activity, log_activity
from fuelrecon.services.posting_service import list_expenses, record_expense, record_transaction


class TestRecordTransaction:
    def test_posts_to_active_shift(self, db_session, station, make_shift):
        shift = make_shift(status=SHIFT_ACTIVE)

        result = record_transaction(station_id=station.id, shift_id=shift.id, total_amount="45.50", payment_method="Card")

        assert result.ok
        assert result.value.total_amount == Decimal("45.50")
        assert result.value.payment_method == "card"

    def test_completed_shift_is_rejected(self, db_session, station, make_shift):
        shift = make_shift()

        result = record_transaction(station_id=station.id, shift_id=shift.id, total_amount="5", payment_method="cash")

        assert result.code == "ShiftNotActive"

    def test_shift_must_belong_to_station(self, db_session, other_station, make_shift):
        shift = make_shift(status=SHIFT_ACTIVE)

        result = record_transaction(station_id=other_station.id, shift_id=shift.id, total_amount="5", payment_method="cash")

        assert result.kind == "validation"

    def test_negative_amount_writes_nothing(self, db_session, station, make_shift):
        shift = make_shift(status=SHIFT_ACTIVE)

        result = record_transaction(station_id=station.id, shift_id=shift.id, total_amount="-1", payment_method="cash")

        assert result.kind == "validation"
        assert db_session.query(Transaction).count() == 0


class TestExpenses:
    def test_record_and_list_by_range(self, db_session, station):
        for day, amount in [(1, "10.00"), (15, "20.00"), (31, "30.00")]:
            assert record_expense(
                station_id=station.id,
                amount=amount,
                date=date(2024, 5, day),
                expense_type="utilities",
            ).ok

        expenses = list_expenses(station.id, date_range=(date(2024, 5, 2), date(2024, 5, 31))).value

        assert [e.amount for e in expenses] == [Decimal("30.00"), Decimal("20.00")]

    def test_blank_type_is_rejected(self, db_session, station):
        result = record_expense(station_id=station.id, amount="1", date=date(2024, 5, 1), expense_type="")

        assert result.kind == "validation"

    def test_unknown_station(self, db_session):
        result = record_expense(station_id=404, amount="1", date=date(2024, 5, 1), expense_type="fees")

        assert result.code == "StationNotFound"


class TestActivityLog:
    def test_entries_are_filtered_and_newest_first(self, db_session, station):
        log_activity(action="detect", entity_type="sales_mismatch", entity_id=1, station_id=station.id)
        log_activity(action="resolve", entity_type="sales_mismatch", entity_id=1, actor_id="emp-7", station_id=station.id)
        log_activity(action="generate", entity_type="financial_report", entity_id=9, station_id=station.id)

        mismatches = list_activity(entity_type="sales_mismatch").value
        by_actor = list_activity(actor_id="emp-7").value

        assert [e.action for e in mismatches] == ["resolve", "detect"]
        assert [e.action for e in by_actor] == ["resolve"]

    def test_details_are_stored_as_json(self, db_session):
        entry = log_activity(
            action="generate",
            entity_type="financial_report",
            entity_id=3,
            details={"sales": Decimal("1200.00"), "report_date": date(2024, 5, 1), "at": datetime(2024, 5, 1, 8)},
        )

        assert entry.details == {"sales": "1200.00", "report_date": "2024-05-01", "at": "2024-05-01T08:00:00Z"}
