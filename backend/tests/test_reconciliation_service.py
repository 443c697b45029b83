from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from fuelrecon.models import ActivityLog, MeterReading, SalesMismatch
from fuelrecon.models.shifts import SHIFT_ACTIVE, SHIFT_CANCELLED
from fuelrecon.services import reconciliation_service
from fuelrecon.services.reconciliation_service import calculate_sales_mismatch, get_sales_mismatches


class TestCalculateSalesMismatch:
    def test_closed_shift_records_signed_mismatch(self, db_session, reconcilable_shift):
        """Petrol 50 x 1.50 + diesel 20 x 1.20 = 99.00 expected, 95.00 sold."""
        result = calculate_sales_mismatch(reconcilable_shift.id)

        assert result.ok
        assert result.warnings == ()
        mismatch = result.value
        assert mismatch.expected_amount == Decimal("99.00")
        assert mismatch.actual_amount == Decimal("95.00")
        assert mismatch.mismatch_amount == Decimal("-4.00")
        assert mismatch.is_resolved is False
        assert mismatch.is_significant(Decimal("1.00"))

    def test_mismatch_equals_actual_minus_expected(self, db_session, make_shift, prices):
        shift = make_shift(
            readings=[(1, "petrol", Decimal("10.001"), Decimal("13.338"))],
            transactions=[Decimal("2.50"), Decimal("2.49")],
        )

        mismatch = calculate_sales_mismatch(shift.id).value

        # 3.337 x 1.50 = 5.0055 -> 5.01 (half-up)
        assert mismatch.expected_amount == Decimal("5.01")
        assert mismatch.mismatch_amount == mismatch.actual_amount - mismatch.expected_amount

    def test_no_transactions_means_actual_is_zero(self, db_session, make_shift, prices):
        shift = make_shift(readings=[(1, "diesel", Decimal("0"), Decimal("10"))])

        mismatch = calculate_sales_mismatch(shift.id).value

        assert mismatch.actual_amount == Decimal("0.00")
        assert mismatch.mismatch_amount == Decimal("-12.00")

    def test_open_reading_blocks_reconciliation(self, db_session, make_shift, prices):
        """A reading without its closing value means the shift is not closed."""
        shift = make_shift(readings=[
            (1, "petrol", Decimal("1000"), Decimal("1050")),
            (2, "diesel", Decimal("500"), None),
        ])

        result = calculate_sales_mismatch(shift.id)

        assert not result.ok
        assert result.code == "ShiftNotClosed"
        assert result.kind == "state"
        assert len(result.error.detail["open_reading_ids"]) == 1
        assert db_session.query(SalesMismatch).count() == 0

    def test_active_shift_is_not_closed(self, db_session, make_shift, prices):
        shift = make_shift(readings=[(1, "petrol", Decimal("1"), None)], status=SHIFT_ACTIVE)

        result = calculate_sales_mismatch(shift.id)

        assert result.code == "ShiftNotClosed"

    def test_cancelled_shift_is_never_reconciled(self, db_session, make_shift, prices):
        shift = make_shift(readings=[(1, "petrol", Decimal("1"), Decimal("2"))], status=SHIFT_CANCELLED)

        result = calculate_sales_mismatch(shift.id)

        assert result.code == "ShiftCancelled"
        assert db_session.query(SalesMismatch).count() == 0

    def test_unknown_shift(self, db_session):
        result = calculate_sales_mismatch(424242)

        assert result.kind == "not_found"
        assert result.code == "ShiftNotFound"

    def test_missing_price_excludes_reading_with_warning(self, db_session, make_shift, prices):
        shift = make_shift(
            readings=[
                (1, "petrol", Decimal("1000"), Decimal("1050")),
                (3, "kerosene", Decimal("10"), Decimal("30")),
            ],
            transactions=[Decimal("75.00")],
        )

        result = calculate_sales_mismatch(shift.id)

        assert result.ok
        assert result.value.expected_amount == Decimal("75.00")
        assert result.value.mismatch_amount == Decimal("0.00")
        assert [w.code for w in result.warnings] == ["PriceUnavailable"]
        assert result.warnings[0].detail["fuel_type"] == "kerosene"

    def test_negative_delta_is_data_integrity_failure(self, db_session, make_shift, prices):
        """Rows written around the ORM are re-checked, never clamped to zero."""
        shift = make_shift(readings=[(1, "petrol", Decimal("1000"), Decimal("1050"))])
        reading_id = shift.readings[0].id

        db_session.execute(
            update(MeterReading).where(MeterReading.id == reading_id).values(end_reading=Decimal("990"))
        )
        db_session.commit()
        db_session.expire_all()

        result = calculate_sales_mismatch(shift.id)

        assert result.kind == "data_integrity"
        assert result.code == "InvalidMeterDelta"
        assert result.error.detail["reading_id"] == reading_id
        assert db_session.query(SalesMismatch).count() == 0

    def test_second_reconciliation_fails(self, db_session, reconcilable_shift):
        first = calculate_sales_mismatch(reconcilable_shift.id)
        second = calculate_sales_mismatch(reconcilable_shift.id)

        assert first.ok
        assert second.code == "MismatchAlreadyExists"
        assert second.kind == "state"
        assert second.error.detail["mismatch_id"] == first.value.id
        assert db_session.query(SalesMismatch).count() == 1

    def test_lost_insert_race_reports_concurrency_error(self, db_session, reconcilable_shift, monkeypatch):
        """The unique index on shift_id settles races the pre-check cannot see."""
        assert calculate_sales_mismatch(reconcilable_shift.id).ok

        monkeypatch.setattr(reconciliation_service, "_existing_mismatch", lambda shift_id: None)
        result = calculate_sales_mismatch(reconcilable_shift.id)

        assert result.kind == "concurrency"
        assert result.code == "MismatchAlreadyExists"
        assert db_session.query(SalesMismatch).count() == 1

    def test_store_failure_is_dependency_error(self, db_session, reconcilable_shift, monkeypatch):
        def _fail(shift_id):
            raise OperationalError("SELECT sum(...)", {}, Exception("database is locked"))

        monkeypatch.setattr(reconciliation_service, "compute_actual_sales", _fail)
        result = calculate_sales_mismatch(reconcilable_shift.id)

        assert result.kind == "dependency"
        assert db_session.query(SalesMismatch).count() == 0

    def test_detection_is_logged(self, db_session, reconcilable_shift):
        mismatch = calculate_sales_mismatch(reconcilable_shift.id).value

        entry = db_session.query(ActivityLog).filter_by(action="detect").one()
        assert entry.entity_type == "sales_mismatch"
        assert entry.entity_id == str(mismatch.id)
        assert entry.details["mismatch"] == "-4.00"
        assert entry.details["significant"] is True


class TestGetSalesMismatches:
    def test_filters_by_resolution_state(self, db_session, station, make_shift, prices):
        first = make_shift(readings=[(1, "petrol", Decimal("0"), Decimal("10"))])
        second = make_shift(readings=[(1, "petrol", Decimal("10"), Decimal("20"))])
        m1 = calculate_sales_mismatch(first.id).value
        m2 = calculate_sales_mismatch(second.id).value
        m1.mark_resolved(resolver_id="emp-1", note="Checked", at=m1.created_at)
        db_session.commit()

        everything = get_sales_mismatches(station.id).value
        unresolved = get_sales_mismatches(station.id, resolved=False).value
        resolved = get_sales_mismatches(station.id, resolved=True).value

        assert {m.id for m in everything} == {m1.id, m2.id}
        assert [m.id for m in unresolved] == [m2.id]
        assert [m.id for m in resolved] == [m1.id]

    def test_other_stations_are_excluded(self, db_session, other_station, reconcilable_shift):
        assert calculate_sales_mismatch(reconcilable_shift.id).ok

        assert get_sales_mismatches(other_station.id).value == []

    def test_unknown_station(self, db_session):
        result = get_sales_mismatches(99999)

        assert result.code == "StationNotFound"
