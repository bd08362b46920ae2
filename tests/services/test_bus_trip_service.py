"""
Tests for bus-trip reconciliation: reimbursement splits, revenue
creation from cached trips and the Operations sync.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from ftms.exceptions import ValidationFailedError, NotFoundError, IntegrationError
from ftms.models.audit_log import AuditLog
from ftms.models.bus_trip_cache import BusTripCache
from ftms.models.enums import AssignmentType, ExternalRefType, RemittanceStatus
from ftms.models.revenue import RevenueRecord
from ftms.models.reference import GlobalPaymentStatus
from ftms.services.bus_trip_service import (
    BusTripService,
    calculate_reimbursement,
    normalize_assignment_type,
    calculate_company_share,
    calculate_expected_remittance,
    calculate_shortage,
    determine_remittance_status,
    reconcile_remittance,
    split_shortage,
)


def trip(assignment_type="Percentage", payment_method="Reimbursement", fuel="100"):
    return SimpleNamespace(
        assignment_type=assignment_type,
        payment_method=payment_method,
        trip_fuel_expense=Decimal(fuel),
    )


def cache_trip(db_session, bus_trip_id="T-100", assignment_type="Boundary", **fields):
    row = BusTripCache(
        assignment_id=fields.pop("assignment_id", f"A-{bus_trip_id}"),
        bus_trip_id=bus_trip_id,
        bus_route="Cubao - Baguio",
        assignment_type=assignment_type,
        trip_revenue=fields.pop("trip_revenue", Decimal("5000.00")),
        date_assigned=fields.pop("date_assigned", datetime(2024, 3, 1, 8, 0)),
        **fields,
    )
    db_session.add(row)
    db_session.commit()
    return row


class FakeOperationsClient:

    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error

    def fetch_bus_trips(self):
        if self.error:
            raise self.error
        return self.rows


# --- Reimbursement split ---

class TestReimbursementSplit:

    def test_percentage_trip_splits_fuel_expense(self):
        split = calculate_reimbursement(trip())
        assert split.driver_amount == Decimal("50.00")
        assert split.conductor_amount == Decimal("50.00")
        assert split.total == Decimal("100.00")

    def test_boundary_trip_reimburses_nothing(self):
        split = calculate_reimbursement(trip(assignment_type="Boundary"))
        assert split.total == Decimal("0.00")
        assert split.driver_amount == Decimal("0.00")

    def test_bus_rental_trip_reimburses_nothing(self):
        assert calculate_reimbursement(trip(assignment_type="Bus Rental")).total == Decimal("0.00")

    def test_cash_paid_trip_reimburses_nothing(self):
        assert calculate_reimbursement(trip(payment_method="Cash")).total == Decimal("0.00")

    def test_each_half_rounds_independently(self):
        split = calculate_reimbursement(trip(fuel="100.01"))
        assert split.driver_amount == Decimal("50.01")
        assert split.conductor_amount == Decimal("50.01")
        assert split.driver_amount + split.conductor_amount == Decimal("100.02")
        assert split.total == Decimal("100.01")

    def test_missing_fuel_expense_counts_as_zero(self):
        row = SimpleNamespace(
            assignment_type="Percentage", payment_method="Reimbursement", trip_fuel_expense=None
        )
        assert calculate_reimbursement(row).total == Decimal("0.00")

    @pytest.mark.parametrize("raw, expected", [
        ("Boundary", AssignmentType.BOUNDARY),
        ("PERCENTAGE", AssignmentType.PERCENTAGE),
        ("bus_rental", AssignmentType.BUS_RENTAL),
        ("Charter", AssignmentType.BUS_RENTAL),
        (None, AssignmentType.BUS_RENTAL),
    ])
    def test_normalize_assignment_type(self, raw, expected):
        assert normalize_assignment_type(raw) == expected


# --- Remittance ---

def remitting_trip(assignment_type="Boundary", revenue="2000", value="1500", fuel="800"):
    return SimpleNamespace(
        assignment_type=assignment_type,
        trip_revenue=Decimal(revenue) if revenue is not None else None,
        assignment_value=Decimal(value),
        trip_fuel_expense=Decimal(fuel),
    )


class TestRemittance:

    def test_boundary_owes_quota_plus_fuel(self):
        expected = calculate_expected_remittance(
            "Boundary", Decimal("2000"), Decimal("1500"), Decimal("800")
        )
        assert expected == Decimal("2300")

    def test_percentage_owes_company_share_plus_fuel(self):
        expected = calculate_expected_remittance(
            "PERCENTAGE", Decimal("4800"), Decimal("0.30"), Decimal("500")
        )
        assert expected == Decimal("1940")

    def test_unknown_type_charged_like_boundary(self):
        expected = calculate_expected_remittance(
            "Charter", Decimal("900"), Decimal("200"), Decimal("50")
        )
        assert expected == Decimal("250")

    def test_missing_amounts_count_as_zero(self):
        assert calculate_expected_remittance("Boundary", None, None, None) == Decimal("0")

    def test_company_share(self):
        assert calculate_company_share("Percentage", Decimal("4800"), Decimal("0.30")) == Decimal("1440")
        assert calculate_company_share("Boundary", Decimal("4800"), Decimal("1500")) == Decimal("1500")

    def test_shortage_never_negative(self):
        assert calculate_shortage(Decimal("2300"), Decimal("2000")) == Decimal("300")
        assert calculate_shortage(Decimal("100"), Decimal("150")) == Decimal("0")
        assert calculate_shortage(Decimal("100"), None) == Decimal("100")

    def test_status(self):
        assert determine_remittance_status(Decimal("2300"), Decimal("2300")) == RemittanceStatus.PAID
        assert determine_remittance_status(Decimal("2000"), Decimal("2300")) == (
            RemittanceStatus.PARTIALLY_PAID
        )

    def test_split_by_configured_shares(self):
        split = split_shortage(Decimal("300"), Decimal("50"), Decimal("50"))
        assert (split.driver_share, split.conductor_share) == (Decimal("150.00"), Decimal("150.00"))

    def test_split_parts_add_up_to_shortage(self):
        split = split_shortage(Decimal("100.01"), Decimal("60"), Decimal("40"))
        assert split.driver_share == Decimal("60.01")
        assert split.conductor_share == Decimal("40.00")

    def test_shares_must_sum_to_100(self):
        with pytest.raises(ValidationFailedError, match="must sum to 100"):
            split_shortage(Decimal("300"), Decimal("60"), Decimal("50"))

    def test_negative_share_rejected(self):
        with pytest.raises(ValidationFailedError, match="cannot be negative"):
            split_shortage(Decimal("300"), Decimal("120"), Decimal("-20"))

    def test_reconcile_short_boundary_trip(self):
        summary = reconcile_remittance(remitting_trip(), Decimal("50"), Decimal("50"))
        assert summary.expected_remittance == Decimal("2300.00")
        assert summary.collected == Decimal("2000.00")
        assert summary.company_share == Decimal("1500.00")
        assert summary.shortage == Decimal("300.00")
        assert summary.status == RemittanceStatus.PARTIALLY_PAID
        assert (summary.driver_share, summary.conductor_share) == (
            Decimal("150.00"), Decimal("150.00")
        )

    def test_reconcile_fully_paid_percentage_trip(self):
        row = remitting_trip("Percentage", revenue="4800", value="0.30", fuel="500")
        summary = reconcile_remittance(row, Decimal("50"), Decimal("50"))
        assert summary.status == RemittanceStatus.PAID
        assert summary.shortage == Decimal("0")
        assert summary.driver_share == Decimal("0.00")

    def test_reconcile_uses_collected_override(self):
        summary = reconcile_remittance(
            remitting_trip(revenue=None), Decimal("50"), Decimal("50"), collected=Decimal("2300")
        )
        assert summary.collected == Decimal("2300.00")
        assert summary.status == RemittanceStatus.PAID


# --- Revenue from bus trip ---

class TestCreateRevenueFromBusTrip:

    def test_creates_revenue_and_flags_trip(self, db_session, reference_data):
        cached = cache_trip(db_session)
        service = BusTripService(db_session)

        revenue = service.create_revenue_from_bus_trip("T-100", created_by="clerk")
        db_session.commit()

        assert revenue.revenue_code == f"REV-{revenue.id:06d}"
        assert revenue.total_amount == Decimal("5000.00")
        assert revenue.category_id == reference_data["boundary"].id
        assert revenue.payment_status_id == reference_data["pending"].id
        assert revenue.external_ref_type == ExternalRefType.BUS_TRIP.value
        assert revenue.external_ref_id == "T-100"
        assert revenue.collection_date == date.today()
        assert cached.is_revenue_recorded

        audit = db_session.query(AuditLog).filter_by(record_id=revenue.revenue_code).one()
        assert audit.performed_by == "clerk"

    def test_second_call_returns_existing_record(self, db_session, reference_data):
        cache_trip(db_session)
        service = BusTripService(db_session)

        first = service.create_revenue_from_bus_trip("T-100", created_by="clerk")
        db_session.commit()
        second = service.create_revenue_from_bus_trip("T-100", created_by="someone-else")

        assert second.id == first.id
        assert db_session.query(RevenueRecord).count() == 1

    def test_concurrent_insert_returns_winner(self, db_session, reference_data):
        cached = cache_trip(db_session)
        service = BusTripService(db_session)

        # Another request got there between our lookup and our insert
        winner = RevenueRecord(
            revenue_code="REV-WINNER",
            description="Recorded elsewhere",
            category_id=reference_data["boundary"].id,
            total_amount=Decimal("5000.00"),
            collection_date=date.today(),
            bus_trip_id="T-100",
            assignment_id=cached.assignment_id,
            created_by="other",
        )
        original_lookup = service._find_existing_revenue
        calls = []

        def racing_lookup(*args):
            calls.append(args)
            if len(calls) == 1:
                db_session.add(winner)
                db_session.commit()
                return None
            return original_lookup(*args)

        service._find_existing_revenue = racing_lookup
        result = service.create_revenue_from_bus_trip("T-100", created_by="clerk")

        assert result.revenue_code == "REV-WINNER"
        assert db_session.query(RevenueRecord).count() == 1

    def test_collision_keeps_callers_pending_work(self, db_session, reference_data):
        cached = cache_trip(db_session)
        service = BusTripService(db_session)
        db_session.add(BusTripCache(assignment_id="A-200", bus_trip_id="T-200"))

        winner = RevenueRecord(
            revenue_code="REV-WINNER",
            description="Recorded in this transaction",
            category_id=reference_data["boundary"].id,
            total_amount=Decimal("5000.00"),
            collection_date=date.today(),
            bus_trip_id="T-100",
            assignment_id=cached.assignment_id,
            created_by="other",
        )
        original_lookup = service._find_existing_revenue
        calls = []

        def lookup_then_insert(*args):
            calls.append(args)
            if len(calls) == 1:
                db_session.add(winner)
                db_session.flush()
                return None
            return original_lookup(*args)

        service._find_existing_revenue = lookup_then_insert
        result = service.create_revenue_from_bus_trip("T-100", created_by="clerk")
        db_session.commit()

        assert result.revenue_code == "REV-WINNER"
        assert db_session.query(BusTripCache).filter_by(bus_trip_id="T-200").count() == 1

    def test_short_trip_revenue_marked_partially_paid(self, db_session, reference_data):
        cache_trip(
            db_session,
            trip_revenue=Decimal("2000.00"),
            assignment_value=Decimal("1500.00"),
            trip_fuel_expense=Decimal("800.00"),
        )
        revenue = BusTripService(db_session).create_revenue_from_bus_trip(
            "T-100", created_by="clerk"
        )
        db_session.commit()

        assert revenue.remittance_status == RemittanceStatus.PARTIALLY_PAID
        assert revenue.shortage_amount == Decimal("300.00")

    def test_covered_trip_revenue_marked_paid(self, db_session, reference_data):
        cache_trip(db_session, assignment_value=Decimal("1500.00"))
        revenue = BusTripService(db_session).create_revenue_from_bus_trip(
            "T-100", created_by="clerk"
        )
        assert revenue.remittance_status == RemittanceStatus.PAID
        assert revenue.shortage_amount == Decimal("0")

    def test_override_amount(self, db_session, reference_data):
        cache_trip(db_session, trip_revenue=None)
        revenue = BusTripService(db_session).create_revenue_from_bus_trip(
            "T-100", created_by="clerk", override_amount=Decimal("1200.00")
        )
        assert revenue.total_amount == Decimal("1200.00")

    def test_trip_without_revenue(self, db_session, reference_data):
        cache_trip(db_session, trip_revenue=None)
        with pytest.raises(ValidationFailedError, match=r"Trip has no revenue \(Sales\)"):
            BusTripService(db_session).create_revenue_from_bus_trip("T-100", created_by="clerk")

    def test_future_collection_date(self, db_session, reference_data):
        cache_trip(db_session)
        with pytest.raises(ValidationFailedError, match="cannot be in the future"):
            BusTripService(db_session).create_revenue_from_bus_trip(
                "T-100", created_by="clerk", collection_date=date.today() + timedelta(days=1)
            )

    def test_unknown_trip(self, db_session, reference_data):
        with pytest.raises(NotFoundError, match="Bus trip not found in cache"):
            BusTripService(db_session).create_revenue_from_bus_trip("T-404", created_by="clerk")

    def test_missing_category_seed(self, db_session):
        cache_trip(db_session)
        with pytest.raises(NotFoundError, match="GlobalCategory seed missing: Boundary"):
            BusTripService(db_session).create_revenue_from_bus_trip("T-100", created_by="clerk")

    def test_missing_pending_status(self, db_session, reference_data):
        cache_trip(db_session)
        status = db_session.get(GlobalPaymentStatus, reference_data["pending"].id)
        status.applicable_modules = "expense"
        db_session.commit()

        with pytest.raises(NotFoundError, match="Missing Pending payment status"):
            BusTripService(db_session).create_revenue_from_bus_trip("T-100", created_by="clerk")


# --- Listing and flags ---

class TestTripQueries:

    def test_list_available_trips_hides_recorded(self, db_session, reference_data):
        cache_trip(db_session, "T-1")
        cache_trip(db_session, "T-2", assignment_type="PERCENTAGE")
        service = BusTripService(db_session)
        service.create_revenue_from_bus_trip("T-1", created_by="clerk")
        db_session.commit()

        assert [t.bus_trip_id for t in service.list_available_trips()] == ["T-2"]
        assert len(service.list_available_trips(include_recorded=True)) == 2
        assert [
            t.bus_trip_id for t in service.list_available_trips(assignment_type="percentage")
        ] == ["T-2"]

    def test_list_available_trips_by_date(self, db_session):
        cache_trip(db_session, "T-1", date_assigned=datetime(2024, 3, 1, 8, 0))
        cache_trip(db_session, "T-2", date_assigned=datetime(2024, 3, 5, 8, 0))
        service = BusTripService(db_session)

        trips = service.list_available_trips(date_from=date(2024, 3, 2), date_to=date(2024, 3, 5))
        assert [t.bus_trip_id for t in trips] == ["T-2"]

    def test_reimbursement_for_cached_trip(self, db_session):
        row = cache_trip(
            db_session,
            assignment_type="Percentage",
            payment_method="Reimbursement",
            trip_fuel_expense=Decimal("800.00"),
        )
        split = BusTripService(db_session).reimbursement_for_trip(row.id)
        assert split.driver_amount == Decimal("400.00")

    def test_remittance_for_cached_trip(self, db_session):
        row = cache_trip(
            db_session,
            trip_revenue=Decimal("2000.00"),
            assignment_value=Decimal("1500.00"),
            trip_fuel_expense=Decimal("800.00"),
        )
        summary = BusTripService(db_session).remittance_for_trip(row.id)
        assert summary.shortage == Decimal("300.00")
        assert summary.driver_share == Decimal("150.00")

    def test_remittance_for_unknown_trip(self, db_session):
        with pytest.raises(NotFoundError):
            BusTripService(db_session).remittance_for_trip(404)

    def test_mark_expense_recorded(self, db_session):
        row = cache_trip(db_session)
        BusTripService(db_session).mark_expense_recorded(row.id, "clerk")
        db_session.commit()
        assert row.is_expense_recorded
        assert db_session.query(AuditLog).filter_by(table_affected="BusTripCache").count() == 1


# --- Operations sync ---

def operations_row(assignment_id="A-1", bus_trip_id="T-1", **fields):
    row = {
        "assignment_id": assignment_id,
        "bus_trip_id": bus_trip_id,
        "bus_route": "Cubao - Baguio",
        "date_assigned": "2024-03-01T08:00:00",
        "assignment_type": "Percentage",
        "assignment_value": "0.3",
        "trip_revenue": "4800.00",
        "trip_fuel_expense": None,
        "payment_method": "Reimbursement",
        "driver_id": "EMP-1",
        "driver_name": "Juan Dela Cruz",
    }
    row.update(fields)
    return row


class TestSyncFromOperations:

    def test_creates_then_updates(self, db_session):
        service = BusTripService(db_session)

        result = service.sync_from_operations(FakeOperationsClient([operations_row()]))
        assert (result.processed, result.created, result.updated, result.failed) == (1, 1, 0, 0)

        result = service.sync_from_operations(
            FakeOperationsClient([operations_row(trip_revenue="5000.00")])
        )
        db_session.commit()
        assert (result.created, result.updated) == (0, 1)

        row = db_session.query(BusTripCache).one()
        assert row.trip_revenue == Decimal("5000.00")
        assert row.trip_fuel_expense == Decimal("0")

    def test_sync_never_clears_local_flags(self, db_session):
        service = BusTripService(db_session)
        service.sync_from_operations(FakeOperationsClient([operations_row()]))
        row = db_session.query(BusTripCache).one()
        row.is_revenue_recorded = True
        db_session.commit()

        service.sync_from_operations(
            FakeOperationsClient([operations_row(is_revenue_recorded=False)])
        )
        assert row.is_revenue_recorded

    def test_bad_rows_are_reported_not_raised(self, db_session):
        service = BusTripService(db_session)
        bad = operations_row(assignment_id="A-2", trip_revenue="not-a-number")

        result = service.sync_from_operations(FakeOperationsClient([operations_row(), bad]))
        assert result.processed == 1
        assert result.failed == 1
        assert result.errors[0].startswith("Bus Trip A-2:")

    def test_failed_row_write_does_not_abort_sync(self, db_session):
        service = BusTripService(db_session)
        upsert = service.upsert_trip

        def upsert_with_conflict(payload):
            if payload.assignment_id == "A-2":
                db_session.add(BusTripCache(assignment_id="A-1", bus_trip_id="T-1"))
                db_session.flush()
            return upsert(payload)

        service.upsert_trip = upsert_with_conflict
        result = service.sync_from_operations(FakeOperationsClient([
            operations_row(),
            operations_row(assignment_id="A-2", bus_trip_id="T-2"),
            operations_row(assignment_id="A-3", bus_trip_id="T-3"),
        ]))
        db_session.commit()

        assert (result.processed, result.created, result.failed) == (2, 2, 1)
        assert result.errors[0].startswith("Bus Trip A-2:")
        assert sorted(t.assignment_id for t in db_session.query(BusTripCache)) == ["A-1", "A-3"]

    def test_fetch_failure_propagates(self, db_session):
        client = FakeOperationsClient(error=IntegrationError("Operations API request failed: 503"))
        with pytest.raises(IntegrationError):
            BusTripService(db_session).sync_from_operations(client)
