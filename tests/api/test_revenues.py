"""
Tests for the revenue and bus-trip API endpoints.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal

from ftms.api.dependencies import get_operations_client
from ftms.exceptions import IntegrationError
from ftms.main import app
from ftms.models.bus_trip_cache import BusTripCache
from ftms.services.reference_data import ReferenceDataService


def add_trip(db_session, bus_trip_id="T-1", trip_revenue="500.00", **fields):
    trip = BusTripCache(
        assignment_id=f"A-{bus_trip_id}",
        bus_trip_id=bus_trip_id,
        bus_route="Cubao - Baguio",
        assignment_type=fields.pop("assignment_type", "Boundary"),
        trip_revenue=Decimal(trip_revenue) if trip_revenue is not None else None,
        date_assigned=datetime(2024, 3, 1, 8, 0),
        **fields,
    )
    db_session.add(trip)
    db_session.commit()
    return trip


def revenue_payload(reference_data, **fields):
    payload = {
        "source_id": reference_data["source"].id,
        "description": "Charter payment",
        "amount": "500.00",
        "payment_method_id": reference_data["cash"].id,
        "created_by": "clerk",
        "transaction_date": date.today().isoformat(),
    }
    payload.update(fields)
    return payload


class TestRevenuesAPI:

    def test_create_revenue(self, client, reference_data):
        response = client.post("/revenues", json=revenue_payload(reference_data))
        assert response.status_code == 201
        data = response.json()
        assert data["revenue_code"].startswith("REV-")
        assert Decimal(data["outstanding_balance"]) == 0

    def test_amount_must_match_trip_revenue(self, client, db_session, reference_data):
        trip = add_trip(db_session)
        response = client.post("/revenues", json=revenue_payload(
            reference_data, amount="500.02", bus_trip_cache_id=trip.id,
        ))
        assert response.status_code == 400
        assert response.json()["detail"] == [
            "Amount (500.02) must match bus trip revenue (500.00)"
        ]

    def test_same_trip_revenue_posted_twice(self, client, db_session, reference_data):
        trip = add_trip(db_session)
        payload = revenue_payload(
            reference_data,
            bus_trip_cache_id=trip.id,
            category_id=reference_data["boundary"].id,
        )

        assert client.post("/revenues", json=payload).status_code == 201
        second = client.post("/revenues", json=payload)
        assert second.status_code == 400
        assert second.json()["detail"] == ["Revenue already recorded for this bus trip"]
        assert len(client.get("/revenues").json()) == 1

    def test_trip_recorded_through_bus_trips_route(self, client, db_session, reference_data):
        trip = add_trip(db_session)
        assert client.post("/bus-trips/T-1/revenue", json={"created_by": "clerk"}).status_code == 201

        response = client.post("/revenues", json=revenue_payload(
            reference_data, bus_trip_cache_id=trip.id,
        ))
        assert response.status_code == 400
        assert response.json()["detail"] == ["Revenue already recorded for this bus trip"]
        assert len(client.get("/revenues").json()) == 1

    def test_every_error_reported(self, client):
        response = client.post("/revenues", json={})
        assert response.status_code == 400
        assert len(response.json()["detail"]) == 5

    def test_receivable_payments(self, client, reference_data):
        revenue = client.post("/revenues", json=revenue_payload(
            reference_data,
            is_accounts_receivable=True,
            ar_due_date=(date.today() + timedelta(days=15)).isoformat(),
            ar_status="PENDING",
        )).json()
        assert Decimal(revenue["outstanding_balance"]) == Decimal("500.00")

        response = client.post(f"/revenues/{revenue['id']}/payments", json={
            "performed_by": "cashier",
            "payments": [{"amount": "200.00"}],
        })
        assert response.status_code == 200
        assert Decimal(response.json()["outstanding_balance"]) == Decimal("300.00")
        assert response.json()["ar_status"] == "PARTIAL"

        overpaid = client.post(f"/revenues/{revenue['id']}/payments", json={
            "performed_by": "cashier",
            "payments": [{"amount": "400.00"}],
        })
        assert overpaid.status_code == 400

    def test_revenue_journal_entry(self, client, reference_data, accounts):
        revenue = client.post("/revenues", json=revenue_payload(reference_data)).json()

        response = client.post(
            f"/revenues/{revenue['id']}/journal-entry", json={"performed_by": "clerk"}
        )
        assert response.status_code == 201
        assert response.json()["entry_type"] == "AUTO_REVENUE"

        again = client.post(
            f"/revenues/{revenue['id']}/journal-entry", json={"performed_by": "clerk"}
        )
        assert again.status_code == 409

    def test_missing_revenue(self, client):
        assert client.get("/revenues/404").status_code == 404


class FakeOperationsClient:

    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error

    def fetch_bus_trips(self):
        if self.error:
            raise self.error
        return self.rows


class TestBusTripsAPI:

    def test_create_revenue_from_trip_is_idempotent(self, client, db_session, reference_data):
        add_trip(db_session)

        first = client.post("/bus-trips/T-1/revenue", json={"created_by": "clerk"})
        assert first.status_code == 201
        second = client.post("/bus-trips/T-1/revenue", json={"created_by": "clerk"})
        assert second.json()["id"] == first.json()["id"]

        assert client.get("/bus-trips").json() == []
        assert len(client.get("/bus-trips", params={"include_recorded": True}).json()) == 1

    def test_missing_pending_status_is_not_found(self, client, db_session):
        add_trip(db_session)
        ReferenceDataService(db_session).create_category("Boundary", "revenue")
        db_session.commit()

        response = client.post("/bus-trips/T-1/revenue", json={"created_by": "clerk"})
        assert response.status_code == 404
        assert "Pending" in response.json()["detail"]

    def test_unknown_trip(self, client, reference_data):
        response = client.post("/bus-trips/T-404/revenue", json={"created_by": "clerk"})
        assert response.status_code == 404

    def test_reimbursement_split(self, client, db_session):
        trip = add_trip(
            db_session,
            assignment_type="Percentage",
            payment_method="Reimbursement",
            trip_fuel_expense=Decimal("100.01"),
        )
        data = client.get(f"/bus-trips/{trip.id}/reimbursement").json()
        assert Decimal(data["driver_amount"]) == Decimal("50.01")
        assert Decimal(data["conductor_amount"]) == Decimal("50.01")

    def test_remittance(self, client, db_session):
        trip = add_trip(
            db_session,
            trip_revenue="2000.00",
            assignment_value=Decimal("1500.00"),
            trip_fuel_expense=Decimal("800.00"),
        )
        data = client.get(f"/bus-trips/{trip.id}/remittance").json()
        assert Decimal(data["expected_remittance"]) == Decimal("2300.00")
        assert Decimal(data["shortage"]) == Decimal("300.00")
        assert data["status"] == "PARTIALLY_PAID"
        assert Decimal(data["driver_share"]) == Decimal("150.00")
        assert Decimal(data["conductor_share"]) == Decimal("150.00")

    def test_remittance_unknown_trip(self, client):
        assert client.get("/bus-trips/404/remittance").status_code == 404

    def test_sync(self, client):
        rows = [
            {"assignment_id": "A-1", "bus_trip_id": "T-1", "trip_revenue": "900"},
            {"assignment_id": "A-2"},
        ]
        app.dependency_overrides[get_operations_client] = lambda: FakeOperationsClient(rows)

        data = client.post("/bus-trips/sync").json()
        assert data["processed"] == 1
        assert data["created"] == 1
        assert data["failed"] == 1
        assert data["errors"][0].startswith("Bus Trip A-2:")

    def test_sync_upstream_failure_is_bad_gateway(self, client):
        error = IntegrationError("Operations API request failed: 503")
        app.dependency_overrides[get_operations_client] = lambda: FakeOperationsClient(error=error)

        response = client.post("/bus-trips/sync")
        assert response.status_code == 502
