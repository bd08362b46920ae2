"""
Tests for the expense, reimbursement and employee API endpoints.
"""

from ftms.api.dependencies import get_employee_directory
from ftms.exceptions import IntegrationError
from ftms.integrations.hr import Employee
from ftms.main import app


class FakeDirectory:

    def __init__(self, employees=None, error=None):
        self.employees = employees or []
        self.error = error

    def fetch_employees(self):
        if self.error:
            raise self.error
        return self.employees


CREW = [
    Employee("EMP-1", "Maria Santos", "Driver", "Operations"),
    Employee("EMP-2", "Pedro Reyes", "Conductor", "Operations"),
]


def use_directory(directory):
    app.dependency_overrides[get_employee_directory] = lambda: directory


def create_expense(client, **fields):
    payload = {
        "category": "Fuel",
        "payment_method": "Reimbursement",
        "total_amount": "600.00",
        "expense_date": "2024-03-01",
        "created_by": "clerk",
        "reimbursements": [
            {"employee_id": "EMP-1", "amount": "300.00"},
            {"employee_id": "EMP-2", "amount": "300.00"},
        ],
    }
    payload.update(fields)
    return client.post("/expenses", json=payload)


class TestExpensesAPI:

    def test_create_expense_with_reimbursements(self, client, reference_data):
        use_directory(FakeDirectory(CREW))
        response = create_expense(client)

        assert response.status_code == 201
        data = response.json()
        assert data["expense_code"].startswith("EXP-")
        assert [r["status"] for r in data["reimbursements"]] == ["PENDING", "PENDING"]

    def test_amount_mismatch_rolls_back_everything(self, client, reference_data):
        use_directory(FakeDirectory(CREW))
        response = create_expense(client, total_amount="700.00")

        assert response.status_code == 400
        assert response.json()["detail"] == [
            "Reimbursement amounts (600.00) must equal the expense total (700.00)"
        ]
        assert client.get("/expenses").json() == []
        assert client.get("/reimbursements").json() == []

    def test_missing_category_and_method_is_422(self, client):
        response = client.post("/expenses", json={
            "total_amount": "10", "expense_date": "2024-03-01", "created_by": "clerk",
        })
        assert response.status_code == 422


class TestReimbursementsAPI:

    def reimbursement_id(self, client):
        use_directory(FakeDirectory(CREW))
        return create_expense(client).json()["reimbursements"][0]["id"]

    def test_pay_before_approval_is_rejected(self, client, reference_data):
        reimbursement_id = self.reimbursement_id(client)
        response = client.patch("/reimbursements", json={
            "reimbursement_id": reimbursement_id,
            "action": "PAY",
            "performed_by": "cashier",
            "payment_method": "Cash",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == (
            "Can only pay from APPROVED status. Current status: PENDING"
        )

    def test_approve_then_pay(self, client, reference_data):
        reimbursement_id = self.reimbursement_id(client)

        approved = client.patch("/reimbursements", json={
            "reimbursement_id": reimbursement_id,
            "action": "APPROVE",
            "performed_by": "manager",
        })
        assert approved.status_code == 200
        assert approved.json()["status"] == "APPROVED"

        paid = client.patch("/reimbursements", json={
            "reimbursement_id": reimbursement_id,
            "action": "PAY",
            "performed_by": "cashier",
            "payment_method": "CASH",
            "payment_reference": "OR-1001",
        })
        assert paid.status_code == 200
        assert paid.json()["status"] == "PAID"
        assert paid.json()["payment_method_id"] == reference_data["cash"].id

        listed = client.get("/reimbursements", params={"status": "PAID"}).json()
        assert [r["id"] for r in listed] == [reimbursement_id]

    def test_reject_without_reason(self, client, reference_data):
        reimbursement_id = self.reimbursement_id(client)
        response = client.patch("/reimbursements", json={
            "reimbursement_id": reimbursement_id,
            "action": "REJECT",
            "performed_by": "manager",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == ["Rejection reason required"]

    def test_unknown_action_is_422(self, client):
        response = client.patch("/reimbursements", json={
            "reimbursement_id": 1, "action": "ESCALATE", "performed_by": "manager",
        })
        assert response.status_code == 422

    def test_unknown_reimbursement(self, client):
        response = client.patch("/reimbursements", json={
            "reimbursement_id": 999, "action": "APPROVE", "performed_by": "manager",
        })
        assert response.status_code == 404


class TestEmployeesAPI:

    def test_lists_hr_employees(self, client):
        use_directory(FakeDirectory(CREW))
        response = client.get("/employees")

        assert response.status_code == 200
        assert response.json()[0]["name"] == "Maria Santos"
        assert "X-API-Status" not in response.headers

    def test_hr_outage_falls_back_to_empty_list(self, client):
        use_directory(FakeDirectory(error=IntegrationError("HR API request failed: 503")))
        response = client.get("/employees")

        assert response.status_code == 200
        assert response.json() == []
        assert response.headers["X-API-Status"] == "error-fallback"
        assert response.headers["X-API-Error"] == "HR API request failed: 503"
