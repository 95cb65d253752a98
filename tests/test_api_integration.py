"""
Integration tests for the Loan Schedule API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from datetime import date
from fastapi.testclient import TestClient

from loan_schedule.api import app
from loan_schedule.api.system import LendingSystem, get_lending_system
from loan_schedule.storage import InMemoryStorage


@pytest.fixture
def system():
    """In-memory lending system with a fixed clock"""
    test_system = LendingSystem(InMemoryStorage())
    test_system.engine.today = lambda: date(2024, 1, 15)
    return test_system


@pytest.fixture
def client(system):
    app.dependency_overrides[get_lending_system] = lambda: system
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def product_id(client):
    r = client.post("/products", json={
        "name": "Standard Reducing",
        "interest_rate": "12",
        "interest_type": "Reducing",
    })
    assert r.status_code == 201
    return r.json()["id"]


@pytest.fixture
def loan_id(client, product_id):
    r = client.post("/loans", json={
        "product_id": product_id,
        "principal_amount": "10000",
        "start_date": "2024-01-01",
        "duration": 12,
        "auto_extend": False,
        "loan_number": "L-001",
    })
    assert r.status_code == 201
    return r.json()["loan"]["id"]


class TestHealthEndpoints:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestProductEndpoints:

    def test_create_and_get(self, client, product_id):
        r = client.get(f"/products/{product_id}")
        assert r.status_code == 200
        data = r.json()
        assert data["interest_type"] == "Reducing"
        assert data["period"] == "Monthly"
        assert data["interest_alignment"] == "standard"

    def test_unknown_interest_type(self, client):
        r = client.post("/products", json={
            "name": "Odd", "interest_rate": "5", "interest_type": "Compound",
        })
        assert r.status_code == 422

    def test_negative_rate(self, client):
        r = client.post("/products", json={
            "name": "Odd", "interest_rate": "-1", "interest_type": "Flat",
        })
        assert r.status_code == 422

    def test_missing_product(self, client):
        assert client.get("/products/nope").status_code == 404


class TestLoanEndpoints:

    def test_origination_returns_schedule(self, client, product_id):
        r = client.post("/loans", json={
            "product_id": product_id,
            "principal_amount": "10000",
            "start_date": "2024-01-01",
            "duration": 12,
        })
        assert r.status_code == 201
        data = r.json()
        assert len(data["schedule"]) == 12
        assert data["schedule"][0]["interest_amount"] == "101.92"
        assert data["schedule"][0]["id"].endswith("_1")
        assert data["summary"]["duration"] == 12
        assert data["loan"]["auto_extend"] is True

    def test_origination_unknown_product(self, client):
        r = client.post("/loans", json={
            "product_id": "nope", "principal_amount": "100", "start_date": "2024-01-01",
        })
        assert r.status_code == 404

    def test_get_loan_and_schedule(self, client, loan_id):
        r = client.get(f"/loans/{loan_id}")
        assert r.status_code == 200
        assert r.json()["loan_number"] == "L-001"

        r = client.get(f"/loans/{loan_id}/schedule")
        assert r.status_code == 200
        assert len(r.json()["schedule"]) == 12

    def test_missing_loan(self, client):
        assert client.get("/loans/nope").status_code == 404
        assert client.get("/loans/nope/schedule").status_code == 404

    def test_regenerate_with_duration(self, client, loan_id):
        r = client.post(f"/loans/{loan_id}/schedule/regenerate", json={"duration": 3})
        assert r.status_code == 200
        data = r.json()
        assert len(data["schedule"]) == 3
        assert data["loan"]["duration"] == 3

    def test_regenerate_missing_loan(self, client):
        r = client.post("/loans/nope/schedule/regenerate", json={})
        assert r.status_code == 404


class TestTransactionEndpoints:

    def test_repayment_marks_row_paid(self, client, loan_id):
        r = client.post(f"/loans/{loan_id}/transactions", json={
            "type": "Repayment",
            "amount": "1000",
            "date": "2024-02-01",
            "interest_applied": "101.92",
        })
        assert r.status_code == 201
        transaction = r.json()["transaction"]
        assert transaction["principal_applied"] == "898.08"

        schedule = client.get(f"/loans/{loan_id}/schedule").json()["schedule"]
        assert schedule[0]["status"] == "Paid"
        assert schedule[1]["status"] == "Partial"

        loan = client.get(f"/loans/{loan_id}").json()
        assert loan["principal_paid"] != "0"

    def test_delete_repayment_restores_schedule(self, client, loan_id):
        r = client.post(f"/loans/{loan_id}/transactions", json={
            "type": "Repayment", "amount": "2000", "date": "2024-02-10",
        })
        transaction_id = r.json()["transaction"]["id"]

        r = client.delete(f"/loans/{loan_id}/transactions/{transaction_id}")
        assert r.status_code == 200
        assert r.json()["transaction"]["is_deleted"] is True
        assert r.json()["summary"]["outstanding_principal"] == "10000.00"

        schedule = client.get(f"/loans/{loan_id}/schedule").json()["schedule"]
        assert all(row["status"] == "Pending" for row in schedule)
        assert all(row["balance"] == "10000.00" for row in schedule)

    def test_disbursement_raises_balance(self, client, loan_id):
        r = client.post(f"/loans/{loan_id}/transactions", json={
            "type": "Disbursement", "amount": "5000", "date": "2024-03-01",
        })
        assert r.status_code == 201
        assert r.json()["summary"]["outstanding_principal"] == "15000.00"

    def test_invalid_repayment_split(self, client, loan_id):
        r = client.post(f"/loans/{loan_id}/transactions", json={
            "type": "Repayment", "amount": "100", "date": "2024-02-01",
            "interest_applied": "200",
        })
        assert r.status_code == 422

    def test_unsupported_type(self, client, loan_id):
        r = client.post(f"/loans/{loan_id}/transactions", json={
            "type": "Fee", "amount": "10", "date": "2024-02-01",
        })
        assert r.status_code == 422

    def test_unknown_loan(self, client):
        r = client.post("/loans/nope/transactions", json={
            "type": "Repayment", "amount": "10", "date": "2024-02-01",
        })
        assert r.status_code == 404

    def test_unknown_transaction(self, client, loan_id):
        assert client.delete(f"/loans/{loan_id}/transactions/nope").status_code == 404


class TestAutoExtendEndpoint:

    def test_run_with_end_date(self, client, product_id):
        client.post("/loans", json={
            "product_id": product_id, "principal_amount": "10000",
            "start_date": "2024-01-01", "duration": 6, "auto_extend": True,
        })

        r = client.post("/auto-extend", json={"end_date": "2025-02-04"})
        assert r.status_code == 200
        data = r.json()
        assert data["processed"] == 1
        assert data["succeeded"] == 1
        assert data["end_date"] == "2025-02-04"

    def test_run_without_body(self, client, loan_id):
        r = client.post("/auto-extend")
        assert r.status_code == 200
        # The only loan is not flagged for auto-extend
        assert r.json()["processed"] == 0
