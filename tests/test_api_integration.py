"""
Integration tests for the Bank Loan Simulator API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from loan_simulator.api import create_app
from loan_simulator.api.auth import LoanSimulatorSystem, get_system
from loan_simulator.config import LoanSimulatorConfig


ADMIN_EMAIL = "admin@test.com"
ADMIN_PASSWORD = "admin123"


@pytest.fixture
def system():
    """Isolated system on in-memory storage with the demo admin seeded"""
    config = LoanSimulatorConfig(
        storage_backend="memory",
        jwt_secret="integration-test-secret-key-long-enough-for-hs256",
        seed_demo_users=True,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD
    )
    test_system = LoanSimulatorSystem(config)
    yield test_system
    test_system.close()


@pytest.fixture
def client(system):
    """Create a test client wired to the isolated system"""
    app = create_app(system.config)
    app.dependency_overrides[get_system] = lambda: system
    return TestClient(app)


def register(client, email="jane@example.com", full_name="Jane Doe", password="secret1"):
    r = client.post("/api/auth/register", json={
        "full_name": full_name,
        "email": email,
        "password": password
    })
    assert r.status_code == 201, r.text
    return r.json()


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def login(client, email, password):
    r = client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


@pytest.fixture
def customer(client):
    return register(client)


@pytest.fixture
def admin_token(client):
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


def request_loan(client, token, amount=5000, interest_rate=8, term_in_months=12):
    return client.post("/api/loans", headers=auth_headers(token), json={
        "amount": amount,
        "interest_rate": interest_rate,
        "term_in_months": term_in_months
    })


class TestHealthEndpoints:
    """Test basic health and root endpoints"""

    def test_health(self, client):
        """Test health endpoint"""
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_root(self, client):
        """Test root endpoint"""
        r = client.get("/")
        assert r.status_code == 200
        data = r.json()
        assert data["name"] == "Bank Loan Simulator API"
        assert "endpoints" in data

    def test_request_id_is_echoed(self, client):
        """Caller supplied request ids come back; others are generated"""
        r = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert r.headers["X-Request-ID"] == "req-123"

        r = client.get("/health")
        assert r.headers["X-Request-ID"]


class TestAuthFlow:
    """Registration, login and current user"""

    def test_register(self, client):
        data = register(client, email="New.User@Example.com")

        assert data["email"] == "new.user@example.com"
        assert data["is_admin"] is False
        assert data["token"]

    def test_register_duplicate_email(self, client, customer):
        r = client.post("/api/auth/register", json={
            "full_name": "Jane Again",
            "email": "JANE@example.com",
            "password": "another1"
        })
        assert r.status_code == 409
        assert r.json()["detail"] == "email is already registered"

    def test_register_short_password(self, client):
        r = client.post("/api/auth/register", json={
            "full_name": "Jane Doe",
            "email": "short@example.com",
            "password": "123"
        })
        assert r.status_code == 400

    def test_login_seeded_admin(self, client):
        r = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        assert r.status_code == 200
        data = r.json()
        assert data["is_admin"] is True
        assert data["token_type"] == "bearer"

    def test_login_bad_password(self, client, customer):
        r = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "nope123"})
        assert r.status_code == 401

    def test_me_requires_token(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_me_rejects_bad_token(self, client):
        r = client.get("/api/auth/me", headers=auth_headers("not-a-token"))
        assert r.status_code == 401

    def test_me(self, client, customer):
        request_loan(client, customer["token"])

        r = client.get("/api/auth/me", headers=auth_headers(customer["token"]))
        assert r.status_code == 200
        data = r.json()
        assert data["email"] == "jane@example.com"
        assert data["role"] == "User"
        assert data["total_loans"] == 1
        assert data["pending_loans"] == 1

    def test_token_of_deleted_user(self, client, system, customer):
        system.user_store.delete(customer["user_id"])

        r = client.get("/api/auth/me", headers=auth_headers(customer["token"]))
        assert r.status_code == 401


class TestLoanRequests:
    """Customer loan requests"""

    def test_create_loan(self, client, customer):
        r = request_loan(client, customer["token"])

        assert r.status_code == 201
        data = r.json()
        assert data["monthly_payment"] == "434.94"
        assert data["status"] == "pending"
        assert data["status_label"] == "Pending"
        assert data["review_date"] is None
        assert data["owner_name"] == "Jane Doe"
        assert data["owner_email"] == "jane@example.com"

    def test_create_loan_tiny_rate(self, client, customer):
        r = request_loan(client, customer["token"], amount="12000", interest_rate="1E-30")

        assert r.status_code == 201
        assert r.json()["monthly_payment"] == "1000.00"

    def test_create_loan_requires_token(self, client):
        r = client.post("/api/loans", json={"amount": 5000, "interest_rate": 8, "term_in_months": 12})
        assert r.status_code == 401

    def test_create_loan_out_of_bounds(self, client, customer):
        r = request_loan(client, customer["token"], amount=0)
        assert r.status_code == 400
        assert r.json()["detail"] == "amount must be greater than 0"

        r = request_loan(client, customer["token"], interest_rate=51)
        assert r.status_code == 400
        assert r.json()["detail"] == "interest rate must be between 0% and 50%"

        r = request_loan(client, customer["token"], term_in_months=241)
        assert r.status_code == 400
        assert r.json()["detail"] == "term must be between 1 and 240 months"

    def test_create_loan_malformed_body(self, client, customer):
        r = client.post("/api/loans", headers=auth_headers(customer["token"]), json={
            "amount": "lots", "interest_rate": 8, "term_in_months": 12
        })
        assert r.status_code == 422

    def test_my_loans(self, client, customer):
        request_loan(client, customer["token"], amount=1000)
        request_loan(client, customer["token"], amount=2000)
        other = register(client, email="john@example.com", full_name="John Roe")
        request_loan(client, other["token"], amount=3000)

        r = client.get("/api/loans/my-loans", headers=auth_headers(customer["token"]))
        assert r.status_code == 200
        loans = r.json()
        assert len(loans) == 2
        assert all(loan["owner_id"] == customer["user_id"] for loan in loans)

    def test_get_own_loan(self, client, customer):
        loan_id = request_loan(client, customer["token"]).json()["id"]

        r = client.get(f"/api/loans/{loan_id}", headers=auth_headers(customer["token"]))
        assert r.status_code == 200
        assert r.json()["id"] == loan_id

    def test_other_users_loan_is_forbidden(self, client, customer):
        loan_id = request_loan(client, customer["token"]).json()["id"]
        other = register(client, email="john@example.com", full_name="John Roe")

        r = client.get(f"/api/loans/{loan_id}", headers=auth_headers(other["token"]))
        assert r.status_code == 403

        r = client.delete(f"/api/loans/{loan_id}", headers=auth_headers(other["token"]))
        assert r.status_code == 403

    def test_missing_loan(self, client, customer):
        r = client.get("/api/loans/does-not-exist", headers=auth_headers(customer["token"]))
        assert r.status_code == 404

    def test_delete_own_loan(self, client, customer):
        loan_id = request_loan(client, customer["token"]).json()["id"]

        r = client.delete(f"/api/loans/{loan_id}", headers=auth_headers(customer["token"]))
        assert r.status_code == 204

        r = client.get(f"/api/loans/{loan_id}", headers=auth_headers(customer["token"]))
        assert r.status_code == 404


class TestAdminReview:
    """Administrator review workflow"""

    def test_admin_sees_any_loan(self, client, customer, admin_token):
        loan_id = request_loan(client, customer["token"]).json()["id"]

        r = client.get(f"/api/loans/{loan_id}", headers=auth_headers(admin_token))
        assert r.status_code == 200

    def test_approve_then_conflict(self, client, customer, admin_token):
        loan_id = request_loan(client, customer["token"]).json()["id"]

        r = client.put(f"/api/loans/{loan_id}/review", headers=auth_headers(admin_token),
                       json={"status": "approved", "admin_comments": "ok"})
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "approved"
        assert data["status_label"] == "Approved"
        assert data["admin_comments"] == "ok"
        assert data["review_date"] is not None
        assert data["monthly_payment"] == "434.94"

        r = client.put(f"/api/loans/{loan_id}/review", headers=auth_headers(admin_token),
                       json={"status": "rejected"})
        assert r.status_code == 409

    def test_review_to_pending_rejected(self, client, customer, admin_token):
        loan_id = request_loan(client, customer["token"]).json()["id"]

        r = client.put(f"/api/loans/{loan_id}/review", headers=auth_headers(admin_token),
                       json={"status": "pending"})
        assert r.status_code == 400

    def test_review_unknown_status(self, client, customer, admin_token):
        loan_id = request_loan(client, customer["token"]).json()["id"]

        r = client.put(f"/api/loans/{loan_id}/review", headers=auth_headers(admin_token),
                       json={"status": "maybe"})
        assert r.status_code == 422

    def test_review_missing_loan(self, client, admin_token):
        r = client.put("/api/loans/does-not-exist/review", headers=auth_headers(admin_token),
                       json={"status": "approved"})
        assert r.status_code == 404

    def test_customer_cannot_review(self, client, customer):
        loan_id = request_loan(client, customer["token"]).json()["id"]

        r = client.put(f"/api/loans/{loan_id}/review", headers=auth_headers(customer["token"]),
                       json={"status": "approved"})
        assert r.status_code == 403

    def test_list_all_loans(self, client, customer, admin_token):
        first = request_loan(client, customer["token"]).json()["id"]
        request_loan(client, customer["token"])
        client.put(f"/api/loans/{first}/review", headers=auth_headers(admin_token),
                   json={"status": "rejected", "admin_comments": "income too low"})

        r = client.get("/api/loans", headers=auth_headers(admin_token))
        assert r.status_code == 200
        assert len(r.json()) == 2

        r = client.get("/api/loans", params={"status": "pending"}, headers=auth_headers(admin_token))
        assert r.status_code == 200
        assert len(r.json()) == 1

        r = client.get("/api/loans", params={"status": "Rejected"}, headers=auth_headers(admin_token))
        assert [loan["id"] for loan in r.json()] == [first]

    def test_list_all_loans_bad_status(self, client, admin_token):
        r = client.get("/api/loans", params={"status": "cancelled"}, headers=auth_headers(admin_token))
        assert r.status_code == 400

    def test_customer_cannot_list_all_loans(self, client, customer):
        r = client.get("/api/loans", headers=auth_headers(customer["token"]))
        assert r.status_code == 403


class TestCalculator:
    """Anonymous payment simulation"""

    def test_calculate(self, client):
        r = client.post("/api/loans/calculate", json={
            "amount": 10000, "interest_rate": 12, "term_in_months": 12
        })
        assert r.status_code == 200
        data = r.json()
        assert data["monthly_payment"] == "888.49"
        assert data["total_payment"] == "10661.88"
        assert data["total_interest"] == "661.88"

    def test_calculate_zero_rate(self, client):
        r = client.post("/api/loans/calculate", json={
            "amount": 12000, "interest_rate": 0, "term_in_months": 12
        })
        assert r.status_code == 200
        assert r.json()["monthly_payment"] == "1000.00"

    def test_calculate_tiny_rate(self, client):
        r = client.post("/api/loans/calculate", json={
            "amount": "12000", "interest_rate": "1E-30", "term_in_months": 12
        })
        assert r.status_code == 200
        assert r.json()["monthly_payment"] == "1000.00"

    def test_calculate_out_of_bounds(self, client):
        r = client.post("/api/loans/calculate", json={
            "amount": 10000, "interest_rate": 12, "term_in_months": 0
        })
        assert r.status_code == 400

    def test_schedule(self, client):
        r = client.post("/api/loans/schedule", json={
            "amount": 1000, "interest_rate": 12, "term_in_months": 3
        })
        assert r.status_code == 200
        schedule = r.json()["schedule"]
        assert len(schedule) == 3
        assert schedule[0]["payment_amount"] == "340.02"
        assert schedule[-1]["remaining_balance"] == "0.00"

    def test_calculation_creates_no_loans(self, client, system):
        client.post("/api/loans/calculate", json={
            "amount": 10000, "interest_rate": 12, "term_in_months": 12
        })
        assert system.loan_store.get_all() == []
