import itertools
import os

# Settings are read once at import: configure the test environment first
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_REGISTRATION_SECRET"] = "test-admin-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from lendfi.database import Database
from lendfi.main import create_app

ADMIN_SECRET = "test-admin-secret"
PASSWORD = "Str0ng!Pass"

_sequence = itertools.count(1)


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def registration_payload(**overrides) -> dict:
    n = next(_sequence)
    payload = {
        "email": f"user{n}@lendfi.io",
        "password": PASSWORD,
        "name": f"User {n}",
        "phone": "0700000000",
        "dateOfBirth": "1990-05-17",
        "idNumber": f"ID-{n:06d}",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture
def client(database):
    app = create_app(database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register an account and return its id, credentials and auth headers."""
    def _register(**overrides):
        payload = registration_payload(**overrides)
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return {
            "id": data["user"]["id"],
            "email": payload["email"],
            "password": payload["password"],
            "name": payload["name"],
            "headers": auth_headers(data["token"]),
        }
    return _register


@pytest.fixture
def admin(register):
    return register(role="admin", adminSecret=ADMIN_SECRET, name="Platform Admin")


@pytest.fixture
def make_user(client, register, admin):
    def _make_user(verified: bool = True, **overrides):
        user = register(**overrides)
        if verified:
            response = client.put(
                f"/api/admin/users/{user['id']}/kyc",
                json={"kycStatus": "verified"},
                headers=admin["headers"],
            )
            assert response.status_code == 200, response.text
        return user
    return _make_user


@pytest.fixture
def request_loan(client):
    def _request_loan(user, **overrides):
        payload = {
            "amount": 1.0,
            "interestRate": 25,
            "duration": 4,
            "collateral": "ETH in escrow",
            "description": "Working capital",
        }
        payload.update(overrides)
        response = client.post("/api/loans/request", json=payload, headers=user["headers"])
        assert response.status_code == 201, response.text
        return response.json()["data"]["loan"]
    return _request_loan


@pytest.fixture
def create_rosca(client):
    def _create_rosca(user, **overrides):
        payload = {
            "name": "Market Women Circle",
            "description": "Weekly savings",
            "contributionAmount": 0.25,
            "cycleDuration": 7,
            "maxMembers": 3,
        }
        payload.update(overrides)
        response = client.post("/api/roscas", json=payload, headers=user["headers"])
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create_rosca
