import os

# Settings read the environment at import time, and importing the
# package builds the module-level app, which needs a signing secret.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", ":memory:")

import itertools
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from helpapp_api.app.core.config import Settings
from helpapp_api.app.core.db import Database
from helpapp_api.app.main import create_app

API = "/api"
PASSWORD = "password123"


class FakeClock:
    """Controllable time source returning UNIX seconds."""

    def __init__(self, now: int = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings():
    return Settings(
        jwt_secret_key="test-secret-key",
        database_url=":memory:",
        access_token_expire_minutes=60,
        api_prefix=API,
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(client):
    """Sign up a user through the API and return ``(user, headers)``."""
    counter = itertools.count(1)

    def _make(role: str = "CLIENT", email: str = None, name: str = None):
        n = next(counter)
        payload = {
            "name": name or f"{role.title()} {n}",
            "email": email or f"{role.lower()}{n}@example.com",
            "password": PASSWORD,
            "role": role,
        }
        resp = client.post(f"{API}/signup", json=payload)
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["user"], bearer(body["token"])

    return _make


@pytest.fixture
def marketplace(client, make_user):
    """Admin, two providers with one service each, and two clients."""
    admin, admin_headers = make_user("ADMIN")
    provider, provider_headers = make_user("PROVIDER")
    other_provider, other_provider_headers = make_user("PROVIDER")
    client_user, client_headers = make_user("CLIENT")
    other_client, other_client_headers = make_user("CLIENT")

    resp = client.post(f"{API}/services", json={"name": "Plumbing"}, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    service_type = resp.json()

    def offer(headers, title):
        r = client.post(
            f"{API}/services/offerings",
            json={"title": title, "description": "Fixing minor plumbing issues.", "price": 50.0,
                  "serviceTypeId": service_type["id"]},
            headers=headers,
        )
        assert r.status_code == 201, r.text
        return r.json()

    return SimpleNamespace(
        admin=admin, admin_headers=admin_headers,
        provider=provider, provider_headers=provider_headers,
        other_provider=other_provider, other_provider_headers=other_provider_headers,
        client=client_user, client_headers=client_headers,
        other_client=other_client, other_client_headers=other_client_headers,
        service_type=service_type,
        service=offer(provider_headers, "Basic Plumbing Fix"),
        other_service=offer(other_provider_headers, "Pipe Replacement"),
    )


@pytest.fixture
def db():
    database = Database(":memory:")
    database.connect()
    database.init_db()
    yield database
    database.close()


@pytest.fixture
def seeded(db):
    """Rows for service-level tests, inserted directly into the store."""
    ids = {}
    with db.transaction() as cursor:
        for key, role in (
            ("client", "CLIENT"),
            ("other_client", "CLIENT"),
            ("provider", "PROVIDER"),
            ("other_provider", "PROVIDER"),
            ("admin", "ADMIN"),
        ):
            cursor.execute(
                "INSERT INTO users (email, name, password, role) VALUES (?, ?, ?, ?)",
                (f"{key}@example.com", key.replace("_", " ").title(), "00$00", role),
            )
            ids[key] = cursor.lastrowid
        cursor.execute("INSERT INTO service_types (name) VALUES ('Plumbing')")
        ids["service_type"] = cursor.lastrowid
        for key, owner, title in (
            ("service", "provider", "Basic Plumbing Fix"),
            ("other_service", "other_provider", "Pipe Replacement"),
        ):
            cursor.execute(
                "INSERT INTO services (title, description, price, provider_id, service_type_id) "
                "VALUES (?, ?, ?, ?, ?)",
                (title, "Fixing minor plumbing issues.", 50.0, ids[owner], ids["service_type"]),
            )
            ids[key] = cursor.lastrowid
    return SimpleNamespace(**ids)
