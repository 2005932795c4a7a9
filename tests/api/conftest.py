from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.auth import hash_password
from api.main import create_app
from api.repositories import create_admin

ADMIN_EMAIL = "ops@alak.example"
ADMIN_PASSWORD = "correct horse battery"


@pytest.fixture()
def app(db_settings):
    return create_app(db_settings)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def admin(scope):
    with scope() as session:
        return create_admin(
            session,
            email=ADMIN_EMAIL,
            full_name="Ops Lead",
            password_hash=hash_password(ADMIN_PASSWORD, iterations=1_000),
        )


@pytest.fixture()
def admin_client(client, admin):
    resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return client
