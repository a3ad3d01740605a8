# tests/conftest.py
from __future__ import annotations

import os
import uuid
from typing import Any, Dict, Iterator

# Env-ul trebuie setat ÎNAINTE de importul `sweetshop` (settings se citesc la import)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "1")
os.environ.setdefault("SEED_ON_STARTUP", "1")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("CORS_ORIGINS", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from sweetshop.database import Base, engine  # noqa: E402
from sweetshop.main import app  # noqa: E402

ADMIN_CREDENTIALS = {"username": "admin", "password": "admin123"}


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _login(c: TestClient, username: str, password: str) -> Dict[str, Any]:
    r = c.post("/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, f"login failed: {r.status_code} {r.text[:300]}"
    return r.json()


# --- Fixuri ---------------------------------------------------------------------
@pytest.fixture()
def client() -> Iterator[TestClient]:
    """
    Client cu DB in-memory proaspăt per test: lifespan-ul creează tabelele
    și face seed (admin + 4 produse demo), iar la shutdown engine.dispose()
    aruncă baza in-memory.
    """
    Base.metadata.drop_all(bind=engine)
    with TestClient(app) as c:
        yield c
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def admin_token(client: TestClient) -> str:
    return _login(client, **ADMIN_CREDENTIALS)["token"]


@pytest.fixture()
def admin_client(client: TestClient, admin_token: str) -> TestClient:
    client.headers.update(auth_headers(admin_token))
    return client


@pytest.fixture()
def user_token(client: TestClient) -> str:
    suffix = uuid.uuid4().hex[:8]
    r = client.post(
        "/auth/register",
        json={"username": f"user_{suffix}", "email": f"user_{suffix}@example.com", "password": "secret1"},
    )
    assert r.status_code == 201, f"register failed: {r.status_code} {r.text[:300]}"
    return r.json()["token"]


@pytest.fixture()
def user_client(client: TestClient, user_token: str) -> TestClient:
    client.headers.update(auth_headers(user_token))
    return client
