from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from wlboard.core.config import Settings
from wlboard.main import create_app

ADMIN_EMAIL = "admin@wlsmanager.com"
ADMIN_PASSWORD = "admin-password"


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "DATA_DIR": tmp_path / "data",
        "STATIC_DIR": tmp_path / "static",
        "JWT_SECRET": "test-secret",
        "BCRYPT_ROUNDS": 4,
        "API_RATE_LIMIT": 10_000,
        "LOGIN_RATE_LIMIT": 1_000,
        "SAVE_INTERVAL_SECONDS": 3600,
    }
    values.update(overrides)
    return Settings(**values)


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register_and_login(
    client: TestClient, email: str, password: str, name: str
) -> str:
    res = client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "name": name},
    )
    assert res.status_code == 200, res.text
    res = client.post("/api/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["token"]


def allow_email(client: TestClient, admin_token: str, email: str, role: str = "user") -> None:
    res = client.post(
        "/api/admin/allowed-emails",
        json={"email": email, "role": role},
        headers=auth_headers(admin_token),
    )
    assert res.status_code == 200, res.text


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def client(settings: Settings):
    # Entering the context runs the lifespan, and keeps HTTP and WebSocket
    # traffic on one event loop.
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def open_client(tmp_path: Path):
    with TestClient(create_app(make_settings(tmp_path, AUTH_ENABLED=False))) as c:
        yield c


@pytest.fixture
def admin_token(client: TestClient) -> str:
    return register_and_login(client, ADMIN_EMAIL, ADMIN_PASSWORD, "Admin")


@pytest.fixture
def user_token(client: TestClient, admin_token: str) -> str:
    allow_email(client, admin_token, "ana@example.com")
    return register_and_login(client, "ana@example.com", "password123", "Ana")
