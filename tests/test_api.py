import json
from pathlib import Path

from fastapi.testclient import TestClient

from conftest import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    allow_email,
    auth_headers,
    make_settings,
    register_and_login,
)
from wlboard.core.auth import hash_password
from wlboard.main import create_app


# -------- Status --------


def test_status_needs_no_auth(client):
    res = client.get("/api/status")

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["partnerships"] == 0
    assert body["connectedUsers"] == 0
    assert body["allowedEmails"] == 1
    assert body["users"] == 0


# -------- Partnerships --------


def test_partnerships_require_token(client):
    res = client.get("/api/partnerships")

    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Access token required"}


def test_garbage_token_is_unauthorized(client):
    res = client.get("/api/partnerships", headers=auth_headers("not-a-jwt"))

    assert res.status_code == 401
    assert res.json()["success"] is False


def test_create_list_update_delete(client, user_token):
    headers = auth_headers(user_token)

    res = client.post(
        "/api/partnerships",
        json={"projectName": "Alpha", "numberOfWLs": "50"},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    created = res.json()["data"]
    assert created["numberOfWLs"] == 50
    assert created["createdBy"] == "Ana"
    assert created["createdByEmail"] == "ana@example.com"

    client.post("/api/partnerships", json={"projectName": "Beta"}, headers=headers)

    listing = client.get("/api/partnerships", headers=headers).json()
    assert listing["count"] == 2
    assert [r["projectName"] for r in listing["data"]] == ["Beta", "Alpha"]
    assert listing["connectedUsers"] == 0

    res = client.put(
        f"/api/partnerships/{created['id']}",
        json={"templateDescription": "Hello"},
        headers=headers,
    )
    assert res.status_code == 200
    assert res.json()["data"]["projectName"] == "Alpha"
    assert res.json()["data"]["templateDescription"] == "Hello"

    res = client.delete(f"/api/partnerships/{created['id']}", headers=headers)
    assert res.status_code == 200
    assert res.json()["data"]["id"] == created["id"]

    res = client.delete(f"/api/partnerships/{created['id']}", headers=headers)
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Partnership not found"}


def test_update_unknown_id_is_404(client, user_token):
    res = client.put(
        "/api/partnerships/missing",
        json={"projectName": "X"},
        headers=auth_headers(user_token),
    )
    assert res.status_code == 404


def test_clear_all_is_admin_only(client, admin_token, user_token):
    client.post("/api/partnerships", json={}, headers=auth_headers(user_token))

    res = client.delete("/api/partnerships", headers=auth_headers(user_token))
    assert res.status_code == 403

    res = client.delete("/api/partnerships", headers=auth_headers(admin_token))
    assert res.status_code == 200
    assert res.json()["count"] == 1
    assert client.get("/api/status").json()["partnerships"] == 0


# -------- Auth --------


def test_register_requires_allowlisted_email(client):
    res = client.post(
        "/api/auth/register",
        json={"email": "stranger@example.com", "password": "pw", "name": "S"},
    )
    assert res.status_code == 403
    assert res.json()["success"] is False


def test_register_duplicate_is_conflict(client, admin_token):
    res = client.post(
        "/api/auth/register",
        json={"email": ADMIN_EMAIL.upper(), "password": "pw", "name": "Again"},
    )
    assert res.status_code == 409


def test_register_missing_fields_is_bad_request(client):
    res = client.post("/api/auth/register", json={"email": ADMIN_EMAIL})
    assert res.status_code == 400


def test_login_errors_do_not_leak_which_part_failed(client, admin_token):
    wrong_password = client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong"}
    )
    unknown_email = client.post(
        "/api/auth/login", json={"email": "ghost@example.com", "password": "wrong"}
    )

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()


def test_verify_returns_token_claims(client, admin_token):
    res = client.get("/api/auth/verify", headers=auth_headers(admin_token))

    assert res.status_code == 200
    user = res.json()["user"]
    assert user["email"] == ADMIN_EMAIL
    assert user["role"] == "admin"
    assert user["name"] == "Admin"


def test_login_is_rate_limited(tmp_path: Path):
    settings = make_settings(tmp_path, LOGIN_RATE_LIMIT=2)
    with TestClient(create_app(settings)) as client:
        for _ in range(2):
            res = client.post("/api/auth/login", json={"email": "x@example.com", "password": "y"})
            assert res.status_code == 401
        res = client.post("/api/auth/login", json={"email": "x@example.com", "password": "y"})

    assert res.status_code == 429
    assert res.json()["success"] is False


# -------- Admin --------


def test_admin_endpoints_reject_users(client, user_token):
    headers = auth_headers(user_token)
    assert client.get("/api/admin/users", headers=headers).status_code == 403
    assert client.get("/api/admin/allowed-emails", headers=headers).status_code == 403


def test_admin_lists_users_without_credentials(client, admin_token, user_token):
    res = client.get("/api/admin/users", headers=auth_headers(admin_token))

    assert res.status_code == 200
    body = res.json()
    assert body["count"] == 2
    assert all("passwordHash" not in u for u in body["users"])


def test_allowlist_add_duplicate_and_self_removal(client, admin_token):
    headers = auth_headers(admin_token)
    allow_email(client, admin_token, "bob@example.com")

    res = client.post(
        "/api/admin/allowed-emails", json={"email": "BOB@example.com"}, headers=headers
    )
    assert res.status_code == 409

    res = client.delete(f"/api/admin/allowed-emails/{ADMIN_EMAIL}", headers=headers)
    assert res.status_code == 400

    res = client.delete("/api/admin/allowed-emails/ghost@example.com", headers=headers)
    assert res.status_code == 404

    listing = client.get("/api/admin/allowed-emails", headers=headers).json()
    assert [e["email"] for e in listing["allowedEmails"]] == [ADMIN_EMAIL, "bob@example.com"]
    assert listing["allowedEmails"][1]["addedBy"] == ADMIN_EMAIL


def test_removing_email_revokes_access(client, admin_token, user_token):
    res = client.delete(
        "/api/admin/allowed-emails/ana@example.com", headers=auth_headers(admin_token)
    )
    assert res.status_code == 200

    assert client.get("/api/partnerships", headers=auth_headers(user_token)).status_code == 401

    res = client.post(
        "/api/auth/login", json={"email": "ana@example.com", "password": "password123"}
    )
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid email or password"


def test_tokens_outlive_deactivation_when_revocation_disabled(tmp_path: Path):
    settings = make_settings(tmp_path, REVOKE_TOKENS_ON_DEACTIVATION=False)
    with TestClient(create_app(settings)) as client:
        admin = register_and_login(client, ADMIN_EMAIL, ADMIN_PASSWORD, "Admin")
        allow_email(client, admin, "ana@example.com")
        ana = register_and_login(client, "ana@example.com", "password123", "Ana")
        client.delete("/api/admin/allowed-emails/ana@example.com", headers=auth_headers(admin))

        assert client.get("/api/partnerships", headers=auth_headers(ana)).status_code == 200


# -------- Persistence across restarts --------


def test_state_survives_restart(tmp_path: Path):
    settings = make_settings(tmp_path)
    with TestClient(create_app(settings)) as client:
        token = register_and_login(client, ADMIN_EMAIL, ADMIN_PASSWORD, "Admin")
        for name in ("A", "B", "C"):
            client.post("/api/partnerships", json={"projectName": name}, headers=auth_headers(token))
        before = client.get("/api/partnerships", headers=auth_headers(token)).json()["data"]

    on_disk = json.loads((settings.DATA_DIR / "partnerships.json").read_text(encoding="utf-8"))
    assert on_disk == before

    with TestClient(create_app(settings)) as client:
        res = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )
        token = res.json()["token"]
        after = client.get("/api/partnerships", headers=auth_headers(token)).json()["data"]

    assert after == before
    assert [r["projectName"] for r in after] == ["C", "B", "A"]


def test_first_run_seeds_bootstrap_admin(client, settings):
    on_disk = json.loads((settings.DATA_DIR / "allowed-emails.json").read_text(encoding="utf-8"))

    assert len(on_disk) == 1
    assert on_disk[0]["email"] == ADMIN_EMAIL
    assert on_disk[0]["role"] == "admin"
    assert on_disk[0]["addedBy"] == "system"


# -------- Open board --------


def test_open_board_needs_no_token(open_client):
    res = open_client.post(
        "/api/partnerships", json={"projectName": "Alpha", "userName": "Ana"}
    )
    assert res.status_code == 200
    record = res.json()["data"]
    assert record["createdBy"] == "Ana"
    assert record["createdByEmail"] is None

    res = open_client.put(f"/api/partnerships/{record['id']}", json={"numberOfWLs": "abc"})
    assert res.json()["data"]["numberOfWLs"] == 0
    assert res.json()["data"]["lastModifiedBy"] == "Anonymous User"

    assert open_client.delete("/api/partnerships").json()["count"] == 1


def test_open_board_has_no_auth_routes(open_client):
    assert open_client.post("/api/auth/login", json={}).status_code == 404
    assert "users" not in open_client.get("/api/status").json()


def test_security_headers_are_set(client):
    res = client.get("/api/status")

    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert res.headers["X-Frame-Options"] == "SAMEORIGIN"


def test_missing_page_is_404(client):
    res = client.get("/dashboard")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_register_with_long_password(client):
    password = "p" * 100
    res = client.post(
        "/api/auth/register",
        json={"email": ADMIN_EMAIL, "password": password, "name": "Admin"},
    )
    assert res.status_code == 200, res.text

    res = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": password})
    assert res.status_code == 200


def test_older_data_files_still_start(tmp_path: Path):
    settings = make_settings(tmp_path)
    settings.DATA_DIR.mkdir(parents=True)
    (settings.DATA_DIR / "partnerships.json").write_text(
        json.dumps(
            [
                {"id": "x", "projectName": "P", "createdAt": "2024-01-01T00:00:00.000Z"},
                {"id": "y", "projectName": {"broken": True}},
                {"id": "z", "projectName": "Q"},
            ]
        ),
        encoding="utf-8",
    )
    (settings.DATA_DIR / "users.json").write_text(
        json.dumps(
            [
                {
                    "id": "u1",
                    "email": ADMIN_EMAIL,
                    "name": "Admin",
                    "password": hash_password(ADMIN_PASSWORD, rounds=4),
                    "role": "admin",
                    "isActive": True,
                }
            ]
        ),
        encoding="utf-8",
    )

    with TestClient(create_app(settings)) as client:
        res = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )
        assert res.status_code == 200, res.text
        token = res.json()["token"]

        records = client.get("/api/partnerships", headers=auth_headers(token)).json()["data"]

    assert [r["id"] for r in records] == ["x", "z"]
    assert records[0]["updatedAt"] == "2024-01-01T00:00:00.000Z"
    assert records[1]["createdAt"]
