"""
tests/test_api_users.py -- Integration tests for /api/v1/users*.

Covers:
  - role gate on create/list/patch: CEO and HR pass, Senior and Junior get 403
  - owner-or-role gate on GET /users/{id}: self passes, peers and managers do not
  - Junior creation requires an existing manager (422 otherwise, nothing written)
  - duplicate email -> 409
  - deactivation: existing tokens stop working on the next request
  - self-deactivation is refused
  - profile fields: dates are validated, hire_date defaults to today, text is trimmed
"""

from __future__ import annotations

from datetime import date

import pytest

# ---------------------------------------------------------------------------
# POST /users
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("who", ["ceo", "hr"])
def test_privileged_roles_can_create(api_client, who):
    resp = api_client.client.post(
        "/api/v1/users",
        json={
            "email": f"new-by-{who}@staffdesk.test",
            "password": "welcome-123",
            "role": "Junior",
            "manager_id": api_client.senior.id,
            "name": "New Hire",
            "department": "Engineering",
        },
        headers=api_client.headers(who),
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["role"] == "Junior"
    assert data["manager_id"] == api_client.senior.id
    assert data["department"] == "Engineering"
    assert data["is_active"] is True
    assert "password" not in data and "password_hash" not in data


@pytest.mark.parametrize("who", ["senior", "junior"])
def test_unprivileged_roles_cannot_create(api_client, who):
    resp = api_client.client.post(
        "/api/v1/users",
        json={"email": f"nope-{who}@staffdesk.test", "password": "welcome-123", "role": "HR", "name": "X"},
        headers=api_client.headers(who),
    )
    assert resp.status_code == 403
    error = resp.json()["error"]
    assert error["code"] == "role_not_permitted"
    assert error["message"] == f"Access denied. {'Senior' if who == 'senior' else 'Junior'} role is not authorized."


def test_create_requires_auth(api_client):
    resp = api_client.client.post(
        "/api/v1/users",
        json={"email": "anon@staffdesk.test", "password": "welcome-123", "role": "HR", "name": "X"},
    )
    assert resp.status_code == 401


def test_junior_without_manager_rejected(api_client):
    resp = api_client.client.post(
        "/api/v1/users",
        json={"email": "orphan@staffdesk.test", "password": "welcome-123", "role": "Junior", "name": "Orphan"},
        headers=api_client.headers("hr"),
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "invalid_identity"


def test_junior_with_unknown_manager_rejected(api_client):
    resp = api_client.client.post(
        "/api/v1/users",
        json={
            "email": "lost@staffdesk.test",
            "password": "welcome-123",
            "role": "Junior",
            "manager_id": "does-not-exist",
            "name": "Lost",
        },
        headers=api_client.headers("hr"),
    )
    assert resp.status_code == 422
    emails = [u["email"] for u in api_client.client.get("/api/v1/users", headers=api_client.headers("hr")).json()]
    assert "lost@staffdesk.test" not in emails


def test_unknown_role_rejected(api_client):
    resp = api_client.client.post(
        "/api/v1/users",
        json={"email": "boss@staffdesk.test", "password": "welcome-123", "role": "Admin", "name": "Boss"},
        headers=api_client.headers("ceo"),
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "validation_error"


def test_duplicate_email_conflict(api_client):
    resp = api_client.client.post(
        "/api/v1/users",
        json={"email": "HR@staffdesk.test", "password": "welcome-123", "role": "HR", "name": "Dup"},
        headers=api_client.headers("ceo"),
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "conflict"


# ---------------------------------------------------------------------------
# GET /users, GET /users/{id}, GET /users/{id}/reports
# ---------------------------------------------------------------------------


def test_list_users_privileged_only(api_client):
    ok = api_client.client.get("/api/v1/users", headers=api_client.headers("hr"))
    assert ok.status_code == 200
    emails = {u["email"] for u in ok.json()}
    assert {"ceo@staffdesk.test", "junior@staffdesk.test"} <= emails

    denied = api_client.client.get("/api/v1/users", headers=api_client.headers("senior"))
    assert denied.status_code == 403


def test_owner_can_read_self(api_client):
    resp = api_client.client.get(f"/api/v1/users/{api_client.junior.id}", headers=api_client.headers("junior"))
    assert resp.status_code == 200
    assert resp.json()["email"] == "junior@staffdesk.test"


def test_peer_cannot_read_other(api_client):
    resp = api_client.client.get(
        f"/api/v1/users/{api_client.junior.id}", headers=api_client.headers("other_junior")
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "not_resource_owner"


def test_manager_gets_no_access_to_report(api_client):
    resp = api_client.client.get(f"/api/v1/users/{api_client.junior.id}", headers=api_client.headers("senior"))
    assert resp.status_code == 403


@pytest.mark.parametrize("who", ["ceo", "hr"])
def test_override_roles_read_anyone(api_client, who):
    resp = api_client.client.get(f"/api/v1/users/{api_client.junior.id}", headers=api_client.headers(who))
    assert resp.status_code == 200


def test_unknown_user_404_for_privileged(api_client):
    resp = api_client.client.get("/api/v1/users/nobody", headers=api_client.headers("hr"))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


def test_unknown_user_403_for_unprivileged(api_client):
    """Ownership is decided before existence, so probing ids reveals nothing."""
    resp = api_client.client.get("/api/v1/users/nobody", headers=api_client.headers("junior"))
    assert resp.status_code == 403


def test_manager_lists_own_reports(api_client):
    resp = api_client.client.get(
        f"/api/v1/users/{api_client.senior.id}/reports", headers=api_client.headers("senior")
    )
    assert resp.status_code == 200
    ids = {u["id"] for u in resp.json()}
    assert {api_client.junior.id, api_client.other_junior.id} <= ids
    assert all(u["manager_id"] == api_client.senior.id for u in resp.json())


def test_junior_cannot_list_managers_reports(api_client):
    resp = api_client.client.get(
        f"/api/v1/users/{api_client.senior.id}/reports", headers=api_client.headers("junior")
    )
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# PATCH /users/{id}
# ---------------------------------------------------------------------------


def test_deactivation_revokes_existing_token(api_client):
    user = api_client.create_user("temp@staffdesk.test", role="Senior")
    token = api_client.client.post(
        "/api/v1/auth/login", json={"email": "temp@staffdesk.test", "password": "correct-horse-42"}
    ).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}
    assert api_client.client.get("/api/v1/auth/me", headers=headers).status_code == 200

    patched = api_client.client.patch(
        f"/api/v1/users/{user['id']}", json={"is_active": False}, headers=api_client.headers("hr")
    )
    assert patched.status_code == 200
    assert patched.json()["is_active"] is False

    resp = api_client.client.get("/api/v1/auth/me", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["error"] == {"code": "account_deactivated", "message": "Account is deactivated."}

    reactivated = api_client.client.patch(
        f"/api/v1/users/{user['id']}", json={"is_active": True}, headers=api_client.headers("hr")
    )
    assert reactivated.status_code == 200
    assert api_client.client.get("/api/v1/auth/me", headers=headers).status_code == 200


def test_self_deactivation_refused(api_client):
    resp = api_client.client.patch(
        f"/api/v1/users/{api_client.hr.id}", json={"is_active": False}, headers=api_client.headers("hr")
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "self_deactivation"


def test_patch_without_changes(api_client):
    resp = api_client.client.patch(
        f"/api/v1/users/{api_client.junior.id}", json={}, headers=api_client.headers("ceo")
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "no_changes"


def test_patch_requires_privileged_role(api_client):
    resp = api_client.client.patch(
        f"/api/v1/users/{api_client.junior.id}", json={"is_active": False}, headers=api_client.headers("senior")
    )
    assert resp.status_code == 403


def test_patch_unknown_user(api_client):
    resp = api_client.client.patch("/api/v1/users/nobody", json={"is_active": False}, headers=api_client.headers("ceo"))
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Profile fields
# ---------------------------------------------------------------------------


def test_profile_fields_round_trip(api_client):
    created = api_client.create_user(
        "profile@staffdesk.test",
        role="Senior",
        name="  Pat Profile  ",
        address=" 1 Main St ",
        date_of_birth="1990-05-17",
        hire_date="2024-03-01",
        avatar="https://cdn.staffdesk.test/a.png",
    )
    assert created["name"] == "Pat Profile"
    assert created["address"] == "1 Main St"
    assert created["date_of_birth"] == "1990-05-17"
    assert created["hire_date"] == "2024-03-01"
    assert created["avatar"] == "https://cdn.staffdesk.test/a.png"

    fetched = api_client.client.get(f"/api/v1/users/{created['id']}", headers=api_client.headers("hr")).json()
    assert fetched["address"] == "1 Main St"
    assert fetched["date_of_birth"] == "1990-05-17"


def test_hire_date_defaults_to_today(api_client):
    created = api_client.create_user("today@staffdesk.test", role="HR")
    assert created["hire_date"] == date.today().isoformat()
    assert created["date_of_birth"] is None


@pytest.mark.parametrize("field", ["hire_date", "date_of_birth"])
def test_invalid_date_rejected(api_client, field):
    resp = api_client.client.post(
        "/api/v1/users",
        json={
            "email": f"bad-{field}@staffdesk.test",
            "password": "welcome-123",
            "role": "HR",
            "name": "Bad Date",
            field: "banana",
        },
        headers=api_client.headers("ceo"),
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "validation_error"
