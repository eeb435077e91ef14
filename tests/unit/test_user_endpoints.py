"""Unit tests for /users endpoints."""

from uuid import uuid4

import pytest

from school_portal.models.account import Role


@pytest.fixture
def student(account_store):
    return account_store.seed(
        name="Alice Martin", email="alice@example.com", password_hash="h"
    )


@pytest.fixture
def admin(account_store):
    return account_store.seed(
        name="Admin", email="admin@example.com", password_hash="h", role=Role.ADMIN
    )


@pytest.fixture
def admin_headers(bearer, admin):
    return bearer(account_id=admin.id, role=Role.ADMIN, email=admin.email)


@pytest.fixture
def student_headers(bearer, student):
    return bearer(account_id=student.id, role=Role.STUDENT, email=student.email)


class TestListUsers:
    def test_admin_lists_all(self, client, admin_headers, student):
        response = client.get("/users", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Retrieved 2 users"
        assert {u["email"] for u in body["data"]} == {"alice@example.com", "admin@example.com"}

    def test_student_forbidden(self, client, student_headers):
        assert client.get("/users", headers=student_headers).status_code == 403


class TestAddUser:
    def test_admin_creates_admin(self, client, admin_headers):
        response = client.post(
            "/users/add-user",
            json={
                "name": "Second Admin",
                "email": "Second@Example.com",
                "password": "secret123",
                "role": "admin",
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["email"] == "second@example.com"
        assert data["role"] == "admin"
        assert client.post(
            "/auth/login", json={"email": "second@example.com", "password": "secret123"}
        ).status_code == 200

    def test_duplicate_email(self, client, admin_headers, student):
        response = client.post(
            "/users/add-user",
            json={"name": "Alice", "email": "alice@example.com", "password": "secret123"},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_student_forbidden(self, client, student_headers):
        response = client.post(
            "/users/add-user",
            json={"name": "Mallory", "email": "m@example.com", "password": "secret123", "role": "admin"},
            headers=student_headers,
        )

        assert response.status_code == 403


class TestGetUser:
    def test_owner_can_read_self(self, client, student, student_headers):
        response = client.get(f"/users/{student.id}", headers=student_headers)

        assert response.status_code == 200
        assert response.json()["data"]["id"] == str(student.id)

    def test_student_cannot_read_others(self, client, admin, student_headers):
        assert client.get(f"/users/{admin.id}", headers=student_headers).status_code == 403

    def test_admin_reads_anyone(self, client, student, admin_headers):
        assert client.get(f"/users/{student.id}", headers=admin_headers).status_code == 200

    def test_not_found(self, client, admin_headers):
        response = client.get(f"/users/{uuid4()}", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "User not found"

    def test_invalid_id(self, client, admin_headers):
        assert client.get("/users/not-a-uuid", headers=admin_headers).status_code == 400


class TestUpdateUser:
    def test_owner_updates_name(self, client, student, student_headers):
        response = client.put(
            f"/users/{student.id}", json={"name": "Alice M."}, headers=student_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Alice M."

    def test_owner_cannot_change_role(self, client, student, student_headers, account_store):
        response = client.put(
            f"/users/{student.id}", json={"role": "admin"}, headers=student_headers
        )

        assert response.status_code == 403
        assert account_store.rows[student.id]["role"] == Role.STUDENT

    def test_admin_promotes_student(self, client, student, admin_headers):
        response = client.put(
            f"/users/{student.id}", json={"role": "admin"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["role"] == "admin"

    def test_admin_cannot_demote_self(self, client, admin, admin_headers):
        response = client.put(
            f"/users/{admin.id}", json={"role": "student"}, headers=admin_headers
        )

        assert response.status_code == 403


class TestDeactivateAndDelete:
    def test_deactivate_revokes_refresh_token(self, client, student, admin_headers, account_store):
        account_store.rows[student.id]["refresh_token_hash"] = "digest"

        response = client.post(f"/users/{student.id}/deactivate", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["data"]["isActive"] is False
        assert account_store.rows[student.id]["refresh_token_hash"] is None

    def test_cannot_deactivate_self(self, client, admin, admin_headers):
        response = client.post(f"/users/{admin.id}/deactivate", headers=admin_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "Cannot deactivate your own account"

    def test_deactivate_unknown(self, client, admin_headers):
        assert client.post(f"/users/{uuid4()}/deactivate", headers=admin_headers).status_code == 404

    def test_delete(self, client, student, admin_headers, account_store):
        response = client.delete(f"/users/{student.id}", headers=admin_headers)

        assert response.status_code == 200
        assert student.id not in account_store.rows
        assert client.delete(f"/users/{student.id}", headers=admin_headers).status_code == 404

    def test_cannot_delete_self(self, client, admin, admin_headers):
        assert client.delete(f"/users/{admin.id}", headers=admin_headers).status_code == 403

    def test_student_cannot_delete(self, client, admin, student_headers):
        assert client.delete(f"/users/{admin.id}", headers=student_headers).status_code == 403
