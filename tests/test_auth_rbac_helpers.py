from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.auth import RequestUserContext, build_user_context, has_role
from app.core.config import get_settings
from app.models.entities import UserRole, UserStatus
from conftest import Seeder, auth_headers


def _context(role: UserRole, *, user_id: int = 1) -> RequestUserContext:
    return RequestUserContext(
        user_id=user_id,
        email="user@test.local",
        display_name="User Tester",
        role=role,
        status=UserStatus.ACTIVE,
    )


def test_has_role_matches_expected_roles() -> None:
    context = _context(UserRole.MANAGER)

    assert has_role(context, {UserRole.MANAGER}) is True
    assert has_role(context, {UserRole.ADMIN, UserRole.VENDOR}) is False
    assert context.is_admin is False
    assert context.is_vendor is False


def test_build_user_context_copies_role_and_vendor_link(seed: Seeder) -> None:
    vendor_user = seed.user(UserRole.VENDOR)
    consultant = seed.consultant(vendor_user, first_name="Cora")

    context = build_user_context(consultant, ip_address="10.0.0.1")

    assert context.user_id == consultant.id
    assert context.role == UserRole.CONSULTANT
    assert context.working_for == vendor_user.id
    assert context.display_name == "Cora Tester"
    assert context.ip_address == "10.0.0.1"


def test_missing_identity_header_is_unauthorized(client: TestClient) -> None:
    response = client.get("/api/v1/me")

    assert response.status_code == 401


def test_malformed_identity_header_is_unauthorized(client: TestClient) -> None:
    response = client.get("/api/v1/me", headers={"X-User-Id": "abc"})

    assert response.status_code == 401


def test_unknown_user_is_unauthorized(client: TestClient) -> None:
    response = client.get("/api/v1/me", headers=auth_headers(999))

    assert response.status_code == 401


def test_suspended_user_is_forbidden(client: TestClient, seed: Seeder) -> None:
    user = seed.user(UserRole.EMPLOYEE, status=UserStatus.SUSPENDED)

    response = client.get("/api/v1/me", headers=auth_headers(user.id))

    assert response.status_code == 403


def test_me_returns_resolved_role(client: TestClient, seed: Seeder) -> None:
    vendor_user = seed.user(UserRole.VENDOR, first_name="Vera")

    response = client.get("/api/v1/me", headers=auth_headers(vendor_user.id))

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == vendor_user.id
    assert body["role"] == "vendor"
    assert body["display_name"] == "Vera Tester"


def test_require_roles_rejects_other_roles(client: TestClient, seed: Seeder) -> None:
    employee = seed.user(UserRole.EMPLOYEE)

    response = client.get("/api/v1/users", headers=auth_headers(employee.id))

    assert response.status_code == 403
    assert response.json()["detail"] == "Forbidden: You do not have permission to access this resource."


def test_dev_principal_fallback(client: TestClient, seed: Seeder, monkeypatch: pytest.MonkeyPatch) -> None:
    admin = seed.user(UserRole.ADMIN)
    monkeypatch.setenv("AUTH_ALLOW_DEV_PRINCIPAL", "true")
    monkeypatch.setenv("AUTH_DEV_USER_ID", str(admin.id))
    get_settings.cache_clear()

    response = client.get("/api/v1/me")

    assert response.status_code == 200
    assert response.json()["id"] == admin.id
