import time

import jwt
import pytest

from dealership.auth.auth_handler import decode_jwt, sign_jwt
from dealership.auth.rbac import AdminPrincipal, can_access_branch, ensure_branch_access, scoped_branch_filter
from dealership.services.exceptions import ForbiddenError

PASSWORD = "Admin@12345"

super_admin_principal = AdminPrincipal(id=1, name="HO", email="ho@example.com", role="Super-Admin")
manager_principal = AdminPrincipal(id=2, name="BM", email="bm@example.com", role="Branch-Admin", branch_id=5)


def test_token_round_trip_carries_role():
    token = sign_jwt(7, "Branch-Admin")["access_token"]
    payload = decode_jwt(token)
    assert payload["user_id"] == 7
    assert payload["role"] == "Branch-Admin"


def test_expired_and_foreign_tokens_are_rejected():
    expired = jwt.encode({"user_id": 1, "role": "Super-Admin", "expires": time.time() - 1}, "test-secret", algorithm="HS256")
    assert decode_jwt(expired) is None
    forged = jwt.encode({"user_id": 1, "role": "Super-Admin", "expires": time.time() + 60}, "other", algorithm="HS256")
    assert decode_jwt(forged) is None
    assert decode_jwt("not-a-token") is None


def test_branch_policy():
    assert can_access_branch(super_admin_principal, 99)
    assert can_access_branch(manager_principal, 5)
    assert not can_access_branch(manager_principal, 6)
    assert not can_access_branch(manager_principal, None)
    with pytest.raises(ForbiddenError):
        ensure_branch_access(manager_principal, 6)


def test_list_scoping():
    assert scoped_branch_filter(super_admin_principal, None) is None
    assert scoped_branch_filter(super_admin_principal, 3) == 3
    assert scoped_branch_filter(manager_principal, None) == 5
    assert scoped_branch_filter(manager_principal, 5) == 5
    with pytest.raises(ForbiddenError):
        scoped_branch_filter(manager_principal, 6)


@pytest.mark.asyncio
async def test_super_admin_login(async_client, super_admin):
    response = await async_client.post(
        "/api/adminLogin/super-ad-login", json={"email": "ADMIN@example.com", "password": PASSWORD}
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "Super-Admin"
    assert "password" not in data["user"]

    me = await async_client.get(
        "/api/adminLogin/me", headers={"Authorization": f"Bearer {data['access_token']}"}
    )
    assert me.json()["data"]["email"] == "admin@example.com"


@pytest.mark.asyncio
async def test_wrong_password_is_401(async_client, super_admin):
    response = await async_client.post(
        "/api/adminLogin/super-ad-login", json={"email": "admin@example.com", "password": "nope"}
    )
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid credentials"}


@pytest.mark.asyncio
async def test_branch_manager_login(async_client, branch_manager, test_branch):
    response = await async_client.post(
        "/api/adminLogin/branchM-login", json={"applicationId": "bm-ab12-cd34", "password": PASSWORD}
    )
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]
    assert decode_jwt(token)["role"] == "Branch-Admin"

    me = await async_client.get("/api/adminLogin/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["data"]["branchId"] == test_branch.id


@pytest.mark.asyncio
async def test_missing_and_invalid_tokens(async_client):
    response = await async_client.get("/api/adminLogin/me")
    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, no token provided"

    response = await async_client.get("/api/adminLogin/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, invalid or expired token"


@pytest.mark.asyncio
async def test_token_for_deleted_admin(async_client):
    headers = {"Authorization": f"Bearer {sign_jwt(404, 'Super-Admin')['access_token']}"}
    response = await async_client.get("/api/adminLogin/me", headers=headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_role_gate(async_client, manager_headers):
    response = await async_client.get("/api/adminLogin/branch-managers", headers=manager_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "User role Branch-Admin is not authorized to access this route"


@pytest.mark.asyncio
async def test_branch_manager_is_scoped(async_client, manager_headers, make_stock, other_branch):
    await make_stock()
    await make_stock(branch_id=other_branch.id)

    response = await async_client.get("/api/stock-concept/", headers=manager_headers)
    assert response.json()["total"] == 1

    response = await async_client.get(
        "/api/stock-concept/", headers=manager_headers, params={"branchId": other_branch.id}
    )
    assert response.status_code == 403
    assert response.json()["message"] == "Not authorized to access this branch"


@pytest.mark.asyncio
async def test_deactivated_manager_loses_access(async_client, admin_headers, manager_headers, branch_manager):
    response = await async_client.patch(
        f"/api/adminLogin/branch-managers/{branch_manager.id}", headers=admin_headers, json={"isActive": False}
    )
    assert response.json()["data"]["isActive"] is False

    response = await async_client.get("/api/adminLogin/me", headers=manager_headers)
    assert response.status_code == 401

    response = await async_client.post(
        "/api/adminLogin/branchM-login", json={"applicationId": "BM-AB12-CD34", "password": PASSWORD}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_branch_manager_and_regenerate(async_client, admin_headers, test_branch):
    response = await async_client.post(
        "/api/adminLogin/create-branchM",
        headers=admin_headers,
        json={"name": "Jorhat Lead", "email": "Lead@Example.com", "branch": "golaghat"},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["manager"]["branchId"] == test_branch.id
    assert data["manager"]["email"] == "lead@example.com"
    assert data["applicationId"].startswith("BM-")

    login = await async_client.post(
        "/api/adminLogin/branchM-login",
        json={"applicationId": data["applicationId"], "password": data["password"]},
    )
    assert login.status_code == 200

    regenerated = await async_client.post(
        f"/api/adminLogin/branch-managers/{data['manager']['id']}/regenerate-password", headers=admin_headers
    )
    new_password = regenerated.json()["data"]["password"]
    assert new_password != data["password"]

    old = await async_client.post(
        "/api/adminLogin/branchM-login",
        json={"applicationId": data["applicationId"], "password": data["password"]},
    )
    assert old.status_code == 401

    duplicate = await async_client.post(
        "/api/adminLogin/create-branchM",
        headers=admin_headers,
        json={"name": "Someone", "email": "lead@example.com", "branch": str(test_branch.id)},
    )
    assert duplicate.status_code == 400


@pytest.mark.asyncio
async def test_seed_super_admin(async_client, monkeypatch):
    monkeypatch.setenv("SUPER_ADMIN_EMAIL", "Owner@Example.com")
    monkeypatch.setenv("SUPER_ADMIN_PASSWORD", "Seed@2024!")

    response = await async_client.post("/api/adminLogin/seed")
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "owner@example.com"

    response = await async_client.post("/api/adminLogin/seed")
    assert response.status_code == 400
    assert response.json()["message"] == "Super admin already exists"
