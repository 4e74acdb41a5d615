# tests/test_users.py — User profile router tests
import uuid
from datetime import timedelta

import pytest
from httpx import AsyncClient

from tests.conftest import get_auth_headers, make_token


@pytest.mark.asyncio
async def test_get_me(client: AsyncClient, owner):
    resp = await client.get("/api/users/me", headers=get_auth_headers(owner))
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == owner.id
    assert data["email"] == "owner@gear.test"
    assert data["role"] == "user"


@pytest.mark.asyncio
async def test_first_request_registers_user(client: AsyncClient):
    """A verified token for an unknown uid creates the users row"""
    uid = str(uuid.uuid4())
    token = make_token({"sub": uid, "email": "new@gear.test", "name": "New Player"})
    headers = {"Authorization": f"Bearer {token}"}

    resp = await client.get("/api/users/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == uid
    assert resp.json()["display_name"] == "New Player"

    # and only once
    resp = await client.get("/api/users/me", headers=headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_expired_token_is_forbidden(client: AsyncClient, owner):
    token = make_token({"sub": owner.id, "email": owner.email}, expires_in=timedelta(minutes=-5))
    resp = await client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_missing_token(client: AsyncClient):
    resp = await client.get("/api/users/me")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_update_profile(client: AsyncClient, owner):
    headers = get_auth_headers(owner)
    resp = await client.patch(
        "/api/users/me", json={"display_name": "Renamed Player"}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["display_name"] == "Renamed Player"


@pytest.mark.asyncio
async def test_list_users_as_admin(client: AsyncClient, admin_user, owner):
    """Admin can list registered users"""
    resp = await client.get("/api/users", headers=get_auth_headers(admin_user))
    assert resp.status_code == 200
    data = resp.json()
    assert isinstance(data, list)
    assert {u["id"] for u in data} >= {admin_user.id, owner.id}


@pytest.mark.asyncio
async def test_list_users_forbidden_for_regular_user(client: AsyncClient, owner):
    """Regular users cannot list users"""
    resp = await client.get("/api/users", headers=get_auth_headers(owner))
    assert resp.status_code == 403
