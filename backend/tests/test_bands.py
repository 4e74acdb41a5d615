# tests/test_bands.py — Band and membership router tests
import pytest
from httpx import AsyncClient
from sqlalchemy import select, func

from models import Gig, Instrument
from tests.conftest import get_auth_headers


async def _band(client: AsyncClient, headers: dict, name: str = "The Testers") -> dict:
    resp = await client.post("/api/bands", json={"name": name}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_create_band_makes_caller_owner(client: AsyncClient, owner):
    headers = get_auth_headers(owner)
    band = await _band(client, headers)
    assert band["my_role"] == "owner"
    assert band["owner_id"] == owner.id

    resp = await client.get(f"/api/bands/{band['id']}", headers=headers)
    assert resp.status_code == 200
    members = resp.json()["members"]
    assert [(m["user_id"], m["role"]) for m in members] == [(owner.id, "owner")]


@pytest.mark.asyncio
async def test_list_only_my_bands(client: AsyncClient, owner, other_user):
    await _band(client, get_auth_headers(owner), "Mine")
    await _band(client, get_auth_headers(other_user), "Theirs")
    resp = await client.get("/api/bands", headers=get_auth_headers(owner))
    assert [b["name"] for b in resp.json()] == ["Mine"]


@pytest.mark.asyncio
async def test_non_member_cannot_see_band(client: AsyncClient, owner, other_user):
    band = await _band(client, get_auth_headers(owner))
    resp = await client.get(f"/api/bands/{band['id']}", headers=get_auth_headers(other_user))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_add_member_and_duplicate_conflict(client: AsyncClient, owner, other_user):
    headers = get_auth_headers(owner)
    band = await _band(client, headers)

    resp = await client.post(
        f"/api/bands/{band['id']}/members", json={"user_id": other_user.id}, headers=headers
    )
    assert resp.status_code == 201
    assert resp.json()["role"] == "member"

    resp = await client.post(
        f"/api/bands/{band['id']}/members", json={"user_id": other_user.id}, headers=headers
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_add_unknown_user(client: AsyncClient, owner):
    headers = get_auth_headers(owner)
    band = await _band(client, headers)
    resp = await client.post(
        f"/api/bands/{band['id']}/members", json={"user_id": "nobody"}, headers=headers
    )
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "user_id"


@pytest.mark.asyncio
async def test_plain_member_cannot_manage(client: AsyncClient, owner, other_user, admin_user):
    headers = get_auth_headers(owner)
    band = await _band(client, headers)
    await client.post(
        f"/api/bands/{band['id']}/members", json={"user_id": other_user.id}, headers=headers
    )

    member_headers = get_auth_headers(other_user)
    resp = await client.patch(
        f"/api/bands/{band['id']}", json={"name": "Renamed"}, headers=member_headers
    )
    assert resp.status_code == 403
    resp = await client.post(
        f"/api/bands/{band['id']}/members", json={"user_id": admin_user.id}, headers=member_headers
    )
    assert resp.status_code == 403
    resp = await client.delete(f"/api/bands/{band['id']}", headers=member_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_member_can_leave_but_owner_cannot(client: AsyncClient, owner, other_user):
    headers = get_auth_headers(owner)
    band = await _band(client, headers)
    await client.post(
        f"/api/bands/{band['id']}/members", json={"user_id": other_user.id}, headers=headers
    )

    resp = await client.delete(
        f"/api/bands/{band['id']}/members/{other_user.id}", headers=get_auth_headers(other_user)
    )
    assert resp.status_code == 200

    resp = await client.delete(f"/api/bands/{band['id']}/members/{owner.id}", headers=headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_delete_band_unassigns_instruments_and_drops_gigs(client: AsyncClient, owner, db_session):
    headers = get_auth_headers(owner)
    band = await _band(client, headers)
    created = await client.post(
        "/api/instruments",
        json={"name": "Stage Piano", "type": "keys", "band_id": band["id"]},
        headers=headers,
    )
    instrument_id = created.json()["id"]
    await client.post(
        "/api/gigs",
        json={"band_id": band["id"], "title": "Festival", "start_time": "2030-07-01T18:00:00Z"},
        headers=headers,
    )

    resp = await client.delete(f"/api/bands/{band['id']}", headers=headers)
    assert resp.status_code == 200

    result = await db_session.execute(select(Instrument.band_id).where(Instrument.id == instrument_id))
    assert result.scalar_one() is None
    result = await db_session.execute(
        select(func.count(Gig.id)).where(Gig.band_id == band["id"])
    )
    assert result.scalar() == 0
