# tests/test_gigs.py — Gig and gear list router tests
import pytest
from httpx import AsyncClient

from tests.conftest import get_auth_headers


async def _setup(client: AsyncClient, headers: dict):
    band = (await client.post("/api/bands", json={"name": "Gig Band"}, headers=headers)).json()
    gig = await client.post(
        "/api/gigs",
        json={
            "band_id": band["id"],
            "title": "Friday at the Crown",
            "start_time": "2030-03-01T20:00:00Z",
            "end_time": "2030-03-01T23:00:00Z",
            "venue": "The Crown",
        },
        headers=headers,
    )
    assert gig.status_code == 201, gig.text
    instrument = await client.post(
        "/api/instruments", json={"name": "Strat", "type": "guitar"}, headers=headers
    )
    return band, gig.json(), instrument.json()["id"]


@pytest.mark.asyncio
async def test_create_and_list_gigs(client: AsyncClient, owner):
    headers = get_auth_headers(owner)
    band, gig, _ = await _setup(client, headers)
    assert gig["band_id"] == band["id"]
    assert gig["created_by"] == owner.id

    resp = await client.get("/api/gigs", params={"upcoming": True}, headers=headers)
    assert resp.status_code == 200
    assert [g["id"] for g in resp.json()] == [gig["id"]]


@pytest.mark.asyncio
async def test_gig_for_foreign_band_rejected(client: AsyncClient, owner, other_user):
    band = (await client.post(
        "/api/bands", json={"name": "Elsewhere"}, headers=get_auth_headers(other_user)
    )).json()
    resp = await client.post(
        "/api/gigs",
        json={"band_id": band["id"], "title": "Crash", "start_time": "2030-01-01T20:00:00Z"},
        headers=get_auth_headers(owner),
    )
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "band_id"


@pytest.mark.asyncio
async def test_end_before_start_rejected(client: AsyncClient, owner):
    headers = get_auth_headers(owner)
    band = (await client.post("/api/bands", json={"name": "Timing"}, headers=headers)).json()
    resp = await client.post(
        "/api/gigs",
        json={
            "band_id": band["id"], "title": "Backwards",
            "start_time": "2030-01-01T22:00:00Z", "end_time": "2030-01-01T20:00:00Z",
        },
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "end_time"


@pytest.mark.asyncio
async def test_gear_list_and_packing(client: AsyncClient, owner):
    headers = get_auth_headers(owner)
    _, gig, instrument_id = await _setup(client, headers)

    resp = await client.post(
        f"/api/gigs/{gig['id']}/gear", json={"instrument_id": instrument_id}, headers=headers
    )
    assert resp.status_code == 201
    assert resp.json()["is_packed"] is False

    resp = await client.patch(
        f"/api/gigs/{gig['id']}/gear/{instrument_id}", json={"is_packed": True}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["is_packed"] is True

    detail = (await client.get(f"/api/gigs/{gig['id']}", headers=headers)).json()
    assert detail["packed"] == 1
    assert detail["gear"][0]["name"] == "Strat"


@pytest.mark.asyncio
async def test_duplicate_gear_is_conflict(client: AsyncClient, owner):
    headers = get_auth_headers(owner)
    _, gig, instrument_id = await _setup(client, headers)
    url = f"/api/gigs/{gig['id']}/gear"
    assert (await client.post(url, json={"instrument_id": instrument_id}, headers=headers)).status_code == 201
    resp = await client.post(url, json={"instrument_id": instrument_id}, headers=headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_cannot_add_someone_elses_instrument(client: AsyncClient, owner, other_user):
    headers = get_auth_headers(owner)
    _, gig, _ = await _setup(client, headers)
    theirs = await client.post(
        "/api/instruments", json={"name": "Borrowed", "type": "guitar"},
        headers=get_auth_headers(other_user),
    )
    resp = await client.post(
        f"/api/gigs/{gig['id']}/gear", json={"instrument_id": theirs.json()["id"]}, headers=headers
    )
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "instrument_id"


@pytest.mark.asyncio
async def test_remove_gear_and_delete_gig(client: AsyncClient, owner):
    headers = get_auth_headers(owner)
    _, gig, instrument_id = await _setup(client, headers)
    await client.post(
        f"/api/gigs/{gig['id']}/gear", json={"instrument_id": instrument_id}, headers=headers
    )

    resp = await client.delete(f"/api/gigs/{gig['id']}/gear/{instrument_id}", headers=headers)
    assert resp.status_code == 200
    resp = await client.delete(f"/api/gigs/{gig['id']}/gear/{instrument_id}", headers=headers)
    assert resp.status_code == 404

    assert (await client.delete(f"/api/gigs/{gig['id']}", headers=headers)).status_code == 200
    assert (await client.get(f"/api/gigs/{gig['id']}", headers=headers)).status_code == 404
    # the instrument itself is untouched
    assert (await client.get(f"/api/instruments/{instrument_id}", headers=headers)).status_code == 200


@pytest.mark.asyncio
async def test_non_member_cannot_see_gig(client: AsyncClient, owner, other_user):
    _, gig, _ = await _setup(client, get_auth_headers(owner))
    resp = await client.get(f"/api/gigs/{gig['id']}", headers=get_auth_headers(other_user))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_gig_times_are_stored_in_utc(client: AsyncClient, owner):
    headers = get_auth_headers(owner)
    band = (await client.post("/api/bands", json={"name": "Offset Band"}, headers=headers)).json()
    resp = await client.post(
        "/api/gigs",
        json={
            "band_id": band["id"],
            "title": "Berlin show",
            "start_time": "2030-03-01T20:00:00+02:00",
            "end_time": "2030-03-01T23:30:00+02:00",
        },
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    gig = resp.json()
    assert gig["start_time"].startswith("2030-03-01T18:00:00")
    assert gig["end_time"].startswith("2030-03-01T21:30:00")

    resp = await client.patch(
        f"/api/gigs/{gig['id']}",
        json={"start_time": "2030-03-01T14:00:00-05:00", "end_time": "2030-03-01T22:00:00Z"},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["start_time"].startswith("2030-03-01T19:00:00")
