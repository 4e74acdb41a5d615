# tests/test_maintenance.py — Maintenance records and schedule tests
from datetime import date, timedelta

import pytest
from httpx import AsyncClient

from models import RecurrenceType, utcnow
from routers.maintenance import next_due_date
from tests.conftest import get_auth_headers


async def _instrument(client: AsyncClient, headers: dict) -> int:
    resp = await client.post(
        "/api/instruments", json={"name": "Hollowbody", "type": "guitar"}, headers=headers
    )
    return resp.json()["id"]


async def _schedule(client: AsyncClient, headers: dict, instrument_id: int, **fields) -> dict:
    body = {
        "instrument_id": instrument_id, "type": "setup", "title": "Truss rod check",
        "due_date": "2030-01-31", **fields,
    }
    resp = await client.post("/api/maintenance/schedule", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestNextDueDate:
    def test_one_off_has_no_next(self):
        assert next_due_date(date(2024, 1, 1), RecurrenceType.NONE, None) is None

    def test_weekly_interval(self):
        assert next_due_date(date(2024, 1, 1), RecurrenceType.WEEKLY, 2) == date(2024, 1, 15)

    def test_monthly_clamps_to_month_end(self):
        assert next_due_date(date(2024, 1, 31), RecurrenceType.MONTHLY, 1) == date(2024, 2, 29)

    def test_yearly_defaults_to_one(self):
        assert next_due_date(date(2023, 6, 1), RecurrenceType.YEARLY, None) == date(2024, 6, 1)


@pytest.mark.asyncio
class TestRecords:
    async def test_create_and_list_records(self, client: AsyncClient, owner):
        headers = get_auth_headers(owner)
        instrument_id = await _instrument(client, headers)
        resp = await client.post(
            "/api/maintenance/records",
            json={"instrument_id": instrument_id, "type": "repair", "title": "Fret dress",
                  "date": "2024-05-01", "cost": 180, "performed_by": "Luthier"},
            headers=headers,
        )
        assert resp.status_code == 201
        assert resp.json()["cost"] == 180.0

        resp = await client.get(
            "/api/maintenance/records", params={"instrument_id": instrument_id}, headers=headers
        )
        assert [r["title"] for r in resp.json()] == ["Fret dress"]

    async def test_record_for_foreign_instrument(self, client: AsyncClient, owner, other_user):
        instrument_id = await _instrument(client, get_auth_headers(other_user))
        resp = await client.post(
            "/api/maintenance/records",
            json={"instrument_id": instrument_id, "type": "repair", "title": "Sneaky",
                  "date": "2024-05-01"},
            headers=get_auth_headers(owner),
        )
        assert resp.status_code == 404

    async def test_update_and_delete_record(self, client: AsyncClient, owner):
        headers = get_auth_headers(owner)
        instrument_id = await _instrument(client, headers)
        record = (await client.post(
            "/api/maintenance/records",
            json={"instrument_id": instrument_id, "type": "clean", "title": "Polish",
                  "date": "2024-05-01"},
            headers=headers,
        )).json()

        resp = await client.patch(
            f"/api/maintenance/records/{record['id']}", json={"notes": "Used lemon oil"}, headers=headers
        )
        assert resp.json()["notes"] == "Used lemon oil"

        resp = await client.patch(
            f"/api/maintenance/records/{record['id']}", json={"title": None}, headers=headers
        )
        assert resp.status_code == 400

        assert (await client.delete(
            f"/api/maintenance/records/{record['id']}", headers=headers
        )).status_code == 200


@pytest.mark.asyncio
class TestSchedule:
    async def test_complete_recurring_entry(self, client: AsyncClient, owner):
        headers = get_auth_headers(owner)
        instrument_id = await _instrument(client, headers)
        entry = await _schedule(
            client, headers, instrument_id, recurrence_type="monthly", recurrence_interval=1
        )

        resp = await client.post(
            f"/api/maintenance/schedule/{entry['id']}/complete",
            json={"completed_on": "2030-01-30", "cost": 40},
            headers=headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["record"]["date"] == "2030-01-30"
        assert data["record"]["title"] == "Truss rod check"
        assert data["schedule"]["due_date"] == "2030-02-28"

        detail = (await client.get(f"/api/instruments/{instrument_id}", headers=headers)).json()
        assert len(detail["maintenanceRecords"]) == 1
        assert len(detail["maintenanceSchedule"]) == 1

    async def test_complete_one_off_entry(self, client: AsyncClient, owner):
        headers = get_auth_headers(owner)
        instrument_id = await _instrument(client, headers)
        entry = await _schedule(client, headers, instrument_id)

        resp = await client.post(
            f"/api/maintenance/schedule/{entry['id']}/complete", json={}, headers=headers
        )
        assert resp.status_code == 200
        assert resp.json()["schedule"] is None

        resp = await client.get("/api/maintenance/schedule", headers=headers)
        assert resp.json() == []

    async def test_due_includes_overdue(self, client: AsyncClient, owner):
        headers = get_auth_headers(owner)
        instrument_id = await _instrument(client, headers)
        today = utcnow().date()
        await _schedule(client, headers, instrument_id, title="Overdue",
                        due_date=(today - timedelta(days=3)).isoformat())
        await _schedule(client, headers, instrument_id, title="Soon",
                        due_date=(today + timedelta(days=5)).isoformat())
        await _schedule(client, headers, instrument_id, title="Later",
                        due_date=(today + timedelta(days=90)).isoformat())

        resp = await client.get("/api/maintenance/schedule/due", params={"days": 30}, headers=headers)
        assert resp.status_code == 200
        data = resp.json()
        assert [d["title"] for d in data] == ["Overdue", "Soon"]
        assert data[0]["instrument_name"] == "Hollowbody"

    async def test_other_owner_cannot_touch_schedule(self, client: AsyncClient, owner, other_user):
        headers = get_auth_headers(owner)
        instrument_id = await _instrument(client, headers)
        entry = await _schedule(client, headers, instrument_id)

        intruder = get_auth_headers(other_user)
        assert (await client.patch(
            f"/api/maintenance/schedule/{entry['id']}", json={"title": "Mine now"}, headers=intruder
        )).status_code == 404
        assert (await client.post(
            f"/api/maintenance/schedule/{entry['id']}/complete", json={}, headers=intruder
        )).status_code == 404
        assert (await client.delete(
            f"/api/maintenance/schedule/{entry['id']}", headers=intruder
        )).status_code == 404
