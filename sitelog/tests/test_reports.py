from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import Update
from sqlalchemy.exc import OperationalError

from sitelog.common.exceptions import ExternalServiceError
from sitelog.config import settings
from sitelog.core.reports.service import ReportService

USER_ID = "user-supervisor-1"


def _activity(activity_id: str, description: str = "", **fields) -> dict:
    return {"activity_id": activity_id, "description": description, **fields}


async def _save(client, headers, day: str, activities: list[dict]):
    return await client.put(f"/api/v1/reports/{day}", headers=headers, json={"activities": activities})


# ---------- Reports ----------


@pytest.mark.asyncio
async def test_list_reports_empty(client, auth_headers):
    response = await client.get("/api/v1/reports", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"reports": [], "total": 0}


@pytest.mark.asyncio
async def test_save_and_get_report(client, auth_headers):
    response = await _save(
        client,
        auth_headers,
        "2024-03-01",
        [_activity("ACT-00001", "Excavation", manpower=[{"code": "man-01", "name": "Operator", "quantity": 8, "unit": "Hrs", "cost": 65}])],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["date"] == "2024-03-01"
    assert data["activities"][0]["manpower"][0]["kind"] == "manpower"

    response = await client.get("/api/v1/reports/2024-03-01", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["activities"][0]["description"] == "Excavation"


@pytest.mark.asyncio
async def test_save_report_remembers_resources(client, auth_headers):
    await _save(
        client,
        auth_headers,
        "2024-03-01",
        [_activity("ACT-00001", material=[{"code": "mat-01", "name": "Cement", "unit": "Bags", "cost": 12}])],
    )
    response = await client.get("/api/v1/memory", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["material"]["MAT-01"]["name"] == "Cement"

    response = await client.post(
        "/api/v1/memory/material/apply",
        headers=auth_headers,
        json={"row": {"code": "mat-01", "unit": "kg"}},
    )
    data = response.json()
    assert data["applied"] is True
    assert data["row"]["code"] == "MAT-01"
    assert data["row"]["name"] == "Cement"
    assert data["row"]["unit"] == "kg"


@pytest.mark.asyncio
async def test_save_without_activities_keeps_stored(client, auth_headers):
    await _save(client, auth_headers, "2024-03-01", [_activity("ACT-00001", "Excavation")])
    response = await client.put("/api/v1/reports/2024-03-01", headers=auth_headers, json={})
    assert response.status_code == 200
    assert len(response.json()["activities"]) == 1


@pytest.mark.asyncio
async def test_get_missing_report(client, auth_headers):
    response = await client.get("/api/v1/reports/2024-01-01", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invalid_report_date(client, auth_headers):
    response = await client.get("/api/v1/reports/2024-13-45", headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_reports_are_per_user(client, auth_headers, other_headers):
    await _save(client, auth_headers, "2024-03-01", [_activity("ACT-00001")])
    response = await client.get("/api/v1/reports/2024-03-01", headers=other_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_reports_range_newest_first(client, auth_headers):
    for day in ("2024-03-01", "2024-03-05", "2024-03-03"):
        await _save(client, auth_headers, day, [])
    response = await client.get(
        "/api/v1/reports", headers=auth_headers, params={"start": "2024-03-02"}
    )
    data = response.json()
    assert data["total"] == 2
    assert [r["date"] for r in data["reports"]] == ["2024-03-05", "2024-03-03"]


@pytest.mark.asyncio
async def test_calendar(client, auth_headers):
    for day in ("2024-02-28", "2024-03-01", "2024-03-15"):
        await _save(client, auth_headers, day, [])
    response = await client.get(
        "/api/v1/reports/calendar", headers=auth_headers, params={"year": 2024, "month": 3}
    )
    assert response.status_code == 200
    assert response.json()["dates"] == ["2024-03-01", "2024-03-15"]


@pytest.mark.asyncio
async def test_delete_report(client, auth_headers):
    await _save(client, auth_headers, "2024-03-01", [])
    response = await client.delete("/api/v1/reports/2024-03-01", headers=auth_headers)
    assert response.status_code == 204

    response = await client.delete("/api/v1/reports/2024-03-01", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_copy_report(client, auth_headers):
    await _save(client, auth_headers, "2024-03-01", [_activity("ACT-00001", "Excavation")])
    response = await client.post(
        "/api/v1/reports/2024-03-01/copy",
        headers=auth_headers,
        json={"target_date": "2024-03-02"},
    )
    assert response.status_code == 201
    assert response.json()["date"] == "2024-03-02"
    assert response.json()["activities"][0]["description"] == "Excavation"

    response = await client.post(
        "/api/v1/reports/2024-03-01/copy",
        headers=auth_headers,
        json={"target_date": "2024-03-01"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_copy_missing_report(client, auth_headers):
    response = await client.post(
        "/api/v1/reports/2024-03-01/copy",
        headers=auth_headers,
        json={"target_date": "2024-03-02"},
    )
    assert response.status_code == 404


# ---------- Activities ----------


@pytest.mark.asyncio
async def test_add_activity_creates_report(client, auth_headers):
    response = await client.post("/api/v1/reports/2024-03-01/activities", headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["activity"]["activity_id"] == "ACT-00001"
    assert data["activity"]["planned_start"] == "2024-03-01"
    assert data["activity"]["quantity_unit"] == "m"

    response = await client.post("/api/v1/reports/2024-03-01/activities", headers=auth_headers)
    assert response.json()["activity"]["activity_id"] == "ACT-00002"
    assert len(response.json()["report"]["activities"]) == 2


@pytest.mark.asyncio
async def test_delete_activity_reindexes(client, auth_headers):
    ids = []
    for _ in range(3):
        response = await client.post("/api/v1/reports/2024-03-01/activities", headers=auth_headers)
        ids.append(response.json()["activity"]["id"])

    response = await client.delete(
        f"/api/v1/reports/2024-03-01/activities/{ids[0]}", headers=auth_headers
    )
    assert response.status_code == 200
    activities = response.json()["activities"]
    assert [a["id"] for a in activities] == ids[1:]
    assert [a["activity_id"] for a in activities] == ["ACT-00001", "ACT-00002"]

    response = await client.delete(
        f"/api/v1/reports/2024-03-01/activities/{ids[0]}", headers=auth_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_reorder_activity(client, auth_headers):
    ids = []
    for _ in range(3):
        response = await client.post("/api/v1/reports/2024-03-01/activities", headers=auth_headers)
        ids.append(response.json()["activity"]["id"])

    response = await client.post(
        "/api/v1/reports/2024-03-01/activities/reorder",
        headers=auth_headers,
        json={"entry_id": ids[2], "target_id": ids[0]},
    )
    assert response.status_code == 200
    activities = response.json()["activities"]
    assert [a["id"] for a in activities] == [ids[2], ids[0], ids[1]]
    assert [a["activity_id"] for a in activities] == ["ACT-00001", "ACT-00002", "ACT-00003"]


@pytest.mark.asyncio
async def test_add_entry_codes(client, auth_headers):
    response = await client.post("/api/v1/reports/2024-03-01/activities", headers=auth_headers)
    entry_id = response.json()["activity"]["id"]

    url = f"/api/v1/reports/2024-03-01/activities/{entry_id}/entries"
    await client.post(f"{url}/equipment", headers=auth_headers)
    response = await client.post(f"{url}/equipment", headers=auth_headers)
    assert response.status_code == 201
    assert [e["code"] for e in response.json()["equipment"]] == ["EQ-01", "EQ-02"]

    response = await client.post(f"{url}/risk", headers=auth_headers)
    assert response.json()["risks"][0]["code"] == "RISK-01"
    assert response.json()["risks"][0]["status"] == "Open"

    response = await client.post(f"{url}/tools", headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_activity_metrics_endpoint(client, auth_headers):
    await _save(
        client,
        auth_headers,
        "2024-03-01",
        [{
            "id": "a-1",
            "activity_id": "ACT-00001",
            "planned_start": "2024-02-29",
            "planned_finish": "2024-03-03",
            "actual_start": "2024-02-29",
            "planned_quantity": 100,
            "actual_quantity": 40,
            "manpower": [{"name": "Operator", "quantity": 10, "cost": 100}],
        }],
    )
    response = await client.get(
        "/api/v1/reports/2024-03-01/activities/a-1/metrics", headers=auth_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["as_of"] == "2024-03-01"
    assert data["planned_percent"] == 50.0
    assert data["shortfall"] == 10.0
    assert data["cost"]["planned_days"] == 4

    response = await client.get(
        "/api/v1/reports/2024-03-01/activities/a-1/metrics",
        headers=auth_headers,
        params={"as_of": "2024-03-10"},
    )
    assert response.json()["planned_percent"] == 100.0


# ---------- Activity ids ----------


async def _seed_history(client, headers):
    await _save(client, headers, "2024-03-01", [_activity("ACT-00001", "Old A"), _activity("ACT-00002", "Old B")])
    await _save(client, headers, "2024-03-02", [_activity("ACT-00003", "Old C")])
    await _save(client, headers, "2024-03-05", [
        {"id": "n-1", "activity_id": "ACT-00001", "description": "New"},
    ])


@pytest.mark.asyncio
async def test_check_activity_id(client, auth_headers):
    await _seed_history(client, auth_headers)
    response = await client.post(
        "/api/v1/activities/check-id", headers=auth_headers, json={"activity_id": "act-00002"}
    )
    assert response.json() == {"activity_id": "ACT-00002", "in_use": True}

    response = await client.post(
        "/api/v1/activities/check-id",
        headers=auth_headers,
        json={"activity_id": "ACT-00003", "exclude_date": "2024-03-02"},
    )
    assert response.json()["in_use"] is False


@pytest.mark.asyncio
async def test_activity_id_conflict_needs_decision(client, auth_headers):
    await _seed_history(client, auth_headers)
    response = await client.post(
        "/api/v1/reports/2024-03-05/activities/n-1/activity-id",
        headers=auth_headers,
        json={"activity_id": "act-00002"},
    )
    assert response.status_code == 409
    assert "ACT-00002" in response.json()["detail"]
    assert "confirm_shift" in response.json()["detail"]


@pytest.mark.asyncio
async def test_activity_id_keep_duplicate(client, auth_headers):
    await _seed_history(client, auth_headers)
    response = await client.post(
        "/api/v1/reports/2024-03-05/activities/n-1/activity-id",
        headers=auth_headers,
        json={"activity_id": "ACT-00002", "confirm_shift": False},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["conflict"] is True
    assert data["shifted"] is False
    assert data["ripple"] is None
    assert data["report"]["activities"][0]["activity_id"] == "ACT-00002"

    response = await client.get("/api/v1/reports/2024-03-01", headers=auth_headers)
    assert [a["activity_id"] for a in response.json()["activities"]] == ["ACT-00001", "ACT-00002"]


@pytest.mark.asyncio
async def test_activity_id_shift_ripples_history(client, auth_headers):
    await _seed_history(client, auth_headers)
    response = await client.post(
        "/api/v1/reports/2024-03-05/activities/n-1/activity-id",
        headers=auth_headers,
        json={"activity_id": "ACT-00002", "confirm_shift": True},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["conflict"] is True
    assert data["shifted"] is True
    assert data["ripple"] == {
        "conflict_id": "ACT-00002",
        "shifted_reports": 2,
        "failed_reports": 0,
        "complete": True,
    }
    assert data["report"]["activities"][0]["activity_id"] == "ACT-00002"

    response = await client.get("/api/v1/reports/2024-03-01", headers=auth_headers)
    assert [a["activity_id"] for a in response.json()["activities"]] == ["ACT-00001", "ACT-00003"]
    response = await client.get("/api/v1/reports/2024-03-02", headers=auth_headers)
    assert [a["activity_id"] for a in response.json()["activities"]] == ["ACT-00004"]


@pytest.mark.asyncio
async def test_activity_id_without_conflict(client, auth_headers):
    await _seed_history(client, auth_headers)
    response = await client.post(
        "/api/v1/reports/2024-03-05/activities/n-1/activity-id",
        headers=auth_headers,
        json={"activity_id": "act-00050"},
    )
    assert response.status_code == 200
    assert response.json()["conflict"] is False
    assert response.json()["activity_id"] == "ACT-00050"


@pytest.mark.asyncio
async def test_activity_id_blank(client, auth_headers):
    await _seed_history(client, auth_headers)
    response = await client.post(
        "/api/v1/reports/2024-03-05/activities/n-1/activity-id",
        headers=auth_headers,
        json={"activity_id": "   "},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_ripple_shift_endpoint(client, auth_headers):
    await _seed_history(client, auth_headers)
    response = await client.post(
        "/api/v1/activities/ripple-shift", headers=auth_headers, json={"activity_id": "ACT-00003"}
    )
    assert response.status_code == 200
    assert response.json()["shifted_reports"] == 1

    response = await client.get("/api/v1/reports/2024-03-02", headers=auth_headers)
    assert response.json()["activities"][0]["activity_id"] == "ACT-00004"


# ---------- Ripple shift against a failing store ----------


def _store_error() -> OperationalError:
    return OperationalError("UPDATE daily_reports", {}, Exception("database is locked"))


async def _seed_duplicates(service: ReportService, db) -> list[date]:
    days = [date(2024, 1, day) for day in (1, 2, 3)]
    for day in days:
        await service.save_report(
            USER_ID, day, {"activities": [{"activity_id": "ACT-00002", "description": "Pour"}]}, db
        )
    return days


@pytest.mark.asyncio
async def test_ripple_shift_keeps_batches_written_before_a_failure(db_session):
    service = ReportService()
    days = await _seed_duplicates(service, db_session)

    execute = db_session.execute
    updates = 0

    async def failing_second_update(statement, *args, **kwargs):
        nonlocal updates
        if isinstance(statement, Update):
            updates += 1
            if updates == 2:
                raise _store_error()
        return await execute(statement, *args, **kwargs)

    with patch.object(settings, "RIPPLE_SHIFT_BATCH_SIZE", 1), patch.object(
        db_session, "execute", side_effect=failing_second_update
    ):
        result = await service.ripple_shift_history(USER_ID, "act-00002", db_session)

    assert result.conflict_id == "ACT-00002"
    assert result.shifted_reports == 2
    assert result.failed_reports == 1
    assert result.complete is False

    db_session.expire_all()
    stored = []
    for day in days:
        document = await service.get_document(USER_ID, day, db_session)
        stored.append(document.activities[0].activity_id)
    assert sorted(stored) == ["ACT-00002", "ACT-00003", "ACT-00003"]


@pytest.mark.asyncio
async def test_ripple_shift_store_unreachable(db_session):
    service = ReportService()
    await _seed_duplicates(service, db_session)

    with patch.object(db_session, "execute", AsyncMock(side_effect=_store_error())):
        with pytest.raises(ExternalServiceError) as exc_info:
            await service.ripple_shift_history(USER_ID, "ACT-00002", db_session)
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_save_report_store_unreachable(db_session):
    with patch.object(ReportService, "get_report", AsyncMock(side_effect=_store_error())):
        with pytest.raises(ExternalServiceError) as exc_info:
            await ReportService().save_report(USER_ID, date(2024, 1, 1), {"activities": []}, db_session)
    assert exc_info.value.status_code == 502
    assert "Report could not be loaded" in exc_info.value.detail
