import pytest

from sitelog.core.memory.debounce import Debouncer
from sitelog.core.memory.manpower import (
    TemplateData,
    apply_template,
    normalize_key,
    normalize_unit,
    template_from_row,
    to_title_case,
)
from sitelog.core.reports.schemas import ManpowerEntry


def test_normalize_key_collapses_whitespace():
    assert normalize_key("  John   SMITH ") == "john smith"
    assert normalize_key(None) == ""


def test_to_title_case():
    assert to_title_case("john  smith") == "John Smith"
    assert to_title_case("HEAVY equipment") == "Heavy Equipment"


def test_normalize_unit():
    assert normalize_unit("hours") == "Hrs"
    assert normalize_unit(" HR ") == "Hrs"
    assert normalize_unit("days") == "Day"
    assert normalize_unit("m3") == "m3"


def test_template_from_row():
    row = ManpowerEntry(name="john  smith", trade="carpenter", unit="hours", quantity=8, overtime=2, cost=45)
    data = template_from_row(row)
    assert data.name_key == "john smith"
    assert data.name == "John Smith"
    assert data.trade == "Carpenter"
    assert data.unit == "Hrs"
    assert data.regular_hours == 8
    assert data.overtime == 2
    assert data.cost == 45


def test_template_from_blank_name():
    assert template_from_row(ManpowerEntry(name="   ")) is None


def test_apply_template_keeps_typed_values():
    template = TemplateData(
        name_key="john smith", name="John Smith", trade="Carpenter", unit="Hrs",
        regular_hours=8, overtime=1, cost=45,
    )
    filled = apply_template(ManpowerEntry(name="john smith", unit="Day", quantity=6), template)
    assert filled.trade == "Carpenter"
    assert filled.unit == "Day"
    assert filled.quantity == 6
    assert filled.overtime == 1
    assert filled.cost == 45


@pytest.mark.asyncio
async def test_debouncer_collapses_bursts_per_key():
    debouncer = Debouncer(delay=0.01)
    written: list[str] = []

    def action(value: str):
        async def write():
            written.append(value)
        return write

    for value in ("J", "Jo", "John"):
        debouncer.submit("john", action(value))
    debouncer.submit("mary", action("Mary"))
    await debouncer.flush()

    assert sorted(written) == ["John", "Mary"]
    assert debouncer.pending() == 0


@pytest.mark.asyncio
async def test_debouncer_survives_failing_write():
    debouncer = Debouncer(delay=0)

    async def boom():
        raise RuntimeError("store unavailable")

    task = debouncer.submit("k", boom)
    await debouncer.flush()
    assert task.done()
    assert not task.cancelled()


@pytest.mark.asyncio
async def test_debouncer_cancel_all():
    debouncer = Debouncer(delay=10)
    written: list[int] = []

    async def write():
        written.append(1)

    debouncer.submit("k", write)
    debouncer.cancel_all()
    await debouncer.flush()
    assert written == []
    assert debouncer.pending() == 0


@pytest.mark.asyncio
async def test_save_and_list_templates(client, auth_headers, template_writer):
    response = await client.post(
        "/api/v1/memory/manpower-templates",
        headers=auth_headers,
        json={"name": "john  smith", "trade": "carpenter", "unit": "hours", "quantity": 8, "cost": 45},
    )
    assert response.status_code == 202
    assert response.json() == {"name_key": "john smith", "queued": True}

    await template_writer.debouncer.flush()

    response = await client.get("/api/v1/memory/manpower-templates", headers=auth_headers)
    assert response.status_code == 200
    templates = response.json()
    assert len(templates) == 1
    assert templates[0]["name"] == "John Smith"
    assert templates[0]["trade"] == "Carpenter"
    assert templates[0]["unit"] == "Hrs"
    assert templates[0]["regular_hours"] == 8


@pytest.mark.asyncio
async def test_rapid_template_edits_keep_last(client, auth_headers, template_writer):
    for trade in ("car", "carpen", "electrician"):
        await client.post(
            "/api/v1/memory/manpower-templates",
            headers=auth_headers,
            json={"name": "Mary Lee", "trade": trade},
        )
    await template_writer.debouncer.flush()

    response = await client.get("/api/v1/memory/manpower-templates", headers=auth_headers)
    templates = response.json()
    assert len(templates) == 1
    assert templates[0]["trade"] == "Electrician"


@pytest.mark.asyncio
async def test_template_requires_name(client, auth_headers):
    response = await client.post(
        "/api/v1/memory/manpower-templates",
        headers=auth_headers,
        json={"name": "  ", "trade": "Laborer"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_apply_saved_template(client, auth_headers, template_writer):
    await client.post(
        "/api/v1/memory/manpower-templates",
        headers=auth_headers,
        json={"name": "Ana Cruz", "trade": "Welder", "unit": "Hrs", "quantity": 10, "cost": 55},
    )
    await template_writer.debouncer.flush()

    response = await client.post(
        "/api/v1/memory/manpower-templates/apply",
        headers=auth_headers,
        json={"name": "ana   cruz"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["applied"] is True
    assert data["row"]["trade"] == "Welder"
    assert data["row"]["quantity"] == 10
    assert data["row"]["cost"] == 55


@pytest.mark.asyncio
async def test_apply_unknown_template(client, auth_headers):
    response = await client.post(
        "/api/v1/memory/manpower-templates/apply",
        headers=auth_headers,
        json={"name": "Nobody Here"},
    )
    assert response.status_code == 200
    assert response.json()["applied"] is False


@pytest.mark.asyncio
async def test_templates_are_per_user(client, auth_headers, other_headers, template_writer):
    await client.post(
        "/api/v1/memory/manpower-templates",
        headers=auth_headers,
        json={"name": "Private Crew"},
    )
    await template_writer.debouncer.flush()

    response = await client.get("/api/v1/memory/manpower-templates", headers=other_headers)
    assert response.json() == []
