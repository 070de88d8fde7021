import csv
import io
from datetime import date

import pytest

from sitelog.common.enums import RiskLevel
from sitelog.core.aggregation.export import BOM, EXPORT_COLUMNS, export_csv, export_filename, export_rows
from sitelog.core.reports.schemas import (
    ActivityEntry,
    EquipmentEntry,
    ManpowerEntry,
    MaterialEntry,
    ReportDocument,
    RiskEntry,
    SubcontractorEntry,
)


def _reports() -> list[ReportDocument]:
    older = ReportDocument(
        id="r-1",
        user_id="u",
        date=date(2024, 3, 1),
        activities=[
            ActivityEntry(
                id="a-1",
                activity_id="ACT-00001",
                description='Pour slab, "Level 2"',
                manpower=[ManpowerEntry(id="m-1", code="MAN-01", name="Finisher", trade="Concrete", quantity=8, overtime=2, cost=40)],
                material=[MaterialEntry(id="mt-1", code="MAT-01", name="Concrete", quantity=12.5, unit="m3")],
                equipment=[EquipmentEntry(id="e-1", code="EQ-01", name="Pump", quantity=1)],
                subcontractor=[SubcontractorEntry(id="s-1", code="SUB-01", name="Pumping", company="Acme")],
                risks=[RiskEntry(id="k-1", code="RISK-01", description="Rain", impact=RiskLevel.HIGH)],
            )
        ],
    )
    newer = ReportDocument(
        id="r-2",
        user_id="u",
        date=date(2024, 3, 2),
        activities=[ActivityEntry(id="a-2", activity_id="ACT-00001", description="Cure slab", is_milestone=True)],
    )
    return [older, newer]


def _parse(text: str) -> list[dict]:
    assert text.startswith(BOM)
    return list(csv.DictReader(io.StringIO(text[len(BOM):])))


def test_every_line_item_exported_once():
    rows = export_rows(_reports())
    entry_types = [str(r["EntryType"].value) for r in rows]
    assert entry_types == [
        "ACTIVITY",
        "ACTIVITY",
        "MANPOWER",
        "MATERIAL",
        "EQUIPMENT",
        "SUBCONTRACTOR",
        "RISK",
    ]
    entry_ids = [r.get("EntryId") for r in rows if r.get("EntryId")]
    assert sorted(entry_ids) == ["e-1", "k-1", "m-1", "mt-1", "s-1"]


def test_newest_report_first():
    rows = export_rows(_reports())
    assert rows[0]["ReportDate"] == "2024-03-02"
    assert rows[1]["ReportDate"] == "2024-03-01"


def test_csv_header_and_bom():
    text = export_csv(_reports())
    header = text[len(BOM):].split("\n", 1)[0]
    assert header == ",".join(EXPORT_COLUMNS)
    assert "\r\n" not in text


def test_csv_quotes_and_values():
    parsed = _parse(export_csv(_reports()))
    assert len(parsed) == 7

    activity = parsed[1]
    assert activity["ActivityName"] == 'Pour slab, "Level 2"'
    assert activity["IsMilestone"] == "NO"
    assert parsed[0]["IsMilestone"] == "YES"

    manpower = parsed[2]
    assert manpower["Trade"] == "Concrete"
    assert manpower["Quantity"] == "8"
    assert manpower["Overtime"] == "2"
    assert manpower["Cost"] == "40"
    assert manpower["ActivityId"] == "ACT-00001"

    material = parsed[3]
    assert material["Quantity"] == "12.5"
    assert material["Cost"] == ""

    assert parsed[5]["Company"] == "Acme"

    risk = parsed[6]
    assert risk["EntryNameOrDesc"] == "Rain"
    assert risk["RiskImpact"] == "High"
    assert risk["RiskLikelihood"] == "Low"
    assert risk["RiskStatus"] == "Open"


def test_empty_history_exports_header_only():
    text = export_csv([])
    assert text == BOM + ",".join(EXPORT_COLUMNS) + "\n"


def test_export_filename_has_date():
    assert export_filename() == f"sitelog_full_history_{date.today().isoformat()}.csv"


@pytest.mark.asyncio
async def test_export_endpoint(client, auth_headers):
    await client.put(
        "/api/v1/reports/2024-03-01",
        headers=auth_headers,
        json={"activities": [{"activity_id": "ACT-00001", "description": "Grading", "material": [{"code": "MAT-01", "name": "Gravel"}]}]},
    )

    response = await client.get("/api/v1/history/export", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]

    parsed = _parse(response.content.decode("utf-8"))
    assert [r["EntryType"] for r in parsed] == ["ACTIVITY", "MATERIAL"]
    assert parsed[1]["EntryNameOrDesc"] == "Gravel"
