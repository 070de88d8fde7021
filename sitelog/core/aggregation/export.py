"""Full-history CSV export.

Every report (newest date first) contributes, per activity, one ``ACTIVITY``
row followed by one row per manpower, material, equipment, subcontractor and
risk line item. Each row repeats the report and activity columns, so every
line item appears exactly once and can be traced back to its activity.
"""

import csv
import enum
import io
from datetime import date
from typing import Any

from sitelog.common.enums import ExportEntryType
from sitelog.core.reports.schemas import ActivityEntry, ReportDocument

BOM = "\ufeff"

EXPORT_COLUMNS = [
    "ReportDate",
    "ReportId",
    "ActivityUID",
    "ActivityId",
    "RefCode",
    "ActivityName",
    "Category",
    "Supervisor",
    "WorkArea",
    "StationGrid",
    "DetailedProgressNotes",
    "IsMilestone",
    "PlannedStart",
    "PlannedFinish",
    "ActualStart",
    "ActualFinish",
    "PlannedQuantity",
    "ActualQuantity",
    "QuantityUnit",
    "PlannedCompletionPercent",
    "EntryType",
    "EntryId",
    "EntryCode",
    "EntryNameOrDesc",
    "Trade",
    "Company",
    "Quantity",
    "Unit",
    "Overtime",
    "Cost",
    "Comments",
    "RiskLikelihood",
    "RiskImpact",
    "RiskStatus",
    "RiskMitigation",
]


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _activity_columns(report: ReportDocument, a: ActivityEntry) -> dict[str, Any]:
    return {
        "ReportDate": report.date.isoformat(),
        "ReportId": report.id,
        "ActivityUID": a.id,
        "ActivityId": a.activity_id,
        "RefCode": a.reference_code,
        "ActivityName": a.description,
        "Category": a.work_category,
        "Supervisor": a.responsible_person,
        "WorkArea": a.work_area,
        "StationGrid": a.station_grid,
        "DetailedProgressNotes": a.detailed_description,
        "IsMilestone": "YES" if a.is_milestone else "NO",
        "PlannedStart": a.planned_start,
        "PlannedFinish": a.planned_finish,
        "ActualStart": a.actual_start,
        "ActualFinish": a.actual_finish,
        "PlannedQuantity": a.planned_quantity,
        "ActualQuantity": a.actual_quantity,
        "QuantityUnit": a.quantity_unit,
        "PlannedCompletionPercent": a.planned_completion,
    }


def _line_items(a: ActivityEntry):
    for m in a.manpower:
        yield ExportEntryType.MANPOWER, m, {"Trade": m.trade, "Overtime": m.overtime}
    for m in a.material:
        yield ExportEntryType.MATERIAL, m, {}
    for e in a.equipment:
        yield ExportEntryType.EQUIPMENT, e, {}
    for s in a.subcontractor:
        yield ExportEntryType.SUBCONTRACTOR, s, {"Company": s.company}


def export_rows(reports: list[ReportDocument]) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for report in sorted(reports, key=lambda r: r.date, reverse=True):
        for activity in report.activities:
            base = _activity_columns(report, activity)
            rows.append({**base, "EntryType": ExportEntryType.ACTIVITY})

            for entry_type, item, extra in _line_items(activity):
                rows.append({
                    **base,
                    "EntryType": entry_type,
                    "EntryId": item.id,
                    "EntryCode": item.code,
                    "EntryNameOrDesc": item.name,
                    "Quantity": item.quantity,
                    "Unit": item.unit,
                    "Cost": item.cost,
                    "Comments": item.comments,
                    **extra,
                })

            for risk in activity.risks:
                rows.append({
                    **base,
                    "EntryType": ExportEntryType.RISK,
                    "EntryId": risk.id,
                    "EntryCode": risk.code,
                    "EntryNameOrDesc": risk.description,
                    "RiskLikelihood": risk.likelihood,
                    "RiskImpact": risk.impact,
                    "RiskStatus": risk.status,
                    "RiskMitigation": risk.mitigation,
                })
    return rows


def export_csv(reports: list[ReportDocument]) -> str:
    """The export as CSV text, BOM-prefixed, ``\\n`` line endings."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for row in export_rows(reports):
        writer.writerow([_cell(row.get(col)) for col in EXPORT_COLUMNS])
    return BOM + buf.getvalue()


def export_filename(prefix: str = "sitelog_full_history") -> str:
    return f"{prefix}_{date.today().isoformat()}.csv"
