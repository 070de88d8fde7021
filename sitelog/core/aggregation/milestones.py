"""Master activity log and milestone tracker.

Activities are deduplicated by ``activity_id``: the occurrence from the latest
report date wins. On equal dates the report listed last wins.
"""

from datetime import date

from pydantic import BaseModel

from sitelog.core.reports.identifiers import UNCATEGORIZED
from sitelog.core.reports.schemas import ActivityEntry, ReportDocument


class MasterLogRow(BaseModel):
    activity_id: str
    activity_name: str
    work_category: str
    work_area: str
    station_grid: str
    planned_start: str
    planned_finish: str
    actual_start: str
    actual_finish: str
    report_date: date
    is_milestone: bool = False


class MilestoneView(BaseModel):
    master_log: list[MasterLogRow]
    milestones: list[MasterLogRow]


def latest_activities(reports: list[ReportDocument]) -> list[tuple[date, ActivityEntry]]:
    """Latest occurrence of each activity id, sorted by id."""
    latest: dict[str, tuple[date, ActivityEntry]] = {}
    for report in sorted(reports, key=lambda r: r.date):
        for activity in report.activities:
            if activity.activity_id:
                latest[activity.activity_id] = (report.date, activity)
    return [latest[k] for k in sorted(latest)]


def milestone_ids(reports: list[ReportDocument]) -> set[str]:
    return {
        a.activity_id
        for r in reports
        for a in r.activities
        if a.is_milestone and a.activity_id
    }


def _matches(row: MasterLogRow, needle: str) -> bool:
    return any(
        needle in value.lower()
        for value in (
            row.activity_id,
            row.activity_name,
            row.work_category,
            row.work_area,
            row.station_grid,
        )
    )


def build_milestone_view(reports: list[ReportDocument], search: str | None = None) -> MilestoneView:
    flagged = milestone_ids(reports)
    rows = [
        MasterLogRow(
            activity_id=a.activity_id,
            activity_name=a.description,
            work_category=a.work_category or UNCATEGORIZED,
            work_area=a.work_area,
            station_grid=a.station_grid,
            planned_start=a.planned_start,
            planned_finish=a.planned_finish,
            actual_start=a.actual_start,
            actual_finish=a.actual_finish,
            report_date=report_date,
            is_milestone=a.activity_id in flagged,
        )
        for report_date, a in latest_activities(reports)
    ]

    needle = (search or "").strip().lower()
    if needle:
        rows = [r for r in rows if _matches(r, needle)]

    return MilestoneView(master_log=rows, milestones=[r for r in rows if r.is_milestone])
