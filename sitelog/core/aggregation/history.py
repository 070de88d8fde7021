from datetime import date

from pydantic import BaseModel

from sitelog.core.reports.schemas import ActivityEntry, ReportDocument


class HistoryItem(BaseModel):
    report_date: date
    report_id: str
    activity: ActivityEntry


def history_items(
    reports: list[ReportDocument],
    start: date | None = None,
    end: date | None = None,
    search: str | None = None,
) -> list[HistoryItem]:
    """Every activity occurrence, newest report first.

    The date range is inclusive on both ends. ``search`` matches activity id,
    description or report date, case-insensitively.
    """
    needle = (search or "").strip().lower()
    items: list[HistoryItem] = []
    for report in reports:
        if start and report.date < start:
            continue
        if end and report.date > end:
            continue
        for activity in report.activities:
            if needle and not (
                needle in activity.activity_id.lower()
                or needle in activity.description.lower()
                or needle in report.date.isoformat()
            ):
                continue
            items.append(HistoryItem(report_date=report.date, report_id=report.id, activity=activity))

    items.sort(key=lambda i: i.report_date, reverse=True)
    return items
