from datetime import date

from pydantic import BaseModel

from sitelog.common.enums import RiskLevel, RiskStatus
from sitelog.core.memory.manpower import normalize_unit
from sitelog.core.reports.schemas import ManpowerEntry, ReportDocument, RiskEntry

HOURS_PER_DAY = 8
RECENT_REPORTS = 7


class ManpowerDay(BaseModel):
    date: date
    label: str
    workers: float
    hours: float


class RiskStatusCount(BaseModel):
    name: str
    value: int


class DashboardSummary(BaseModel):
    total_reports: int
    total_manpower_hours: float
    open_risks: int
    high_impact_risks: int
    manpower_by_day: list[ManpowerDay]
    risk_status: list[RiskStatusCount]


def _is_hours(row: ManpowerEntry) -> bool:
    return normalize_unit(row.unit) == "Hrs"


def _manpower(report: ReportDocument) -> list[ManpowerEntry]:
    return [m for a in report.activities for m in a.manpower]


def manpower_hours(report: ReportDocument) -> float:
    """Hour rows count as logged; any other unit counts as headcount of full days."""
    return sum(
        m.quantity * (1 if _is_hours(m) else HOURS_PER_DAY) for m in _manpower(report)
    )


def worker_count(report: ReportDocument) -> float:
    return sum(m.quantity for m in _manpower(report) if not _is_hours(m))


def all_risks(reports: list[ReportDocument]) -> list[RiskEntry]:
    return [r for report in reports for a in report.activities for r in a.risks]


def build_dashboard(reports: list[ReportDocument]) -> DashboardSummary:
    risks = all_risks(reports)
    recent = sorted(reports, key=lambda r: r.date)[-RECENT_REPORTS:]

    status_counts = [
        RiskStatusCount(name=status.value, value=sum(1 for r in risks if r.status == status))
        for status in RiskStatus
    ]

    return DashboardSummary(
        total_reports=len(reports),
        total_manpower_hours=sum(manpower_hours(r) for r in reports),
        open_risks=sum(1 for r in risks if r.status == RiskStatus.OPEN),
        high_impact_risks=sum(1 for r in risks if r.impact == RiskLevel.HIGH),
        manpower_by_day=[
            ManpowerDay(
                date=r.date,
                label=r.date.strftime("%m-%d"),
                workers=worker_count(r),
                hours=manpower_hours(r),
            )
            for r in recent
        ],
        risk_status=[c for c in status_counts if c.value > 0],
    )
