from pydantic import BaseModel

from sitelog.common.enums import DurationMode
from sitelog.core.aggregation.milestones import latest_activities
from sitelog.core.reports.metrics import inclusive_days
from sitelog.core.reports.schemas import ReportDocument

_DIVISORS = {
    DurationMode.DAYS: 1,
    DurationMode.WEEKS: 7,
    DurationMode.MONTHS: 30,
}


class DurationBar(BaseModel):
    activity_id: str
    description: str
    full_name: str
    duration: float
    original_days: int
    planned_start: str
    planned_finish: str


def planned_days(start: str, finish: str) -> int:
    """Inclusive planned days, 0 when a date is missing or the range is inverted."""
    days = inclusive_days(start, finish)
    return max(0, days) if days is not None else 0


def duration_chart(
    reports: list[ReportDocument], mode: DurationMode = DurationMode.DAYS
) -> list[DurationBar]:
    bars = []
    for _, a in latest_activities(reports):
        days = planned_days(a.planned_start, a.planned_finish)
        value = days if mode == DurationMode.DAYS else round(days / _DIVISORS[mode], 2)
        bars.append(
            DurationBar(
                activity_id=a.activity_id,
                description=a.description,
                full_name=f"{a.activity_id}: {a.description}",
                duration=value,
                original_days=days,
                planned_start=a.planned_start,
                planned_finish=a.planned_finish,
            )
        )
    return bars
