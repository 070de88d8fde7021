from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.api.deps import get_current_user, get_db, parse_report_date
from sitelog.common.exceptions import NotFoundError
from sitelog.core.reports.schemas import ActivityEntry, ReportDocument
from sitelog.core.reports.service import ReportService
from sitelog.db.models.user import User

router = APIRouter(prefix="/reports", tags=["Reports"])


# ---------- Schemas ----------


class ReportSave(BaseModel):
    activities: list[ActivityEntry] | None = None


class ReportListResponse(BaseModel):
    reports: list[ReportDocument]
    total: int


class CalendarResponse(BaseModel):
    year: int
    month: int
    dates: list[date]


class CopyRequest(BaseModel):
    target_date: date


# ---------- Endpoints ----------


@router.get("", response_model=ReportListResponse)
async def list_reports(
    start: date | None = Query(None, description="First report date, inclusive"),
    end: date | None = Query(None, description="Last report date, inclusive"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reports = await ReportService().list_reports(current_user.id, db, start=start, end=end)
    return ReportListResponse(reports=reports, total=len(reports))


@router.get("/calendar", response_model=CalendarResponse)
async def report_calendar(
    year: int = Query(..., ge=1900, le=2200),
    month: int = Query(..., ge=1, le=12),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    dates = await ReportService().report_dates_in_month(current_user.id, year, month, db)
    return CalendarResponse(year=year, month=month, dates=dates)


@router.get("/{report_date}", response_model=ReportDocument)
async def get_report(
    report_date: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    day = parse_report_date(report_date)
    report = await ReportService().get_document(current_user.id, day, db)
    if not report:
        raise NotFoundError("Report", day.isoformat())
    return report


@router.put("/{report_date}", response_model=ReportDocument)
async def save_report(
    report_date: str,
    body: ReportSave,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    day = parse_report_date(report_date)
    return await ReportService().save_report(
        current_user.id, day, body.model_dump(exclude_unset=True), db
    )


@router.delete("/{report_date}", status_code=204)
async def delete_report(
    report_date: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await ReportService().delete_report(current_user.id, parse_report_date(report_date), db)


@router.post("/{report_date}/copy", response_model=ReportDocument, status_code=201)
async def copy_report(
    report_date: str,
    body: CopyRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService().copy_report(
        current_user.id, parse_report_date(report_date), body.target_date, db
    )
