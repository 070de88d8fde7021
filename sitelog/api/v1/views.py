"""Read-only views derived from a user's full report history."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.api.deps import get_current_user, get_db
from sitelog.common.enums import DurationMode
from sitelog.common.pagination import PaginatedResponse, PaginationParams, paginate
from sitelog.core.aggregation.charts import DurationBar, duration_chart
from sitelog.core.aggregation.dashboard import DashboardSummary, build_dashboard
from sitelog.core.aggregation.export import export_csv, export_filename
from sitelog.core.aggregation.history import HistoryItem, history_items
from sitelog.core.aggregation.milestones import MilestoneView, build_milestone_view
from sitelog.core.reports.service import ReportService
from sitelog.db.models.user import User

router = APIRouter(tags=["History & Analytics"])


@router.get("/history", response_model=PaginatedResponse[HistoryItem])
async def get_history(
    start: date | None = Query(None, description="From date, inclusive"),
    end: date | None = Query(None, description="To date, inclusive"),
    params: PaginationParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reports = await ReportService().list_reports(current_user.id, db)
    return paginate(history_items(reports, start=start, end=end, search=params.search), params)


@router.get("/history/export")
async def export_history(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reports = await ReportService().list_reports(current_user.id, db)
    return Response(
        content=export_csv(reports).encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.get("/milestones", response_model=MilestoneView)
async def get_milestones(
    search: str | None = Query(None, description="Matches id, name, category, area or grid"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reports = await ReportService().list_reports(current_user.id, db)
    return build_milestone_view(reports, search=search)


@router.get("/charts/durations", response_model=list[DurationBar])
async def get_duration_chart(
    mode: DurationMode = Query(DurationMode.DAYS),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reports = await ReportService().list_reports(current_user.id, db)
    return duration_chart(reports, mode)


@router.get("/dashboard", response_model=DashboardSummary)
async def get_dashboard(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reports = await ReportService().list_reports(current_user.id, db)
    return build_dashboard(reports)
