from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.api.deps import get_current_user, get_db, parse_category, parse_report_date
from sitelog.core.reports.schemas import ActivityEntry, ActivityMetrics, ReportDocument
from sitelog.core.reports.service import ReportService, RippleShiftResult
from sitelog.db.models.user import User

router = APIRouter(tags=["Activities"])


# ---------- Schemas ----------


class ActivityCreatedResponse(BaseModel):
    report: ReportDocument
    activity: ActivityEntry


class ReorderRequest(BaseModel):
    entry_id: str
    target_id: str


class ActivityIdRequest(BaseModel):
    activity_id: str
    # None asks first; True shifts existing ids up; False keeps a duplicate
    confirm_shift: bool | None = None


class RippleShiftResponse(BaseModel):
    conflict_id: str
    shifted_reports: int
    failed_reports: int
    complete: bool


class ActivityIdResponse(BaseModel):
    report: ReportDocument
    activity_id: str
    conflict: bool
    shifted: bool
    ripple: RippleShiftResponse | None = None


class CheckIdRequest(BaseModel):
    activity_id: str
    exclude_date: date | None = None


class CheckIdResponse(BaseModel):
    activity_id: str
    in_use: bool


class RippleShiftRequest(BaseModel):
    activity_id: str


# ---------- Endpoints ----------


@router.post(
    "/reports/{report_date}/activities", response_model=ActivityCreatedResponse, status_code=201
)
async def add_activity(
    report_date: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    report, activity = await ReportService().add_activity(
        current_user.id, parse_report_date(report_date), db
    )
    return ActivityCreatedResponse(report=report, activity=activity)


@router.delete("/reports/{report_date}/activities/{entry_id}", response_model=ReportDocument)
async def delete_activity(
    report_date: str,
    entry_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService().delete_activity(
        current_user.id, parse_report_date(report_date), entry_id, db
    )


@router.post("/reports/{report_date}/activities/reorder", response_model=ReportDocument)
async def reorder_activity(
    report_date: str,
    body: ReorderRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService().reorder_activity(
        current_user.id, parse_report_date(report_date), body.entry_id, body.target_id, db
    )


@router.post(
    "/reports/{report_date}/activities/{entry_id}/activity-id", response_model=ActivityIdResponse
)
async def set_activity_id(
    report_date: str,
    entry_id: str,
    body: ActivityIdRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    report, commit, ripple = await ReportService().commit_activity_id(
        current_user.id,
        parse_report_date(report_date),
        entry_id,
        body.activity_id,
        body.confirm_shift,
        db,
    )
    return ActivityIdResponse(
        report=report,
        activity_id=commit.activity_id,
        conflict=commit.conflict,
        shifted=commit.shifted or bool(ripple and ripple.shifted_reports),
        ripple=_ripple_response(ripple) if ripple else None,
    )


@router.post(
    "/reports/{report_date}/activities/{entry_id}/entries/{category}",
    response_model=ActivityEntry,
    status_code=201,
)
async def add_entry(
    report_date: str,
    entry_id: str,
    category: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService().add_entry(
        current_user.id, parse_report_date(report_date), entry_id, parse_category(category), db
    )


@router.get(
    "/reports/{report_date}/activities/{entry_id}/metrics", response_model=ActivityMetrics
)
async def activity_metrics(
    report_date: str,
    entry_id: str,
    as_of: date | None = Query(None, description="Defaults to the report date"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService().activity_metrics(
        current_user.id, parse_report_date(report_date), entry_id, as_of, db
    )


@router.post("/activities/check-id", response_model=CheckIdResponse)
async def check_activity_id(
    body: CheckIdRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    upper = body.activity_id.strip().upper()
    in_use = await ReportService().history_has_activity_id(
        current_user.id, upper, db, exclude_date=body.exclude_date
    )
    return CheckIdResponse(activity_id=upper, in_use=in_use)


@router.post("/activities/ripple-shift", response_model=RippleShiftResponse)
async def ripple_shift(
    body: RippleShiftRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await ReportService().ripple_shift_history(current_user.id, body.activity_id, db)
    return _ripple_response(result)


def _ripple_response(result: RippleShiftResult) -> RippleShiftResponse:
    return RippleShiftResponse(
        conflict_id=result.conflict_id,
        shifted_reports=result.shifted_reports,
        failed_reports=result.failed_reports,
        complete=result.complete,
    )
