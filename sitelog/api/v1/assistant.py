from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.api.deps import get_ai_client, get_current_user, get_db, parse_report_date
from sitelog.common.exceptions import NotFoundError
from sitelog.config import settings
from sitelog.core.reports.service import ReportService
from sitelog.db.models.user import User
from sitelog.integrations.ai_client import AIClient

router = APIRouter(prefix="/assistant", tags=["Assistant"])


# ---------- Schemas ----------


class ChatTurn(BaseModel):
    role: Literal["user", "model", "assistant"]
    text: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    history: list[ChatTurn] = Field(default_factory=list)


class AssistantResponse(BaseModel):
    text: str


# ---------- Endpoints ----------


@router.post("/reports/{report_date}/analysis", response_model=AssistantResponse)
async def analyze_report(
    report_date: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    day = parse_report_date(report_date)
    report = await ReportService().get_document(current_user.id, day, db)
    if not report:
        raise NotFoundError("Report", day.isoformat())
    return AssistantResponse(text=await ai.analyze_report(report))


@router.post("/risk-trends", response_model=AssistantResponse)
async def risk_trends(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    reports = await ReportService().list_reports(
        current_user.id, db, limit=settings.TREND_CONTEXT_REPORTS
    )
    return AssistantResponse(text=await ai.identify_risk_trends(reports))


@router.post("/chat", response_model=AssistantResponse)
async def chat(
    body: ChatRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    reports = await ReportService().list_reports(
        current_user.id, db, limit=settings.CHAT_CONTEXT_REPORTS
    )
    history = [turn.model_dump() for turn in body.history]
    return AssistantResponse(text=await ai.chat_with_project_data(body.message, reports, history))
