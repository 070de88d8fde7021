from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.api.deps import get_current_user, get_db, get_template_writer, parse_category
from sitelog.common.enums import MemoryCategory
from sitelog.common.exceptions import BadRequestError
from sitelog.core.memory.manpower import TemplateData, apply_template, template_from_row
from sitelog.core.memory.service import MemoryService, TemplateWriter
from sitelog.core.reports.schemas import ENTRY_MODELS, ManpowerEntry, RiskEntry
from sitelog.db.models.memory import ManpowerTemplate
from sitelog.db.models.user import User

router = APIRouter(prefix="/memory", tags=["Smart Memory"])


# ---------- Schemas ----------


class MemoryResponse(BaseModel):
    manpower: dict[str, dict]
    material: dict[str, dict]
    equipment: dict[str, dict]
    subcontractor: dict[str, dict]
    risk: dict[str, dict]


class ApplyRequest(BaseModel):
    row: dict


class ApplyResponse(BaseModel):
    row: dict
    applied: bool


class ManpowerTemplateResponse(BaseModel):
    name_key: str
    name: str
    trade: str | None
    unit: str | None
    regular_hours: float
    overtime: float
    cost: Decimal | None
    updated_at: datetime

    model_config = {"from_attributes": True}


class TemplateQueuedResponse(BaseModel):
    name_key: str
    queued: bool


class TemplateApplyResponse(BaseModel):
    row: ManpowerEntry
    applied: bool


# ---------- Endpoints ----------


@router.get("", response_model=MemoryResponse)
async def get_memory(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    memory = await MemoryService().load(current_user.id, db)
    return MemoryResponse(**memory.to_maps())


@router.get("/manpower-templates", response_model=list[ManpowerTemplateResponse])
async def list_manpower_templates(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MemoryService().list_templates(current_user.id, db)


@router.post("/manpower-templates", response_model=TemplateQueuedResponse, status_code=202)
async def save_manpower_template(
    row: ManpowerEntry,
    current_user: User = Depends(get_current_user),
    writer: TemplateWriter = Depends(get_template_writer),
):
    data = template_from_row(row)
    if data is None:
        raise BadRequestError("Manpower name is required")
    writer.queue(current_user.id, data)
    return TemplateQueuedResponse(name_key=data.name_key, queued=True)


@router.post("/manpower-templates/apply", response_model=TemplateApplyResponse)
async def apply_manpower_template(
    row: ManpowerEntry,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    template = await MemoryService().get_template(current_user.id, row.name, db)
    if template is None:
        return TemplateApplyResponse(row=row, applied=False)
    return TemplateApplyResponse(row=apply_template(row, _template_data(template)), applied=True)


@router.post("/{category}/apply", response_model=ApplyResponse)
async def apply_memory(
    category: str,
    body: ApplyRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    cat = parse_category(category)
    model = RiskEntry if cat == MemoryCategory.RISK else ENTRY_MODELS[cat.value]
    row = model.model_validate(body.row)

    memory = await MemoryService().load(current_user.id, db)
    filled, applied = memory.apply(cat, row)
    return ApplyResponse(row=filled.model_dump(mode="json"), applied=applied)


def _template_data(template: ManpowerTemplate) -> TemplateData:
    return TemplateData(
        name_key=template.name_key,
        name=template.name,
        trade=template.trade or "",
        unit=template.unit or "",
        regular_hours=template.regular_hours,
        overtime=template.overtime,
        cost=float(template.cost) if template.cost is not None else None,
    )
