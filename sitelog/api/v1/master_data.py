from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.api.deps import get_current_user, get_db, parse_category
from sitelog.common.logging import get_logger
from sitelog.core.master_data.service import MasterDataService, MasterItemInput
from sitelog.db.models.user import User

logger = get_logger("api.master_data")

router = APIRouter(prefix="/master-data", tags=["Master Data"])


# ---------- Schemas ----------


class MasterItemResponse(BaseModel):
    category: str
    code: str
    name: str
    unit: str | None
    quantity: float | None
    overtime: float | None
    trade: str | None
    company: str | None
    cost: Decimal | None
    comments: str | None
    updated_at: datetime

    model_config = {"from_attributes": True}


class SyncResponse(BaseModel):
    synced: int


# ---------- Endpoints ----------


@router.post("/sync", response_model=SyncResponse)
async def sync_all(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await MasterDataService().sync_all_to_memory(current_user.id, db)
    return SyncResponse(synced=count)


@router.get("/{category}", response_model=list[MasterItemResponse])
async def list_items(
    category: str,
    search: str | None = Query(None, description="Matches code or name"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MasterDataService().list_items(
        current_user.id, parse_category(category), db, search=search
    )


@router.put("/{category}/{code}", response_model=MasterItemResponse)
async def save_item(
    category: str,
    code: str,
    body: MasterItemInput,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    cat = parse_category(category)
    item = await MasterDataService().save_item(current_user.id, cat, code, body, db)

    # Push the item into resource memory in the background
    from sitelog.tasks.memory_tasks import sync_master_item

    try:
        sync_master_item.delay(current_user.id, cat.value, item.code)
    except Exception:
        logger.exception("Could not queue memory sync for %s/%s", cat.value, item.code)

    return item


@router.delete("/{category}/{code}", status_code=204)
async def delete_item(
    category: str,
    code: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await MasterDataService().delete_item(current_user.id, parse_category(category), code, db)
