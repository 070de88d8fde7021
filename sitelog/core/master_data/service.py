"""Per-user master data catalog and its push into resource memory."""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.common.enums import EntryCategory, MemoryCategory
from sitelog.common.exceptions import BadRequestError, NotFoundError
from sitelog.common.logging import get_logger
from sitelog.core.memory.manpower import normalize_key
from sitelog.core.memory.service import MemoryService
from sitelog.db.models.master_data import MasterDataItem

logger = get_logger("master_data.service")

DEFAULT_REGULAR_HOURS = 8


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def tidy_name(name: str | None) -> str:
    return (name or "").strip()


class MasterItemInput(BaseModel):
    code: str = ""
    name: str = ""
    unit: str | None = None
    quantity: float | None = None
    overtime: float | None = None
    trade: str | None = None
    company: str | None = None
    cost: Decimal | None = None
    comments: str | None = None


def memory_template(category: MemoryCategory | str, item: MasterDataItem) -> dict | None:
    """The name-keyed memory entry a master item contributes, None for risks and blank names.

    The entry carries the item code so report rows can match it by code as well.
    """
    key = MemoryCategory(category).value
    name_key = normalize_key(item.name)
    if key == MemoryCategory.RISK.value or not name_key:
        return None

    template: dict = {
        "name_key": name_key,
        "code": normalize_code(item.code),
        "name": item.name,
        "unit": item.unit or "",
        "cost": float(item.cost) if item.cost is not None else 0,
    }
    if key == EntryCategory.MANPOWER.value:
        hours = item.quantity or DEFAULT_REGULAR_HOURS
        template.update(
            trade=item.trade or "",
            quantity=hours,
            regular_hours=hours,
            overtime=item.overtime or 0,
        )
    elif key == EntryCategory.SUBCONTRACTOR.value:
        template["company"] = item.company or ""
    elif item.quantity:
        template["quantity"] = item.quantity
    return template


class MasterDataService:
    def __init__(self, memory_service: MemoryService | None = None):
        self.memory_service = memory_service or MemoryService()

    async def list_items(
        self,
        user_id: str,
        category: MemoryCategory,
        db: AsyncSession,
        search: str | None = None,
    ) -> list[MasterDataItem]:
        try:
            result = await db.execute(
                select(MasterDataItem)
                .where(MasterDataItem.user_id == user_id, MasterDataItem.category == category.value)
                .order_by(MasterDataItem.code)
            )
        except SQLAlchemyError:
            logger.exception("Failed to list %s master data for user %s", category.value, user_id)
            return []

        items = list(result.scalars().all())
        if search:
            needle = search.strip().lower()
            items = [
                i for i in items
                if needle in i.code.lower() or needle in (i.name or "").lower()
            ]
        return items

    async def get_item(
        self, user_id: str, category: MemoryCategory, code: str, db: AsyncSession
    ) -> MasterDataItem | None:
        result = await db.execute(
            select(MasterDataItem).where(
                MasterDataItem.user_id == user_id,
                MasterDataItem.category == category.value,
                MasterDataItem.code == normalize_code(code),
            )
        )
        return result.scalar_one_or_none()

    async def save_item(
        self,
        user_id: str,
        category: MemoryCategory,
        code: str,
        data: MasterItemInput,
        db: AsyncSession,
    ) -> MasterDataItem:
        normalized = normalize_code(code or data.code)
        if not normalized:
            raise BadRequestError("Master data item code is required")

        values = data.model_dump(exclude_unset=True, exclude={"code"})
        values["name"] = tidy_name(values.get("name"))

        item = await self.get_item(user_id, category, normalized, db)
        if item is None:
            item = MasterDataItem(user_id=user_id, category=category.value, code=normalized)
            db.add(item)
        for field, value in values.items():
            setattr(item, field, value)
        item.updated_at = datetime.now(timezone.utc)

        await db.flush()
        await db.refresh(item)
        logger.info("Saved %s master item %s for user %s", category.value, normalized, user_id)
        return item

    async def delete_item(
        self, user_id: str, category: MemoryCategory, code: str, db: AsyncSession
    ) -> None:
        normalized = normalize_code(code)
        if not normalized:
            raise BadRequestError("Master data item code is required")
        result = await db.execute(
            delete(MasterDataItem).where(
                MasterDataItem.user_id == user_id,
                MasterDataItem.category == category.value,
                MasterDataItem.code == normalized,
            )
        )
        if not result.rowcount:
            raise NotFoundError("Master data item", normalized)
        logger.info("Deleted %s master item %s for user %s", category.value, normalized, user_id)

    # ---------- Memory sync ----------

    async def sync_item_to_memory(
        self, user_id: str, category: MemoryCategory, code: str, db: AsyncSession
    ) -> bool:
        item = await self.get_item(user_id, category, code, db)
        if item is None:
            return False
        template = memory_template(category, item)
        if template is None:
            return False

        memory = await self.memory_service.load(user_id, db)
        memory.remember_named(category, template["name_key"], template)
        return await self.memory_service.save(memory, db)

    async def sync_all_to_memory(self, user_id: str, db: AsyncSession) -> int:
        memory = await self.memory_service.load(user_id, db)
        count = 0
        for category in EntryCategory:
            for item in await self.list_items(user_id, MemoryCategory(category.value), db):
                template = memory_template(category.value, item)
                if template is None:
                    continue
                memory.remember_named(category.value, template["name_key"], template)
                count += 1
        if count:
            await self.memory_service.save(memory, db)
        logger.info("Synced %d master items into memory for user %s", count, user_id)
        return count
