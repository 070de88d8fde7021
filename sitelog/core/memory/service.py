from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sitelog.common.enums import MemoryCategory
from sitelog.common.logging import get_logger
from sitelog.config import settings
from sitelog.core.memory.debounce import Debouncer
from sitelog.core.memory.manpower import TemplateData, normalize_key
from sitelog.core.memory.memory import ResourceMemory
from sitelog.core.reports.schemas import ActivityEntry
from sitelog.db.models.memory import ManpowerTemplate, ResourceMemoryRecord

logger = get_logger("memory.service")


class MemoryService:
    async def load(self, user_id: str, db: AsyncSession) -> ResourceMemory:
        try:
            result = await db.execute(
                select(ResourceMemoryRecord).where(ResourceMemoryRecord.user_id == user_id)
            )
            record = result.scalar_one_or_none()
        except SQLAlchemyError:
            logger.exception("Failed to load resource memory for user %s", user_id)
            return ResourceMemory(user_id=user_id)

        if not record:
            return ResourceMemory(user_id=user_id)
        return ResourceMemory.from_maps(
            user_id, {c.value: getattr(record, c.value) for c in MemoryCategory}
        )

    async def save(self, memory: ResourceMemory, db: AsyncSession) -> bool:
        maps = memory.to_maps()
        try:
            record = await db.get(ResourceMemoryRecord, memory.user_id)
            if record is None:
                db.add(ResourceMemoryRecord(user_id=memory.user_id, **maps))
            else:
                for category, entries in maps.items():
                    setattr(record, category, entries)
            await db.flush()
        except SQLAlchemyError:
            logger.exception("Failed to save resource memory for user %s", memory.user_id)
            return False
        return True

    async def remember_report(
        self, user_id: str, activities: list[ActivityEntry], db: AsyncSession
    ) -> ResourceMemory:
        memory = await self.load(user_id, db)
        count = memory.remember_report(activities)
        if count:
            await self.save(memory, db)
            logger.info("Remembered %d resource rows for user %s", count, user_id)
        return memory

    # ---------- Manpower templates ----------

    async def list_templates(
        self, user_id: str, db: AsyncSession, limit: int | None = None
    ) -> list[ManpowerTemplate]:
        try:
            result = await db.execute(
                select(ManpowerTemplate)
                .where(ManpowerTemplate.user_id == user_id)
                .order_by(ManpowerTemplate.updated_at.desc(), ManpowerTemplate.name_key)
                .limit(limit or settings.MANPOWER_TEMPLATE_LIMIT)
            )
        except SQLAlchemyError:
            logger.exception("Failed to list manpower templates for user %s", user_id)
            return []
        return list(result.scalars().all())

    async def get_template(self, user_id: str, name: str, db: AsyncSession) -> ManpowerTemplate | None:
        key = normalize_key(name)
        if not key:
            return None
        try:
            result = await db.execute(
                select(ManpowerTemplate).where(
                    ManpowerTemplate.user_id == user_id, ManpowerTemplate.name_key == key
                )
            )
        except SQLAlchemyError:
            logger.exception("Failed to read manpower template %r for user %s", key, user_id)
            return None
        return result.scalar_one_or_none()

    async def upsert_template(
        self, user_id: str, data: TemplateData, db: AsyncSession
    ) -> ManpowerTemplate | None:
        values = data.model_dump(exclude={"cost"} if data.cost is None else None)
        now = datetime.now(timezone.utc)
        try:
            result = await db.execute(
                select(ManpowerTemplate).where(
                    ManpowerTemplate.user_id == user_id,
                    ManpowerTemplate.name_key == data.name_key,
                )
            )
            template = result.scalar_one_or_none()
            if template is None:
                template = ManpowerTemplate(user_id=user_id, updated_at=now, **values)
                db.add(template)
            else:
                for field, value in values.items():
                    setattr(template, field, value)
                template.updated_at = now
            await db.flush()
            await db.refresh(template)
        except SQLAlchemyError:
            logger.exception("Failed to save manpower template %r for user %s", data.name_key, user_id)
            return None
        return template


class TemplateWriter:
    """Debounced persistence of manpower templates, one pending write per (user, name)."""

    def __init__(self, session_factory: async_sessionmaker, delay: float | None = None):
        self.session_factory = session_factory
        self.debouncer = Debouncer(
            settings.MANPOWER_TEMPLATE_DEBOUNCE_SECONDS if delay is None else delay
        )

    def queue(self, user_id: str, data: TemplateData):
        async def write() -> None:
            async with self.session_factory() as session:
                saved = await MemoryService().upsert_template(user_id, data, session)
                if saved is not None:
                    await session.commit()
                    logger.info("Saved manpower template %r for user %s", data.name_key, user_id)

        return self.debouncer.submit((user_id, data.name_key), write)
