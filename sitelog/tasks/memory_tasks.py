import asyncio

from sitelog.common.logging import get_logger
from sitelog.tasks.celery_app import app

logger = get_logger("tasks.memory")


def _run_async(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@app.task(name="sitelog.tasks.memory_tasks.sync_master_item")
def sync_master_item(user_id: str, category: str, code: str):
    """Push one saved master data item into the user's resource memory."""
    logger.info("Syncing %s master item %s into memory for user %s", category, code, user_id)

    async def _sync():
        from sitelog.common.enums import MemoryCategory
        from sitelog.core.master_data.service import MasterDataService
        from sitelog.db.session import async_session_factory

        async with async_session_factory() as db:
            try:
                synced = await MasterDataService().sync_item_to_memory(
                    user_id, MemoryCategory(category), code, db
                )
                await db.commit()
                return synced
            except Exception as e:
                await db.rollback()
                logger.error("Memory sync failed for %s/%s: %s", category, code, e)
                raise

    return _run_async(_sync())
