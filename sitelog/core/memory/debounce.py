import asyncio
from collections.abc import Awaitable, Callable, Hashable

from sitelog.common.logging import get_logger

logger = get_logger("memory.debounce")


class Debouncer:
    """Collapse bursts of writes per key into the last one.

    Each ``submit`` cancels the write still waiting for the same key and
    schedules the new one after ``delay`` seconds of quiet. A write that has
    started running is never cancelled. Writes for different keys do not
    affect each other.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._waiting: dict[Hashable, asyncio.Task] = {}
        self._tasks: set[asyncio.Task] = set()

    def submit(self, key: Hashable, action: Callable[[], Awaitable[None]]) -> asyncio.Task:
        previous = self._waiting.pop(key, None)
        if previous is not None:
            previous.cancel()

        task = asyncio.get_running_loop().create_task(self._run(key, action))
        self._waiting[key] = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, key: Hashable, action: Callable[[], Awaitable[None]]) -> None:
        try:
            await asyncio.sleep(self.delay)
        finally:
            if self._waiting.get(key) is asyncio.current_task():
                del self._waiting[key]

        try:
            await action()
        except Exception:
            logger.exception("Debounced write for %s failed", key)

    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    async def flush(self) -> None:
        """Wait for every scheduled write to finish."""
        tasks = [t for t in self._tasks if not t.done()]
        while tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            tasks = [t for t in self._tasks if not t.done()]

    def cancel_all(self) -> None:
        """Drop writes that have not started yet."""
        for task in self._waiting.values():
            task.cancel()
        self._waiting.clear()
