import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Ticker:
    """Calls an async callback every ``interval`` seconds until stopped.

    Callbacks run one at a time; a slow callback delays the next tick rather
    than overlapping it.
    """

    def __init__(self, callback: Callable[[], Awaitable[None]], interval: float = 1.0):
        self.interval = interval
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(self._run(self._generation))

    def stop(self):
        self._generation += 1
        task, self._task = self._task, None
        # A callback may stop its own ticker; that loop ends once the callback returns
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _run(self, generation: int):
        while generation == self._generation:
            await asyncio.sleep(self.interval)
            if generation != self._generation:
                break
            try:
                await self._callback()
            except Exception as e:
                logger.error(f"Timer callback failed: {e}", exc_info=True)
