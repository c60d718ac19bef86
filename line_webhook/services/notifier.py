import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class BatchNotifier:
    """
    Coalesces "new events stored" signals into one downstream call per window.

    The first signal() while idle arms a one-shot timer; signals arriving
    while it is armed are absorbed and do not push the timer back. When the
    timer fires the notifier goes idle again before calling downstream, so a
    signal during that call opens a fresh window.
    """

    def __init__(self, notify: Callable[[], Awaitable[Any]], delay: float = 5.0, timeout: float = 10.0):
        self._notify = notify
        self._delay = delay
        self._timeout = timeout
        self._lock = asyncio.Lock()
        self._pending = False
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: set[asyncio.Task] = set()

    async def signal(self) -> bool:
        """Arm the timer if idle. Returns True when this call armed it."""
        async with self._lock:
            if self._pending:
                return False
            self._pending = True
            self._timer = asyncio.create_task(self._fire())
            self._in_flight.add(self._timer)
            self._timer.add_done_callback(self._in_flight.discard)
        logger.info(f"Scheduled processor notification in {self._delay} seconds")
        return True

    async def _fire(self):
        await asyncio.sleep(self._delay)
        async with self._lock:
            self._pending = False
            self._timer = None

        try:
            await asyncio.wait_for(self._notify(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(f"Processor notification timed out after {self._timeout} seconds")
        except Exception as e:
            logger.error(f"Failed to notify processor: {e}", exc_info=True)

    async def shutdown(self, timeout: float = 10.0):
        """
        Drop a timer that has not fired yet and give in-flight notifications
        up to ``timeout`` seconds before cancelling them.
        """
        async with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = False

        tasks = [task for task in self._in_flight if not task.done()]
        if not tasks:
            return
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning(f"Cancelled {len(still_running)} processor notifications on shutdown")
