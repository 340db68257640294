import asyncio
import logging
from typing import Callable, Dict, Hashable, Optional, Set

logger = logging.getLogger(__name__)


class DebounceScheduler:
    """
    Keyed, cancellable one-shot timers on the running asyncio loop.

    Scheduling a key that is already pending replaces the earlier timer, so a
    burst of calls collapses into one run `delay` seconds after the last call.
    `fn` may be a plain callable or return a coroutine; coroutines are run as
    tasks tracked until they finish.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: Dict[Hashable, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def schedule(self, key: Hashable, delay: float, fn: Callable) -> None:
        self.cancel(key)
        self._handles[key] = self._event_loop().call_later(max(0.0, delay), self._fire, key, fn)

    def _fire(self, key: Hashable, fn: Callable) -> None:
        self._handles.pop(key, None)
        result = fn()
        if asyncio.iscoroutine(result):
            task = self._event_loop().create_task(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def cancel(self, key: Hashable) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug("Cancelled pending timer %r", key)
        return True

    def cancel_all(self) -> None:
        for key in list(self._handles):
            self.cancel(key)

    def pending(self, key: Hashable) -> bool:
        return key in self._handles

    async def drain(self) -> None:
        """Wait for callbacks that have already fired and are still running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
