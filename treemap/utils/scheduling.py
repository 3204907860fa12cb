"""
Timer scheduling and debouncing on top of the asyncio event loop.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run a callback later and tell the time."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...

    def time(self) -> float: ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)

    def time(self) -> float:
        return asyncio.get_running_loop().time()


class Debouncer:
    """
    Coalesce a burst of events into a single callback invocation.

    Holds at most one pending timer. Every ``trigger`` resets it, so the
    callback only runs once ``delay`` seconds pass without a new event.
    Coroutine callbacks are run as tasks that ``drain`` can wait for and
    ``cancel`` can abort.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Any],
        scheduler: Optional[Scheduler] = None,
    ):
        self.delay = delay
        self.callback = callback
        self.scheduler = scheduler or LoopScheduler()
        self._handle: Optional[TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self.scheduler.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        result = self.callback()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Debounced callback failed", exc_info=error)

    async def drain(self) -> None:
        """Wait for every callback task started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        for task in list(self._tasks):
            task.cancel()
