"""
Scheduler - Periodic background tasks with cooperative cancellation

@.architecture
Incoming: core/cache/manager.py (start_auto_cleanup/stop_auto_cleanup), app.py (shutdown) --- {interval in ms, async task taking a CancellationToken}
Processing: start(), cancel(), shutdown(), ScheduledTask._run() --- {3 jobs: periodic_execution, cancellation, state_tracking}
Outgoing: the scheduled coroutine (CacheManager.maintenance_tick) --- {CancellationToken per handle}

Each handle runs as its own asyncio task that sleeps between ticks. A tick
is never interrupted: cancelling during a tick lets it finish, then the loop
exits (RUNNING -> CANCELLING -> STOPPED). Cancelling between ticks stops
the handle immediately (IDLE -> STOPPED).
"""

import asyncio
import itertools
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.cache.errors import require_positive_int
from monitoring.logging import get_logger
from monitoring.metrics import setup_cache_metrics

logger = get_logger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLING = "cancelling"
    STOPPED = "stopped"


class CancellationToken:
    """Set once by the scheduler; scheduled tasks may poll it between steps."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait up to ``timeout`` seconds; True if cancelled meanwhile."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True


ScheduledCallable = Callable[[CancellationToken], Awaitable[Any]]


class ScheduledTask:
    """Handle for one periodic task returned by ``Scheduler.start``."""

    def __init__(
        self,
        task_id: str,
        interval_ms: int,
        func: ScheduledCallable,
        initial_delay_ms: int,
        metrics: Dict[str, Any]
    ):
        self.id = task_id
        self.interval_ms = interval_ms
        self.initial_delay_ms = initial_delay_ms
        self.token = CancellationToken()
        self.state = SchedulerState.IDLE
        self.runs = 0
        self.failures = 0

        self._func = func
        self._metrics = metrics
        self._task: Optional[asyncio.Task] = None

    def _launch(self) -> None:
        self._task = asyncio.create_task(self._run(), name=f"scheduled-{self.id}")
        self._metrics['scheduled_tasks'].inc()

    async def _run(self) -> None:
        try:
            if self.initial_delay_ms and await self.token.wait(self.initial_delay_ms / 1000):
                return

            while not self.token.cancelled:
                self.state = SchedulerState.RUNNING
                try:
                    await self._func(self.token)
                except Exception as e:
                    self.failures += 1
                    logger.error("Scheduled task failed", task_id=self.id, error=str(e), exc_info=True)
                self.runs += 1

                if self.token.cancelled:
                    break
                self.state = SchedulerState.IDLE
                if await self.token.wait(self.interval_ms / 1000):
                    break
        finally:
            self.state = SchedulerState.STOPPED
            self._metrics['scheduled_tasks'].dec()
            logger.info("Scheduled task stopped", task_id=self.id, runs=self.runs)

    def cancel(self) -> None:
        """Stop future ticks; a tick in progress runs to completion."""
        if self.state == SchedulerState.STOPPED:
            return
        if self.state == SchedulerState.RUNNING:
            self.state = SchedulerState.CANCELLING
        else:
            self.state = SchedulerState.STOPPED
        self.token.cancel()

    async def wait(self) -> None:
        """Wait until the handle's loop has exited."""
        if self._task is not None:
            await self._task

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()


class Scheduler:
    """
    Owns periodic tasks and stops them on shutdown.

    Usage:
        scheduler = Scheduler()
        handle = scheduler.start(60000, manager.maintenance_tick)
        ...
        await scheduler.shutdown()
    """

    def __init__(self, metrics: Optional[Dict[str, Any]] = None):
        self._metrics = metrics or setup_cache_metrics()
        self._handles: Dict[str, ScheduledTask] = {}
        self._ids = itertools.count(1)

    def start(
        self,
        interval_ms: int,
        task: ScheduledCallable,
        initial_delay_ms: Optional[int] = None
    ) -> ScheduledTask:
        """
        Run ``task`` every ``interval_ms`` milliseconds.

        The first tick happens after ``initial_delay_ms`` (defaults to one
        interval). Must be called from a running event loop.

        Raises:
            InvalidArgument: If interval_ms is not a positive integer
        """
        require_positive_int(interval_ms, "interval_ms")
        if initial_delay_ms is None:
            initial_delay_ms = interval_ms
        elif initial_delay_ms != 0:
            require_positive_int(initial_delay_ms, "initial_delay_ms")

        handle = ScheduledTask(
            task_id=str(next(self._ids)),
            interval_ms=interval_ms,
            func=task,
            initial_delay_ms=initial_delay_ms,
            metrics=self._metrics,
        )
        self._handles[handle.id] = handle
        handle._launch()

        logger.info("Scheduled task started", task_id=handle.id, interval_ms=interval_ms)
        return handle

    def cancel(self, handle: ScheduledTask) -> None:
        handle.cancel()
        self._handles.pop(handle.id, None)

    def active(self) -> List[ScheduledTask]:
        return [handle for handle in self._handles.values() if handle.is_active]

    async def shutdown(self) -> None:
        """Cancel every handle and wait for in-flight ticks to finish."""
        handles = list(self._handles.values())
        self._handles.clear()

        for handle in handles:
            handle.cancel()
        await asyncio.gather(*(handle.wait() for handle in handles))

        if handles:
            logger.info("Scheduler shut down", tasks=len(handles))
