"""
Repeating background tasks for the governor and projector timers.
"""

import asyncio
import logging
import time
from contextlib import suppress
from typing import Awaitable, Callable, Optional

log = logging.getLogger(__name__)


class PeriodicTask:
    """
    Fires an async callback on a fixed cadence on the running event loop.

    A fire that arrives while the previous run is still in flight is skipped,
    so a slow pass never overlaps with the next one. Errors raised by the
    callback are logged and the next fire proceeds normally.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[object]],
        run_immediately: bool = False,
    ):
        """
        Args:
            name: Label used in log messages.
            interval: Seconds between fires.
            callback: Coroutine function invoked on every fire.
            run_immediately: Fire once as soon as the task starts.
        """
        if interval <= 0:
            raise ValueError("Interval must be greater than zero.")
        self.name = name
        self.interval = interval
        self._callback = callback
        self._run_immediately = run_immediately

        self._loop_task: Optional[asyncio.Task] = None
        self._run_task: Optional[asyncio.Task] = None
        self.skipped_fires = 0
        self.completed_runs = 0
        self.last_error: Optional[str] = None
        self.last_run_at: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> bool:
        return self._run_task is not None and not self._run_task.done()

    def start(self) -> None:
        """Starts the timer loop. Calling it again while running is a no-op."""
        if self.is_running:
            return
        self._loop_task = asyncio.create_task(self._timer_loop())
        log.debug(f"Started periodic task '{self.name}' (every {self.interval}s).")

    async def stop(self) -> None:
        """Stops the timer and waits for an in-flight run without cancelling it."""
        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._loop_task
        self._loop_task = None

        if self._run_task and not self._run_task.done():
            with suppress(Exception):
                await asyncio.shield(self._run_task)
        log.debug(f"Stopped periodic task '{self.name}'.")

    def trigger(self) -> Optional[asyncio.Task]:
        """
        Fires now, outside the regular cadence.

        Returns:
            The task running the callback, or None if a run is already in flight.
        """
        if self.in_flight:
            self.skipped_fires += 1
            log.debug(
                f"Periodic task '{self.name}' still running, skipping this fire."
            )
            return None
        self._run_task = asyncio.create_task(self._run_once())
        return self._run_task

    async def _timer_loop(self) -> None:
        if self._run_immediately:
            self.trigger()
        while True:
            await asyncio.sleep(self.interval)
            self.trigger()

    async def _run_once(self) -> None:
        self.last_run_at = time.time()
        try:
            await self._callback()
            self.last_error = None
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.last_error = str(e)
            log.error(f"[red]Periodic task '{self.name}' failed: {e}[/red]")
            log.debug("Full traceback:", exc_info=True)
        finally:
            self.completed_runs += 1
