"""Periodic task scheduling — a cancellable handle around an asyncio polling loop."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("quantdeck.signal_service")

TickAction = Callable[[], Awaitable[None]]


class PeriodicTask:
    """Runs *action* every *interval* seconds until cancelled.

    The first tick fires one interval after ``start``.  An exception raised
    by a tick is logged and the loop keeps going.  ``cancel`` interrupts
    the sleep between ticks but lets an in-flight tick run to completion.
    """

    def __init__(self, interval: float, action: TickAction, name: str = "periodic") -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = interval
        self._action = action
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False
        self._in_tick = False
        self.tick_count = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "PeriodicTask":
        """Schedule the loop on the running event loop."""
        if self._task is not None:
            raise RuntimeError(f"PeriodicTask '{self._name}' already started")
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self._name)
        return self

    def cancel(self) -> None:
        """Stop the loop after the current tick (if any)."""
        self._cancelled = True
        if self._task is not None and not self._in_tick:
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the loop to finish after ``cancel``."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _loop(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self._interval)
            if self._cancelled:
                break
            self._in_tick = True
            try:
                await self._action()
            except Exception:
                logger.exception("Periodic task '%s' tick failed", self._name)
            finally:
                self._in_tick = False
            self.tick_count += 1


def schedule_periodic(interval: float, action: TickAction, name: str = "periodic") -> PeriodicTask:
    """Create and start a ``PeriodicTask``; the returned handle cancels it."""
    return PeriodicTask(interval, action, name).start()
