"""Timer abstraction driving the move executor.

The executor never touches the event loop directly: it asks a Scheduler for a
repeating tick and a one-shot deadline, and receives a CancelToken for each.
Production code uses AsyncioScheduler; tests substitute a virtual clock.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from loguru import logger


class CancelToken:
    """Handle returned by the scheduler; cancelling is idempotent."""

    def __init__(self, cancel_fn: Optional[Callable[[], None]] = None):
        self._cancel_fn = cancel_fn
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def bind(self, cancel_fn: Callable[[], None]) -> None:
        self._cancel_fn = cancel_fn

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._cancel_fn is not None:
            self._cancel_fn()


class Scheduler(ABC):
    """Tick source plus one-shot timers, all on one logical thread."""

    @abstractmethod
    def now_ms(self) -> float:
        """Monotonic time in milliseconds."""
        pass

    @abstractmethod
    def call_every(
        self, interval_ms: float, callback: Callable[[], Awaitable[None]]
    ) -> CancelToken:
        """Run an async callback every interval until cancelled.

        Ticks never overlap: the next interval starts after the previous
        callback has finished.
        """
        pass

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> CancelToken:
        """Run a plain callback once after a delay unless cancelled."""
        pass

    @abstractmethod
    async def sleep(self, ms: float) -> None:
        """Suspend the caller for the given time."""
        pass


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def call_every(
        self, interval_ms: float, callback: Callable[[], Awaitable[None]]
    ) -> CancelToken:
        loop = asyncio.get_running_loop()
        token = CancelToken()

        async def runner() -> None:
            while not token.cancelled:
                await asyncio.sleep(interval_ms / 1000.0)
                if token.cancelled:
                    break
                try:
                    await callback()
                except Exception as e:
                    logger.exception(f"Scheduled tick raised: {e}")

        task = loop.create_task(runner())

        def cancel_task() -> None:
            # A tick may cancel its own timer; the loop condition handles that case
            if task is not asyncio.current_task():
                task.cancel()

        token.bind(cancel_task)
        return token

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> CancelToken:
        loop = asyncio.get_running_loop()
        handle = loop.call_later(delay_ms / 1000.0, callback)
        return CancelToken(handle.cancel)

    async def sleep(self, ms: float) -> None:
        await asyncio.sleep(ms / 1000.0)
