"""Shared fixtures: a virtual-clock scheduler and loguru capture."""

import inspect
import sys
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import pytest
from loguru import logger

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from team_scrambler.adapters.scheduler import CancelToken, Scheduler  # noqa: E402


class _Timer:
    def __init__(self, due, seq, callback, token, interval: Optional[float] = None):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.token = token
        self.interval = interval


class VirtualScheduler(Scheduler):
    """Deterministic scheduler: time only moves when a test advances it."""

    def __init__(self):
        self._now = 0.0
        self._seq = 0
        self._timers: List[_Timer] = []

    def now_ms(self) -> float:
        return self._now

    def _add(self, delay_ms, callback, interval=None) -> CancelToken:
        token = CancelToken()
        self._seq += 1
        self._timers.append(_Timer(self._now + delay_ms, self._seq, callback, token, interval))
        return token

    def call_every(
        self, interval_ms: float, callback: Callable[[], Awaitable[None]]
    ) -> CancelToken:
        return self._add(interval_ms, callback, interval=interval_ms)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> CancelToken:
        return self._add(delay_ms, callback)

    @property
    def active_timers(self) -> int:
        return sum(1 for t in self._timers if not t.token.cancelled)

    async def advance(self, ms: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self._now + ms
        while True:
            self._timers = [t for t in self._timers if not t.token.cancelled]
            due = [t for t in self._timers if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self._now = max(self._now, timer.due)
            if timer.interval is None:
                self._timers.remove(timer)
                timer.token.cancel()
            result = timer.callback()
            if inspect.isawaitable(result):
                await result
            if timer.interval is not None:
                timer.due = self._now + timer.interval
        self._now = max(self._now, target)

    def jump(self, ms: float) -> None:
        """Move the clock without firing timers, like a call that blocks."""
        self._now += ms

    async def sleep(self, ms: float) -> None:
        await self.advance(ms)


class LogCapture:
    """Loguru records emitted during a test."""

    def __init__(self):
        self.records = []

    def sink(self, message) -> None:
        self.records.append(message.record)

    def at(self, level: str) -> List[str]:
        return [r["message"] for r in self.records if r["level"].name == level]

    def contains(self, level: str, fragment: str) -> bool:
        return any(fragment in message for message in self.at(level))


@pytest.fixture
def scheduler():
    """Virtual-clock scheduler."""
    return VirtualScheduler()


@pytest.fixture
def log_capture():
    """Capture loguru records emitted during a test."""
    capture = LogCapture()
    handler_id = logger.add(capture.sink, level="DEBUG")
    yield capture
    logger.remove(handler_id)
