"""
Shared fixtures for boardsync tests.
"""

import asyncio
from typing import Callable, List

import pytest


class ManualTimer:
    """Timer handle returned by ManualScheduler.call_later."""

    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic stand-in for loop.call_later.

    Time only moves when advance() is called.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: List[ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def armed(self) -> List[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.armed if t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.now = timer.when
            timer.fired = True
            timer.callback()
        self.now = target


@pytest.fixture
def scheduler():
    """Manually driven timer source."""
    return ManualScheduler()


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll predicate on the event loop until true or timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.005)
    return predicate()


@pytest.fixture(name="wait_until")
def wait_until_fixture():
    """Polling helper for event-loop driven assertions."""
    return wait_until
