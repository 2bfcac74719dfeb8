# kiosk/services/scheduler.py
"""
Timer plumbing for the kiosk session.

Every timer the session uses (idle, countdown, rotation, admin clicks, reset,
periodic sync) lives in a TimerSlot. A slot holds at most one live handle;
arming it cancels whatever was there first.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Protocol

from kiosk.logging import get_logger

log = get_logger(__name__)

Callback = Callable[[], Any]


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callback) -> Handle: ...

    def spawn(self, coro: Awaitable[Any]) -> Any: ...


class AsyncioScheduler:
    """Schedules callbacks on a running event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.get_running_loop()
        self._tasks: set = set()

    def call_later(self, delay: float, callback: Callback) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)

    def spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = self.loop.create_task(coro)
        # Keep a strong reference until the task finishes.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(_log_task_failure)
        return task


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("Background task failed", exc_info=(type(exc), exc, exc.__traceback__))


class TimerSlot:
    """Holds at most one scheduled callback."""

    def __init__(self, scheduler: Scheduler, name: str = "timer"):
        self.scheduler = scheduler
        self.name = name
        self._handle: Optional[Handle] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def arm(self, delay: float, callback: Callback) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            callback()

        self._handle = self.scheduler.call_later(delay, fire)

    def arm_interval(self, interval: float, callback: Callback) -> None:
        """Fire `callback` every `interval` seconds until cancelled or re-armed."""
        self.cancel()

        def tick() -> None:
            # Reschedule before running so the callback may cancel the slot.
            self._handle = self.scheduler.call_later(interval, tick)
            callback()

        self._handle = self.scheduler.call_later(interval, tick)
