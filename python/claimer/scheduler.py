#!/usr/bin/env python3
"""
Periodic timers for the Issue Claimer.

The orchestrator schedules its repeated work through a Scheduler so that the
timers can be replaced by a manually driven one in tests.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable


TickCallback = Callable[[], Awaitable[None]]


class TimerHandle(ABC):
    """Cancellation handle for a periodic timer"""

    @abstractmethod
    def cancel(self):
        raise NotImplementedError

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        raise NotImplementedError


class Scheduler(ABC):
    @abstractmethod
    def schedule_periodic(self, name: str, interval: float, callback: TickCallback) -> TimerHandle:
        """Run callback now and then every interval seconds until cancelled"""
        raise NotImplementedError


class _TaskHandle(TimerHandle):
    def __init__(self, task: asyncio.Task):
        self._task = task

    def cancel(self):
        self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled() or self._task.done()


class AsyncioScheduler(Scheduler):
    """Each timer is its own task, so a slow tick only delays its own timer"""

    def schedule_periodic(self, name: str, interval: float, callback: TickCallback) -> TimerHandle:
        task = asyncio.create_task(self._run(name, interval, callback), name=f"timer-{name}")
        return _TaskHandle(task)

    async def _run(self, name: str, interval: float, callback: TickCallback):
        while True:
            try:
                await callback()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # A failing tick must not kill the timer
                logging.exception(f"Timer {name} tick failed: {e}")
            await asyncio.sleep(interval)
