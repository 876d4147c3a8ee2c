"""
Timers and background tasks for one client.

Everything in the presence engine runs on a single asyncio loop. Components
never touch the loop directly; they go through a Scheduler so tests can drive
time with a virtual clock.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class Scheduler:
    def call_later(self, delay, callback, *args):
        """Run callback once after delay seconds. Returns a handle with cancel()."""
        raise NotImplementedError

    def spawn(self, coro):
        """Run a coroutine in the background without awaiting it."""
        raise NotImplementedError

    def call_every(self, interval, callback, *args):
        """Run callback every interval seconds until the handle is cancelled."""
        return _Recurring(self, interval, callback, args)


class _Recurring:
    def __init__(self, scheduler, interval, callback, args):
        self._scheduler = scheduler
        self._interval = interval
        self._callback = callback
        self._args = args
        self._cancelled = False
        self._handle = scheduler.call_later(interval, self._tick)

    def _tick(self):
        if self._cancelled:
            return
        self._handle = self._scheduler.call_later(self._interval, self._tick)
        try:
            self._callback(*self._args)
        except Exception:
            logger.exception("recurring callback failed")

    def cancel(self):
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def cancelled(self):
        return self._cancelled


class LoopScheduler(Scheduler):
    """Scheduler backed by a running asyncio loop."""

    def __init__(self, loop=None):
        self._loop = loop
        self._tasks = set()

    @property
    def loop(self):
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay, callback, *args):
        return self.loop.call_later(delay, callback, *args)

    def spawn(self, coro, name=None):
        task = self.loop.create_task(coro, name=name)
        # keep a reference until done, the loop only holds weak ones
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("background task %s raised %s: %s",
                           task.get_name(), type(exc).__name__, exc, exc_info=exc)

    def cancel_all(self):
        for task in list(self._tasks):
            task.cancel()
