# src/agent_orchestrator/core/clock.py

"""
Clock implementations for the engine.

- VirtualClock: time only moves when advance() is called; used by tests and
  anything that wants to replay a schedule instantly.
- AsyncioClock: wall-clock time, callbacks dispatched on an asyncio loop that
  runs in a background thread (the console REPL blocks the main thread).
"""

from __future__ import annotations

import asyncio
import contextlib
import heapq
import itertools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

logger = logging.getLogger(__name__)


class _Timer:
    __slots__ = ("_callback", "cancelled")

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self._callback()


class VirtualClock:
    """Deterministic clock: callbacks run in due order while advance() walks time forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime.now(UTC)
        self._queue: list[tuple[datetime, int, _Timer]] = []
        self._seq = itertools.count()

    def now(self) -> datetime:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(callback)
        due = self._now + timedelta(seconds=max(0.0, float(delay)))
        heapq.heappush(self._queue, (due, next(self._seq), timer))
        return timer

    def advance(self, seconds: float = 0.0) -> int:
        """
        Move time forward by `seconds`, firing every callback that falls due.

        Callbacks scheduled while advancing fire too if they are due before the
        target time. Returns the number of callbacks fired.
        """
        target = self._now + timedelta(seconds=max(0.0, float(seconds)))
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if due > self._now:
                self._now = due
            if timer.cancelled:
                continue
            timer.fire()
            fired += 1
        self._now = target
        return fired

    def pending(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled)


class AsyncioClock:
    """Wall-clock time; callbacks are armed thread-safely on the given loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def now(self) -> datetime:
        return datetime.now(UTC)

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(callback)

        def _fire() -> None:
            try:
                timer.fire()
            except Exception:
                logger.exception("Clock callback crashed")

        def _arm() -> None:
            self._loop.call_later(max(0.0, float(delay)), _fire)

        self._loop.call_soon_threadsafe(_arm)
        return timer


@dataclass(slots=True)
class ClockBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event
    clock: AsyncioClock

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal clock loop stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_clock_in_background() -> ClockBackgroundRunner | None:
    """
    Run an asyncio loop in a daemon thread and wrap it in an AsyncioClock.

    Why a thread:
    - console REPL is blocking (input()).
    - engine timers need a loop that keeps turning meanwhile.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(stop_event.wait())
        finally:
            with contextlib.suppress(Exception):
                loop.stop()
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="orchestrator-clock", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Clock thread did not initialize properly.")
        return None

    logger.info("Clock background thread started.")
    return ClockBackgroundRunner(thread=t, loop=loop, stop_event=stop_event, clock=AsyncioClock(loop))
