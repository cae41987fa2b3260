"""Background workers — cooperative asyncio loops over the ordered store.

Lifecycle: start() → Running ⇄ Sleeping → stop() → join() → Stopped

Each loop iteration calls run_cycle() to completion, then checks the stop
signal. Idle sleeps wait on the stop signal, so stop() is observed within
one idle interval and never interrupts a cycle mid-flight. A failing cycle
is logged and the loop carries on; only stop() ends it.
"""

import asyncio
import logging
import time
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundWorker:
    """Base class for reconcile loops. Subclasses implement run_cycle()."""

    name = "worker"

    def __init__(self, idle_seconds: float):
        self.idle_seconds = idle_seconds
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._cycles = 0
        self._errors = 0
        self._last_error: str | None = None
        self._last_cycle_at: float | None = None

    async def run_cycle(self) -> bool:
        """Run one iteration. Returns True if work was done, False to idle."""
        raise NotImplementedError

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        if self.is_running:
            logger.warning("%s already started", self.name)
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop(), name=self.name)

    def stop(self) -> None:
        """Signal the loop to exit after the current cycle."""
        self._stop_event.set()

    async def join(self, timeout: float | None = None) -> bool:
        """Wait for the loop to exit. Returns False if it is still running after `timeout`."""
        if self._task is None:
            return True
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("%s did not stop within %.1fs", self.name, timeout)
            return False
        return True

    async def shutdown(self, timeout: float | None = None) -> bool:
        self.stop()
        return await self.join(timeout)

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to `seconds`; returns True if woken early by stop()."""
        if seconds <= 0:
            return self._stop_event.is_set()
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _loop(self) -> None:
        logger.info("%s started | idle=%.2fs", self.name, self.idle_seconds)
        while not self._stop_event.is_set():
            try:
                busy = await self.run_cycle()
            except Exception as e:
                self._errors += 1
                self._last_error = str(e)[:200]
                logger.warning("%s cycle failed | errors=%d | %s", self.name, self._errors, self._last_error)
                busy = False
            self._cycles += 1
            self._last_cycle_at = time.time()
            if busy:
                # Yield so the foreground runs even when store calls never suspend
                await asyncio.sleep(0)
            else:
                await self.sleep(self.idle_seconds)
        logger.info("%s stopped | cycles=%d | errors=%d", self.name, self._cycles, self._errors)

    def health(self) -> dict[str, Any]:
        return {
            "running": self.is_running,
            "cycles": self._cycles,
            "errors": self._errors,
            "last_error": self._last_error,
            "last_cycle_at": self._last_cycle_at,
        }
