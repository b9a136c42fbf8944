"""Periodic background tasks owned by the application lifespan.

A ``PeriodicTask`` runs a callback every ``interval_seconds`` on the event
loop until it is stopped.  Stopping is explicit and awaited, so the owner
can finish its own shutdown (e.g. closing the audit writer) afterwards.
"""

import asyncio
import contextlib
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger


class PeriodicTask:
    """Run ``callback`` every ``interval_seconds`` in an asyncio task.

    A callback failure is logged and the loop keeps going.

    Args:
        name: Label used in log messages.
        interval_seconds: Delay between runs; the first run happens after
            one full interval.
        callback: Plain or async callable taking no arguments.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], Any] | Callable[[], Awaitable[Any]],
    ) -> None:
        if interval_seconds <= 0:
            msg = "interval_seconds must be positive"
            raise ValueError(msg)
        self.name = name
        self.interval_seconds = interval_seconds
        self._callback = callback
        self._task: asyncio.Task[None] | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop.

        Raises:
            RuntimeError: If the task is already running.
        """
        if self.running:
            msg = f"Periodic task {self.name} is already running"
            raise RuntimeError(msg)
        self._task = asyncio.create_task(self._loop(), name=self.name)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish.  Safe to call twice."""
        if self._task is None:
            return
        task = self._task
        self._task = None
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _loop(self) -> None:
        logger.info("Periodic task {} started (interval={}s)", self.name, self.interval_seconds)
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                result = self._callback()
                if inspect.isawaitable(result):
                    await result
                self.runs += 1
            except asyncio.CancelledError:
                logger.info("Periodic task {} cancelled", self.name)
                raise
            except Exception:
                logger.exception("Periodic task {} failed", self.name)
