"""Exam countdown timer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class ExamCountdown:
    """Decrements ``remaining`` once per tick and fires ``on_expire`` at zero.

    The countdown runs as its own asyncio task. ``cancel()`` stops it; after
    cancellation no further ticks happen and ``on_expire`` is never called.
    """

    def __init__(
        self,
        time_limit_seconds: int,
        on_expire: Callable[[], Awaitable[None]],
        tick_interval: float = 1.0,
    ) -> None:
        if time_limit_seconds < 0:
            msg = f"time_limit_seconds must be non-negative, got {time_limit_seconds}"
            raise ValueError(msg)
        self.time_limit_seconds = time_limit_seconds
        self.remaining = time_limit_seconds
        self.tick_interval = tick_interval
        self._on_expire = on_expire
        self._task: asyncio.Task[None] | None = None
        self.expired = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def elapsed(self) -> int:
        return self.time_limit_seconds - self.remaining

    def start(self) -> None:
        if self._task is not None:
            msg = "Countdown already started"
            raise RuntimeError(msg)
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while self.remaining > 0:
            await asyncio.sleep(self.tick_interval)
            self.remaining -= 1
        self.expired = True
        try:
            await self._on_expire()
        except Exception:
            logger.exception("Exam auto-submit failed")

    def cancel(self) -> None:
        """Stop ticking. Safe to call repeatedly and after expiry."""
        if self._task is not None and not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait until the countdown finishes (expired or cancelled)."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if self._task.cancelled():
                return
            raise
