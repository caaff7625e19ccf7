"""
Server-side round-end grace countdown.

Once every player in a room has locked in a guess, the room gets a short grace
period during which guesses may still change. The countdown reports the
remaining whole ticks (N, N-1, ..., 0) and then fires its expiry callback,
which closes the round. It runs as an asyncio task so it never blocks command
handling, and it can be cancelled at any point.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


class RoundCountdown:
    """A single cancellable countdown owned by one room."""

    def __init__(self, seconds: int = 5, tick_interval: float = 1.0) -> None:
        if seconds < 0:
            raise ValueError(f"Countdown length must be non-negative, got {seconds}")
        self._seconds = seconds
        self._tick_interval = tick_interval
        self._remaining = seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def seconds(self) -> int:
        return self._seconds

    @property
    def remaining(self) -> int:
        """Last value reported to on_tick (the full length before the first tick)."""
        return self._remaining

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(
        self,
        on_tick: Callable[[int], Awaitable[None]],
        on_expire: Callable[[], Awaitable[None]],
    ) -> None:
        """Schedule the countdown. Starting an active countdown is an error."""
        if self.is_active:
            raise RuntimeError("Countdown already running")
        self._remaining = self._seconds
        self._task = asyncio.create_task(self._run(on_tick, on_expire))

    def cancel(self) -> None:
        """Stop the countdown without firing expiry.

        A call made from inside the countdown's own callbacks only detaches the
        task; cancelling it there would abort the callback that is running.
        """
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run(
        self,
        on_tick: Callable[[int], Awaitable[None]],
        on_expire: Callable[[], Awaitable[None]],
    ) -> None:
        try:
            for remaining in range(self._seconds, -1, -1):
                self._remaining = remaining
                await on_tick(remaining)
                if remaining:
                    await asyncio.sleep(self._tick_interval)
            await on_expire()
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("round countdown callback failed")
