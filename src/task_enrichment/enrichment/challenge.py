"""Countdown for the "first tiny action" micro-challenge."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

logger = logging.getLogger(__name__)

# Remaining seconds at which a tick notification fires
TICK_FEEDBACK_AT = (3, 2, 1)


class ChallengeState(str, Enum):
    """Micro-challenge lifecycle."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


class MicroChallengeTimer:
    """Cooperative one-second countdown with an explicit cancellation handle.

    Transitions are idle -> running -> completed. ``complete()`` short-circuits
    a running countdown; ``reset()`` is the only way back to idle.
    """

    def __init__(
        self,
        total_seconds: int = 30,
        title: str = "Open and write just the first line",
        on_tick: Callable[[int], None] | None = None,
        on_complete: Callable[[], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize an idle timer.

        Args:
            total_seconds: Countdown length
            title: The tiny action the user commits to
            on_tick: Called with remaining seconds at 3, 2 and 1
            on_complete: Called once when the challenge completes
            sleep: Awaitable used for the one-second tick
        """
        if total_seconds < 1:
            raise ValueError("total_seconds must be positive")
        self.total_seconds = total_seconds
        self.title = title
        self.remaining_seconds = total_seconds
        self.state = ChallengeState.IDLE
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._sleep = sleep
        self._tick_task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self.state is ChallengeState.RUNNING

    def start(self) -> bool:
        """Start the countdown. Must be called from a running event loop.

        Returns:
            False if the challenge is running or already completed
        """
        if self.state is not ChallengeState.IDLE:
            logger.debug(f"[Challenge] Start rejected in state {self.state.value}")
            return False

        self.state = ChallengeState.RUNNING
        self.remaining_seconds = self.total_seconds
        self._tick_task = asyncio.create_task(self._run(), name="micro-challenge-tick")
        logger.info(f"[Challenge] Started {self.total_seconds}s countdown")
        return True

    async def _run(self) -> None:
        while self.remaining_seconds > 0:
            await self._sleep(1)
            self.remaining_seconds -= 1
            if self.remaining_seconds in TICK_FEEDBACK_AT and self._on_tick:
                self._on_tick(self.remaining_seconds)
        self._tick_task = None
        self._finish()

    def complete(self) -> bool:
        """Complete immediately, cancelling the pending tick.

        Returns:
            False if the challenge is not running
        """
        if self.state is not ChallengeState.RUNNING:
            return False
        self._cancel_tick()
        self._finish()
        return True

    def reset(self) -> None:
        """Return to idle with a full countdown."""
        self._cancel_tick()
        self.state = ChallengeState.IDLE
        self.remaining_seconds = self.total_seconds

    def cancel(self) -> None:
        """Stop a running countdown without completing it (card teardown)."""
        if self.state is ChallengeState.RUNNING:
            self._cancel_tick()
            self.state = ChallengeState.IDLE
            logger.info(f"[Challenge] Cancelled with {self.remaining_seconds}s left")

    async def wait(self) -> None:
        """Wait for a running countdown to finish."""
        if self._tick_task is not None:
            await asyncio.wait({self._tick_task})

    def _cancel_tick(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    def _finish(self) -> None:
        self.state = ChallengeState.COMPLETED
        logger.info(f"[Challenge] Completed with {self.remaining_seconds}s left")
        if self._on_complete:
            self._on_complete()
