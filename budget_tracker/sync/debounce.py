"""
Debounced action scheduling.

A Debouncer holds at most one pending action. Scheduling a new action
cancels the pending one and restarts the quiet period, so a burst of
calls results in a single run of the last action once calls stop.

Once the quiet period has elapsed the action is started as its own
task. Later schedule() or cancel() calls never interrupt it; two
fired actions may therefore overlap.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog


logger = structlog.get_logger(__name__)


Action = Callable[[], Awaitable[None]]


class Debouncer:
    """Cancellable, restartable delayed action bound to the running event loop."""

    def __init__(self, delay: float):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self._delay = delay
        self._timer: Optional[asyncio.Task] = None
        self._action: Optional[Action] = None
        self._in_flight: set[asyncio.Task] = set()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while an action is waiting for its quiet period."""
        return self._timer is not None and not self._timer.done()

    @property
    def in_flight(self) -> int:
        """Number of fired actions that have not finished yet."""
        return len(self._in_flight)

    def schedule(self, action: Action) -> None:
        """
        Replace any pending action and restart the quiet period.

        Must be called from within a running event loop.
        """
        self.cancel()
        self._action = action
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_fire())

    def cancel(self) -> bool:
        """Drop the pending action. Returns True if there was one."""
        if not self.pending:
            self._action = None
            return False
        self._timer.cancel()
        self._timer = None
        self._action = None
        return True

    def flush(self) -> bool:
        """Fire the pending action now. Returns True if there was one."""
        if not self.pending:
            return False
        self._timer.cancel()
        self._timer = None
        self._fire()
        return True

    async def drain(self) -> None:
        """Wait until every fired action has finished."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _wait_then_fire(self) -> None:
        await asyncio.sleep(self._delay)
        self._timer = None
        self._fire()

    def _fire(self) -> None:
        action, self._action = self._action, None
        if action is None:
            return
        task = asyncio.get_running_loop().create_task(action())
        self._in_flight.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "debounced_action_failed",
                error=str(error),
                error_type=type(error).__name__,
            )
