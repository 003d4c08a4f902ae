"""
SessionGuard — Inactivity watchdog for an unlocked session.

The guard arms a single-shot timer on the running asyncio loop. Activity
signals push the deadline back to the full timeout; if the deadline passes
the callback runs once and the guard stays idle until ``start()`` is called
again.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

from .conf import SESSION_TIMEOUT

logger = logging.getLogger("securepass.session")

ACTIVITY_EVENTS = frozenset({
    "mousedown", "mousemove", "keypress", "scroll", "touchstart",
})


class SessionGuard:
    """Fire ``on_timeout`` after ``timeout`` seconds without activity.

    Args:
        timeout: Idle duration in seconds.
        on_timeout: Sync callable or coroutine function run on expiry.
        events: Activity event names accepted by ``notify()``.
        autostart: Arm the timer immediately (needs a running loop).
    """

    def __init__(
        self,
        timeout: float = SESSION_TIMEOUT,
        on_timeout: Optional[Callable[[], Any]] = None,
        *,
        events: frozenset = ACTIVITY_EVENTS,
        autostart: bool = True,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if timeout <= 0:
            raise ValueError("SessionGuard timeout must be positive")
        self.timeout = timeout
        self._on_timeout = on_timeout
        self.events = frozenset(events)
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._fired = False
        if autostart:
            self.start()

    @property
    def active(self) -> bool:
        """True while a countdown is pending."""
        return self._handle is not None

    @property
    def fired(self) -> bool:
        return self._fired

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _arm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._get_loop().call_later(self.timeout, self._expire)

    def _expire(self) -> None:
        self._handle = None
        self._fired = True
        logger.info("Session idle for %.1fs, timing out", self.timeout)
        if self._on_timeout is None:
            return
        result = self._on_timeout()
        if inspect.isawaitable(result):
            self._task = self._get_loop().create_task(result)
            self._task.add_done_callback(self._callback_done)

    def _callback_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            logger.error("Session timeout callback failed: %s", err, exc_info=err)

    def start(self) -> None:
        """Arm (or re-arm) the countdown at the full timeout."""
        self._fired = False
        self._arm()

    restart = start

    def touch(self) -> None:
        """Register user activity; no effect once fired or closed."""
        if self._handle is not None:
            self._arm()

    def notify(self, event: str) -> bool:
        """Handle a named activity event.

        Returns:
            True if the event is a registered activity signal.
        """
        if event not in self.events:
            return False
        self.touch()
        return True

    def close(self) -> None:
        """Cancel any pending countdown."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def wait_closed(self) -> None:
        """Wait for an asynchronous timeout callback to finish.

        Re-raises the exception of a failed callback.
        """
        if self._task is not None:
            await self._task

    async def __aenter__(self) -> "SessionGuard":
        if self._handle is None and not self._fired:
            self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()
