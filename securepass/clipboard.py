"""
ClipboardChannel — Copy secrets to the clipboard and erase them later.

Each copy schedules an erasure on the running asyncio loop. A new copy under
the same label replaces the pending erasure of the previous one; different
labels have independent timers.
"""
import asyncio
import logging
from typing import Optional, Protocol

import pyperclip

from .conf import CLIPBOARD_CLEAR_AFTER
from .exceptions import ClipboardFailure
from .vault.audit import AuditLog

logger = logging.getLogger("securepass.clipboard")


class ClipboardBackend(Protocol):
    def copy(self, text: str) -> None:
        ...

    def paste(self) -> str:
        ...


class PyperclipBackend:
    """System clipboard through pyperclip."""

    def copy(self, text: str) -> None:
        pyperclip.copy(text)

    def paste(self) -> str:
        return pyperclip.paste()


class ClipboardChannel:
    """Clipboard transfer with per-label auto-clear.

    Args:
        backend: Clipboard implementation; defaults to the system clipboard.
        audit: When given, every copy is recorded in the audit log.
        clear_after: Default erasure delay in seconds.
    """

    def __init__(
        self,
        backend: Optional[ClipboardBackend] = None,
        *,
        audit: Optional[AuditLog] = None,
        clear_after: float = CLIPBOARD_CLEAR_AFTER,
    ):
        self._backend = backend or PyperclipBackend()
        self._audit = audit
        self.clear_after = clear_after
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._erasing: set[asyncio.Task] = set()

    @property
    def pending(self) -> frozenset:
        """Labels with a scheduled erasure."""
        return frozenset(self._timers)

    async def _erase(self, label: str) -> None:
        try:
            await asyncio.to_thread(self._backend.copy, "")
        except Exception as err:
            logger.debug("Clipboard erase for %s failed: %s", label, err)

    def _expire(self, label: str) -> None:
        self._timers.pop(label, None)
        task = asyncio.get_running_loop().create_task(self._erase(label))
        self._erasing.add(task)
        task.add_done_callback(self._erasing.discard)

    async def copy(
        self,
        text: str,
        label: str = "text",
        clear_after: Optional[float] = None,
    ) -> None:
        """Put ``text`` on the clipboard and schedule its erasure.

        The backend call runs in a worker thread; pyperclip shells out to
        the platform clipboard tool.

        Raises:
            ClipboardFailure: If the clipboard write was rejected.
        """
        delay = self.clear_after if clear_after is None else clear_after
        try:
            await asyncio.to_thread(self._backend.copy, text)
        except Exception as err:
            raise ClipboardFailure() from err
        self.cancel(label)
        loop = asyncio.get_running_loop()
        self._timers[label] = loop.call_later(delay, self._expire, label)
        logger.debug("Copied %s to clipboard, clearing in %.1fs", label, delay)
        if self._audit is not None:
            await self._audit.add_log(f"Copied {label} to clipboard")

    def cancel(self, label: str) -> bool:
        """Cancel the pending erasure for ``label`` without clearing."""
        handle = self._timers.pop(label, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    async def close(self, clear: bool = True) -> None:
        """Cancel every pending erasure, clearing the clipboard now if asked."""
        had_pending = bool(self._timers)
        for label in list(self._timers):
            self.cancel(label)
        if clear and had_pending:
            await self._erase("*")
        if self._erasing:
            await asyncio.gather(*self._erasing)
