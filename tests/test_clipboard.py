"""
Tests for the self-clearing clipboard channel.
"""
import asyncio
import threading

import pytest

from securepass.clipboard import ClipboardChannel
from securepass.exceptions import ClipboardFailure


class TestCopy:
    """Tests for ClipboardChannel.copy()."""

    async def test_copy_then_clear(self, clipboard):
        """Text is on the clipboard until the delay passes."""
        channel = ClipboardChannel(clipboard)
        await channel.copy("secret", "Password", clear_after=0.05)
        assert clipboard.text == "secret"
        assert channel.pending == {"Password"}
        await asyncio.sleep(0.1)
        assert clipboard.text == ""
        assert channel.pending == frozenset()

    async def test_same_label_supersedes(self, clipboard):
        """A second copy under one label replaces the pending erasure."""
        channel = ClipboardChannel(clipboard)
        await channel.copy("secretA", "password", clear_after=0.2)
        await asyncio.sleep(0.1)
        await channel.copy("secretB", "password", clear_after=0.2)
        assert clipboard.text == "secretB"
        await asyncio.sleep(0.15)
        assert clipboard.erasures == 0
        assert clipboard.text == "secretB"
        await asyncio.sleep(0.15)
        assert clipboard.erasures == 1
        await asyncio.sleep(0.1)
        assert clipboard.erasures == 1

    async def test_labels_are_independent(self, clipboard):
        """Different labels keep their own timers."""
        channel = ClipboardChannel(clipboard)
        await channel.copy("user", "Username", clear_after=0.05)
        await channel.copy("pass", "Password", clear_after=0.3)
        await asyncio.sleep(0.1)
        assert clipboard.erasures == 1
        assert channel.pending == {"Password"}
        await channel.close(clear=False)

    async def test_default_delay(self, clipboard):
        """clear_after defaults to the channel setting."""
        channel = ClipboardChannel(clipboard, clear_after=0.05)
        await channel.copy("secret")
        await asyncio.sleep(0.1)
        assert clipboard.text == ""

    async def test_write_failure(self, clipboard):
        """A rejected write raises ClipboardFailure and schedules nothing."""
        clipboard.fail = True
        channel = ClipboardChannel(clipboard)
        with pytest.raises(ClipboardFailure):
            await channel.copy("secret", "Password", clear_after=0.05)
        assert channel.pending == frozenset()

    async def test_erase_failure_swallowed(self, clipboard):
        """Erasure errors are ignored."""
        clipboard.fail_on_clear = True
        channel = ClipboardChannel(clipboard)
        await channel.copy("secret", "Password", clear_after=0.05)
        await asyncio.sleep(0.1)
        assert channel.pending == frozenset()
        assert clipboard.text == "secret"

    async def test_audited(self, clipboard, audit):
        """Copies are recorded in the audit log when one is attached."""
        channel = ClipboardChannel(clipboard, audit=audit)
        await channel.copy("secret", "Password", clear_after=1)
        assert audit.entries[-1].action == "Copied Password to clipboard"
        await channel.close(clear=False)


class TestCancel:
    """Tests for cancellation and shutdown."""

    async def test_cancel(self, clipboard):
        """cancel() keeps the text and drops the timer."""
        channel = ClipboardChannel(clipboard)
        await channel.copy("secret", "Password", clear_after=0.05)
        assert channel.cancel("Password") is True
        assert channel.cancel("Password") is False
        await asyncio.sleep(0.1)
        assert clipboard.text == "secret"

    async def test_close_clears_now(self, clipboard):
        """close() erases immediately when something was pending."""
        channel = ClipboardChannel(clipboard)
        await channel.copy("secret", "Password", clear_after=10)
        await channel.close()
        assert clipboard.text == ""
        assert channel.pending == frozenset()

    async def test_close_without_pending(self, clipboard):
        """close() with nothing pending leaves the clipboard alone."""
        channel = ClipboardChannel(clipboard)
        await channel.close()
        assert clipboard.writes == []


class ThreadRecordingClipboard:
    """Remembers which thread touched the clipboard."""

    def __init__(self):
        self.threads = []

    def copy(self, text):
        self.threads.append(threading.get_ident())

    def paste(self):
        return ""


class TestBlockingBackend:
    """Backend calls stay off the event loop thread."""

    async def test_copy_and_erase_in_worker_thread(self):
        """Both the write and the erasure run in a worker thread."""
        backend = ThreadRecordingClipboard()
        channel = ClipboardChannel(backend)
        await channel.copy("secret", "Password", clear_after=0.05)
        await asyncio.sleep(0.1)
        assert len(backend.threads) == 2
        assert threading.get_ident() not in backend.threads
