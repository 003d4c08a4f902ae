"""
Shared pytest fixtures for the SecurePass test suite.

Key derivation runs with a low iteration count so the suite stays fast;
every store is an in-memory ``MemoryStore``.
"""
import pytest

from securepass.storage import MemoryStore
from securepass.vault.audit import AuditLog
from securepass.vault.config import VaultConfig
from securepass.vault.crypto import Cipher, KeyManager
from securepass.vault.store import PasswordVault


TEST_ITERATIONS = 1000


class FakeClipboard:
    """Records every clipboard write."""

    def __init__(self, fail: bool = False, fail_on_clear: bool = False):
        self.text = ""
        self.writes: list[str] = []
        self.fail = fail
        self.fail_on_clear = fail_on_clear

    def copy(self, text: str) -> None:
        if self.fail or (self.fail_on_clear and text == ""):
            raise RuntimeError("clipboard unavailable")
        self.writes.append(text)
        self.text = text

    def paste(self) -> str:
        return self.text

    @property
    def erasures(self) -> int:
        return self.writes.count("")


class FailingStore(MemoryStore):
    """MemoryStore whose writes can be switched off."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_writes = False

    async def set(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        await super().set(key, value)

    async def delete(self, key: str) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        await super().delete(key)


@pytest.fixture
def config():
    return VaultConfig(kdf_iterations=TEST_ITERATIONS)


@pytest.fixture
def store():
    return FailingStore()


@pytest.fixture
def keys(config):
    return KeyManager(config)


@pytest.fixture
def cipher(keys):
    return Cipher(keys)


@pytest.fixture
def audit(store):
    return AuditLog(store)


@pytest.fixture
def passwords(store, cipher, audit):
    return PasswordVault(store, cipher, audit)


@pytest.fixture
def clipboard():
    return FakeClipboard()
